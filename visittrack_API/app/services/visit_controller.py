# visit_controller.py
# Description: Owns the in-memory visit set; serializes writes, re-syncs after each one, builds reports.
#
# Imports
import asyncio
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from visittrack_API.app.core.config import AppConfig
from visittrack_API.app.core.Sync.exceptions import LockBusyError, VisitSyncError
from visittrack_API.app.core.Sync.models import MAX_PHOTOS, VisitRecord
from visittrack_API.app.core.Sync.repository import UpsertResult, VisitRepository
from visittrack_API.app.core.Reporting.aggregator import (
    DateRangePartition,
    client_history,
    group_by_region,
    is_visited_this_week,
    latest_location_link,
    partition_by_date_range,
    sort_clients_by_latest_visit,
    sort_newest_first,
    sort_regions,
)
#
#######################################################################################################################
#
# Classes:


@dataclass
class ClientSummary:
    client_name: str
    visits: List[VisitRecord]
    location_link: Optional[str]
    visited_this_week: bool


def default_coverage_window(today: Optional[date] = None) -> Tuple[date, date]:
    """First day of the current month through today."""
    today = today or date.today()
    return today.replace(day=1), today


class VisitController:
    """
    Application controller for visit records.

    The record set is replaced only by a successful read; writes and deletes
    never touch it directly, so a failed delete leaves the record visible.
    """

    def __init__(self, config: AppConfig, repository: Optional[VisitRepository] = None):
        self.config = config
        self.repository = repository or VisitRepository()
        self._records: List[VisitRecord] = []
        self.snapshot_taken_at: Optional[datetime] = None
        self._write_lock = asyncio.Lock()

    @property
    def records(self) -> List[VisitRecord]:
        return list(self._records)

    @property
    def has_snapshot(self) -> bool:
        return self.snapshot_taken_at is not None

    async def refresh(self) -> List[VisitRecord]:
        """Replace the record set with a fresh read from the store."""
        visits = await self.repository.fetch_all(self.config.store)
        self._records = visits
        self.snapshot_taken_at = datetime.now(timezone.utc)
        logger.info(f"Visit snapshot refreshed: {len(visits)} records")
        return self.records

    async def ensure_loaded(self) -> List[VisitRecord]:
        if not self.has_snapshot:
            return await self.refresh()
        return self.records

    def new_visit(self, client_name: str = "", region: str = "", today: Optional[date] = None) -> VisitRecord:
        """Draft record for a client; region defaults to the one used on the client's latest visit."""
        if client_name and not region:
            history = client_history(client_name, self._records)
            region = next((v.region for v in history if v.region), "")
        return VisitRecord.new(client_name=client_name, region=region, today=today)

    def get_visit(self, visit_id: str) -> Optional[VisitRecord]:
        return next((v for v in self._records if v.id == visit_id), None)

    async def save(self, visit: VisitRecord) -> UpsertResult:
        """
        Persist a visit, then re-sync.

        Raises:
            ValueError: Blank client name or too many photos.
            LockBusyError: The store stayed busy through every retry.
            ConfigError, TransportError, SyncError.
        """
        visit = visit.normalized()
        if not visit.client_name:
            raise ValueError("client_name is required")
        if len(visit.photos) > MAX_PHOTOS:
            raise ValueError(f"A visit holds at most {MAX_PHOTOS} photos")

        async with self._write_lock:
            result = await self._with_lock_busy_retry(
                lambda: self.repository.upsert(self.config.store, visit, known=self._records),
                f"save {visit.id}",
            )
            await self._resync_after_write(f"save {visit.id}")
        logger.info(f"Visit {visit.id} saved ({result.intent})")
        return result

    async def delete(self, visit_id: str) -> None:
        """Delete a visit in the store, then re-sync."""
        async with self._write_lock:
            await self._with_lock_busy_retry(
                lambda: self.repository.remove(self.config.store, visit_id),
                f"delete {visit_id}",
            )
            await self._resync_after_write(f"delete {visit_id}")
        logger.info(f"Visit {visit_id} deleted")

    async def attach_analysis(self, visit_id: str, analysis: str) -> VisitRecord:
        """Store an analysis text on an existing visit."""
        visit = self.get_visit(visit_id)
        if visit is None:
            raise KeyError(visit_id)
        updated = replace(visit, ai_analysis=analysis)
        await self.save(updated)
        refreshed = self.get_visit(visit_id) if self.has_snapshot else None
        return refreshed or updated

    async def _resync_after_write(self, label: str):
        # The write is already acknowledged; a failed re-read only leaves the snapshot stale
        try:
            await self.refresh()
        except VisitSyncError as e:
            logger.warning(f"Re-read after {label} failed, snapshot marked stale: {e}")
            self.snapshot_taken_at = None

    async def _with_lock_busy_retry(self, operation, label: str):
        retries = max(0, self.config.store.lock_busy_retries)
        delay = self.config.store.retry_backoff_seconds
        attempt = 0
        while True:
            try:
                return await operation()
            except LockBusyError:
                if attempt >= retries:
                    logger.error(f"Row store still busy after {attempt + 1} attempts to {label}")
                    raise
                attempt += 1
                logger.warning(f"Row store busy during {label}; retry {attempt}/{retries} in {delay:.1f}s")
                await asyncio.sleep(delay)
                delay *= 2

    # --- Reports ---

    def region_report(self, reference_now: Optional[datetime] = None) -> Dict[str, Dict[str, ClientSummary]]:
        """
        Region -> client -> summary, with visits newest first and this week's flag.

        Regions are alphabetical with the unclassified bucket last; clients inside a
        region are ordered by their most recent visit, newest first.
        """
        groups = group_by_region(self._records)
        report: Dict[str, Dict[str, ClientSummary]] = {}
        for region in sort_regions(groups):
            clients = groups[region]
            report[region] = {}
            for client_name in sort_clients_by_latest_visit(clients):
                ordered = sort_newest_first(clients[client_name])
                report[region][client_name] = ClientSummary(
                    client_name=client_name,
                    visits=ordered,
                    location_link=latest_location_link(ordered),
                    visited_this_week=is_visited_this_week(client_name, self._records, reference_now),
                )
        return report

    def coverage_report(self, start: Optional[date] = None, end: Optional[date] = None) -> DateRangePartition:
        default_start, default_end = default_coverage_window()
        return partition_by_date_range(self._records, start or default_start, end or default_end)

    def client_summary(self, client_name: str, reference_now: Optional[datetime] = None) -> ClientSummary:
        visits = client_history(client_name, self._records)
        return ClientSummary(
            client_name=client_name,
            visits=visits,
            location_link=latest_location_link(visits),
            visited_this_week=is_visited_this_week(client_name, self._records, reference_now),
        )

#
# End of visit_controller.py
########################################################################################################################
