# repository.py
# Description: Visit repository - upsert/delete-by-scan synchronization against the row store
#
# Imports
from collections import Counter
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, TYPE_CHECKING
#
# Third-party imports
from loguru import logger
#
# Local imports
from .exceptions import TransportError
from .models import (
    VisitRecord,
    decode_store_row,
    encode_row,
    find_row_index,
    row_to_object,
)
from .transport import AppsScriptTransport, RowStoreTransport
#
if TYPE_CHECKING:
    from visittrack_API.app.core.config import SyncConfig
#
#######################################################################################################################
#
# Classes:

UPDATE = "update"
APPEND = "append"


@dataclass(frozen=True)
class UpsertResult:
    """
    Outcome of an acknowledged upsert.

    ``intent`` is what the local scan of the last known rows predicted. The store
    repeats the scan under its own lock and its decision is the one applied, so a
    concurrent writer can make the two differ.
    """
    visit_id: str
    intent: str
    row: List[Any]


class VisitRepository:
    """
    Translates VisitRecord values to and from the store's positional rows.

    The repository keeps no copy of the record set: every call receives the
    configuration and, for upserts, the snapshot it should scan.
    """

    def __init__(self, transport: Optional[RowStoreTransport] = None):
        self.transport = transport or AppsScriptTransport()

    async def fetch_all(self, config: "SyncConfig") -> List[VisitRecord]:
        """
        Read and decode every row in the store.

        Raises:
            ConfigError: No usable endpoint.
            TransportError: Network failure, non-2xx status, non-JSON body or malformed rows.
            SyncError: The store answered {status: "error"}.
        """
        raw_rows = await self.transport.read(config)
        visits = []
        for position, raw in enumerate(raw_rows):
            try:
                visits.append(decode_store_row(raw))
            except (ValueError, TypeError) as e:
                logger.error(f"Row {position} from the store could not be decoded: {e}")
                raise TransportError(
                    f"Row store returned a malformed row at position {position}",
                    operation="read",
                    original_error=e,
                ) from e

        self._report_data_quality(visits)
        return visits

    async def upsert(
        self,
        config: "SyncConfig",
        visit: VisitRecord,
        known: Optional[Sequence[VisitRecord]] = None
    ) -> UpsertResult:
        """
        Write one visit; the store updates the row with the same id in place or appends.

        Args:
            config: Store configuration.
            visit: The record to persist.
            known: The last successfully read snapshot, used to predict update vs append.

        Raises:
            ValueError: The visit has no id or more photos than slots.
            ConfigError, TransportError, SyncError (and subclasses).
        """
        if not str(visit.id).strip():
            raise ValueError("A visit must carry an id before it can be written")

        row = encode_row(visit)
        known_rows = [encode_row(v) for v in (known or [])]
        intent = UPDATE if find_row_index(known_rows, visit.id) >= 0 else APPEND
        logger.debug(f"Upserting visit id={visit.id} (local scan predicts {intent})")

        await self.transport.write(config, row_to_object(row))
        return UpsertResult(visit_id=visit.id, intent=intent, row=row)

    async def remove(self, config: "SyncConfig", visit_id: str) -> None:
        """
        Delete the row carrying ``visit_id``.

        Raises:
            NotFoundError: The store has no row with that id.
            ConfigError, TransportError, SyncError.
        """
        if not str(visit_id).strip():
            raise ValueError("visit_id cannot be empty")
        logger.debug(f"Deleting visit id={visit_id}")
        await self.transport.delete(config, visit_id)

    @staticmethod
    def _report_data_quality(visits: List[VisitRecord]):
        duplicates = [vid for vid, count in Counter(v.id for v in visits if v.id).items() if count > 1]
        if duplicates:
            logger.warning(f"Row store holds duplicate ids (first row wins on write): {duplicates[:5]}")

        missing_ids = sum(1 for v in visits if not v.id)
        if missing_ids:
            logger.warning(f"{missing_ids} rows in the row store have no id and cannot be updated or deleted")

        # Older store scripts coerced blank coordinate cells to 0
        zeroed = sum(1 for v in visits if v.latitude == 0 and v.longitude == 0)
        if zeroed:
            logger.warning(
                f"{zeroed} visits carry coordinates (0, 0); these may be blanks written by an older store script"
            )

#
# End of repository.py
########################################################################################################################
