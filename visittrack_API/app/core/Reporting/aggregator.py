"""
Reporting views over the full set of visit records.

Everything here is pure: functions receive the records they need and return
fresh structures. A visit whose date is absent or unparseable sorts lowest,
never falls inside a range and never counts as a visit this week.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Union

from visittrack_API.app.core.Sync.models import VisitRecord, parse_visit_date


UNCLASSIFIED_REGION = "unclassified"
UNKNOWN_CLIENT = "unknown client"

DateInput = Union[date, datetime, str]


@dataclass
class ClientCoverage:
    """A client visited inside a reporting window."""
    client_name: str
    visits: List[VisitRecord]  # in-range visits, newest first
    most_recent_visit: VisitRecord


@dataclass
class DateRangePartition:
    """Visited / unvisited split of all known clients for one window."""
    start: date
    end: date
    visited: List[ClientCoverage] = field(default_factory=list)
    unvisited: List[str] = field(default_factory=list)


def _sort_key(visit: VisitRecord) -> date:
    return visit.visit_day or date.min


def sort_newest_first(visits: Iterable[VisitRecord]) -> List[VisitRecord]:
    """Order visits by date descending; undated visits go last."""
    return sorted(visits, key=_sort_key, reverse=True)


def _as_date(value: DateInput) -> date:
    parsed = parse_visit_date(value)
    if parsed is None:
        raise ValueError(f"Not a calendar date: {value!r}")
    return parsed


def _has_name(name: Optional[str]) -> bool:
    return bool(name and name.strip())


def group_by_region(records: Sequence[VisitRecord]) -> Dict[str, Dict[str, List[VisitRecord]]]:
    """
    Group records as region -> client name -> visits.

    Blank regions land in UNCLASSIFIED_REGION and blank client names in
    UNKNOWN_CLIENT. Order inside a client bucket follows the input; callers sort.
    """
    groups: Dict[str, Dict[str, List[VisitRecord]]] = {}
    for visit in records:
        region = visit.region if _has_name(visit.region) else UNCLASSIFIED_REGION
        client = visit.client_name if _has_name(visit.client_name) else UNKNOWN_CLIENT
        groups.setdefault(region, {}).setdefault(client, []).append(visit)
    return groups


def sort_regions(regions: Iterable[str]) -> List[str]:
    """Region names in display order: alphabetical, with UNCLASSIFIED_REGION last."""
    return sorted(regions, key=lambda region: (region == UNCLASSIFIED_REGION, region))


def sort_clients_by_latest_visit(clients: Dict[str, List[VisitRecord]]) -> List[str]:
    """Client names ordered by their most recent visit, newest first; ties by name."""
    names = sorted(clients)
    names.sort(key=lambda name: max(_sort_key(v) for v in clients[name]), reverse=True)
    return names


def partition_by_date_range(
    records: Sequence[VisitRecord],
    start: DateInput,
    end: DateInput
) -> DateRangePartition:
    """
    Split every named client into visited / unvisited for the inclusive range [start, end].

    Comparison is on calendar dates, so ``end`` covers its whole day. Visited
    clients are ordered by their latest in-range visit (newest first, ties by
    name); unvisited clients are sorted by name. Records with a blank client
    name belong to no client and appear in neither list.

    Raises:
        ValueError: If ``start`` or ``end`` is not a date.
    """
    start_day, end_day = _as_date(start), _as_date(end)

    in_range: Dict[str, List[VisitRecord]] = {}
    all_clients = set()
    for visit in records:
        if not _has_name(visit.client_name):
            continue
        all_clients.add(visit.client_name)
        day = visit.visit_day
        if day is not None and start_day <= day <= end_day:
            in_range.setdefault(visit.client_name, []).append(visit)

    visited = []
    for client_name, visits in in_range.items():
        ordered = sort_newest_first(visits)
        visited.append(ClientCoverage(client_name=client_name, visits=ordered, most_recent_visit=ordered[0]))
    visited.sort(key=lambda c: c.client_name)
    visited.sort(key=lambda c: _sort_key(c.most_recent_visit), reverse=True)

    unvisited = sorted(all_clients - set(in_range))
    return DateRangePartition(start=start_day, end=end_day, visited=visited, unvisited=unvisited)


def week_start(reference_now: Optional[datetime] = None) -> date:
    """Monday of the week containing ``reference_now`` (local time); a Monday maps to itself."""
    now = reference_now or datetime.now()
    today = now.date() if isinstance(now, datetime) else now
    return today - timedelta(days=today.weekday())


def is_visited_this_week(
    client_name: str,
    records: Sequence[VisitRecord],
    reference_now: Optional[datetime] = None
) -> bool:
    """
    True iff ``client_name`` has a visit dated on or after this week's Monday.

    The Monday boundary is recomputed on every call from ``reference_now``
    (default: the current local time).
    """
    if not _has_name(client_name):
        return False
    monday = week_start(reference_now)
    for visit in records:
        if visit.client_name != client_name:
            continue
        day = visit.visit_day
        if day is not None and day >= monday:
            return True
    return False


def client_history(client_name: str, records: Sequence[VisitRecord]) -> List[VisitRecord]:
    """All visits for one client, newest first."""
    return sort_newest_first(v for v in records if v.client_name == client_name)


def latest_location_link(visits: Sequence[VisitRecord]) -> Optional[str]:
    """First non-blank location link among visits (pass them newest first)."""
    for visit in visits:
        if visit.location_link and visit.location_link.strip():
            return visit.location_link
    return None
