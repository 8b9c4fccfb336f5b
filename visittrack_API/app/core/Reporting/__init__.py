from .aggregator import (
    UNCLASSIFIED_REGION,
    UNKNOWN_CLIENT,
    ClientCoverage,
    DateRangePartition,
    group_by_region,
    partition_by_date_range,
    is_visited_this_week,
    sort_clients_by_latest_visit,
    sort_regions,
    week_start,
    client_history,
    latest_location_link,
    sort_newest_first,
)

__all__ = [
    "UNCLASSIFIED_REGION",
    "UNKNOWN_CLIENT",
    "ClientCoverage",
    "DateRangePartition",
    "group_by_region",
    "partition_by_date_range",
    "is_visited_this_week",
    "sort_clients_by_latest_visit",
    "sort_regions",
    "week_start",
    "client_history",
    "latest_location_link",
    "sort_newest_first",
]
