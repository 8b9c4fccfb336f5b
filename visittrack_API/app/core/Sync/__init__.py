# visittrack_API/app/core/Sync/__init__.py
from .exceptions import (
    VisitSyncError,
    ConfigError,
    TransportError,
    SyncError,
    LockBusyError,
    QuotaExceededError,
    NotFoundError,
)
from .models import VisitRecord, ROW_LAYOUT, encode_row, decode_row, find_row_index
from .transport import RowStoreTransport, AppsScriptTransport
from .repository import VisitRepository, UpsertResult

__all__ = [
    "VisitSyncError",
    "ConfigError",
    "TransportError",
    "SyncError",
    "LockBusyError",
    "QuotaExceededError",
    "NotFoundError",
    "VisitRecord",
    "ROW_LAYOUT",
    "encode_row",
    "decode_row",
    "find_row_index",
    "RowStoreTransport",
    "AppsScriptTransport",
    "VisitRepository",
    "UpsertResult",
]
