# exceptions.py
# Description: Exception hierarchy for visit synchronization against the remote row store
#
"""
Visit Sync Exception Hierarchy
==============================

Exception Categories:
- VisitSyncError: Base exception for everything the sync layer raises
- ConfigError: No usable store endpoint is configured; no network call was made
- TransportError: Network failure, non-2xx status, or a body that is not JSON
- SyncError: The store answered with a well-formed {status: "error"} payload
- LockBusyError: The store could not acquire its write lock in time (retryable)
- QuotaExceededError: The store reported a quota / rate-limit condition (retryable later)
- NotFoundError: The target id is not present in the store
"""

from typing import Optional, Any, Dict


class VisitSyncError(Exception):
    """
    Base exception for all visit sync errors.

    Attributes:
        operation: The store operation that failed ("read", "write", "delete")
        context: Additional context about the error (ids, urls, etc.)
        original_error: The original exception that caused this error (if any)
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.operation = operation
        self.context = context or {}
        self.original_error = original_error

    @property
    def retryable(self) -> bool:
        return False

    def __str__(self) -> str:
        base_message = super().__str__()
        parts = [base_message]

        if self.operation:
            parts.append(f"Operation: {self.operation}")

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")

        if self.original_error:
            parts.append(f"Caused by: {type(self.original_error).__name__}: {self.original_error}")

        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": str(super().__str__()),
            "operation": self.operation,
            "context": self.context,
            "retryable": self.retryable,
            "original_error": str(self.original_error) if self.original_error else None
        }


class ConfigError(VisitSyncError):
    """Raised when the store endpoint is missing or unusable. Never follows a network call."""

    def __init__(self, message: str, setting: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if setting:
            context['setting'] = setting
        super().__init__(message, context=context, **kwargs)
        self.setting = setting


class TransportError(VisitSyncError):
    """
    Raised for network failures, non-2xx responses and bodies that fail to parse as JSON.

    A misconfigured endpoint typically answers with an HTML page (login or
    "file not found"), so the excerpt and ``looks_like_html`` let a caller tell
    "wrong URL / permissions" apart from "server error".
    """

    EXCERPT_LENGTH = 120

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.pop('context', {})
        self.status_code = status_code
        self.body_excerpt = body[:self.EXCERPT_LENGTH] if body else None
        if status_code is not None:
            context['status_code'] = status_code
        if self.body_excerpt:
            context['body_excerpt'] = self.body_excerpt
        super().__init__(message, context=context, **kwargs)

    @property
    def looks_like_html(self) -> bool:
        if not self.body_excerpt:
            return False
        head = self.body_excerpt.lstrip().lower()
        return head.startswith("<!doctype html") or head.startswith("<html")

    @property
    def retryable(self) -> bool:
        # 5xx and connection-level failures may clear up; a bad URL will not
        if self.looks_like_html:
            return False
        return self.status_code is None or self.status_code >= 500


class SyncError(VisitSyncError):
    """The store returned {status: "error", message}. ``store_message`` is kept verbatim."""

    def __init__(self, message: str, store_message: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.store_message = store_message if store_message is not None else message


class LockBusyError(SyncError):
    """The store's cooperative write lock timed out. No partial write happened."""

    @property
    def retryable(self) -> bool:
        return True


class QuotaExceededError(SyncError):
    """The store hit a quota or rate limit; retry after a pause rather than immediately."""

    @property
    def retryable(self) -> bool:
        return True


class NotFoundError(SyncError):
    """No row in the store carries the requested id."""

    def __init__(self, message: str, visit_id: Optional[str] = None, **kwargs):
        context = kwargs.pop('context', {})
        if visit_id:
            context['visit_id'] = visit_id
        super().__init__(message, context=context, **kwargs)
        self.visit_id = visit_id


# Substrings of store messages, lower-cased
LOCK_BUSY_MARKERS = ("server busy", "lock timeout", "could not obtain lock", "timed out waiting for lock")
QUOTA_MARKERS = ("too many times", "quota", "rate limit", "rate-limit")
NOT_FOUND_MARKERS = ("record not found", "not found")


def classify_store_error(
    store_message: Optional[str],
    operation: str,
    visit_id: Optional[str] = None
) -> SyncError:
    """
    Map a {status: "error"} message from the store to the most specific SyncError subclass.

    Args:
        store_message: The ``message`` field of the store response (may be missing).
        operation: "read", "write" or "delete".
        visit_id: The id involved, if any.

    Returns:
        A SyncError (or subclass) instance ready to raise.
    """
    message = store_message or f"Store reported an error during {operation}"
    lowered = message.lower()
    context = {'visit_id': visit_id} if visit_id else {}

    if any(marker in lowered for marker in LOCK_BUSY_MARKERS):
        return LockBusyError(message, store_message=store_message, operation=operation, context=context)
    if any(marker in lowered for marker in QUOTA_MARKERS):
        return QuotaExceededError(message, store_message=store_message, operation=operation, context=context)
    if operation == "delete" and any(marker in lowered for marker in NOT_FOUND_MARKERS):
        return NotFoundError(message, visit_id=visit_id, store_message=store_message, operation=operation)
    return SyncError(message, store_message=store_message, operation=operation, context=context)

#
# End of exceptions.py
########################################################################################################################
