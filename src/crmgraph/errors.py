"""Error hierarchy for crmgraph operations.

Every aggregation and mutation surfaces one of these to its caller:
- ValidationError: malformed or contradictory input
- NotFoundError: a referenced id does not resolve in the record store
- PreconditionError: a current-state check failed before a write
- UpstreamError: the record store failed or timed out

Nothing here is retried; the presentation layer decides how to render them.
"""

from typing import Any, Dict, Optional


class CRMGraphError(Exception):
    """Base exception for crmgraph errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.details = details or {}
        super().__init__(message)


class ValidationError(CRMGraphError):
    """Input is malformed or contradictory (nothing was fetched or written)."""

    def __init__(self, message: str, field: str = ""):
        super().__init__(message, {"field": field})
        self.field = field


class NotFoundError(CRMGraphError):
    """A referenced record does not exist."""

    def __init__(
        self,
        message: str = "Record not found",
        record_type: str = "",
        record_id: str = "",
    ):
        super().__init__(message, {"record_type": record_type, "record_id": record_id})
        self.record_type = record_type
        self.record_id = record_id

    @classmethod
    def for_record(cls, record_type: str, record_id: str) -> "NotFoundError":
        return cls(f"{record_type} '{record_id}' not found", record_type, record_id)


class PreconditionError(CRMGraphError):
    """Current state of a record does not match what the caller expected."""

    def __init__(self, message: str, expected: Any = None, actual: Any = None):
        super().__init__(message, {"expected": expected, "actual": actual})
        self.expected = expected
        self.actual = actual


class UpstreamError(CRMGraphError):
    """The record store failed or timed out."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message, {"operation": operation})
        self.operation = operation
