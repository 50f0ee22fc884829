"""Runtime layer — error taxonomy, error reporting, and the Colony context."""

from colony.runtime.errors import (
    CapacityError,
    ColonyError,
    ExecutionError,
    NotFoundError,
    ShutdownTimeoutError,
    ValidationError,
)
from colony.runtime.reporting import (
    ErrorCategory,
    ErrorReport,
    ErrorSeverity,
    ErrorSink,
    LoggingErrorSink,
    is_recoverable,
)

__all__ = [
    "CapacityError",
    "ColonyError",
    "ErrorCategory",
    "ErrorReport",
    "ErrorSeverity",
    "ErrorSink",
    "ExecutionError",
    "LoggingErrorSink",
    "NotFoundError",
    "ShutdownTimeoutError",
    "ValidationError",
    "is_recoverable",
]
