"""Error Sink — structured failure reporting for the coordination runtime.

Components never log and swallow on their own; they hand failures to an
:class:`ErrorSink` together with a category, a severity, and a context
dict.  :class:`LoggingErrorSink` is the default implementation: it keeps a
bounded, newest-first history and writes each report through stdlib
logging at a level chosen by severity.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import uuid4

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    CAPACITY = "capacity"
    EXECUTION = "execution"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    MESSAGING = "messaging"
    INFERENCE = "inference"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_RECOVERABLE = {
    ErrorCategory.VALIDATION,
    ErrorCategory.CAPACITY,
    ErrorCategory.EXECUTION,
    ErrorCategory.MESSAGING,
    ErrorCategory.INFERENCE,
}

_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


class ErrorReport(BaseModel):
    """A single reported failure."""

    id: str = Field(default_factory=lambda: f"err_{uuid4().hex[:12]}")
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    context: dict[str, Any] = {}
    error_type: str | None = None
    recoverable: bool = True


@runtime_checkable
class ErrorSink(Protocol):
    """Receives structured failure reports."""

    def report(
        self,
        error: BaseException | str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        context: dict[str, Any] | None = None,
    ) -> ErrorReport:
        """Record *error* and return the stored report."""
        ...


def is_recoverable(category: ErrorCategory, severity: ErrorSeverity) -> bool:
    """Critical failures are never recoverable; otherwise it depends on category."""
    if severity == ErrorSeverity.CRITICAL:
        return False
    return category in _RECOVERABLE


class LoggingErrorSink:
    """Default :class:`ErrorSink` backed by stdlib logging.

    Keeps at most *max_reports* entries, newest first.
    """

    def __init__(self, max_reports: int = 100) -> None:
        self._max_reports = max_reports
        self._reports: list[ErrorReport] = []

    def report(
        self,
        error: BaseException | str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        context: dict[str, Any] | None = None,
    ) -> ErrorReport:
        entry = ErrorReport(
            message=error if isinstance(error, str) else str(error) or type(error).__name__,
            category=category,
            severity=severity,
            context=dict(context or {}),
            error_type=None if isinstance(error, str) else type(error).__name__,
            recoverable=is_recoverable(category, severity),
        )

        self._reports.insert(0, entry)
        del self._reports[self._max_reports :]

        logger.log(
            _LOG_LEVELS[severity],
            "[%s] %s (id=%s, context=%s)",
            category.value,
            entry.message,
            entry.id,
            entry.context,
        )
        return entry

    @property
    def reports(self) -> list[ErrorReport]:
        return list(self._reports)

    def by_category(self, category: ErrorCategory) -> list[ErrorReport]:
        return [r for r in self._reports if r.category == category]

    def by_severity(self, severity: ErrorSeverity) -> list[ErrorReport]:
        return [r for r in self._reports if r.severity == severity]

    def clear(self) -> None:
        self._reports.clear()
