"""Shared error types for the coordination runtime."""

from __future__ import annotations


class ColonyError(Exception):
    """Base error for all coordination failures."""


class ValidationError(ColonyError):
    """A caller supplied malformed parameters."""

    def __init__(self, detail: str = "", *, field: str | None = None) -> None:
        self.detail = detail
        self.field = field
        msg = "Validation error"
        if field:
            msg += f" on '{field}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class CapacityError(ColonyError):
    """No agent or engine was available when one was required."""

    def __init__(self, resource: str, detail: str = "") -> None:
        self.resource = resource
        self.detail = detail
        super().__init__(f"No {resource} available" + (f": {detail}" if detail else ""))


class ExecutionError(ColonyError):
    """A task or generation job failed while running."""

    def __init__(self, subject: str, detail: str = "") -> None:
        self.subject = subject
        self.detail = detail
        super().__init__(f"Execution failed: {subject}" + (f" ({detail})" if detail else ""))


class ShutdownTimeoutError(ColonyError, TimeoutError):
    """Waiting for in-flight work during shutdown exceeded the timeout."""

    def __init__(self, component: str, timeout: float) -> None:
        self.component = component
        self.timeout = timeout
        super().__init__(f"{component} shutdown timed out after {timeout}s")


class NotFoundError(ColonyError, LookupError):
    """An agent, task, or memory id is unknown."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")
