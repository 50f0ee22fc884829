"""SDK error types."""

from __future__ import annotations


class WorkloadValidationError(Exception):
    """Raised when a workload YAML fails parsing or validation."""
