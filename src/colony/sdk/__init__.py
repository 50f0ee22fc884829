"""Colony SDK — programmatic interface for loading and running workloads."""

from colony.sdk.errors import WorkloadValidationError
from colony.sdk.models import (
    AgentSpec,
    BackendSettings,
    ComponentSettings,
    EmbeddingSettings,
    TaskSpec,
    TelemetrySettings,
    WorkloadReport,
    WorkloadSpec,
)
from colony.sdk.workload import WorkloadLoader, WorkloadRunner

__all__ = [
    "AgentSpec",
    "BackendSettings",
    "ComponentSettings",
    "EmbeddingSettings",
    "TaskSpec",
    "TelemetrySettings",
    "WorkloadLoader",
    "WorkloadReport",
    "WorkloadRunner",
    "WorkloadSpec",
    "WorkloadValidationError",
]
