"""Scheduler data models — tasks, results, configuration, and metrics."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from colony.core.agents.models import OutputType
from colony.core.messaging.models import Message


class TaskPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TaskStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


def coerce_priority(value: Any) -> TaskPriority:
    """Map a tier name or a numeric priority onto a tier.

    Numbers: ``>= 7`` is high, ``>= 4`` is medium, anything lower is low.
    """
    if isinstance(value, TaskPriority):
        return value
    if isinstance(value, bool):
        raise ValueError(f"invalid priority: {value!r}")
    if isinstance(value, int | float):
        if value >= 7:
            return TaskPriority.HIGH
        if value >= 4:
            return TaskPriority.MEDIUM
        return TaskPriority.LOW
    return TaskPriority(str(value).lower())


class Task(BaseModel):
    """A unit of work.  At most one agent is assigned at a time."""

    id: str = Field(default_factory=lambda: f"task_{uuid4().hex[:12]}")
    description: str
    required_skills: list[str] = []
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    assigned_agent: str | None = None
    dependencies: list[str] = []
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> TaskPriority:
        return coerce_priority(value)


class TaskResult(BaseModel):
    """Outcome of one agent cycle.  ``duration`` is in seconds."""

    task_id: str
    success: bool
    output: str = ""
    artifacts: list[str] = []
    learnings: list[str] = []
    duration: float = 0.0
    agent_id: str | None = None
    error: str | None = None
    output_type: OutputType = OutputType.RESPONSE
    messages: list[Message] = []


class SchedulerConfig(BaseModel):
    max_concurrent_tasks: int = Field(default=5, ge=1)
    utilization_weight: float = Field(default=0.1, ge=0.0)
    store_learnings: bool = True


class SchedulerMetrics(BaseModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    requeued_tasks: int = 0
    average_task_duration: float = 0.0
    agent_utilization: float = 0.0


class QueueStatus(BaseModel):
    high: int = 0
    medium: int = 0
    low: int = 0
    waiting: int = 0
    total: int = 0
