"""Task scheduling — tiered queue, agent matching, and the execution cycle."""

from colony.core.scheduler.execution import run_cycle
from colony.core.scheduler.models import (
    QueueStatus,
    SchedulerConfig,
    SchedulerMetrics,
    Task,
    TaskPriority,
    TaskResult,
    TaskStatus,
    coerce_priority,
)
from colony.core.scheduler.queue import TieredTaskQueue
from colony.core.scheduler.scheduler import TaskScheduler

__all__ = [
    "QueueStatus",
    "SchedulerConfig",
    "SchedulerMetrics",
    "Task",
    "TaskPriority",
    "TaskResult",
    "TaskScheduler",
    "TaskStatus",
    "TieredTaskQueue",
    "coerce_priority",
    "run_cycle",
]
