"""Three-tier task queue: strict tier order, FIFO within a tier."""

from __future__ import annotations

from collections import deque

from colony.core.scheduler.models import Task, TaskPriority

_TIER_ORDER = (TaskPriority.HIGH, TaskPriority.MEDIUM, TaskPriority.LOW)


class TieredTaskQueue:
    def __init__(self) -> None:
        self._tiers: dict[TaskPriority, deque[Task]] = {tier: deque() for tier in _TIER_ORDER}

    def __len__(self) -> int:
        return sum(len(q) for q in self._tiers.values())

    def __bool__(self) -> bool:
        return any(self._tiers.values())

    def push(self, task: Task, tier: TaskPriority | None = None) -> None:
        """Append *task* to *tier* (its own priority by default)."""
        self._tiers[tier or task.priority].append(task)

    def pop(self) -> Task | None:
        for tier in _TIER_ORDER:
            if self._tiers[tier]:
                return self._tiers[tier].popleft()
        return None

    def requeue(self, task: Task) -> None:
        """Put back a task no agent could take.

        Always lands in the medium tier, whatever the task's own priority.
        """
        self._tiers[TaskPriority.MEDIUM].append(task)

    def remove(self, task_id: str) -> Task | None:
        for q in self._tiers.values():
            for task in q:
                if task.id == task_id:
                    q.remove(task)
                    return task
        return None

    def length(self, tier: TaskPriority) -> int:
        return len(self._tiers[tier])

    def tasks(self) -> list[Task]:
        """Queued tasks in dispatch order."""
        return [task for tier in _TIER_ORDER for task in self._tiers[tier]]
