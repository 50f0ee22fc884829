"""Tests for the tiered task queue."""

from colony.core.scheduler.models import Task, TaskPriority
from colony.core.scheduler.queue import TieredTaskQueue


def _task(task_id: str, priority: TaskPriority) -> Task:
    return Task(id=task_id, description=task_id, priority=priority)


class TestTieredTaskQueue:
    def setup_method(self) -> None:
        self.queue = TieredTaskQueue()

    def test_empty(self) -> None:
        assert not self.queue
        assert len(self.queue) == 0
        assert self.queue.pop() is None

    def test_tier_order_then_fifo(self) -> None:
        self.queue.push(_task("low", TaskPriority.LOW))
        self.queue.push(_task("med1", TaskPriority.MEDIUM))
        self.queue.push(_task("high", TaskPriority.HIGH))
        self.queue.push(_task("med2", TaskPriority.MEDIUM))

        assert [t.id for t in self.queue.tasks()] == ["high", "med1", "med2", "low"]
        popped = [self.queue.pop() for _ in range(4)]
        assert [t.id for t in popped if t] == ["high", "med1", "med2", "low"]

    def test_push_explicit_tier(self) -> None:
        self.queue.push(_task("t", TaskPriority.LOW), TaskPriority.HIGH)
        assert self.queue.length(TaskPriority.HIGH) == 1

    def test_requeue_goes_to_medium(self) -> None:
        self.queue.push(_task("m", TaskPriority.MEDIUM))
        self.queue.requeue(_task("h", TaskPriority.HIGH))
        assert self.queue.length(TaskPriority.HIGH) == 0
        assert [t.id for t in self.queue.tasks()] == ["m", "h"]

    def test_remove(self) -> None:
        self.queue.push(_task("a", TaskPriority.LOW))
        self.queue.push(_task("b", TaskPriority.LOW))
        removed = self.queue.remove("a")
        assert removed is not None and removed.id == "a"
        assert self.queue.remove("a") is None
        assert len(self.queue) == 1
