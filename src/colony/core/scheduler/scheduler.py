"""TaskScheduler — matches queued tasks to agents and drives their cycles.

Dispatch runs after every submission, agent registration, and task
completion.  Each pass pops tasks in tier order while there is spare
concurrency:

* with no idle agent at all the pass stops and the task stays where it is;
* when idle agents exist but none qualifies, the task is put back in the
  medium tier and the pass stops;
* otherwise the best agent is marked busy and the cycle runs as its own
  :class:`asyncio.Task`.

A failing cycle is reported to the error sink and the task is marked
failed.  Failed tasks are never retried.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

from colony.core.agents.agent import AgentServices
from colony.core.agents.models import OutputType
from colony.core.agents.pool import AgentPool
from colony.core.memory.models import MemoryInput, MemoryMetadata, MemoryType
from colony.core.messaging.router import MessageRouter
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
from colony.runtime.errors import NotFoundError, ShutdownTimeoutError, ValidationError
from colony.runtime.reporting import ErrorCategory, ErrorSeverity, LoggingErrorSink
from colony.utils.telemetry import ATTR_AGENT_ID, ATTR_TASK_ID, ATTR_TASK_PRIORITY, get_tracer

if TYPE_CHECKING:
    from colony.core.agents.agent import Agent
    from colony.core.agents.models import PoolStatus
    from colony.core.inference.coordinator import InferenceCoordinator
    from colony.core.memory.store import MemoryStore
    from colony.runtime.reporting import ErrorSink

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_LEARNING_RELEVANCE = 0.6


class TaskScheduler:
    """Top-level orchestrator for task execution.

    Usage::

        scheduler = TaskScheduler(memory=store, inference=coordinator)
        scheduler.register_agent(WorkerAgent(AgentConfig(id="a", capabilities=[...])))
        task = await scheduler.submit_task(Task(description="...", required_skills=["x"]))
        result = await scheduler.wait_for(task.id)
    """

    def __init__(
        self,
        pool: AgentPool | None = None,
        *,
        config: SchedulerConfig | None = None,
        memory: MemoryStore | None = None,
        inference: InferenceCoordinator | None = None,
        router: MessageRouter | None = None,
        error_sink: ErrorSink | None = None,
    ) -> None:
        self.config = config or SchedulerConfig()
        self.pool = pool if pool is not None else AgentPool(self.config.utilization_weight)
        self.error_sink: ErrorSink = error_sink or LoggingErrorSink()
        self.router = router if router is not None else MessageRouter(self.pool, self.error_sink)
        self.services = AgentServices(memory=memory, inference=inference)

        self._queue = TieredTaskQueue()
        self._tasks: dict[str, Task] = {}
        self._waiting: dict[str, Task] = {}
        self._results: dict[str, asyncio.Future[TaskResult]] = {}
        self._running: dict[str, asyncio.Task[None]] = {}
        self._metrics = SchedulerMetrics()

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def register_agent(self, agent: Agent) -> None:
        """Add *agent* to the pool as idle and dispatch any queued work.

        Must be called with a running event loop when tasks are queued.
        """
        self.pool.register(agent)
        if self._queue:
            self._dispatch()

    def unregister_agent(self, agent_id: str) -> None:
        """Remove *agent_id*; a task it was running is marked failed."""
        state = self.pool.unregister(agent_id)

        task_id = state.current_task
        if task_id is not None:
            running = self._running.pop(task_id, None)
            if running is not None:
                running.cancel()
            task = self._tasks.get(task_id)
            if task is not None:
                self._finish(
                    task,
                    TaskResult(
                        task_id=task_id,
                        success=False,
                        agent_id=agent_id,
                        error=f"agent {agent_id} was unregistered",
                    ),
                )
        self._dispatch()

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    async def submit_task(self, task: Task, priority: TaskPriority | int | str | None = None) -> Task:
        """Queue *task* and try to dispatch it right away.

        *priority*, when given, overrides ``task.priority``.  Tasks whose
        dependencies have not completed are held back until they have.
        """
        if task.id in self._tasks:
            raise ValidationError(f"task {task.id!r} was already submitted", field="id")
        unknown = [dep for dep in task.dependencies if dep not in self._tasks]
        if unknown:
            raise ValidationError(f"unknown dependencies {unknown}", field="dependencies")
        if priority is not None:
            try:
                task.priority = coerce_priority(priority)
            except ValueError as exc:
                raise ValidationError(str(exc), field="priority") from exc

        task.status = TaskStatus.PENDING
        self._tasks[task.id] = task
        self._results[task.id] = asyncio.get_running_loop().create_future()
        self._metrics.total_tasks += 1

        if task.dependencies:
            self._waiting[task.id] = task
            self._release_waiting()
        else:
            self._queue.push(task)

        self._dispatch()
        return task

    def get_task(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    async def wait_for(self, task_id: str) -> TaskResult:
        """Wait until *task_id* finishes and return its result."""
        future = self._results.get(task_id)
        if future is None:
            raise NotFoundError("task", task_id)
        return await asyncio.shield(future)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until no task is running.

        Tasks that cannot be dispatched (for lack of a suitable agent) stay
        queued.  Raises :class:`ShutdownTimeoutError` if *timeout* expires.
        """

        async def _wait() -> None:
            while self._running:
                await asyncio.wait(list(self._running.values()))

        try:
            await asyncio.wait_for(_wait(), timeout)
        except TimeoutError:
            raise ShutdownTimeoutError("task scheduler", timeout or 0.0) from None

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_metrics(self) -> SchedulerMetrics:
        pool = self.pool.status()
        utilization = pool.active / pool.total if pool.total else 0.0
        return self._metrics.model_copy(update={"agent_utilization": utilization})

    def pool_status(self) -> PoolStatus:
        return self.pool.status()

    def queue_status(self) -> QueueStatus:
        return QueueStatus(
            high=self._queue.length(TaskPriority.HIGH),
            medium=self._queue.length(TaskPriority.MEDIUM),
            low=self._queue.length(TaskPriority.LOW),
            waiting=len(self._waiting),
            total=len(self._queue),
        )

    def notify_idle(self) -> None:
        """Dispatch queued work after an agent was returned to idle elsewhere."""
        if self._queue:
            self._dispatch()

    @property
    def running_count(self) -> int:
        return len(self._running)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self) -> None:
        while self._queue and len(self._running) < self.config.max_concurrent_tasks:
            if not self.pool.idle_ids:
                return

            task = self._queue.pop()
            if task is None:
                return

            agent = self.pool.select_agent(task)
            if agent is None:
                self._queue.requeue(task)
                self._metrics.requeued_tasks += 1
                logger.debug("No idle agent qualifies for task %s; re-queued", task.id)
                return

            self.pool.mark_busy(agent.id, task.id)
            task.status = TaskStatus.ASSIGNED
            task.assigned_agent = agent.id
            self._running[task.id] = asyncio.create_task(self._run(task, agent))

    async def _run(self, task: Task, agent: Agent) -> None:
        try:
            with _tracer.start_as_current_span("scheduler.execute_task") as span:
                span.set_attribute(ATTR_TASK_ID, task.id)
                span.set_attribute(ATTR_TASK_PRIORITY, task.priority.value)
                span.set_attribute(ATTR_AGENT_ID, agent.id)

                task.status = TaskStatus.EXECUTING
                start = time.perf_counter()
                try:
                    result = await run_cycle(agent, task, self.services)
                    await self._after_success(task, agent, result)
                except Exception as exc:
                    self.error_sink.report(
                        exc,
                        ErrorCategory.EXECUTION,
                        ErrorSeverity.MEDIUM,
                        {"task_id": task.id, "agent_id": agent.id},
                    )
                    result = TaskResult(
                        task_id=task.id,
                        success=False,
                        agent_id=agent.id,
                        error=str(exc) or type(exc).__name__,
                        duration=time.perf_counter() - start,
                    )

                self.pool.record_result(agent.id, result.success)
                self._finish(task, result)
        finally:
            if self._running.get(task.id) is asyncio.current_task():
                del self._running[task.id]
            self.pool.mark_idle(agent.id)
            self._dispatch()

    async def _after_success(self, task: Task, agent: Agent, result: TaskResult) -> None:
        if result.messages:
            if result.output_type == OutputType.COLLABORATION_REQUEST:
                await self.router.handle_collaboration_request(agent.id, result.messages)
            else:
                for message in result.messages:
                    self.router.enqueue(message)
                await self.router.flush()

        memory = self.services.memory
        if memory is not None and self.config.store_learnings:
            for learning in result.learnings:
                await memory.store(
                    MemoryInput(
                        type=MemoryType.EXPERIENCE,
                        content=learning,
                        metadata=MemoryMetadata(
                            source=agent.id,
                            context=[task.description],
                            tags=["learning", *task.required_skills],
                        ),
                        relevance_score=_LEARNING_RELEVANCE,
                    )
                )

    def _finish(self, task: Task, result: TaskResult) -> None:
        if task.status.is_terminal:
            return

        task.status = TaskStatus.COMPLETED if result.success else TaskStatus.FAILED
        m = self._metrics
        if result.success:
            m.completed_tasks += 1
        else:
            m.failed_tasks += 1
        finished = m.completed_tasks + m.failed_tasks
        m.average_task_duration += (result.duration - m.average_task_duration) / finished

        future = self._results.get(task.id)
        if future is not None and not future.done():
            future.set_result(result)

        logger.info(
            "Task %s %s on %s (%.3fs)",
            task.id,
            task.status.value,
            result.agent_id or "-",
            result.duration,
        )
        self._release_waiting()

    def _release_waiting(self) -> None:
        """Move tasks whose dependencies completed into the queue.

        A task with a failed dependency fails, which may in turn fail its
        own dependents.
        """
        changed = True
        while changed:
            changed = False
            for task_id, task in list(self._waiting.items()):
                if task_id not in self._waiting:
                    continue
                deps = [self._tasks[d] for d in task.dependencies]
                failed = next((d for d in deps if d.status == TaskStatus.FAILED), None)
                if failed is not None:
                    del self._waiting[task_id]
                    self._finish(
                        task,
                        TaskResult(task_id=task_id, success=False, error=f"dependency {failed.id} failed"),
                    )
                    changed = True
                elif all(d.status == TaskStatus.COMPLETED for d in deps):
                    del self._waiting[task_id]
                    self._queue.push(task)
                    changed = True
