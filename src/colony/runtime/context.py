"""Colony — the explicit context object that owns every coordinator.

There are no module-level singletons: callers construct a :class:`Colony`,
start it, and shut it down::

    async with Colony(ColonyConfig(model="openai/gpt-4o-mini")) as colony:
        colony.create_agent(AgentConfig(id="writer", capabilities=[...]))
        result = await colony.run(Task(description="..."))

When a :class:`PersistenceStore` is supplied, memory records and the
response cache are restored on :meth:`Colony.start` and saved on
:meth:`Colony.shutdown`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from colony.core.agents.agent import WorkerAgent
from colony.core.agents.pool import AgentPool
from colony.core.delegation.manager import DelegationManager
from colony.core.inference.coordinator import InferenceCoordinator
from colony.core.inference.models import CoordinatorConfig
from colony.core.memory.models import MemoryConfig
from colony.core.memory.store import MemoryStore
from colony.core.messaging.router import MessageRouter
from colony.core.scheduler.models import SchedulerConfig, Task, TaskPriority, TaskResult
from colony.core.scheduler.scheduler import TaskScheduler
from colony.runtime.reporting import LoggingErrorSink

if TYPE_CHECKING:
    from colony.core.agents.models import AgentConfig
    from colony.core.agents.strategies import ReasoningStrategy
    from colony.core.inference.backend import GenerationBackend
    from colony.core.memory.embedding import EmbeddingProvider
    from colony.core.memory.persistence import PersistenceStore
    from colony.runtime.reporting import ErrorSink

logger = logging.getLogger(__name__)


class ColonyConfig(BaseModel):
    """Top-level configuration for a :class:`Colony`."""

    model: str = Field(default="echo", description="Model path handed to every engine's backend.")
    engine_count: int = Field(default=3, ge=1)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    inference: CoordinatorConfig = Field(default_factory=CoordinatorConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    max_error_reports: int = Field(default=100, ge=1)


class Colony:
    """Owns the pool, memory, inference, router, delegation and scheduler."""

    def __init__(
        self,
        config: ColonyConfig | None = None,
        *,
        backend_factory: Callable[[], GenerationBackend] | None = None,
        embedder: EmbeddingProvider | None = None,
        persistence: PersistenceStore | None = None,
        error_sink: ErrorSink | None = None,
    ) -> None:
        self.config = config or ColonyConfig()
        self.persistence = persistence
        self.error_sink: ErrorSink = error_sink or LoggingErrorSink(self.config.max_error_reports)

        self.memory = MemoryStore(self.config.memory, embedder)
        self.inference = InferenceCoordinator(
            self.config.inference, backend_factory, error_sink=self.error_sink
        )
        self.pool = AgentPool(self.config.scheduler.utilization_weight)
        self.router = MessageRouter(self.pool, self.error_sink)
        self.scheduler = TaskScheduler(
            self.pool,
            config=self.config.scheduler,
            memory=self.memory,
            inference=self.inference,
            router=self.router,
            error_sink=self.error_sink,
        )
        self.delegation = DelegationManager(
            self.pool,
            self.router,
            self.scheduler.services,
            error_sink=self.error_sink,
            scheduler=self.scheduler,
        )
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self, model_path: str | None = None, engine_count: int | None = None) -> None:
        if self._started:
            return
        await self.inference.initialize(
            model_path or self.config.model,
            engine_count or self.config.engine_count,
        )
        if self.persistence is not None:
            restored = await self.memory.restore(self.persistence)
            cached = await self.inference.restore_cache(self.persistence)
            logger.info("Restored %d memories and %d cached responses", restored, cached)
        self._started = True

    async def shutdown(self, timeout: float | None = None) -> None:
        """Wait for running tasks, persist state, and release the engines.

        The engines are released even if waiting for tasks times out; the
        timeout error is raised afterwards.
        """
        if not self._started:
            return
        self._started = False
        try:
            await self.scheduler.drain(timeout)
        finally:
            if self.persistence is not None:
                await self.memory.persist(self.persistence)
                await self.inference.persist_cache(self.persistence)
            await self.inference.shutdown(timeout)

    async def __aenter__(self) -> Colony:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.shutdown()

    # ------------------------------------------------------------------
    # Conveniences
    # ------------------------------------------------------------------

    def create_agent(self, config: AgentConfig, strategy: ReasoningStrategy | None = None) -> WorkerAgent:
        """Build a :class:`WorkerAgent` and register it with the scheduler."""
        agent = WorkerAgent(config, strategy)
        self.scheduler.register_agent(agent)
        return agent

    async def submit(self, task: Task, priority: TaskPriority | int | str | None = None) -> Task:
        return await self.scheduler.submit_task(task, priority)

    async def run(self, task: Task, priority: TaskPriority | int | str | None = None) -> TaskResult:
        """Submit *task* and wait for its result."""
        await self.scheduler.submit_task(task, priority)
        return await self.scheduler.wait_for(task.id)
