"""DelegationManager — subordinate spawning and the superior/subordinate tree.

The manager owns the hierarchy as an id adjacency map
(``parent id -> [child ids]``); agents never reference each other
directly.  Subordinates live in the shared :class:`AgentPool` like any other
agent.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING
from uuid import uuid4

from colony.core.agents.agent import AgentServices
from colony.core.agents.models import AgentRole
from colony.core.delegation.models import HierarchyNode, HierarchyTree, LoadInfo, RebalanceReport
from colony.core.messaging.models import Message, MessageType, Urgency
from colony.core.scheduler.execution import run_cycle
from colony.core.scheduler.models import Task, TaskResult, TaskStatus
from colony.runtime.errors import NotFoundError
from colony.runtime.reporting import ErrorCategory, ErrorSeverity, LoggingErrorSink
from colony.utils.telemetry import ATTR_AGENT_ID, ATTR_PARENT_AGENT_ID, ATTR_TASK_ID, get_tracer

if TYPE_CHECKING:
    from colony.core.agents.agent import Agent
    from colony.core.agents.pool import AgentPool
    from colony.core.messaging.router import MessageRouter
    from colony.core.scheduler.scheduler import TaskScheduler
    from colony.runtime.reporting import ErrorSink

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

COORDINATOR_ID = "coordinator"
_OVERLOAD_FACTOR = 1.5
_UNDERLOAD_FACTOR = 0.5


class DelegationManager:
    """Spawns subordinates, delegates work to them, and advises on load."""

    def __init__(
        self,
        pool: AgentPool,
        router: MessageRouter,
        services: AgentServices | None = None,
        *,
        error_sink: ErrorSink | None = None,
        scheduler: TaskScheduler | None = None,
    ) -> None:
        self._pool = pool
        self._router = router
        self._services = services or AgentServices()
        self._error_sink: ErrorSink = error_sink or LoggingErrorSink()
        self._scheduler = scheduler
        self.hierarchy: dict[str, list[str]] = {}

    # ------------------------------------------------------------------
    # Subordinates
    # ------------------------------------------------------------------

    def create_subordinate(self, parent_id: str, task: Task) -> Agent:
        """Spawn a subordinate of *parent_id* for *task* and register it."""
        parent = self._pool.get(parent_id)
        sub_id = f"{parent_id}.sub_{uuid4().hex[:8]}"
        config = parent.config.model_copy(
            update={
                "id": sub_id,
                "name": f"{parent.config.name or parent_id} (subordinate)",
                "role": AgentRole.SUBORDINATE,
                "superior_id": parent_id,
                "metadata": {**parent.config.metadata, "task_id": task.id},
            },
            deep=True,
        )
        subordinate = parent.spawn(config)
        self._pool.register(subordinate)
        self.hierarchy.setdefault(parent_id, []).append(sub_id)

        logger.debug("Created subordinate %s for %s (task %s)", sub_id, parent_id, task.id)
        return subordinate

    def release_subordinate(self, agent_id: str) -> None:
        """Unregister a subordinate and drop it from the hierarchy.

        Its own subordinates are re-attached to its superior.
        """
        agent = self._pool.get(agent_id)
        parent_id = agent.config.superior_id
        children = self.hierarchy.pop(agent_id, [])

        if parent_id is not None and parent_id in self.hierarchy:
            siblings = self.hierarchy[parent_id]
            if agent_id in siblings:
                siblings.remove(agent_id)
            siblings.extend(children)
            if not siblings:
                del self.hierarchy[parent_id]

        self._pool.unregister(agent_id)

    async def delegate_task(self, parent_id: str, task: Task) -> TaskResult:
        """Hand *task* to a fresh subordinate of *parent_id* and run it.

        Execution failures are reported and returned as an unsuccessful
        result.
        """
        with _tracer.start_as_current_span("delegation.delegate_task") as span:
            span.set_attribute(ATTR_PARENT_AGENT_ID, parent_id)
            span.set_attribute(ATTR_TASK_ID, task.id)

            start = time.perf_counter()
            subordinate = self.create_subordinate(parent_id, task)
            span.set_attribute(ATTR_AGENT_ID, subordinate.id)

            await self._router.route(
                Message(
                    from_agent=parent_id,
                    to_agent=subordinate.id,
                    type=MessageType.TASK,
                    urgency=Urgency.HIGH,
                    content=task.description,
                    payload={"task_id": task.id, "required_skills": task.required_skills},
                )
            )

            self._pool.mark_busy(subordinate.id, task.id)
            task.status = TaskStatus.EXECUTING
            task.assigned_agent = subordinate.id
            try:
                result = await run_cycle(subordinate, task, self._services)
            except Exception as exc:
                self._error_sink.report(
                    exc,
                    ErrorCategory.EXECUTION,
                    ErrorSeverity.MEDIUM,
                    {"task_id": task.id, "agent_id": subordinate.id, "parent_id": parent_id},
                )
                result = TaskResult(
                    task_id=task.id,
                    success=False,
                    agent_id=subordinate.id,
                    error=str(exc) or type(exc).__name__,
                )
            finally:
                self._pool.mark_idle(subordinate.id)

            self._pool.record_result(subordinate.id, result.success)
            if self._scheduler is not None:
                self._scheduler.notify_idle()
            task.status = TaskStatus.COMPLETED if result.success else TaskStatus.FAILED
            return result.model_copy(update={"duration": time.perf_counter() - start})

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def build_hierarchy_tree(self) -> HierarchyTree:
        """Tree of all pooled agents.

        Roots are agents with no registered superior in the map; subordinates
        of an unregistered agent become roots.
        """
        agent_ids = [a.id for a in self._pool.agents]
        children_of = {
            parent: [c for c in children if c in self._pool]
            for parent, children in self.hierarchy.items()
            if parent in self._pool
        }
        has_parent = {c for children in children_of.values() for c in children}

        visited: set[str] = set()

        def build(agent_id: str) -> HierarchyNode:
            visited.add(agent_id)
            agent = self._pool.get(agent_id)
            return HierarchyNode(
                agent_id=agent_id,
                role=agent.config.role,
                status=self._pool.get_state(agent_id).status,
                children=[build(c) for c in children_of.get(agent_id, []) if c not in visited],
            )

        roots = [build(agent_id) for agent_id in agent_ids if agent_id not in has_parent]
        return HierarchyTree(roots=roots, total_agents=len(agent_ids))

    def subordinates_of(self, agent_id: str) -> list[str]:
        return list(self.hierarchy.get(agent_id, []))

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load_balancing(self) -> list[LoadInfo]:
        infos: list[LoadInfo] = []
        for agent in self._pool.agents:
            state = self._pool.get_state(agent.id)
            infos.append(
                LoadInfo(
                    agent_id=agent.id,
                    status=state.status,
                    current_task_count=1 if state.current_task else 0,
                    subordinate_count=len(self.hierarchy.get(agent.id, [])),
                    tasks_completed=state.tasks_completed,
                    tasks_failed=state.tasks_failed,
                )
            )
        return infos

    async def rebalance(self) -> RebalanceReport:
        """Advise overloaded agents to delegate.

        Agents above 1.5x the mean task count get an ``instruction``
        message; agents below 0.5x are only reported.
        """
        infos = self.load_balancing()
        if not infos:
            return RebalanceReport()

        mean = sum(i.current_task_count for i in infos) / len(infos)
        overloaded = [i.agent_id for i in infos if i.current_task_count > mean * _OVERLOAD_FACTOR]
        underloaded = [i.agent_id for i in infos if i.current_task_count < mean * _UNDERLOAD_FACTOR]

        sent = 0
        for agent_id in overloaded:
            try:
                sent += await self._router.route(
                    Message(
                        from_agent=COORDINATOR_ID,
                        to_agent=agent_id,
                        type=MessageType.INSTRUCTION,
                        urgency=Urgency.MEDIUM,
                        content="Consider delegating tasks to subordinates",
                        payload={"mean_load": mean},
                    )
                )
            except NotFoundError:
                logger.debug("Agent %s left before rebalance instruction", agent_id)

        return RebalanceReport(
            mean_load=mean,
            overloaded=overloaded,
            underloaded=underloaded,
            instructions_sent=sent,
        )
