"""AgentPool — registry of agents and their idle/active status sets.

Every registered agent is in exactly one of the two sets: *idle* (free to
take a task) or *active* (holding one).  Registration order is remembered
and breaks ties during agent selection.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from colony.core.agents.models import AgentState, AgentStatus, PoolStatus
from colony.runtime.errors import NotFoundError, ValidationError

if TYPE_CHECKING:
    from colony.core.agents.agent import Agent
    from colony.core.scheduler.models import Task

logger = logging.getLogger(__name__)

_EXCLUDED = -1.0


class AgentPool:
    """Owns agent lifetime and status for the coordinators.

    Parameters
    ----------
    utilization_weight:
        Weight of an agent's utilization (its share of finished tasks)
        subtracted from its selection score.
    """

    def __init__(self, utilization_weight: float = 0.1) -> None:
        self.utilization_weight = utilization_weight
        self._agents: dict[str, Agent] = {}
        self._states: dict[str, AgentState] = {}
        self._idle: set[str] = set()
        self._active: set[str] = set()

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, agent: Agent) -> AgentState:
        if agent.id in self._agents:
            raise ValidationError(f"agent {agent.id!r} is already registered", field="id")

        state = AgentState(agent_id=agent.id)
        self._agents[agent.id] = agent
        self._states[agent.id] = state
        self._idle.add(agent.id)
        agent.status = AgentStatus.IDLE

        superior_id = agent.config.superior_id
        if superior_id in self._states and agent.id not in self._states[superior_id].subordinate_ids:
            self._states[superior_id].subordinate_ids.append(agent.id)

        logger.debug("Registered agent %s", agent.id)
        return state

    def unregister(self, agent_id: str) -> AgentState:
        """Remove *agent_id* from every set and return its final state."""
        if agent_id not in self._agents:
            raise NotFoundError("agent", agent_id)

        agent = self._agents.pop(agent_id)
        state = self._states.pop(agent_id)
        self._idle.discard(agent_id)
        self._active.discard(agent_id)

        superior_id = agent.config.superior_id
        if superior_id in self._states:
            subordinates = self._states[superior_id].subordinate_ids
            if agent_id in subordinates:
                subordinates.remove(agent_id)

        logger.debug("Unregistered agent %s", agent_id)
        return state

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, agent_id: str) -> Agent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise NotFoundError("agent", agent_id)
        return agent

    def get_state(self, agent_id: str) -> AgentState:
        state = self._states.get(agent_id)
        if state is None:
            raise NotFoundError("agent", agent_id)
        return state

    @property
    def agents(self) -> list[Agent]:
        """All agents in registration order."""
        return list(self._agents.values())

    @property
    def idle_ids(self) -> list[str]:
        return [agent_id for agent_id in self._agents if agent_id in self._idle]

    @property
    def active_ids(self) -> list[str]:
        return [agent_id for agent_id in self._agents if agent_id in self._active]

    def status(self) -> PoolStatus:
        return PoolStatus(
            total=len(self._agents),
            active=len(self._active),
            idle=len(self._idle),
            busy=sum(1 for s in self._states.values() if s.status == AgentStatus.BUSY),
        )

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def mark_busy(self, agent_id: str, task_id: str | None = None) -> None:
        state = self.get_state(agent_id)
        self._idle.discard(agent_id)
        self._active.add(agent_id)
        state.status = AgentStatus.BUSY
        state.current_task = task_id
        self._agents[agent_id].status = AgentStatus.BUSY

    def mark_idle(self, agent_id: str) -> bool:
        """Return *agent_id* to the idle set; ``False`` if it was unregistered."""
        state = self._states.get(agent_id)
        if state is None:
            return False
        self._active.discard(agent_id)
        self._idle.add(agent_id)
        state.status = AgentStatus.IDLE
        state.current_task = None
        self._agents[agent_id].status = AgentStatus.IDLE
        return True

    def record_result(self, agent_id: str, success: bool) -> None:
        state = self._states.get(agent_id)
        if state is None:
            return
        if success:
            state.tasks_completed += 1
        else:
            state.tasks_failed += 1

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def utilization(self, agent_id: str) -> float:
        """Share of the pool's finished tasks that *agent_id* handled, in ``[0, 1]``."""
        state = self.get_state(agent_id)
        total = sum(s.finished for s in self._states.values())
        return state.finished / total if total else 0.0

    def score(self, agent_id: str, required_skills: list[str]) -> float:
        """Selection score of *agent_id* for a task needing *required_skills*.

        ``-1`` when the agent lacks any required skill; otherwise the sum of
        the matching capabilities' confidences minus the utilization
        penalty.  A task with no required skills counts as a full match
        (``1.0``) for every agent.  The result may be negative, in which
        case the agent does not qualify.
        """
        agent = self.get(agent_id)
        if not required_skills:
            total = 1.0
        else:
            total = 0.0
            for skill in required_skills:
                capability = agent.config.capability(skill)
                if capability is None:
                    return _EXCLUDED
                total += capability.confidence

        return total - self.utilization_weight * self.utilization(agent_id)

    def select_agent(self, task: Task) -> Agent | None:
        """Best idle agent for *task*, or ``None`` if no idle agent qualifies.

        Only non-negative scores qualify; ties go to the earliest registered.
        """
        best: Agent | None = None
        best_score = 0.0
        for agent_id in self.idle_ids:
            score = self.score(agent_id, task.required_skills)
            if score < 0:
                continue
            if best is None or score > best_score:
                best = self._agents[agent_id]
                best_score = score
        return best
