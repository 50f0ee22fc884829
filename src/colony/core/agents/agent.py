"""Agent protocol and the composition-based worker implementation.

Agents never hold references to the memory store or inference
coordinator.  Whoever drives a cycle passes them in as
:class:`AgentServices`, so the coordinators stay the sole owners of those
resources.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from colony.core.agents.models import (
    AgentConfig,
    AgentInput,
    AgentOutput,
    AgentStatus,
    OutputType,
    Perception,
    Reasoning,
)
from colony.core.agents.strategies import DirectStrategy, ReasoningStrategy
from colony.core.inference.models import InferenceRequest
from colony.core.messaging.models import Message, MessageType, Urgency

if TYPE_CHECKING:
    from colony.core.inference.coordinator import InferenceCoordinator
    from colony.core.memory.models import MemoryRecord
    from colony.core.memory.store import MemoryStore

logger = logging.getLogger(__name__)

_DEFAULT_CONFIDENCE = 0.5


@dataclass
class AgentServices:
    """Shared collaborators lent to an agent for the duration of a cycle."""

    memory: MemoryStore | None = None
    inference: InferenceCoordinator | None = None
    inference_priority: int = 5


@runtime_checkable
class Agent(Protocol):
    """A capability-bearing worker."""

    config: AgentConfig
    status: AgentStatus

    @property
    def id(self) -> str: ...

    async def perceive(self, input: AgentInput, services: AgentServices) -> Perception: ...

    async def reason(self, perception: Perception) -> Reasoning: ...

    async def act(self, reasoning: Reasoning, services: AgentServices) -> AgentOutput: ...

    async def receive_message(self, message: Message) -> None: ...

    def spawn(self, config: AgentConfig) -> Agent:
        """Create a new agent of the same kind with *config*."""
        ...


class WorkerAgent:
    """General-purpose agent whose planning is delegated to a strategy.

    Usage::

        agent = WorkerAgent(
            AgentConfig(id="coder", capabilities=[Capability(name="python", confidence=0.9)]),
            StepwiseStrategy(),
        )
    """

    def __init__(self, config: AgentConfig, strategy: ReasoningStrategy | None = None) -> None:
        self.config = config
        self.strategy: ReasoningStrategy = strategy or DirectStrategy()
        self.status = AgentStatus.IDLE
        self.inbox: list[Message] = []

    @property
    def id(self) -> str:
        return self.config.id

    def __repr__(self) -> str:
        return f"WorkerAgent(id={self.id!r}, strategy={self.strategy.name!r})"

    async def perceive(self, input: AgentInput, services: AgentServices) -> Perception:
        memories: list[MemoryRecord] = []
        if services.memory is not None and self.config.memory_limit:
            memories = await services.memory.retrieve(input.content, limit=self.config.memory_limit)

        matched = [cap for skill in input.required_skills if (cap := self.config.capability(skill))]
        missing = [skill for skill in input.required_skills if self.config.capability(skill) is None]

        if matched:
            confidence = sum(c.confidence for c in matched) / len(matched)
        elif self.config.capabilities and not input.required_skills:
            confidence = max(c.confidence for c in self.config.capabilities)
        else:
            confidence = _DEFAULT_CONFIDENCE if not missing else 0.0

        return Perception(
            content=input.content,
            understood=bool(input.content.strip()) and not missing,
            confidence=confidence,
            memories=memories,
            matched_skills=[c.name for c in matched],
            missing_skills=missing,
            suggested_actions=[f"Consider using {c.name}: {c.description}" for c in matched if c.description],
        )

    async def reason(self, perception: Perception) -> Reasoning:
        return await self.strategy.plan(self.config, perception)

    async def act(self, reasoning: Reasoning, services: AgentServices) -> AgentOutput:
        if services.inference is not None:
            request = InferenceRequest(
                prompt=reasoning.prompt,
                max_tokens=self.config.max_tokens,
                temperature=self.config.temperature,
            )
            response = await services.inference.submit(request, priority=services.inference_priority)
            content = response.text
        else:
            content = reasoning.summary

        messages = [
            Message(
                from_agent=self.id,
                to_agent=step.target_agent,
                type=MessageType.REQUEST,
                urgency=Urgency.MEDIUM,
                content=step.description,
            )
            for step in reasoning.steps
            if step.action == "communicate" and step.target_agent
        ]

        return AgentOutput(
            type=OutputType.COLLABORATION_REQUEST if messages else OutputType.RESPONSE,
            content=content,
            messages=messages,
            confidence=reasoning.confidence,
            next_steps=[s.description for s in reasoning.steps if s.action == "validate"],
        )

    async def receive_message(self, message: Message) -> None:
        logger.debug("Agent %s received %s from %s", self.id, message.type.value, message.from_agent)
        self.inbox.append(message)

    def spawn(self, config: AgentConfig) -> WorkerAgent:
        return WorkerAgent(config, self.strategy)


def extract_learnings(reasoning: Reasoning, output: AgentOutput) -> list[str]:
    """Lessons worth remembering from a completed cycle."""
    learnings: list[str] = []
    if output.confidence > 0.8:
        learnings.append(f"{reasoning.strategy} strategy was effective for this type of task")
    if len(reasoning.steps) > 5 and output.confidence > 0.7:
        learnings.append("Complex multi-step reasoning can be successful with proper breakdown")
    if output.messages:
        learnings.append("Collaboration with other agents improved outcome quality")
    return learnings
