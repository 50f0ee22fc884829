"""Agents — capability-bearing workers, reasoning strategies, and the agent pool."""

from colony.core.agents.agent import Agent, AgentServices, WorkerAgent, extract_learnings
from colony.core.agents.models import (
    AgentConfig,
    AgentInput,
    AgentOutput,
    AgentRole,
    AgentState,
    AgentStatus,
    Capability,
    OutputType,
    Perception,
    PoolStatus,
    Reasoning,
    ReasoningStep,
)
from colony.core.agents.pool import AgentPool
from colony.core.agents.strategies import (
    STRATEGIES,
    DirectStrategy,
    ReasoningStrategy,
    StepwiseStrategy,
    build_prompt,
)

__all__ = [
    "STRATEGIES",
    "Agent",
    "AgentConfig",
    "AgentInput",
    "AgentOutput",
    "AgentPool",
    "AgentRole",
    "AgentServices",
    "AgentState",
    "AgentStatus",
    "Capability",
    "DirectStrategy",
    "OutputType",
    "Perception",
    "PoolStatus",
    "Reasoning",
    "ReasoningStep",
    "ReasoningStrategy",
    "StepwiseStrategy",
    "WorkerAgent",
    "build_prompt",
    "extract_learnings",
]
