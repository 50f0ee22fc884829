"""Agent data models — capabilities, configuration, and the cycle's payloads.

An agent runs one *cycle* per task: :class:`AgentInput` is perceived into a
:class:`Perception`, a reasoning strategy turns that into a
:class:`Reasoning` plan, and acting on the plan yields an
:class:`AgentOutput`.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from colony.core.memory.models import MemoryRecord
from colony.core.messaging.models import Message

# ---------------------------------------------------------------------------
# Identity & configuration
# ---------------------------------------------------------------------------


class Capability(BaseModel):
    """A named skill with a self-assessed confidence."""

    name: str
    description: str = ""
    input_types: list[str] = []
    output_types: list[str] = []
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class AgentRole(str, Enum):
    SUPERIOR = "superior"
    SUBORDINATE = "subordinate"
    PEER = "peer"


class AgentStatus(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    BUSY = "busy"
    ERROR = "error"


class AgentConfig(BaseModel):
    """Static configuration of an agent.

    ``memory_limit`` caps how many memories are consulted per perception.
    """

    id: str
    name: str = ""
    role: AgentRole = AgentRole.PEER
    superior_id: str | None = None
    capabilities: list[Capability] = []
    max_tokens: int = Field(default=256, ge=1)
    temperature: float = 0.7
    memory_limit: int = Field(default=5, ge=0)
    metadata: dict[str, Any] = {}

    def capability(self, name: str) -> Capability | None:
        for cap in self.capabilities:
            if cap.name == name:
                return cap
        return None


class AgentState(BaseModel):
    """Runtime state the pool keeps for each registered agent."""

    agent_id: str
    status: AgentStatus = AgentStatus.IDLE
    current_task: str | None = None
    subordinate_ids: list[str] = []
    tasks_completed: int = 0
    tasks_failed: int = 0

    @property
    def finished(self) -> int:
        return self.tasks_completed + self.tasks_failed


class PoolStatus(BaseModel):
    total: int = 0
    active: int = 0
    idle: int = 0
    busy: int = 0


# ---------------------------------------------------------------------------
# Cycle payloads
# ---------------------------------------------------------------------------


class AgentInput(BaseModel):
    type: Literal["task", "agent_message", "system_event"] = "task"
    content: str
    required_skills: list[str] = []
    task_id: str | None = None
    source_agent: str | None = None
    metadata: dict[str, Any] = {}


class Perception(BaseModel):
    content: str
    understood: bool
    confidence: float = 0.0
    memories: list[MemoryRecord] = []
    matched_skills: list[str] = []
    missing_skills: list[str] = []
    suggested_actions: list[str] = []


class ReasoningStep(BaseModel):
    description: str
    action: Literal["analyze", "communicate", "synthesize", "validate"] = "analyze"
    target_agent: str | None = None
    confidence: float = 1.0


class Reasoning(BaseModel):
    """A plan produced by a reasoning strategy.

    ``prompt`` is what :meth:`act` sends to the inference coordinator.
    """

    strategy: str
    steps: list[ReasoningStep] = []
    confidence: float = 0.0
    prompt: str = ""

    @property
    def summary(self) -> str:
        return "\n".join(f"{i}. {step.description}" for i, step in enumerate(self.steps, 1))


class OutputType(str, Enum):
    ACTION = "action"
    RESPONSE = "response"
    QUESTION = "question"
    COLLABORATION_REQUEST = "collaboration_request"


class AgentOutput(BaseModel):
    type: OutputType = OutputType.RESPONSE
    content: str = ""
    messages: list[Message] = []
    artifacts: list[str] = []
    confidence: float = 0.0
    next_steps: list[str] = []
