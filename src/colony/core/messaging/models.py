"""Message models for agent-to-agent communication."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

BROADCAST = "all"


class MessageType(str, Enum):
    TASK = "task"
    REQUEST = "request"
    RESPONSE = "response"
    NOTIFICATION = "notification"
    INSTRUCTION = "instruction"
    KNOWLEDGE_SHARE = "knowledge_share"


class Urgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


_URGENCY_RANK = {
    Urgency.LOW: 0,
    Urgency.MEDIUM: 1,
    Urgency.HIGH: 2,
    Urgency.CRITICAL: 3,
}


class Message(BaseModel):
    """A message between agents.  ``to_agent == "all"`` means broadcast."""

    id: str = Field(default_factory=lambda: f"msg_{uuid4().hex[:12]}")
    from_agent: str
    to_agent: str = BROADCAST
    type: MessageType = MessageType.NOTIFICATION
    urgency: Urgency = Urgency.MEDIUM
    content: str = ""
    payload: dict[str, Any] = {}
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_broadcast(self) -> bool:
        return self.to_agent == BROADCAST


class RouterMetrics(BaseModel):
    messages_routed: int = 0
    messages_failed: int = 0
    broadcasts: int = 0
    queue_length: int = 0
