"""Messaging — urgency-ordered delivery between agents."""

from colony.core.messaging.models import BROADCAST, Message, MessageType, RouterMetrics, Urgency
from colony.core.messaging.router import MessageRouter

__all__ = [
    "BROADCAST",
    "Message",
    "MessageRouter",
    "MessageType",
    "RouterMetrics",
    "Urgency",
]
