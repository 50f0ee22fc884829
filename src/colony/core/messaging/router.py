"""MessageRouter — direct, broadcast, and urgency-ordered queued delivery.

:meth:`MessageRouter.route` delivers immediately.  :meth:`enqueue` plus
:meth:`flush` batch messages: each flush takes the messages queued at that
moment, orders them by urgency (critical first, stable within a level) and
delivers them.  Flushes are single-flight; a flush requested while one is
running returns immediately and anything enqueued meanwhile waits for the
next flush.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from colony.core.messaging.models import BROADCAST, Message, MessageType, RouterMetrics, Urgency
from colony.runtime.reporting import ErrorCategory, ErrorSeverity, LoggingErrorSink
from colony.utils.telemetry import ATTR_MESSAGES_DELIVERED, get_tracer

if TYPE_CHECKING:
    from colony.core.agents.pool import AgentPool
    from colony.runtime.reporting import ErrorSink

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


class MessageRouter:
    """Delivers messages to agents registered in *pool*."""

    def __init__(self, pool: AgentPool, error_sink: ErrorSink | None = None) -> None:
        self._pool = pool
        self._error_sink: ErrorSink = error_sink or LoggingErrorSink()
        self._queue: list[Message] = []
        self._flushing = False
        self._metrics = RouterMetrics()

    @property
    def pending(self) -> list[Message]:
        return list(self._queue)

    @property
    def metrics(self) -> RouterMetrics:
        return self._metrics.model_copy(update={"queue_length": len(self._queue)})

    async def route(self, message: Message) -> int:
        """Deliver *message* now and return the number of recipients.

        Raises :class:`~colony.runtime.errors.NotFoundError` when a direct
        target is not registered.
        """
        if message.is_broadcast:
            recipients = [a for a in self._pool.agents if a.id != message.from_agent]
            for agent in recipients:
                await agent.receive_message(message.model_copy(update={"to_agent": agent.id}))
            self._metrics.broadcasts += 1
        else:
            agent = self._pool.get(message.to_agent)
            await agent.receive_message(message)
            recipients = [agent]

        self._metrics.messages_routed += len(recipients)
        return len(recipients)

    async def broadcast(
        self,
        from_agent: str,
        content: str,
        type: MessageType = MessageType.NOTIFICATION,
        urgency: Urgency = Urgency.MEDIUM,
    ) -> int:
        return await self.route(
            Message(from_agent=from_agent, to_agent=BROADCAST, type=type, urgency=urgency, content=content)
        )

    def enqueue(self, message: Message) -> None:
        self._queue.append(message)

    async def flush(self) -> int:
        """Deliver the currently queued messages; returns recipients reached.

        Delivery failures are reported to the error sink and do not stop the
        flush.
        """
        if self._flushing:
            return 0

        self._flushing = True
        delivered = 0
        try:
            with _tracer.start_as_current_span("router.flush") as span:
                batch, self._queue = self._queue, []
                batch.sort(key=lambda m: m.urgency.rank, reverse=True)

                for message in batch:
                    try:
                        delivered += await self.route(message)
                    except Exception as exc:
                        self._metrics.messages_failed += 1
                        self._error_sink.report(
                            exc,
                            ErrorCategory.MESSAGING,
                            ErrorSeverity.LOW,
                            {"message_id": message.id, "from_agent": message.from_agent, "to_agent": message.to_agent},
                        )

                span.set_attribute(ATTR_MESSAGES_DELIVERED, delivered)
        finally:
            self._flushing = False

        return delivered

    async def handle_collaboration_request(self, agent_id: str, messages: list[Message]) -> int:
        """Forward a collaboration request's messages.

        Messages with an explicit target go to it; broadcast messages go to
        every currently idle agent except *agent_id*.
        """
        for message in messages:
            if message.is_broadcast:
                for idle_id in self._pool.idle_ids:
                    if idle_id != agent_id:
                        self.enqueue(message.model_copy(update={"to_agent": idle_id}))
            else:
                self.enqueue(message)

        logger.debug("Collaboration request from %s: %d message(s) queued", agent_id, len(self._queue))
        return await self.flush()
