"""Tests for the MessageRouter."""

from __future__ import annotations

import pytest

from colony.core.agents.agent import WorkerAgent
from colony.core.agents.models import AgentConfig
from colony.core.agents.pool import AgentPool
from colony.core.messaging.models import BROADCAST, Message, MessageType, Urgency
from colony.core.messaging.router import MessageRouter
from colony.runtime.errors import NotFoundError
from colony.runtime.reporting import ErrorCategory, LoggingErrorSink


def _setup(
    *agent_ids: str,
) -> tuple[MessageRouter, dict[str, WorkerAgent], LoggingErrorSink, AgentPool]:
    pool = AgentPool()
    agents: dict[str, WorkerAgent] = {}
    for agent_id in agent_ids:
        agent = WorkerAgent(AgentConfig(id=agent_id))
        pool.register(agent)
        agents[agent_id] = agent
    sink = LoggingErrorSink()
    return MessageRouter(pool, sink), agents, sink, pool


class TestMessage:
    def test_defaults(self) -> None:
        message = Message(from_agent="a")
        assert message.id.startswith("msg_")
        assert message.to_agent == BROADCAST
        assert message.is_broadcast

    def test_urgency_rank(self) -> None:
        ranks = [u.rank for u in (Urgency.LOW, Urgency.MEDIUM, Urgency.HIGH, Urgency.CRITICAL)]
        assert ranks == sorted(ranks)


class TestRoute:
    async def test_direct(self) -> None:
        router, agents, _, _ = _setup("a", "b")
        delivered = await router.route(Message(from_agent="a", to_agent="b", content="hi"))
        assert delivered == 1
        assert [m.content for m in agents["b"].inbox] == ["hi"]
        assert agents["a"].inbox == []

    async def test_direct_unknown_target(self) -> None:
        router, _, _, _ = _setup("a")
        with pytest.raises(NotFoundError):
            await router.route(Message(from_agent="a", to_agent="ghost"))

    async def test_broadcast_excludes_sender(self) -> None:
        router, agents, _, _ = _setup("a", "b", "c")
        delivered = await router.broadcast("a", "news", type=MessageType.KNOWLEDGE_SHARE)
        assert delivered == 2
        assert agents["a"].inbox == []
        assert agents["b"].inbox[0].to_agent == "b"
        assert agents["c"].inbox[0].to_agent == "c"
        assert agents["c"].inbox[0].type == MessageType.KNOWLEDGE_SHARE
        metrics = router.metrics
        assert metrics.broadcasts == 1
        assert metrics.messages_routed == 2


class TestFlush:
    async def test_orders_by_urgency_stably(self) -> None:
        router, agents, _, _ = _setup("sender", "r")
        for content, urgency in [
            ("low", Urgency.LOW),
            ("medium-1", Urgency.MEDIUM),
            ("critical", Urgency.CRITICAL),
            ("medium-2", Urgency.MEDIUM),
            ("high", Urgency.HIGH),
        ]:
            router.enqueue(Message(from_agent="sender", to_agent="r", content=content, urgency=urgency))

        assert router.metrics.queue_length == 5
        delivered = await router.flush()

        assert delivered == 5
        assert [m.content for m in agents["r"].inbox] == ["critical", "high", "medium-1", "medium-2", "low"]
        assert router.pending == []

    async def test_failures_reported_and_flush_continues(self) -> None:
        router, agents, sink, _ = _setup("a", "b")
        router.enqueue(Message(from_agent="a", to_agent="ghost", content="lost"))
        router.enqueue(Message(from_agent="a", to_agent="b", content="found"))

        delivered = await router.flush()

        assert delivered == 1
        assert [m.content for m in agents["b"].inbox] == ["found"]
        assert router.metrics.messages_failed == 1
        reports = sink.by_category(ErrorCategory.MESSAGING)
        assert len(reports) == 1
        assert reports[0].context["to_agent"] == "ghost"

    async def test_single_flight(self) -> None:
        router, agents, _, pool = _setup("a", "b")

        class _Reentrant(WorkerAgent):
            async def receive_message(self, message: Message) -> None:
                await super().receive_message(message)
                router.enqueue(Message(from_agent="c", to_agent="b", content="later"))
                assert await router.flush() == 0

        pool_agent = _Reentrant(AgentConfig(id="c"))
        pool.register(pool_agent)

        router.enqueue(Message(from_agent="a", to_agent="c", content="first"))
        assert await router.flush() == 1
        assert [m.content for m in router.pending] == ["later"]
        assert await router.flush() == 1
        assert [m.content for m in agents["b"].inbox] == ["later"]

    async def test_empty_flush(self) -> None:
        router, _, _, _ = _setup("a")
        assert await router.flush() == 0


class TestCollaboration:
    async def test_broadcast_request_goes_to_idle_agents_only(self) -> None:
        router, agents, _, pool = _setup("asker", "idle", "busy")
        pool.mark_busy("busy")
        pool.mark_busy("asker")

        delivered = await router.handle_collaboration_request(
            "asker", [Message(from_agent="asker", type=MessageType.REQUEST, content="help")]
        )

        assert delivered == 1
        assert [m.content for m in agents["idle"].inbox] == ["help"]
        assert agents["busy"].inbox == []
        assert agents["asker"].inbox == []

    async def test_direct_request(self) -> None:
        router, agents, _, _ = _setup("asker", "expert")
        await router.handle_collaboration_request(
            "asker", [Message(from_agent="asker", to_agent="expert", content="help")]
        )
        assert len(agents["expert"].inbox) == 1
