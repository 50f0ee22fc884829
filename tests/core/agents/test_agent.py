"""Tests for WorkerAgent and the learning extractor."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from colony.core.agents.agent import Agent, AgentServices, WorkerAgent, extract_learnings
from colony.core.agents.models import (
    AgentConfig,
    AgentInput,
    AgentOutput,
    AgentStatus,
    Capability,
    OutputType,
    Reasoning,
    ReasoningStep,
)
from colony.core.agents.strategies import DirectStrategy, StepwiseStrategy
from colony.core.inference.models import InferenceResponse
from colony.core.memory.models import MemoryInput
from colony.core.memory.store import MemoryStore
from colony.core.messaging.models import Message, MessageType


def _agent(*skills: tuple[str, float], **config: object) -> WorkerAgent:
    return WorkerAgent(
        AgentConfig(
            id="worker",
            capabilities=[
                Capability(name=name, confidence=conf, description=f"{name} work") for name, conf in skills
            ],
            **config,  # type: ignore[arg-type]
        )
    )


class TestWorkerAgent:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(_agent(), Agent)

    def test_defaults(self) -> None:
        agent = _agent()
        assert agent.id == "worker"
        assert agent.status == AgentStatus.IDLE
        assert isinstance(agent.strategy, DirectStrategy)

    def test_spawn_shares_strategy(self) -> None:
        strategy = StepwiseStrategy()
        agent = WorkerAgent(AgentConfig(id="parent"), strategy)
        child = agent.spawn(AgentConfig(id="child"))
        assert child.id == "child"
        assert child.strategy is strategy

    async def test_receive_message(self) -> None:
        agent = _agent()
        message = Message(from_agent="other", to_agent="worker", type=MessageType.NOTIFICATION)
        await agent.receive_message(message)
        assert agent.inbox == [message]


class TestPerceive:
    async def test_matched_skill_confidence(self) -> None:
        agent = _agent(("x", 0.9), ("y", 0.7))
        perception = await agent.perceive(
            AgentInput(content="do it", required_skills=["x", "y"]), AgentServices()
        )
        assert perception.understood
        assert perception.matched_skills == ["x", "y"]
        assert perception.missing_skills == []
        assert perception.confidence == pytest.approx(0.8)
        assert perception.suggested_actions == ["Consider using x: x work", "Consider using y: y work"]

    async def test_missing_skill(self) -> None:
        agent = _agent(("x", 0.9))
        perception = await agent.perceive(
            AgentInput(content="do it", required_skills=["x", "z"]), AgentServices()
        )
        assert not perception.understood
        assert perception.missing_skills == ["z"]
        assert perception.confidence == pytest.approx(0.9)

    async def test_only_missing_skills(self) -> None:
        perception = await _agent(("x", 0.9)).perceive(
            AgentInput(content="do it", required_skills=["z"]), AgentServices()
        )
        assert perception.confidence == 0.0

    async def test_no_required_skills_uses_best_capability(self) -> None:
        perception = await _agent(("x", 0.4), ("y", 0.6)).perceive(AgentInput(content="anything"), AgentServices())
        assert perception.confidence == pytest.approx(0.6)

    async def test_no_capabilities_default_confidence(self) -> None:
        perception = await _agent().perceive(AgentInput(content="anything"), AgentServices())
        assert perception.confidence == pytest.approx(0.5)

    async def test_blank_content_not_understood(self) -> None:
        perception = await _agent().perceive(AgentInput(content="   "), AgentServices())
        assert not perception.understood

    async def test_retrieves_memories_up_to_limit(self) -> None:
        store = MemoryStore()
        for i in range(4):
            await store.store(MemoryInput(content=f"note {i} about deploys"))

        agent = _agent(memory_limit=2)
        perception = await agent.perceive(AgentInput(content="deploys"), AgentServices(memory=store))
        assert len(perception.memories) == 2

    async def test_zero_memory_limit_skips_store(self) -> None:
        store = MagicMock()
        store.retrieve = AsyncMock()
        agent = _agent(memory_limit=0)
        await agent.perceive(AgentInput(content="x"), AgentServices(memory=store))
        store.retrieve.assert_not_called()


class TestAct:
    async def test_without_inference_uses_plan_summary(self) -> None:
        reasoning = Reasoning(strategy="direct", steps=[ReasoningStep(description="Handle: x")], confidence=0.7)
        output = await _agent().act(reasoning, AgentServices())
        assert output.type == OutputType.RESPONSE
        assert output.content == "1. Handle: x"
        assert output.confidence == pytest.approx(0.7)

    async def test_with_inference(self) -> None:
        inference = MagicMock()
        inference.submit = AsyncMock(return_value=InferenceResponse(text="generated"))
        agent = _agent(max_tokens=64, temperature=0.2)
        reasoning = Reasoning(strategy="direct", prompt="the prompt")

        output = await agent.act(reasoning, AgentServices(inference=inference, inference_priority=8))

        assert output.content == "generated"
        request = inference.submit.call_args.args[0]
        assert request.prompt == "the prompt"
        assert request.max_tokens == 64
        assert request.temperature == 0.2
        assert inference.submit.call_args.kwargs["priority"] == 8

    async def test_communicate_steps_become_requests(self) -> None:
        reasoning = Reasoning(
            strategy="direct",
            steps=[
                ReasoningStep(description="Handle: x"),
                ReasoningStep(description="Ask for help", action="communicate", target_agent="peer"),
            ],
        )
        output = await _agent().act(reasoning, AgentServices())
        assert output.type == OutputType.COLLABORATION_REQUEST
        assert len(output.messages) == 1
        message = output.messages[0]
        assert message.from_agent == "worker"
        assert message.to_agent == "peer"
        assert message.type == MessageType.REQUEST

    async def test_validate_steps_are_next_steps(self) -> None:
        reasoning = Reasoning(
            strategy="stepwise",
            steps=[ReasoningStep(description="Check it", action="validate")],
        )
        output = await _agent().act(reasoning, AgentServices())
        assert output.next_steps == ["Check it"]


class TestExtractLearnings:
    def test_high_confidence(self) -> None:
        learnings = extract_learnings(Reasoning(strategy="direct"), AgentOutput(confidence=0.9))
        assert learnings == ["direct strategy was effective for this type of task"]

    def test_long_plan(self) -> None:
        steps = [ReasoningStep(description=str(i)) for i in range(6)]
        learnings = extract_learnings(Reasoning(strategy="stepwise", steps=steps), AgentOutput(confidence=0.75))
        assert learnings == ["Complex multi-step reasoning can be successful with proper breakdown"]

    def test_collaboration(self) -> None:
        output = AgentOutput(confidence=0.1, messages=[Message(from_agent="a")])
        assert extract_learnings(Reasoning(strategy="direct"), output) == [
            "Collaboration with other agents improved outcome quality"
        ]

    def test_nothing_learned(self) -> None:
        assert extract_learnings(Reasoning(strategy="direct"), AgentOutput(confidence=0.5)) == []
