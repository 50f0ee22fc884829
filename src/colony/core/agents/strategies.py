"""Reasoning strategies — pluggable planning behaviour for worker agents.

A strategy turns a :class:`Perception` into a :class:`Reasoning` plan and
the prompt the agent will send for generation.  Agents specialise by being
given a different strategy, not by subclassing.
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

from colony.core.agents.models import AgentConfig, Perception, Reasoning, ReasoningStep
from colony.core.messaging.models import BROADCAST

_CLAUSE_SPLIT = re.compile(r"(?<=[.;!?])\s+|\s+then\s+|\s+and then\s+", re.IGNORECASE)


@runtime_checkable
class ReasoningStrategy(Protocol):
    """Plans how an agent will handle what it perceived."""

    name: str

    async def plan(self, config: AgentConfig, perception: Perception) -> Reasoning:
        """Return a plan for *perception*."""
        ...


def build_prompt(config: AgentConfig, perception: Perception, steps: list[ReasoningStep]) -> str:
    """Render the generation prompt for a plan."""
    parts: list[str] = []
    if config.name:
        parts.append(f"You are {config.name}.")
    if config.capabilities:
        skills = ", ".join(c.name for c in config.capabilities)
        parts.append(f"Skills: {skills}")

    parts.append(f"Task: {perception.content}")

    if perception.memories:
        lines = [f"- [{m.type.value}] {m.content}" for m in perception.memories]
        parts.append("Relevant memories:\n" + "\n".join(lines))

    if steps:
        lines = [f"{i}. {s.description}" for i, s in enumerate(steps, 1)]
        parts.append("Plan:\n" + "\n".join(lines))

    return "\n\n".join(parts)


class DirectStrategy:
    """Single-step plan.

    Adds a ``communicate`` step asking *peer* for help when skills are
    missing, or when confidence falls below *collaborate_below*.
    """

    name = "direct"

    def __init__(self, *, collaborate_below: float | None = None, peer: str = BROADCAST) -> None:
        self.collaborate_below = collaborate_below
        self.peer = peer

    async def plan(self, config: AgentConfig, perception: Perception) -> Reasoning:
        steps = [ReasoningStep(description=f"Handle: {perception.content}", confidence=perception.confidence)]

        needs_help = bool(perception.missing_skills) or (
            self.collaborate_below is not None and perception.confidence < self.collaborate_below
        )
        if needs_help:
            wanted = ", ".join(perception.missing_skills) or "a second opinion"
            steps.append(
                ReasoningStep(
                    description=f"Ask for help with {wanted}: {perception.content}",
                    action="communicate",
                    target_agent=self.peer,
                    confidence=perception.confidence,
                )
            )

        return Reasoning(
            strategy=self.name,
            steps=steps,
            confidence=perception.confidence,
            prompt=build_prompt(config, perception, steps),
        )


class StepwiseStrategy:
    """Breaks the task into clauses, then synthesises and validates.

    At most *max_steps* analysis steps are produced; confidence decays by
    *step_decay* per analysis step beyond the first.
    """

    name = "stepwise"

    def __init__(self, max_steps: int = 5, step_decay: float = 0.02) -> None:
        self.max_steps = max_steps
        self.step_decay = step_decay

    async def plan(self, config: AgentConfig, perception: Perception) -> Reasoning:
        clauses = [c.strip() for c in _CLAUSE_SPLIT.split(perception.content) if c.strip()]
        clauses = clauses[: self.max_steps] or [perception.content]

        steps = [ReasoningStep(description=c, confidence=perception.confidence) for c in clauses]
        steps.append(ReasoningStep(description="Combine the partial results", action="synthesize"))
        steps.append(ReasoningStep(description="Check the result against the task", action="validate"))

        confidence = max(0.0, perception.confidence - self.step_decay * (len(clauses) - 1))
        return Reasoning(
            strategy=self.name,
            steps=steps,
            confidence=confidence,
            prompt=build_prompt(config, perception, steps),
        )


STRATEGIES: dict[str, type[DirectStrategy] | type[StepwiseStrategy]] = {
    DirectStrategy.name: DirectStrategy,
    StepwiseStrategy.name: StepwiseStrategy,
}
