"""The agent execution cycle: perceive → reason → act."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from colony.core.agents.agent import extract_learnings
from colony.core.agents.models import AgentInput
from colony.core.scheduler.models import Task, TaskResult

if TYPE_CHECKING:
    from colony.core.agents.agent import Agent, AgentServices


async def run_cycle(agent: Agent, task: Task, services: AgentServices) -> TaskResult:
    """Run one full cycle of *agent* on *task*.

    Exceptions from the agent propagate; callers decide how to report them.
    ``task.progress`` advances by a third after each stage.
    """
    start = time.perf_counter()
    agent_input = AgentInput(
        type="task",
        content=task.description,
        required_skills=task.required_skills,
        task_id=task.id,
    )

    perception = await agent.perceive(agent_input, services)
    task.progress = 1 / 3
    reasoning = await agent.reason(perception)
    task.progress = 2 / 3
    output = await agent.act(reasoning, services)
    task.progress = 1.0

    return TaskResult(
        task_id=task.id,
        success=True,
        output=output.content,
        artifacts=output.artifacts,
        learnings=extract_learnings(reasoning, output),
        duration=time.perf_counter() - start,
        agent_id=agent.id,
        output_type=output.type,
        messages=output.messages,
    )
