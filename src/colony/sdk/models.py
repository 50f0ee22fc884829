"""Pydantic models for the workload YAML schema consumed by ``colony run``."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from colony.core.agents.models import AgentConfig, AgentRole, Capability, PoolStatus
from colony.core.inference.models import CoordinatorConfig, CoordinatorMetrics
from colony.core.memory.models import MemoryConfig, MemoryInput, MemoryStats
from colony.core.scheduler.models import SchedulerConfig, SchedulerMetrics, Task, TaskPriority, TaskResult
from colony.runtime.reporting import ErrorReport


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None


class BackendSettings(BaseModel):
    """Which generation backend every engine uses."""

    type: Literal["echo", "litellm"] = "echo"
    delay: float = Field(default=0.0, ge=0.0, description="Echo backend only.")
    api_key: str | None = None
    api_base: str | None = None


class EmbeddingSettings(BaseModel):
    type: Literal["hash", "litellm"] = "hash"
    dimensions: int = Field(default=256, ge=1)
    model: str | None = None

    @model_validator(mode="after")
    def _require_model(self) -> EmbeddingSettings:
        if self.type == "litellm" and not self.model:
            msg = "litellm embeddings require 'model'"
            raise ValueError(msg)
        return self


class ComponentSettings(BaseModel):
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    inference: CoordinatorConfig = Field(default_factory=CoordinatorConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)


class AgentSpec(BaseModel):
    """An agent declared in the workload."""

    id: str
    name: str = ""
    role: AgentRole = AgentRole.PEER
    superior: str | None = None
    capabilities: list[Capability] = []
    strategy: Literal["direct", "stepwise"] = "direct"
    max_tokens: int = Field(default=256, ge=1)
    temperature: float = 0.7
    memory_limit: int = Field(default=5, ge=0)

    def to_config(self) -> AgentConfig:
        return AgentConfig(
            id=self.id,
            name=self.name,
            role=self.role,
            superior_id=self.superior,
            capabilities=self.capabilities,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            memory_limit=self.memory_limit,
        )


class TaskSpec(BaseModel):
    id: str
    description: str
    required_skills: list[str] = []
    priority: TaskPriority | int = TaskPriority.MEDIUM
    dependencies: list[str] = []

    def to_task(self) -> Task:
        return Task(
            id=self.id,
            description=self.description,
            required_skills=self.required_skills,
            priority=self.priority,
            dependencies=self.dependencies,
        )


class WorkloadSpec(BaseModel):
    """Top-level workload definition parsed from YAML."""

    version: str = "1"
    name: str = ""
    model: str = "echo"
    engines: int = Field(default=3, ge=1)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    config: ComponentSettings = Field(default_factory=ComponentSettings)
    telemetry: TelemetrySettings | None = None
    agents: list[AgentSpec]
    memories: list[MemoryInput] = []
    tasks: list[TaskSpec] = []

    @model_validator(mode="after")
    def _validate_references(self) -> WorkloadSpec:
        agent_ids = [a.id for a in self.agents]
        if len(set(agent_ids)) != len(agent_ids):
            msg = "agent ids must be unique"
            raise ValueError(msg)
        for agent in self.agents:
            if agent.superior is not None and agent.superior not in agent_ids:
                msg = f"agent '{agent.id}' references unknown superior '{agent.superior}'"
                raise ValueError(msg)

        seen: set[str] = set()
        for task in self.tasks:
            if task.id in seen:
                msg = f"duplicate task id '{task.id}'"
                raise ValueError(msg)
            for dep in task.dependencies:
                if dep not in seen:
                    msg = f"task '{task.id}' depends on '{dep}', which must be declared before it"
                    raise ValueError(msg)
            if not any(_covers(agent, task.required_skills) for agent in self.agents):
                msg = f"no agent offers every skill task '{task.id}' requires: {task.required_skills}"
                raise ValueError(msg)
            seen.add(task.id)

        return self


def _covers(agent: AgentSpec, skills: list[str]) -> bool:
    offered = {c.name for c in agent.capabilities}
    return all(skill in offered for skill in skills)


class WorkloadReport(BaseModel):
    """Everything a finished workload run produced."""

    name: str = ""
    results: list[TaskResult] = []
    scheduler: SchedulerMetrics = Field(default_factory=SchedulerMetrics)
    inference: CoordinatorMetrics = Field(default_factory=CoordinatorMetrics)
    memory: MemoryStats = Field(default_factory=MemoryStats)
    pool: PoolStatus = Field(default_factory=PoolStatus)
    errors: list[ErrorReport] = []
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return all(r.success for r in self.results)
