"""Workload loading and execution for the Colony SDK."""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from colony.core.agents.models import AgentConfig
from colony.core.agents.strategies import STRATEGIES
from colony.core.inference.backend import EchoBackend, GenerationBackend, LiteLLMBackend
from colony.core.memory.embedding import EmbeddingProvider, HashEmbeddingProvider, LiteLLMEmbeddingProvider
from colony.runtime.context import Colony, ColonyConfig
from colony.runtime.reporting import LoggingErrorSink
from colony.sdk.errors import WorkloadValidationError
from colony.sdk.models import AgentSpec, WorkloadReport, WorkloadSpec
from colony.utils.telemetry import configure_telemetry

if TYPE_CHECKING:
    from colony.core.memory.persistence import PersistenceStore


class WorkloadLoader:
    """Load and validate a workload YAML file into a :class:`WorkloadSpec`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> WorkloadSpec:
        """Read YAML, interpolate env vars, and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before YAML parsing.

        Raises:
            WorkloadValidationError: On YAML parse errors or schema validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise WorkloadValidationError(f"Cannot read {self._path}: {exc}") from exc

        return self.parse(raw)

    @staticmethod
    def parse(raw: str) -> WorkloadSpec:
        """Validate workload YAML given as a string."""
        expanded = os.path.expandvars(raw)

        try:
            data: Any = yaml.safe_load(expanded)
        except yaml.YAMLError as exc:
            raise WorkloadValidationError(f"YAML parse error: {exc}") from exc

        if not isinstance(data, dict):
            raise WorkloadValidationError("Workload YAML must be a mapping")

        try:
            return WorkloadSpec.model_validate(data)
        except ValidationError as exc:
            raise WorkloadValidationError(str(exc)) from exc


class WorkloadRunner:
    """Execute a validated :class:`WorkloadSpec` end-to-end."""

    def __init__(
        self,
        spec: WorkloadSpec,
        *,
        persistence: PersistenceStore | None = None,
    ) -> None:
        self.spec = spec
        self.persistence = persistence

    @classmethod
    def from_yaml(cls, path: str | Path, **kwargs: Any) -> WorkloadRunner:
        """Load a workload YAML and return a ready-to-run runner."""
        return cls(WorkloadLoader(Path(path)).load(), **kwargs)

    def build_colony(self) -> Colony:
        """Create (but do not start) the :class:`Colony` this workload describes."""
        spec = self.spec
        config = ColonyConfig(
            model=spec.model,
            engine_count=spec.engines,
            scheduler=spec.config.scheduler,
            inference=spec.config.inference,
            memory=spec.config.memory,
        )
        return Colony(
            config,
            backend_factory=self._backend_factory(),
            embedder=self._embedder(),
            persistence=self.persistence,
            error_sink=LoggingErrorSink(config.max_error_reports),
        )

    async def run(self, timeout: float | None = None) -> WorkloadReport:
        """Wire up all components, run every task, and report.

        Steps:
        1. Build and start the colony (engines, persisted state).
        2. Register agents, seed memories.
        3. Submit tasks in declaration order and wait for all results.
        4. Shut down and collect metrics.

        Raises:
            TimeoutError: If the tasks do not all finish within *timeout*.
        """
        if self.spec.telemetry and self.spec.telemetry.enabled:
            configure_telemetry(otlp_endpoint=self.spec.telemetry.otlp_endpoint)

        colony = self.build_colony()
        start = time.perf_counter()

        async with colony:
            for agent_spec in self.spec.agents:
                colony.create_agent(agent_spec.to_config(), _strategy(agent_spec))

            for memory in self.spec.memories:
                await colony.memory.store(memory)

            tasks = [task_spec.to_task() for task_spec in self.spec.tasks]
            for task in tasks:
                await colony.submit(task)

            results = await asyncio.wait_for(
                asyncio.gather(*(colony.scheduler.wait_for(t.id) for t in tasks)),
                timeout,
            )

        sink = colony.error_sink
        return WorkloadReport(
            name=self.spec.name,
            results=list(results),
            scheduler=colony.scheduler.get_metrics(),
            inference=colony.inference.get_metrics(),
            memory=colony.memory.stats(),
            pool=colony.pool.status(),
            errors=sink.reports if isinstance(sink, LoggingErrorSink) else [],
            duration=time.perf_counter() - start,
        )

    def agent_configs(self) -> list[AgentConfig]:
        return [a.to_config() for a in self.spec.agents]

    def _backend_factory(self) -> Callable[[], GenerationBackend]:
        settings = self.spec.backend
        if settings.type == "litellm":
            return lambda: LiteLLMBackend(api_key=settings.api_key, api_base=settings.api_base)
        return lambda: EchoBackend(delay=settings.delay)

    def _embedder(self) -> EmbeddingProvider:
        settings = self.spec.embedding
        if settings.type == "litellm":
            if not settings.model:
                raise WorkloadValidationError("litellm embeddings require 'model'")
            return LiteLLMEmbeddingProvider(settings.model)
        return HashEmbeddingProvider(settings.dimensions)


def _strategy(agent_spec: AgentSpec) -> Any:
    return STRATEGIES[agent_spec.strategy]()
