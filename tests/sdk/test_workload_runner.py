"""Tests for WorkloadRunner."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import patch

import pytest
import yaml

from colony.core.inference.backend import EchoBackend, LiteLLMBackend
from colony.core.memory.embedding import HashEmbeddingProvider, LiteLLMEmbeddingProvider
from colony.core.memory.models import MemorySnapshot
from colony.core.memory.persistence import InMemoryPersistence
from colony.core.scheduler.models import TaskPriority
from colony.sdk.errors import WorkloadValidationError
from colony.sdk.models import EmbeddingSettings, WorkloadSpec
from colony.sdk.workload import WorkloadRunner

if TYPE_CHECKING:
    from pathlib import Path

# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


def _spec_data(**extra: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": "pipeline",
        "engines": 2,
        "agents": [
            {"id": "researcher", "capabilities": [{"name": "research", "confidence": 0.95}]},
            {"id": "writer", "strategy": "stepwise", "capabilities": [{"name": "writing", "confidence": 0.7}]},
        ],
        "memories": [{"type": "fact", "content": "the launch is on monday"}],
        "tasks": [
            {"id": "gather", "description": "Research the launch date", "required_skills": ["research"]},
            {
                "id": "announce",
                "description": "Write the announcement then proofread it",
                "required_skills": ["writing"],
                "dependencies": ["gather"],
                "priority": 8,
            },
        ],
    }
    data.update(extra)
    return data


def _runner(**extra: Any) -> WorkloadRunner:
    return WorkloadRunner(WorkloadSpec.model_validate(_spec_data(**extra)))


# ------------------------------------------------------------------
# Tests
# ------------------------------------------------------------------


class TestWorkloadRunnerInit:
    def test_from_yaml(self, tmp_path: Path) -> None:
        f = tmp_path / "workload.yaml"
        f.write_text(yaml.dump(_spec_data()))

        runner = WorkloadRunner.from_yaml(f)
        assert runner.spec.name == "pipeline"
        assert [c.id for c in runner.agent_configs()] == ["researcher", "writer"]

    def test_build_colony(self) -> None:
        colony = _runner(config={"scheduler": {"max_concurrent_tasks": 1}}).build_colony()
        assert colony.config.engine_count == 2
        assert colony.scheduler.config.max_concurrent_tasks == 1
        assert not colony.started

    def test_echo_backend_factory(self) -> None:
        backend = _runner(backend={"type": "echo", "delay": 0.5})._backend_factory()()
        assert isinstance(backend, EchoBackend)
        assert backend.delay == 0.5

    def test_litellm_backend_factory(self) -> None:
        runner = _runner(backend={"type": "litellm", "api_key": "k", "api_base": "http://localhost"})
        backend = runner._backend_factory()()
        assert isinstance(backend, LiteLLMBackend)
        assert backend.api_key == "k"
        assert backend.api_base == "http://localhost"

    def test_embedders(self) -> None:
        assert isinstance(_runner()._embedder(), HashEmbeddingProvider)
        runner = _runner(embedding={"type": "litellm", "model": "openai/text-embedding-3-small"})
        embedder = runner._embedder()
        assert isinstance(embedder, LiteLLMEmbeddingProvider)
        assert embedder.model == "openai/text-embedding-3-small"

    def test_litellm_embedder_without_model(self) -> None:
        spec = WorkloadSpec.model_validate(_spec_data())
        spec.embedding = EmbeddingSettings.model_construct(type="litellm", dimensions=256, model=None)
        with pytest.raises(WorkloadValidationError, match="model"):
            WorkloadRunner(spec)._embedder()


class TestWorkloadRunnerRun:
    async def test_runs_all_tasks(self) -> None:
        report = await _runner().run(timeout=5.0)

        assert report.name == "pipeline"
        assert report.succeeded
        assert [r.task_id for r in report.results] == ["gather", "announce"]
        assert [r.agent_id for r in report.results] == ["researcher", "writer"]
        assert report.scheduler.completed_tasks == 2
        assert report.inference.completed_jobs == 2
        assert report.pool.total == 2
        assert report.memory.total >= 1
        assert report.errors == []
        assert report.duration > 0

    async def test_seeded_memory_reaches_prompt(self) -> None:
        report = await _runner().run(timeout=5.0)
        assert "launch is on monday" in report.results[0].output

    async def test_persists_memory(self) -> None:
        persistence = InMemoryPersistence()
        runner = WorkloadRunner(WorkloadSpec.model_validate(_spec_data()), persistence=persistence)
        await runner.run(timeout=5.0)

        data = await persistence.load("memory")
        assert data is not None
        contents = [r.content for r in MemorySnapshot.model_validate_json(data).records]
        assert "the launch is on monday" in contents

    async def test_priorities_applied(self) -> None:
        runner = _runner()
        tasks = [t.to_task() for t in runner.spec.tasks]
        assert tasks[1].priority == TaskPriority.HIGH

    async def test_telemetry_configured_when_enabled(self) -> None:
        runner = _runner(telemetry={"enabled": True, "otlp_endpoint": "http://collector:4317"})
        with patch("colony.sdk.workload.configure_telemetry") as mock_configure:
            await runner.run(timeout=5.0)
        mock_configure.assert_called_once_with(otlp_endpoint="http://collector:4317")

    async def test_telemetry_not_configured_by_default(self) -> None:
        with patch("colony.sdk.workload.configure_telemetry") as mock_configure:
            await _runner().run(timeout=5.0)
        mock_configure.assert_not_called()

    async def test_timeout(self) -> None:
        runner = _runner(backend={"type": "echo", "delay": 0.3})
        with pytest.raises(TimeoutError):
            await runner.run(timeout=0.05)
