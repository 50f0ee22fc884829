"""Tests for WorkloadLoader."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from colony.sdk.errors import WorkloadValidationError
from colony.sdk.workload import WorkloadLoader

if TYPE_CHECKING:
    from pathlib import Path

_VALID_YAML = """\
version: "1"
name: docs
model: echo
engines: 2
agents:
  - id: writer
    capabilities:
      - name: writing
        confidence: 0.9
tasks:
  - id: draft
    description: Draft the docs
    required_skills: [writing]
    priority: high
"""


class TestWorkloadLoader:
    def test_load_valid(self, tmp_path: Path) -> None:
        f = tmp_path / "workload.yaml"
        f.write_text(_VALID_YAML)

        spec = WorkloadLoader(f).load()

        assert spec.name == "docs"
        assert spec.engines == 2
        assert spec.tasks[0].to_task().priority.value == "high"

    def test_env_var_expansion(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COLONY_TEST_MODEL", "openai/gpt-4o-mini")
        f = tmp_path / "workload.yaml"
        f.write_text(_VALID_YAML.replace("model: echo", "model: ${COLONY_TEST_MODEL}"))

        assert WorkloadLoader(f).load().model == "openai/gpt-4o-mini"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(WorkloadValidationError, match="Cannot read"):
            WorkloadLoader(tmp_path / "missing.yaml").load()

    def test_invalid_yaml(self) -> None:
        with pytest.raises(WorkloadValidationError, match="YAML parse error"):
            WorkloadLoader.parse("agents: [unclosed")

    def test_not_a_mapping(self) -> None:
        with pytest.raises(WorkloadValidationError, match="mapping"):
            WorkloadLoader.parse("- just\n- a list\n")

    def test_schema_error(self) -> None:
        with pytest.raises(WorkloadValidationError):
            WorkloadLoader.parse("name: only-name\n")
