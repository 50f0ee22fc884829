"""Tests for ``colony agents`` CLI command."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from click.testing import CliRunner

from colony.cli import main

if TYPE_CHECKING:
    from pathlib import Path

_WORKLOAD = """\
name: team
agents:
  - id: alpha
    name: Alpha
    capabilities:
      - name: research
  - id: beta
    superior: alpha
    role: subordinate
    strategy: stepwise
"""


class TestAgentsList:
    def test_list_agents(self, tmp_path: Path) -> None:
        f = tmp_path / "workload.yaml"
        f.write_text(_WORKLOAD)

        runner = CliRunner()
        result = runner.invoke(main, ["agents", "list", str(f)])

        assert result.exit_code == 0
        assert "alpha" in result.output
        assert "beta" in result.output
        assert "stepwise" in result.output

    def test_list_agents_json(self, tmp_path: Path) -> None:
        f = tmp_path / "workload.yaml"
        f.write_text(_WORKLOAD)

        runner = CliRunner()
        result = runner.invoke(main, ["agents", "list", str(f), "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert [a["id"] for a in data] == ["alpha", "beta"]
        assert data[1]["superior"] == "alpha"

    def test_no_agents(self, tmp_path: Path) -> None:
        f = tmp_path / "workload.yaml"
        f.write_text("name: empty\nagents: []\n")

        runner = CliRunner()
        result = runner.invoke(main, ["agents", "list", str(f)])

        assert result.exit_code == 0
        assert "No agents declared" in result.output

    def test_invalid_workload(self, tmp_path: Path) -> None:
        f = tmp_path / "workload.yaml"
        f.write_text("name: broken\n")

        runner = CliRunner()
        result = runner.invoke(main, ["agents", "list", str(f)])

        assert result.exit_code == 1
        assert "Validation error" in result.output
