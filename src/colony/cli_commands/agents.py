"""``colony agents`` — list the agents a workload declares."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from colony.cli_commands._output import console, print_agents_table


@click.group()
def agents() -> None:
    """Inspect workload agents."""


@agents.command("list")
@click.argument("workload", type=click.Path(exists=True))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
def list_agents(workload: str, fmt: str) -> None:
    """List the agents declared in WORKLOAD."""
    from colony.sdk.workload import WorkloadLoader

    try:
        spec = WorkloadLoader(Path(workload)).load()
    except Exception as exc:
        console.print(f"[red]Validation error:[/red] {exc}")
        sys.exit(1)

    if not spec.agents:
        console.print("[yellow]No agents declared.[/yellow]")
        return

    if fmt == "json":
        data = [a.model_dump(mode="json") for a in spec.agents]
        console.print_json(json.dumps(data))
    else:
        print_agents_table(spec.agents)
