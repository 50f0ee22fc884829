"""``colony run`` — execute a workload from a YAML file."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from colony.cli_commands._output import console, print_report


@click.command()
@click.argument("workload", type=click.Path(exists=True))
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output and debug logging.")
@click.option("--telemetry", is_flag=True, help="Enable telemetry.")
@click.option("--dry-run", is_flag=True, help="Validate workload only, do not execute.")
@click.option("--json", "as_json", is_flag=True, help="Output the run report as JSON.")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for all tasks.")
@click.option(
    "--memory-out",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the final memory snapshot to this file.",
)
def run(
    workload: str,
    verbose: bool,
    telemetry: bool,
    dry_run: bool,
    as_json: bool,
    timeout: float | None,
    memory_out: str | None,
) -> None:
    """Execute a workload defined in WORKLOAD yaml file."""
    from colony.core.memory.persistence import InMemoryPersistence
    from colony.core.memory.store import DEFAULT_SNAPSHOT_KEY
    from colony.sdk.workload import WorkloadLoader, WorkloadRunner

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    loader = WorkloadLoader(Path(workload))

    try:
        spec = loader.load()
    except Exception as exc:
        console.print(f"[red]Validation error:[/red] {exc}")
        sys.exit(1)

    if telemetry:
        if spec.telemetry is None:
            from colony.sdk.models import TelemetrySettings

            spec.telemetry = TelemetrySettings(enabled=True)
        else:
            spec.telemetry.enabled = True

    if dry_run:
        console.print("[green]Workload validated successfully.[/green]")
        console.print(f"  Name: {spec.name}")
        console.print(f"  Model: {spec.model} ({spec.engines} engine(s), {spec.backend.type} backend)")
        console.print(f"  Agents: {', '.join(a.id for a in spec.agents)}")
        console.print(f"  Tasks: {len(spec.tasks)}")
        return

    if verbose and not as_json:
        console.print(f"Running workload: {spec.name}")

    persistence = InMemoryPersistence() if memory_out else None
    runner = WorkloadRunner(spec, persistence=persistence)

    try:
        report = asyncio.run(runner.run(timeout))
    except Exception as exc:
        console.print(f"[red]Execution error:[/red] {exc}")
        sys.exit(1)

    if persistence is not None and memory_out:
        data = asyncio.run(persistence.load(DEFAULT_SNAPSHOT_KEY))
        Path(memory_out).write_bytes(data or b'{"records": []}')

    print_report(report, as_json=as_json)

    if not report.succeeded:
        sys.exit(2)
