"""``colony memory`` — inspect memory snapshot files."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from colony.cli_commands._output import console, print_memory_table
from colony.core.memory.models import MemorySnapshot, MemoryType


@click.group()
def memory() -> None:
    """Inspect memory snapshots."""


@memory.command("inspect")
@click.argument("snapshot_file", type=click.Path(exists=True))
@click.option(
    "--type",
    "memory_type",
    type=click.Choice([t.value for t in MemoryType]),
    default=None,
    help="Show only records of this type.",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def inspect_cmd(snapshot_file: str, memory_type: str | None, as_json: bool) -> None:
    """Inspect a memory snapshot file.

    SNAPSHOT_FILE is a JSON file produced by MemoryStore.snapshot().
    """
    path = Path(snapshot_file)
    try:
        snapshot = MemorySnapshot.model_validate_json(path.read_bytes())
    except Exception as exc:
        console.print(f"[red]Error loading snapshot:[/red] {exc}")
        sys.exit(1)

    records = snapshot.records
    if memory_type:
        records = [r for r in records if r.type.value == memory_type]

    if as_json:
        data = [r.model_dump(mode="json", exclude={"embedding"}) for r in records]
        console.print_json(json.dumps(data))
        return

    if not records:
        console.print("[yellow]No memories found.[/yellow]")
        return

    print_memory_table(records)
