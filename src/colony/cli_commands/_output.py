"""Shared CLI output formatters."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from colony.core.memory.models import MemoryRecord  # noqa: TC001
from colony.sdk.models import AgentSpec, WorkloadReport  # noqa: TC001

console = Console()


def print_report(report: WorkloadReport, *, as_json: bool = False) -> None:
    """Pretty-print a workload run summary."""
    if as_json:
        console.print_json(report.model_dump_json())
        return

    status = "[green]succeeded[/green]" if report.succeeded else "[red]had failures[/red]"
    console.print(f"\n[bold]Workload {report.name or '(unnamed)'}[/bold] {status} in {report.duration:.2f}s")

    table = Table(title="Task Results")
    table.add_column("Task", style="cyan")
    table.add_column("Agent")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Output")

    for result in report.results:
        table.add_row(
            result.task_id,
            result.agent_id or "-",
            "[green]ok[/green]" if result.success else "[red]failed[/red]",
            f"{result.duration:.3f}s",
            _truncate(result.output if result.success else result.error or ""),
        )
    console.print(table)

    s = report.scheduler
    console.print("\n[bold]Scheduler:[/bold]")
    console.print(f"  Tasks: {s.completed_tasks}/{s.total_tasks} completed, {s.failed_tasks} failed")
    console.print(f"  Re-queued: {s.requeued_tasks}")
    console.print(f"  Average duration: {s.average_task_duration:.3f}s")

    i = report.inference
    console.print("\n[bold]Inference:[/bold]")
    console.print(f"  Jobs: {i.completed_jobs}/{i.total_jobs} completed, {i.failed_jobs} failed")
    console.print(f"  Cache: {i.cache_hits} hit(s), {i.cache_misses} miss(es)")

    console.print("\n[bold]Memory:[/bold]")
    console.print(f"  Records: {report.memory.total}")
    for memory_type, count in sorted(report.memory.by_type.items()):
        console.print(f"    {memory_type}: {count}")

    if report.errors:
        console.print("\n[bold]Errors:[/bold]")
        for err in report.errors:
            console.print(f"  {err.severity.value.upper()} {err.category.value}: {_truncate(err.message)}")


def print_agents_table(agents: list[AgentSpec]) -> None:
    """Pretty-print workload agents as a table."""
    table = Table(title="Agents")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("Strategy")
    table.add_column("Capabilities")

    for agent in agents:
        capabilities = ", ".join(f"{c.name} ({c.confidence:.2f})" for c in agent.capabilities) or "-"
        table.add_row(agent.id, agent.name or "-", agent.role.value, agent.strategy, capabilities)

    console.print(table)


def print_memory_table(records: list[MemoryRecord]) -> None:
    """Pretty-print memory records as a table."""
    table = Table(title="Memories")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Source")
    table.add_column("Accesses", justify="right")
    table.add_column("Content")

    for record in records:
        table.add_row(
            record.id,
            record.type.value,
            record.metadata.source,
            str(record.access_count),
            _truncate(record.content),
        )

    console.print(table)


def _truncate(text: str, max_len: int = 80) -> str:
    text = text.replace("\n", " ")
    if len(text) > max_len:
        text = text[: max_len - 3] + "..."
    return escape(text)
