"""Console rendering helpers for the quotasync CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import BatchDecision, QuotaSnapshot, RunOutcome, TransferPlan
from .services.units import format_bytes

console = Console()

_DECISION_STYLES = {
    BatchDecision.AUTHORIZED: "bold green",
    BatchDecision.INSUFFICIENT_SPACE: "bold red",
    BatchDecision.QUOTA_UNAVAILABLE: "bold yellow",
    BatchDecision.ESTIMATION_UNAVAILABLE: "bold yellow",
}


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    console.print(
        Panel(
            table,
            title="[bold green]quotasync[/bold green]",
            subtitle="[dim]quota-aware backup[/dim]",
            border_style="blue",
        )
    )


def render_plan(
    decision: BatchDecision,
    plan: Optional[TransferPlan],
    quota: Optional[QuotaSnapshot],
) -> None:
    """Per-mapping estimates against available remote space."""
    table = Table(title="Transfer plan", show_lines=False)
    table.add_column("Source", style="cyan")
    table.add_column("Remote", style="white")
    table.add_column("Estimated", justify="right")

    if plan is not None:
        for entry in plan.entries:
            table.add_row(
                str(entry.mapping.local_path),
                entry.mapping.remote_subdirectory,
                format_bytes(entry.estimated_bytes),
            )
        table.add_row("[bold]Total[/bold]", "", f"[bold]{format_bytes(plan.total_required_bytes)}[/bold]")
    console.print(table)

    if quota is not None:
        console.print(
            f"Remote available: [bold]{format_bytes(quota.available_bytes)}[/bold] "
            f"({quota.used_percent:.1f}% used)"
        )
    else:
        console.print("Remote available: [yellow]unknown[/yellow]")
    style = _DECISION_STYLES.get(decision, "bold")
    console.print(f"Decision: [{style}]{decision.value}[/{style}]")


def render_outcome(outcome: RunOutcome) -> None:
    """Final per-mapping results."""
    style = _DECISION_STYLES.get(outcome.decision, "bold")
    console.print(f"Decision: [{style}]{outcome.decision.value}[/{style}]")

    if outcome.results:
        table = Table(title="Backup results")
        table.add_column("Source", style="cyan")
        table.add_column("Remote")
        table.add_column("Status")
        for result in outcome.results:
            status = "[green]ok[/green]" if result.success else f"[red]failed[/red] {result.error or ''}"
            table.add_row(str(result.mapping.local_path), result.mapping.remote_subdirectory, status)
        console.print(table)

    if outcome.quota_after is not None:
        console.print(
            f"Remote available after backup: {format_bytes(outcome.quota_after.available_bytes)}"
        )
    if outcome.summary_sent:
        console.print("[dim]Monthly summary sent.[/dim]")
