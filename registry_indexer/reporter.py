from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from registry_indexer.domain.models import AgentScore, PlatformStats
from registry_indexer.sync_engine import RangeReport


def print_scores(scores: Sequence[AgentScore], console: Optional[Console] = None) -> None:
    """
    Render agent scores as a rich table, in the order given (highest first).
    """
    console = console or Console()

    if not scores:
        console.print("[yellow]No agents indexed yet.[/yellow]")
        return

    table = Table(
        title="Agent Reputation",
        box=box.ROUNDED,
        caption="Sorted by reputation (descending)",
    )
    table.add_column("Agent", style="cyan", no_wrap=True)
    table.add_column("Feedback", justify="right", style="green")
    table.add_column("Validation", justify="right", style="magenta")
    table.add_column("Reputation", justify="right", style="bold green")

    for score in scores:
        table.add_row(
            str(score.agent_id),
            f"{score.feedback_score:,.2f}",
            f"{score.validation_score:,.2f}",
            f"{score.reputation_score:,.2f}",
        )

    console.print(table)


def print_stats(stats: PlatformStats, console: Optional[Console] = None) -> None:
    """Render platform counters and the job status breakdown."""
    console = console or Console()

    table = Table(title="Platform Stats", box=box.ROUNDED)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right", style="magenta")

    rows: List[tuple] = [
        ("Agents", stats.agent_count),
        ("Feedback", stats.feedback_count),
        ("Validation requests", stats.validation_request_count),
        ("Validation responses", stats.validation_response_count),
        ("Reviewers", stats.reviewer_count),
        ("Jobs", stats.job_count),
    ]
    rows.extend((f"  {status}", count) for status, count in sorted(stats.jobs_by_status.items()))
    for label, count in rows:
        table.add_row(label, f"{count:,}")

    console.print(table)


def print_range_reports(reports: Sequence[RangeReport], console: Optional[Console] = None) -> None:
    """Summarize the block ranges one sync cycle applied."""
    console = console or Console()

    if not reports:
        console.print("[yellow]Already at chain head; nothing to sync.[/yellow]")
        return

    families = sorted({family for report in reports for family in report.events})
    table = Table(title="Sync Ranges", box=box.ROUNDED)
    table.add_column("From", justify="right", style="cyan")
    table.add_column("To", justify="right", style="cyan")
    for family in families:
        table.add_column(family, justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")

    for report in reports:
        table.add_row(
            str(report.from_block),
            str(report.to_block),
            *(str(report.events.get(family, 0)) for family in families),
            str(report.skipped_logs),
        )

    console.print(table)


__all__ = ["print_range_reports", "print_scores", "print_stats"]
