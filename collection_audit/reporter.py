from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from collection_audit.domain.models import AuditPlan
from collection_audit.orchestrator import AuditResult


def print_summary(result: AuditResult, console: Optional[Console] = None) -> None:
    """
    Render the per-category sampling summary of an audit run as a rich table.

    Owned counts the records each category contributed to the group after
    deduplication; a record drawn by two categories is owned by the first.
    """
    console = console or Console()

    if not result.samples:
        console.print("[yellow]No categories were sampled.[/yellow]")
        return

    title = f"Collection Audit: {result.collection}"
    seed = "unseeded" if result.seed is None else f"seed {result.seed}"
    title = f"{title}\n[dim]Plan: {result.plan.name} │ {seed}[/dim]"

    pages = f"{result.render.page_count} page(s)"
    if result.render.page_count_mismatch:
        pages += f" [red](header declared {result.render.declared_pages})[/red]"
    group = result.group.group_id or ("dry run" if result.group.dry_run else "none")

    table = Table(
        title=title,
        box=box.ROUNDED,
        caption=f"{len(result.selection.entries)} unique records │ {pages} │ group {group}",
    )
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Rule", style="blue")
    table.add_column("Population", justify="right", style="magenta")
    table.add_column("Quota", justify="right", style="green")
    table.add_column("Selected", justify="right", style="bold green")
    table.add_column("Owned", justify="right", style="yellow")

    for sample in result.samples:
        name = sample.category.name
        if sample.category.baseline:
            name += " [dim](baseline)[/dim]"
        table.add_row(
            name,
            sample.category.rule.describe(),
            f"{sample.population_size:,}",
            f"{sample.quota:,}",
            f"{len(sample):,}",
            f"{len(result.selection.owned_by(sample.category.name)):,}",
        )

    console.print(table)


def print_plan(plan: AuditPlan, console: Optional[Console] = None) -> None:
    """List the categories of an audit plan in presentation order."""
    console = console or Console()
    table = Table(title=f"Audit plan: {plan.name}", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Rule", style="blue")
    table.add_column("Predicate", style="magenta")
    for position, category in enumerate(plan.categories, start=1):
        name = category.name + (" [dim](baseline)[/dim]" if category.baseline else "")
        table.add_row(str(position), name, category.rule.describe(), category.predicate)
    console.print(table)
