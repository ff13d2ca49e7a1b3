from __future__ import annotations

from datetime import date

from rich.console import Console

from collection_audit.orchestrator import RunConfig, run_audit
from collection_audit.plans import DEFAULT_PLAN
from collection_audit.reporter import print_plan, print_summary


def _console() -> Console:
    return Console(width=200, record=True, color_system=None)


def test_summary_lists_every_sampled_category(catalogue, renderer_factory, audit_plan, audit_settings) -> None:
    result = run_audit(
        RunConfig(collection="paintings", seed=3, plan=audit_plan, run_date=date(2024, 3, 1)),
        catalogue.collaborators(renderer_factory(pages=(2, 3))),
        settings=audit_settings,
    )
    console = _console()

    print_summary(result, console)
    text = console.export_text()

    for category in audit_plan.categories:
        assert category.name in text
    assert "seed 3" in text
    assert "group G1" in text
    assert "header declared 2" in text


def test_plan_table_shows_rules() -> None:
    console = _console()
    print_plan(DEFAULT_PLAN, console)
    text = console.export_text()

    assert "General collection (baseline)" in text
    assert "30% (5-200)" in text
    assert "Fixed 25" in text
