from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from collection_audit.config import get_settings
from collection_audit.errors import ExternalCollaboratorFailure, InvalidInputError
from collection_audit.orchestrator import RunConfig, open_collaborators, run_audit
from collection_audit.plans import load_plan
from collection_audit.reporter import print_plan, print_summary
from collection_audit.utils.logging import configure_logging

app = typer.Typer(help="Collection Audit CLI.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"backend={settings.audit_query_backend} batch={settings.audit_detail_batch_size} "
        f"output={settings.audit_output_dir} results={settings.audit_results_dir}"
    )


@app.command()
def plan(
    plan_file: Optional[Path] = typer.Option(
        None, "--plan", "-p", help="Audit plan JSON file (default: built-in plan)."
    ),
) -> None:
    """
    List the categories and quota rules of an audit plan.
    """
    settings = get_settings()
    try:
        audit_plan = load_plan(plan_file or settings.audit_plan_file)
    except InvalidInputError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)
    print_plan(audit_plan)


@app.command()
def audit(
    collection: str = typer.Argument(..., help="Collection to audit."),
    seed: Optional[int] = typer.Option(
        None, "--seed", "-s", help="Seed for reproducible sampling (default: AUDIT_SEED or random)."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Render the report but do not persist the group."
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory for the report (default from settings)."
    ),
    plan_file: Optional[Path] = typer.Option(
        None, "--plan", "-p", help="Audit plan JSON file (default: built-in plan)."
    ),
    idempotency_key: Optional[str] = typer.Option(
        None, "--idempotency-key", help="Opaque key stored with the created group."
    ),
) -> None:
    """
    Sample a collection, create the audit group and render the report.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    try:
        audit_plan = load_plan(plan_file) if plan_file else None
        config = RunConfig(
            collection=collection,
            seed=seed,
            dry_run=dry_run,
            output_dir=output_dir,
            plan=audit_plan,
            idempotency_key=idempotency_key,
        )
        with open_collaborators(collection, settings) as collaborators:
            result = run_audit(config, collaborators, settings=settings)
    except InvalidInputError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1)
    except ExternalCollaboratorFailure as exc:
        typer.echo(f"Error: {exc.collaborator} failed: {exc}")
        raise typer.Exit(code=2)

    typer.echo(str(result.output_path))
    print_summary(result)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
