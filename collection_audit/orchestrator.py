"""
Orchestrator for one audit run: sample, merge, fetch, assemble, persist the
group, render, and record a run manifest.

Usage (example from CLI):
    from collection_audit.orchestrator import RunConfig, open_collaborators, run_audit

    config = RunConfig(collection="paintings", seed=42)
    with open_collaborators(config.collection) as collaborators:
        result = run_audit(config, collaborators)

Manifests are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, Generator, List, Optional, Sequence, Tuple

from collection_audit.config import Settings, get_settings
from collection_audit.domain.models import (
    AuditPlan,
    GroupRecord,
    GroupResult,
    MergedSelection,
    RecordDetail,
    ReportDocument,
    Sample,
)
from collection_audit.errors import ExternalCollaboratorFailure, InvalidInputError
from collection_audit.infrastructure.db_factory import connection_scope
from collection_audit.infrastructure.delimited import CommandQueryEngine
from collection_audit.infrastructure.groups import (
    CreateGroupCommand,
    GroupPersister,
    PostgresGroupPersister,
)
from collection_audit.infrastructure.queries import (
    CollectionValidator,
    DetailFetcher,
    PopulationFetcher,
    PostgresQueryEngine,
)
from collection_audit.plans import load_plan
from collection_audit.report.assembler import assemble_report
from collection_audit.report.renderer import (
    PaginatedRenderer,
    RenderOutcome,
    ReportLabRenderer,
    render_report,
)
from collection_audit.sampling.engine import RandomProvider, random_provider_for, sample_category
from collection_audit.sampling.merger import merge_selections
from collection_audit.utils.logging import get_logger
from collection_audit.utils.profiler import profile_block

log = get_logger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


@dataclass(frozen=True)
class RunConfig:
    """
    Per-run options. Anything left as None falls back to settings.
    """

    collection: str
    seed: Optional[int] = None
    dry_run: bool = False
    output_dir: Optional[Path] = None
    results_dir: Optional[Path] = None
    plan: Optional[AuditPlan] = None
    run_date: Optional[date] = None
    idempotency_key: Optional[str] = None
    persist_manifest: bool = True


@dataclass
class AuditCollaborators:
    validator: CollectionValidator
    population: PopulationFetcher
    details: DetailFetcher
    persister: GroupPersister
    renderer: Optional[PaginatedRenderer] = None


@dataclass
class AuditResult:
    collection: str
    seed: Optional[int]
    plan: AuditPlan
    samples: Tuple[Sample, ...]
    selection: MergedSelection
    document: ReportDocument
    group: GroupResult
    render: RenderOutcome
    stages: Dict[str, dict] = field(default_factory=dict)
    manifest_path: Optional[Path] = None

    @property
    def output_path(self) -> Path:
        return self.render.path


def report_filename(collection: str, run_date: date) -> str:
    """`<collection>_audit_<YYYY-MM-DD>.pdf`, with path-unsafe characters replaced."""
    safe = _UNSAFE_FILENAME_CHARS.sub("_", collection.strip()) or "collection"
    return f"{safe}_audit_{run_date.isoformat()}.pdf"


def fetch_details_batched(
    fetcher: DetailFetcher,
    identifiers: Sequence[int],
    batch_size: int,
) -> List[RecordDetail]:
    """
    Fetch details in batches of `batch_size` and check nothing went missing.

    Raises
    ------
    ExternalCollaboratorFailure
        If any requested identifier is absent from the fetched details.
    """
    if batch_size <= 0:
        raise InvalidInputError(f"Detail batch size must be positive, got {batch_size}")
    details: Dict[int, RecordDetail] = {}
    for start in range(0, len(identifiers), batch_size):
        batch = identifiers[start : start + batch_size]
        for detail in fetcher.fetch_details(batch):
            details[detail.identifier] = detail
        log.debug(
            "Fetched detail batch",
            extra={"offset": start, "batch": len(batch), "fetched": len(details)},
        )

    missing = [i for i in identifiers if i not in details]
    if missing:
        raise ExternalCollaboratorFailure(
            f"Detail fetch returned nothing for {len(missing)} identifier(s): {missing[:10]}",
            collaborator="detail_fetcher",
        )
    return [details[i] for i in identifiers]


def build_group_record(
    collection: str,
    plan: AuditPlan,
    selection: MergedSelection,
    run_date: date,
    seed: Optional[int],
    settings: Settings,
) -> GroupRecord:
    seed_note = f"seed {seed}" if seed is not None else "unseeded"
    return GroupRecord(
        name=f"Audit {collection} {run_date.isoformat()}",
        description=(
            f"{len(selection.entries)} records selected by the '{plan.name}' audit plan "
            f"for {collection} on {run_date.isoformat()} ({seed_note})"
        ),
        owner_id=settings.audit_owner_id,
        owner_name=settings.audit_owner_name,
        module=settings.audit_module,
        members=selection.identifiers,
        edit_roles=tuple(settings.audit_edit_roles),
        display_roles=tuple(settings.audit_display_roles),
        delete_roles=tuple(settings.audit_delete_roles),
    )


@contextmanager
def _stage(name: str, stages: Dict[str, dict]) -> Generator[None, None, None]:
    log.info(f"[STAGE START] {name}", extra={"stage": name})
    with profile_block(name) as stats:
        yield
    stages[name] = stats.as_dict()
    log.info(
        f"[STAGE COMPLETE] {name}",
        extra={"stage": name, "duration": stages[name]["duration_seconds"]},
    )


def _persist_manifest(payload: dict, results_dir: Path) -> Path:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    with latest_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, default=str)
    with archive_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True, default=str)

    log.info("Manifest persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})
    return latest_path


def build_manifest(result: AuditResult) -> dict:
    owned = {c.name: len(result.selection.owned_by(c.name)) for c in result.plan.categories}
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "collection": result.collection,
        "seed": result.seed,
        "plan": result.plan.model_dump(mode="json"),
        "categories": [
            {
                "name": s.category.name,
                "rule": s.category.rule.describe(),
                "population": s.population_size,
                "quota": s.quota,
                "selected": len(s),
                "owned": owned.get(s.category.name, 0),
            }
            for s in result.samples
        ],
        "deduplicated": len(result.selection.entries),
        "group": {
            "id": result.group.group_id,
            "dry_run": result.group.dry_run,
            "idempotency_key": result.group.idempotency_key,
        },
        "output": str(result.render.path),
        "pages": result.render.page_count,
        "declared_pages": result.render.declared_pages,
        "page_count_mismatch": result.render.page_count_mismatch,
        "sections": result.document.row_counts(),
        "stages": result.stages,
    }


def run_audit(
    config: RunConfig,
    collaborators: AuditCollaborators,
    provider: Optional[RandomProvider] = None,
    settings: Optional[Settings] = None,
) -> AuditResult:
    """
    Run the audit pipeline for one collection.

    Parameters
    ----------
    config : RunConfig
        Collection, seed, output locations and dry-run flag for this run.
    collaborators : AuditCollaborators
        Query engine, group persister and renderer to use.
    provider : RandomProvider | None
        Overrides the provider derived from `config.seed`.

    Raises
    ------
    InvalidInputError
        Unknown collection or invalid plan; raised before any side effect.
    ExternalCollaboratorFailure
        A collaborator failed. A group created earlier in the run is left in
        place and its id is logged.
    """
    settings = settings or get_settings()
    collection = config.collection.strip()
    if not collection:
        raise InvalidInputError("A collection name is required")
    if not collaborators.validator.collection_exists(collection):
        raise InvalidInputError(f"Unknown collection '{collection}'")

    plan = config.plan or load_plan(settings.audit_plan_file)
    seed = config.seed if config.seed is not None else settings.audit_seed
    provider = provider or random_provider_for(seed)
    run_date = config.run_date or date.today()
    output_dir = Path(config.output_dir or settings.audit_output_dir)
    stages: Dict[str, dict] = {}

    log.info(
        f"[AUDIT START] {collection}",
        extra={"collection": collection, "plan": plan.name, "seed": seed, "dry_run": config.dry_run},
    )

    with _stage("sampling", stages):
        samples: List[Sample] = []
        for category in plan.categories:
            population = collaborators.population.fetch_population(category.predicate)
            samples.append(sample_category(category, population, provider))
        selection = merge_selections(samples)
    log.info(
        "Selection merged",
        extra={
            "drawn": sum(len(s) for s in samples),
            "deduplicated": len(selection.entries),
        },
    )

    with _stage("details", stages):
        details = fetch_details_batched(
            collaborators.details, selection.identifiers, settings.audit_detail_batch_size
        )

    with _stage("assembly", stages):
        document = assemble_report(
            title=f"Collection audit: {collection}",
            subtitle=f"{plan.name} plan | {run_date.isoformat()} | {len(selection.entries)} records",
            plan=plan,
            selection=selection,
            details=details,
        )

    with _stage("group", stages):
        record = build_group_record(collection, plan, selection, run_date, seed, settings)
        if selection.entries:
            command = CreateGroupCommand(record, collaborators.persister, config.idempotency_key)
            group = command.execute(dry_run=config.dry_run)
        else:
            log.warning(
                f"[GROUP] Nothing selected for {collection}; no group created",
                extra={"group_name": record.name},
            )
            group = GroupResult(
                group_id=None, dry_run=config.dry_run, idempotency_key=config.idempotency_key
            )

    renderer = collaborators.renderer or ReportLabRenderer(
        header_label=collection, generated_on=run_date
    )
    output_path = output_dir / report_filename(collection, run_date)
    try:
        with _stage("render", stages):
            outcome = render_report(document, renderer, output_path)
    except ExternalCollaboratorFailure:
        if group.group_id is not None:
            log.error(
                f"Rendering failed after group {group.group_id} was created; remove it manually",
                extra={"group_id": group.group_id, "group_name": record.name},
            )
        raise

    result = AuditResult(
        collection=collection,
        seed=seed,
        plan=plan,
        samples=tuple(samples),
        selection=selection,
        document=document,
        group=group,
        render=outcome,
        stages=stages,
    )
    if config.persist_manifest:
        result.manifest_path = _persist_manifest(
            build_manifest(result), Path(config.results_dir or settings.audit_results_dir)
        )

    log.info(
        f"[AUDIT COMPLETE] {collection}",
        extra={
            "output": str(outcome.path),
            "pages": outcome.page_count,
            "group_id": group.group_id,
        },
    )
    return result


@contextmanager
def open_collaborators(
    collection: str,
    settings: Optional[Settings] = None,
) -> Generator[AuditCollaborators, None, None]:
    """
    Build the collaborators for the configured query backend.

    The Postgres backend holds one connection for the whole run.
    """
    settings = settings or get_settings()
    if settings.audit_query_backend == "command":
        engine = CommandQueryEngine(settings.audit_query_command, collection)
        yield AuditCollaborators(
            validator=engine, population=engine, details=engine, persister=engine
        )
        return

    with connection_scope() as conn:
        engine = PostgresQueryEngine(conn, collection, settings.db_statement_timeout_ms)
        yield AuditCollaborators(
            validator=engine,
            population=engine,
            details=engine,
            persister=PostgresGroupPersister(conn),
        )


__all__ = [
    "AuditCollaborators",
    "AuditResult",
    "RunConfig",
    "build_group_record",
    "build_manifest",
    "fetch_details_batched",
    "open_collaborators",
    "report_filename",
    "run_audit",
]
