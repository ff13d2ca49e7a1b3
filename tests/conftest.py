"""
Pytest configuration for the collection audit.

Provides fixtures for:
- Settings pointed at per-test output directories
- In-memory catalogue and renderer collaborators for pipeline tests
- Database connection management and seeding for integration tests
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Optional, Sequence, Tuple

import psycopg
import pytest

from collection_audit.config import Settings
from collection_audit.domain.models import (
    AllRule,
    AuditPlan,
    Category,
    FixedCountRule,
    GroupRecord,
    PercentWithBoundsRule,
    RecordDetail,
    ReportDocument,
)
from collection_audit.orchestrator import AuditCollaborators

COLLECTION = "paintings"
RECORD_COUNT = 80


class FakeCatalogue:
    """
    In-memory query engine and group store.

    Populations are keyed by predicate text; details come back in reverse
    request order to exercise re-sorting downstream.
    """

    def __init__(
        self,
        records: Dict[int, RecordDetail],
        memberships: Dict[str, Tuple[int, ...]],
        collections: Sequence[str] = (COLLECTION,),
    ) -> None:
        self.records = records
        self.memberships = memberships
        self.collections = set(collections)
        self.population_calls: List[str] = []
        self.detail_calls: List[Tuple[int, ...]] = []
        self.created: List[Tuple[GroupRecord, Optional[str]]] = []

    def collection_exists(self, name: str) -> bool:
        return name in self.collections

    def fetch_population(
        self, predicate: str, restrict_to: Optional[Sequence[int]] = None
    ) -> Tuple[int, ...]:
        self.population_calls.append(predicate)
        identifiers = self.memberships.get(predicate, ())
        if restrict_to is not None:
            allowed = set(restrict_to)
            identifiers = tuple(i for i in identifiers if i in allowed)
        return tuple(identifiers)

    def fetch_details(self, identifiers: Sequence[int]) -> List[RecordDetail]:
        self.detail_calls.append(tuple(identifiers))
        return [self.records[i] for i in reversed(list(identifiers)) if i in self.records]

    def create(self, record: GroupRecord, idempotency_key: Optional[str] = None) -> Optional[str]:
        self.created.append((record, idempotency_key))
        return f"G{len(self.created)}"

    def collaborators(self, renderer=None) -> AuditCollaborators:
        return AuditCollaborators(
            validator=self, population=self, details=self, persister=self, renderer=renderer
        )


class FakeRenderer:
    """Renderer returning scripted page counts, one per pass."""

    def __init__(self, pages: Sequence[int] = (3, 3)) -> None:
        self.pages = list(pages)
        self.calls: List[Tuple[Path, Optional[int]]] = []
        self.documents: List[ReportDocument] = []

    def render(
        self, document: ReportDocument, destination: Path, total_pages: Optional[int]
    ) -> int:
        self.calls.append((Path(destination), total_pages))
        self.documents.append(document)
        Path(destination).write_bytes(b"%PDF-1.4 fake")
        return self.pages[len(self.calls) - 1]


def make_record(identifier: int) -> RecordDetail:
    return RecordDetail(
        identifier=identifier,
        prefix="X",
        number=identifier,
        suffix="a" if identifier % 10 == 0 else "",
        summary=f"X{identifier}: Object {identifier}",
        location=None if identifier % 7 == 0 else f"Store {identifier % 3}",
    )


@pytest.fixture
def audit_plan() -> AuditPlan:
    """
    Four categories mirroring the built-in plan, with fake predicates.
    """
    return AuditPlan(
        name="test",
        categories=(
            Category(
                name="High value",
                predicate="high",
                rule=PercentWithBoundsRule(percent=30, min_count=5, max_count=200),
            ),
            Category(name="On loan", predicate="loan", rule=AllRule()),
            Category(name="Recently moved", predicate="moved", rule=FixedCountRule(count=3)),
            Category(
                name="General",
                predicate="all",
                rule=PercentWithBoundsRule(percent=10, min_count=2, max_count=10),
                baseline=True,
            ),
        ),
    )


@pytest.fixture
def catalogue() -> FakeCatalogue:
    """
    80 records: 12 high value, two on loan (7 and 77), none recently moved.
    """
    records = {i: make_record(i) for i in range(1, RECORD_COUNT + 1)}
    memberships = {
        "high": tuple(range(1, 13)),
        "loan": (7, 77),
        "moved": (),
        "all": tuple(range(1, RECORD_COUNT + 1)),
        "TRUE": tuple(range(1, RECORD_COUNT + 1)),
    }
    return FakeCatalogue(records, memberships)


@pytest.fixture
def empty_catalogue() -> FakeCatalogue:
    """A known collection that holds no records."""
    return FakeCatalogue(records={}, memberships={})


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def renderer_factory():
    """FakeRenderer class, for tests scripting their own page counts."""
    return FakeRenderer


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def audit_settings(tmp_path: Path) -> Settings:
    """Settings writing reports and manifests under tmp_path."""
    return Settings(
        audit_output_dir=tmp_path / "reports",
        audit_results_dir=tmp_path / "results",
        audit_detail_batch_size=4,
        audit_owner_id="auditor",
        audit_owner_name="Test Auditor",
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "collection_audit"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the audit schema exists; db/init.sql is idempotent.
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with db_connection.cursor() as cur:
        cur.execute(init_sql_path.read_text(encoding="utf-8"))
    db_connection.commit()
    return True


def _truncate_all(conn: psycopg.Connection) -> None:
    with conn.cursor() as cur:
        cur.execute(
            "TRUNCATE TABLE public.records, public.audit_groups, public.locations, "
            "public.collections RESTART IDENTITY CASCADE;"
        )
    conn.commit()


@pytest.fixture(scope="function")
def clean_tables(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty every audit table before and after each test function.
    """
    _truncate_all(db_connection)
    yield
    _truncate_all(db_connection)


@pytest.fixture(scope="function")
def seeded_db_small(
    db_connection: psycopg.Connection,
    clean_tables,
    test_dsn: str,
) -> int:
    """
    Seed a small collection (500 records) for quick integration tests.

    Returns the number of records seeded.
    """
    rows_to_seed = 500

    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "test_data.csv"

        from scripts.generate_data import _copy_into_db, _generate_rows_csv

        _generate_rows_csv(csv_path, rows=rows_to_seed, batch_size=100, seed=42, collection=COLLECTION)
        _copy_into_db(test_dsn, csv_path, collection=COLLECTION)

    with db_connection.cursor() as cur:
        cur.execute("SELECT COUNT(*) FROM public.records;")
        count = cur.fetchone()[0]

    return count
