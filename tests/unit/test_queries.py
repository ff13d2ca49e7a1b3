from __future__ import annotations

import re

from psycopg import sql

from collection_audit.infrastructure.queries import PostgresQueryEngine, population_query


def _placeholders(query: str) -> list:
    return re.findall(r"%.", query.replace("%%", ""))


class RecordingCursor:
    def __init__(self, conn: "RecordingConnection") -> None:
        self.conn = conn

    def __enter__(self) -> "RecordingCursor":
        return self

    def __exit__(self, *exc) -> None:
        return None

    def execute(self, query, params=None) -> None:
        self.conn.executed.append((query, params))

    def fetchall(self):
        return [(3,), (5,)]


class RecordingConnection:
    def __init__(self) -> None:
        self.executed: list = []

    def cursor(self) -> RecordingCursor:
        return RecordingCursor(self)


def test_like_predicate_keeps_only_real_placeholders() -> None:
    query = population_query("summary ILIKE '%oil%'")

    assert "'%%oil%%'" in query
    assert _placeholders(query) == ["%s"]


def test_restricted_query_adds_identifier_placeholder() -> None:
    query = population_query("reg_prefix LIKE 'X%'", restricted=True)

    assert _placeholders(query) == ["%s", "%s"]
    assert query.endswith("AND id = ANY(%s) ORDER BY id")


def test_population_fetch_passes_values_as_parameters() -> None:
    conn = RecordingConnection()
    engine = PostgresQueryEngine(conn, "paintings")

    assert engine.fetch_population("summary ILIKE '%oil%'", restrict_to=[3, 5, 9]) == (3, 5)

    (query, params), = conn.executed
    assert isinstance(query, sql.SQL)
    assert params == ("paintings", [3, 5, 9])
