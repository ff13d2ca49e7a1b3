"""
Record query collaborators: population, detail and collection lookups.

The orchestrator depends only on the Protocols below. `PostgresQueryEngine`
implements all three against the schema in `db/init.sql`; the text-protocol
backend lives in `collection_audit.infrastructure.delimited`.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple, runtime_checkable

import psycopg
from psycopg import Connection, sql

from collection_audit.domain.models import RecordDetail
from collection_audit.errors import ExternalCollaboratorFailure
from collection_audit.infrastructure.db_factory import apply_statement_timeout
from collection_audit.utils.logging import get_logger

log = get_logger(__name__)

POPULATION_QUERY = "SELECT id FROM public.records WHERE collection = %s AND ({predicate})"


def population_query(predicate: str, restricted: bool = False) -> str:
    """
    Build the population statement for one category predicate.

    The predicate is spliced in verbatim next to `%s` parameters, so literal
    percent signs (LIKE patterns) are doubled to survive placeholder parsing.
    """
    query = POPULATION_QUERY.format(predicate=predicate.replace("%", "%%"))
    if restricted:
        query += " AND id = ANY(%s)"
    return query + " ORDER BY id"


@runtime_checkable
class PopulationFetcher(Protocol):
    """Return every record identifier matching a category predicate."""

    def fetch_population(
        self, predicate: str, restrict_to: Optional[Sequence[int]] = None
    ) -> Tuple[int, ...]:
        ...


@runtime_checkable
class DetailFetcher(Protocol):
    """
    Return one RecordDetail per identifier, in no particular order.

    Identifiers without a resolvable location still come back, carrying the
    NOT_RECORDED sentinel.
    """

    def fetch_details(self, identifiers: Sequence[int]) -> List[RecordDetail]:
        ...


@runtime_checkable
class CollectionValidator(Protocol):
    def collection_exists(self, name: str) -> bool:
        ...


class PostgresQueryEngine:
    """
    Population/detail/lookup queries for a single collection.

    Category predicates are trusted SQL fragments from the audit plan; values
    (collection name, identifier lists) are always passed as parameters.
    """

    def __init__(
        self,
        conn: Connection,
        collection: str,
        statement_timeout_ms: int = 0,
    ) -> None:
        self._conn = conn
        self.collection = collection
        self._timeout_ms = statement_timeout_ms

    def _fetchall(self, query: sql.Composable, params: tuple, collaborator: str) -> list:
        try:
            with self._conn.cursor() as cur:
                apply_statement_timeout(cur, self._timeout_ms)
                cur.execute(query, params)
                return cur.fetchall()
        except psycopg.Error as exc:
            raise ExternalCollaboratorFailure(
                f"{collaborator} query failed: {exc}", collaborator=collaborator
            ) from exc

    def collection_exists(self, name: str) -> bool:
        rows = self._fetchall(
            sql.SQL("SELECT 1 FROM public.collections WHERE name = %s LIMIT 1"),
            (name,),
            "collection_lookup",
        )
        return bool(rows)

    def fetch_population(
        self, predicate: str, restrict_to: Optional[Sequence[int]] = None
    ) -> Tuple[int, ...]:
        query = sql.SQL(population_query(predicate, restricted=restrict_to is not None))
        params: tuple = (self.collection,)
        if restrict_to is not None:
            params += (list(restrict_to),)

        rows = self._fetchall(query, params, "population_fetcher")
        return tuple(int(row[0]) for row in rows)

    def fetch_details(self, identifiers: Sequence[int]) -> List[RecordDetail]:
        if not identifiers:
            return []
        query = sql.SQL(
            """
            SELECT r.id, r.reg_prefix, r.reg_number, r.reg_suffix, r.summary, l.name
            FROM public.records r
            LEFT JOIN public.locations l ON l.id = r.location_id
            WHERE r.id = ANY(%s)
            """
        )
        rows = self._fetchall(query, (list(identifiers),), "detail_fetcher")
        details = [
            RecordDetail(
                identifier=row[0],
                prefix=row[1] or "",
                number=row[2],
                suffix=row[3] or "",
                summary=row[4] or "",
                location=row[5],
            )
            for row in rows
        ]
        log.debug(
            "Fetched record details",
            extra={"requested": len(identifiers), "returned": len(details)},
        )
        return details


__all__ = [
    "PopulationFetcher",
    "DetailFetcher",
    "CollectionValidator",
    "PostgresQueryEngine",
]
