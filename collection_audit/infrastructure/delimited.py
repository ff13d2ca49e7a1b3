"""
Text-protocol query backend.

Some catalogue systems are only reachable through a command-line query tool
that reads a query on stdin and prints one row per line. This backend speaks
that protocol and turns the text into typed results at the boundary.

Row format
----------
- Rows are separated by newlines; blank lines are ignored.
- Fields are separated by DEFAULT_FIELD_DELIMITER ("¦", broken bar), chosen
  because it practically never occurs in catalogue text.
- A registration suffix that is absent is printed as the token
  MISSING_SUFFIX_TOKEN ("NULL") and is stripped on parse.
- A blank location field maps to the NOT_RECORDED sentinel.

A field that itself contains the delimiter shifts the field count of its row.
That row is rejected with ExternalCollaboratorFailure rather than guessed at.
"""

from __future__ import annotations

import subprocess
from typing import Callable, List, Optional, Sequence, Tuple

from collection_audit.domain.models import (
    NOT_RECORDED,
    GroupRecord,
    RecordDetail,
    inclusion_predicate,
)
from collection_audit.errors import ExternalCollaboratorFailure
from collection_audit.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_FIELD_DELIMITER = "¦"
MISSING_SUFFIX_TOKEN = "NULL"
DETAIL_FIELD_COUNT = 6

POPULATION_QUERY = "select id from {table} where collection = {collection} and ({predicate})"
DETAIL_QUERY = (
    "select id, reg_prefix, reg_number, reg_suffix, summary, location "
    "from {table} where {inclusion}"
)
LOOKUP_QUERY = "select name from collections where name = {collection}"
GROUP_TABLE = "groups"

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


def quote_literal(value: str) -> str:
    """Single-quoted string literal with embedded quotes doubled."""
    return "'" + value.replace("'", "''") + "'"


def _rows(text: str) -> List[str]:
    return [line.rstrip("\r") for line in text.splitlines() if line.strip()]


def parse_identifier_rows(text: str) -> Tuple[int, ...]:
    """
    Parse one identifier per row.

    Raises
    ------
    ExternalCollaboratorFailure
        If a row is not a non-negative integer.
    """
    identifiers: List[int] = []
    for line in _rows(text):
        value = line.strip()
        if not (value.isascii() and value.isdigit()):
            raise ExternalCollaboratorFailure(
                f"Expected a record identifier, got {value!r}", collaborator="population_fetcher"
            )
        identifiers.append(int(value))
    return tuple(identifiers)


def parse_detail_rows(
    text: str,
    delimiter: str = DEFAULT_FIELD_DELIMITER,
) -> List[RecordDetail]:
    """
    Parse detail rows: id, prefix, number, suffix, summary, location.

    Raises
    ------
    ExternalCollaboratorFailure
        On a wrong field count (including delimiter collision in the data)
        or a non-numeric identifier/number.
    """
    details: List[RecordDetail] = []
    for line in _rows(text):
        fields = line.split(delimiter)
        if len(fields) != DETAIL_FIELD_COUNT:
            raise ExternalCollaboratorFailure(
                f"Expected {DETAIL_FIELD_COUNT} fields, got {len(fields)} in row {line!r}",
                collaborator="detail_fetcher",
            )
        identifier, prefix, number, suffix, summary, location = (f.strip() for f in fields)
        if not all(v.isascii() and v.isdigit() for v in (identifier, number)):
            raise ExternalCollaboratorFailure(
                f"Non-numeric identifier or number in row {line!r}",
                collaborator="detail_fetcher",
            )
        if suffix == MISSING_SUFFIX_TOKEN:
            suffix = ""
        details.append(
            RecordDetail(
                identifier=int(identifier),
                prefix=prefix,
                number=int(number),
                suffix=suffix,
                summary=summary,
                location=location or NOT_RECORDED,
            )
        )
    return details


class CommandQueryEngine:
    """
    Population/detail/lookup queries and group inserts issued through an
    external command.

    Parameters
    ----------
    command : Sequence[str]
        argv of the query tool; the query is written to its stdin.
    collection : str
        Collection (table group) being audited.
    runner : callable
        `subprocess.run`-compatible callable (injectable for tests).
    """

    def __init__(
        self,
        command: Sequence[str],
        collection: str,
        table: str = "records",
        delimiter: str = DEFAULT_FIELD_DELIMITER,
        runner: Optional[Runner] = None,
    ) -> None:
        if not command:
            raise ValueError("A query command is required")
        self.command = list(command)
        self.collection = collection
        self.table = table
        self.delimiter = delimiter
        self._runner = runner or subprocess.run

    def _run(self, query: str, collaborator: str) -> str:
        log.debug("Running query command", extra={"command": self.command[0], "query": query})
        try:
            completed = self._runner(
                self.command,
                input=query,
                capture_output=True,
                text=True,
                encoding="utf-8",
                check=False,
            )
        except OSError as exc:
            raise ExternalCollaboratorFailure(
                f"Could not run query command {self.command[0]!r}: {exc}",
                collaborator=collaborator,
            ) from exc
        if completed.returncode != 0:
            raise ExternalCollaboratorFailure(
                f"Query command exited with {completed.returncode}: "
                f"{(completed.stderr or '').strip()}",
                collaborator=collaborator,
            )
        return completed.stdout or ""

    def collection_exists(self, name: str) -> bool:
        output = self._run(LOOKUP_QUERY.format(collection=quote_literal(name)), "collection_lookup")
        return any(line.strip() == name for line in _rows(output))

    def fetch_population(
        self, predicate: str, restrict_to: Optional[Sequence[int]] = None
    ) -> Tuple[int, ...]:
        query = POPULATION_QUERY.format(
            table=self.table,
            collection=quote_literal(self.collection),
            predicate=predicate,
        )
        if restrict_to is not None:
            query += f" and {inclusion_predicate(restrict_to)}"
        return parse_identifier_rows(self._run(query, "population_fetcher"))

    def fetch_details(self, identifiers: Sequence[int]) -> List[RecordDetail]:
        if not identifiers:
            return []
        query = DETAIL_QUERY.format(table=self.table, inclusion=inclusion_predicate(identifiers))
        return parse_detail_rows(self._run(query, "detail_fetcher"), self.delimiter)

    def create(self, record: GroupRecord, idempotency_key: Optional[str] = None) -> Optional[str]:
        """Insert a group through the query tool; the tool prints the new id."""
        fields = record.to_fields()
        if idempotency_key:
            fields["IdempotencyKey"] = idempotency_key
        columns = ", ".join(fields)
        values = ", ".join(
            quote_literal("|".join(v) if isinstance(v, list) else v) for v in fields.values()
        )
        output = self._run(f"insert into {GROUP_TABLE} ({columns}) values ({values})", "group_persister")
        rows = _rows(output)
        if not rows:
            raise ExternalCollaboratorFailure(
                "Group insert returned no id", collaborator="group_persister"
            )
        return rows[0].strip()


__all__ = [
    "DEFAULT_FIELD_DELIMITER",
    "MISSING_SUFFIX_TOKEN",
    "CommandQueryEngine",
    "parse_detail_rows",
    "parse_identifier_rows",
    "quote_literal",
]
