"""
Group persistence for the audit selection.

Persisting a group is not idempotent: every execution creates a new group
record, even for a name that already exists. `CreateGroupCommand` keeps the
single side-effecting call separate from building its inputs, so callers can
run it in dry-run mode or attach an idempotency key of their own.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

import psycopg
from psycopg import Connection

from collection_audit.domain.models import GroupRecord, GroupResult
from collection_audit.errors import ExternalCollaboratorFailure, InvalidInputError
from collection_audit.utils.logging import get_logger

log = get_logger(__name__)


@runtime_checkable
class GroupPersister(Protocol):
    """Create exactly one new group record; return its identifier."""

    def create(self, record: GroupRecord, idempotency_key: Optional[str] = None) -> Optional[str]:
        ...


class PostgresGroupPersister:
    """
    Insert group records into `public.audit_groups`.

    The insert is committed immediately, so a group created before a later
    failure in the same run stays in place.
    """

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def create(self, record: GroupRecord, idempotency_key: Optional[str] = None) -> Optional[str]:
        fields = record.to_fields()
        try:
            with self._conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO public.audit_groups (
                        group_name, group_description, user_id, user_name, group_type,
                        module, members, sec_can_edit, sec_can_display, sec_can_delete,
                        idempotency_key
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING id
                    """,
                    (
                        fields["GroupName"],
                        fields["GroupDescription"],
                        fields["UserId"],
                        fields["UserName"],
                        fields["GroupType"],
                        fields["Module"],
                        fields["Members"],
                        fields["SecCanEdit"],
                        fields["SecCanDisplay"],
                        fields["SecCanDelete"],
                        idempotency_key,
                    ),
                )
                row = cur.fetchone()
            self._conn.commit()
        except psycopg.Error as exc:
            self._conn.rollback()
            raise ExternalCollaboratorFailure(
                f"Group insert failed: {exc}", collaborator="group_persister"
            ) from exc
        if row is None:
            raise ExternalCollaboratorFailure(
                "Group insert returned no id", collaborator="group_persister"
            )
        return str(row[0])


class DryRunGroupPersister:
    """Log the group that would be created; persist nothing."""

    def __init__(self) -> None:
        self.records: list[GroupRecord] = []

    def create(self, record: GroupRecord, idempotency_key: Optional[str] = None) -> Optional[str]:
        self.records.append(record)
        log.info(
            f"[DRY RUN] Group '{record.name}' not persisted",
            extra={"members": len(record.members), "idempotency_key": idempotency_key},
        )
        return None


class CreateGroupCommand:
    """
    Deferred creation of one group record.

    Parameters
    ----------
    record : GroupRecord
        Fully computed group (name, owner, members, roles).
    persister : GroupPersister
        Collaborator that performs the insert.
    idempotency_key : str | None
        Opaque key stored with the group so callers can detect replays.
    """

    def __init__(
        self,
        record: GroupRecord,
        persister: GroupPersister,
        idempotency_key: Optional[str] = None,
    ) -> None:
        self.record = record
        self.persister = persister
        self.idempotency_key = idempotency_key

    def execute(self, dry_run: bool = False) -> GroupResult:
        if not self.record.members:
            raise InvalidInputError(f"Group '{self.record.name}' has no members")
        persister: GroupPersister = DryRunGroupPersister() if dry_run else self.persister
        group_id = persister.create(self.record, self.idempotency_key)
        log.info(
            f"[GROUP] {self.record.name}",
            extra={
                "group_id": group_id,
                "members": len(self.record.members),
                "dry_run": dry_run,
            },
        )
        return GroupResult(group_id=group_id, dry_run=dry_run, idempotency_key=self.idempotency_key)


__all__ = [
    "GroupPersister",
    "PostgresGroupPersister",
    "DryRunGroupPersister",
    "CreateGroupCommand",
]
