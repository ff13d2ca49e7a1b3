"""
Infrastructure package for the collection audit.

Centralizes the external collaborators: database connectivity, record
queries (Postgres or a text-protocol command) and group persistence. Keep
this layer focused on I/O and resource management, decoupled from sampling
and report logic.
"""

from collection_audit.infrastructure.db_factory import (
    apply_statement_timeout,
    build_dsn,
    connection_scope,
    get_sync_connection,
)
from collection_audit.infrastructure.delimited import CommandQueryEngine
from collection_audit.infrastructure.groups import (
    CreateGroupCommand,
    DryRunGroupPersister,
    GroupPersister,
    PostgresGroupPersister,
)
from collection_audit.infrastructure.queries import (
    CollectionValidator,
    DetailFetcher,
    PopulationFetcher,
    PostgresQueryEngine,
)

__all__ = [
    "apply_statement_timeout",
    "build_dsn",
    "connection_scope",
    "get_sync_connection",
    "CommandQueryEngine",
    "CreateGroupCommand",
    "DryRunGroupPersister",
    "GroupPersister",
    "PostgresGroupPersister",
    "CollectionValidator",
    "DetailFetcher",
    "PopulationFetcher",
    "PostgresQueryEngine",
]
