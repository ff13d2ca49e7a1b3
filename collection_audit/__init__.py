"""
Collection Audit - rule-governed sampling audits for catalogue collections.

Selects a representative sample of records from a collection under
per-category quota rules, persists the selection as a named group, and
renders a paginated PDF report of the selected records:

- Quota rules (all, fixed count, percentage with bounds)
- Seeded or system-random sampling per category
- First-seen deduplication across overlapping categories
- Batched detail fetching from Postgres or a text-protocol query command
- Two-pass rendering so page headers carry the final page total
"""

from __future__ import annotations

__version__ = "0.1.0"

# Public API exports
from collection_audit.config import Settings, get_settings
from collection_audit.errors import (
    AuditError,
    ExternalCollaboratorFailure,
    InvalidInputError,
    InvalidRuleError,
)
from collection_audit.orchestrator import AuditResult, RunConfig, open_collaborators, run_audit
from collection_audit.plans import DEFAULT_PLAN, load_plan
from collection_audit.utils.logging import configure_logging, get_logger
from collection_audit.utils.profiler import ProfileStats, profile_block

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "AuditError",
    "ExternalCollaboratorFailure",
    "InvalidInputError",
    "InvalidRuleError",
    # Orchestration
    "AuditResult",
    "RunConfig",
    "open_collaborators",
    "run_audit",
    "DEFAULT_PLAN",
    "load_plan",
    # Logging
    "configure_logging",
    "get_logger",
    # Profiling
    "ProfileStats",
    "profile_block",
]
