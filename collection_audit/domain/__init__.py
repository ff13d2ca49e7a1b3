"""
Domain package for the collection audit.

Exports the core domain models used across sampling, reporting and the
infrastructure collaborators. Keep this package focused on data definitions
and validation concerns.
"""

from collection_audit.domain.models import (
    NOT_RECORDED,
    AllRule,
    AuditPlan,
    Category,
    FixedCountRule,
    GroupRecord,
    GroupResult,
    MergedSelection,
    PercentWithBoundsRule,
    RecordDetail,
    ReportDocument,
    ReportRow,
    ReportSection,
    Sample,
    SelectionEntry,
)

__all__ = [
    "NOT_RECORDED",
    "AllRule",
    "AuditPlan",
    "Category",
    "FixedCountRule",
    "GroupRecord",
    "GroupResult",
    "MergedSelection",
    "PercentWithBoundsRule",
    "RecordDetail",
    "ReportDocument",
    "ReportRow",
    "ReportSection",
    "Sample",
    "SelectionEntry",
]
