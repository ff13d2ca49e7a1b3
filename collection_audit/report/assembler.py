"""
Report assembly: selected records to an immutable ReportDocument.

Sections follow plan order. An empty category is omitted, except the
baseline category, which is always present. Rows inside a section are sorted
by registration number and numbered from 1.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List

from collection_audit.domain.models import (
    NOT_RECORDED,
    AuditPlan,
    MergedSelection,
    RecordDetail,
    ReportDocument,
    ReportRow,
    ReportSection,
)
from collection_audit.errors import ExternalCollaboratorFailure

_SEPARATORS = r"[\s:;,|/–—-]*"


def _code_pattern(display_code: str) -> "re.Pattern[str]":
    code = re.escape(display_code)
    return re.compile(
        rf"(?P<lead>{_SEPARATORS})"
        rf"(?:\[\s*{code}\s*\]|\(\s*{code}\s*\)|(?<![A-Za-z0-9]){code}(?![A-Za-z0-9]))"
        rf"(?P<trail>{_SEPARATORS})"
    )


def strip_display_code(summary: str, display_code: str) -> str:
    """
    Remove a repeated display code from the summary text.

    Summaries often open with the registration number ("X1234: Oil on
    canvas"); the code already has its own column, so every copy is dropped
    together with brackets or separators directly next to it. The rest of the
    summary is left as written.
    """
    if not display_code or display_code not in summary:
        return summary.strip()

    def _replace(match: "re.Match[str]") -> str:
        if match.start() == 0 or match.end() == len(summary):
            return ""
        lead = match.group("lead")
        return lead.rstrip() + " " if lead.strip() else " "

    cleaned = _code_pattern(display_code).sub(_replace, summary)
    return re.sub(r"\s{2,}", " ", cleaned).strip()


def build_rows(details: Iterable[RecordDetail]) -> List[ReportRow]:
    ordered = sorted(details, key=lambda d: (d.sort_key, d.identifier))
    return [
        ReportRow(
            position=position,
            display_code=detail.display_code,
            summary=strip_display_code(detail.summary, detail.display_code),
            location=detail.location.strip() or NOT_RECORDED,
        )
        for position, detail in enumerate(ordered, start=1)
    ]


def assemble_report(
    title: str,
    subtitle: str,
    plan: AuditPlan,
    selection: MergedSelection,
    details: Iterable[RecordDetail],
) -> ReportDocument:
    """
    Build the report document for one audit run.

    Parameters
    ----------
    plan : AuditPlan
        Supplies section order and which category is the baseline.
    selection : MergedSelection
        Per-category identifier lists; a record drawn by two categories
        appears in both sections.
    details : iterable of RecordDetail
        One detail per selected identifier, in any order.

    Raises
    ------
    ExternalCollaboratorFailure
        If a selected identifier has no detail.
    """
    by_id: Dict[int, RecordDetail] = {d.identifier: d for d in details}
    sections: List[ReportSection] = []

    for category in plan.categories:
        identifiers = selection.by_category.get(category.name, ())
        if not identifiers and not category.baseline:
            continue
        missing = [i for i in identifiers if i not in by_id]
        if missing:
            raise ExternalCollaboratorFailure(
                f"No detail for {len(missing)} selected record(s) in '{category.name}': "
                f"{missing[:10]}",
                collaborator="detail_fetcher",
            )
        rows = build_rows(by_id[i] for i in identifiers)
        sections.append(ReportSection(title=category.name, rows=tuple(rows)))

    return ReportDocument(title=title, subtitle=subtitle, sections=tuple(sections))


__all__ = ["assemble_report", "build_rows", "strip_display_code"]
