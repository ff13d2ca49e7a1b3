"""
Paginated rendering of the audit report.

Page headers read "Page X of N", but N is only known after layout. Rendering
is therefore an explicit two-pass protocol over the same immutable
ReportDocument:

1. render into a scoped temporary directory with the total unresolved and
   collect the page count the renderer measured;
2. render again to the real destination, declaring that count.

If the second pass lays out to a different number of pages the header total
is wrong; that is logged as a warning and reported on the outcome, never
raised.
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import List, Optional, Protocol, runtime_checkable
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import LongTable, Paragraph, SimpleDocTemplate, Spacer, TableStyle
from reportlab.platypus.doctemplate import LayoutError

from collection_audit.domain.models import ReportDocument, ReportSection
from collection_audit.errors import ExternalCollaboratorFailure
from collection_audit.utils.logging import get_logger

log = get_logger(__name__)

EMPTY_SECTION_TEXT = "No records were selected for this category."


@runtime_checkable
class PaginatedRenderer(Protocol):
    """
    Render a document to `destination` and return the rendered page count.

    `total_pages` is None on the measuring pass.
    """

    def render(
        self, document: ReportDocument, destination: Path, total_pages: Optional[int]
    ) -> int:
        ...


@dataclass(frozen=True)
class RenderOutcome:
    path: Path
    page_count: int
    declared_pages: int

    @property
    def page_count_mismatch(self) -> bool:
        return self.page_count != self.declared_pages


class ReportLabRenderer:
    """
    PDF renderer built on ReportLab platypus.

    One table per section (row number, registration code with summary,
    location); the header row repeats on every page the table spans.
    """

    def __init__(
        self,
        page_size=landscape(A4),
        header_label: str = "",
        generated_on: Optional[date] = None,
    ) -> None:
        self.page_size = page_size
        self.header_label = header_label
        self.generated_on = generated_on or date.today()
        styles = getSampleStyleSheet()
        self._title_style = styles["Title"]
        self._subtitle_style = ParagraphStyle(
            "AuditSubtitle", parent=styles["Normal"], fontSize=10, textColor=colors.gray
        )
        self._heading_style = ParagraphStyle(
            "AuditSection", parent=styles["Heading2"], spaceBefore=12, spaceAfter=6
        )
        self._cell_style = ParagraphStyle(
            "AuditCell", parent=styles["Normal"], fontSize=9, leading=11
        )
        self._empty_style = ParagraphStyle(
            "AuditEmpty", parent=styles["Italic"], fontSize=9, textColor=colors.gray
        )

    def _section_flowables(self, section: ReportSection, width: float) -> list:
        flowables: list = [Paragraph(escape(section.title), self._heading_style)]
        if not section.rows:
            flowables.append(Paragraph(EMPTY_SECTION_TEXT, self._empty_style))
            return flowables

        data: List[list] = [["#", "Record", "Location"]]
        for row in section.rows:
            record = f"<b>{escape(row.display_code)}</b>"
            if row.summary:
                record += f" {escape(row.summary)}"
            data.append(
                [
                    str(row.position),
                    Paragraph(record, self._cell_style),
                    Paragraph(escape(row.location), self._cell_style),
                ]
            )

        table = LongTable(
            data,
            colWidths=[12 * mm, width * 0.62, width - 12 * mm - width * 0.62],
            repeatRows=1,
        )
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2C3E50")),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 9),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("ALIGN", (0, 1), (0, -1), "RIGHT"),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F4F6F7")]),
                ]
            )
        )
        flowables.append(table)
        return flowables

    def render(
        self, document: ReportDocument, destination: Path, total_pages: Optional[int]
    ) -> int:
        pages_seen = 0
        total_label = str(total_pages) if total_pages else "?"
        page_width, page_height = self.page_size
        margin = 15 * mm

        def _draw_header(canvas, doc) -> None:
            nonlocal pages_seen
            page = canvas.getPageNumber()
            pages_seen = max(pages_seen, page)
            canvas.saveState()
            canvas.setFont("Helvetica", 8)
            canvas.setFillColor(colors.gray)
            left = " | ".join(
                part for part in (self.header_label, self.generated_on.isoformat()) if part
            )
            canvas.drawString(margin, page_height - 10 * mm, left)
            canvas.drawRightString(
                page_width - margin, page_height - 10 * mm, f"Page {page} of {total_label}"
            )
            canvas.restoreState()

        doc = SimpleDocTemplate(
            str(destination),
            pagesize=self.page_size,
            leftMargin=margin,
            rightMargin=margin,
            topMargin=20 * mm,
            bottomMargin=15 * mm,
            title=document.title,
        )
        story: list = [Paragraph(escape(document.title), self._title_style)]
        if document.subtitle:
            story.append(Paragraph(escape(document.subtitle), self._subtitle_style))
        story.append(Spacer(1, 6 * mm))
        for section in document.sections:
            story.extend(self._section_flowables(section, doc.width))

        try:
            doc.build(story, onFirstPage=_draw_header, onLaterPages=_draw_header)
        except (LayoutError, OSError) as exc:
            raise ExternalCollaboratorFailure(
                f"Rendering {destination} failed: {exc}", collaborator="renderer"
            ) from exc
        return pages_seen


def render_report(
    document: ReportDocument,
    renderer: PaginatedRenderer,
    output_path: Path,
) -> RenderOutcome:
    """
    Run the measure-then-render protocol and return the final outcome.

    The measuring pass writes only inside a TemporaryDirectory, which is
    removed whether or not rendering succeeds.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(prefix="collection_audit_") as tmpdir:
        measured = renderer.render(document, Path(tmpdir) / "measure.pdf", None)
    if measured < 1:
        raise ExternalCollaboratorFailure(
            f"Renderer reported {measured} pages on the measuring pass", collaborator="renderer"
        )
    log.info("[RENDER] Measuring pass complete", extra={"pages": measured})

    final = renderer.render(document, output_path, measured)
    outcome = RenderOutcome(path=output_path, page_count=final, declared_pages=measured)
    if outcome.page_count_mismatch:
        log.warning(
            "Page count changed between passes; header totals are inaccurate",
            extra={"declared_pages": measured, "rendered_pages": final},
        )
    log.info("[RENDER] Report written", extra={"path": str(output_path), "pages": final})
    return outcome


__all__ = [
    "EMPTY_SECTION_TEXT",
    "PaginatedRenderer",
    "RenderOutcome",
    "ReportLabRenderer",
    "render_report",
]
