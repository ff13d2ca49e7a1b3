from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import List, Optional

import pytest

from collection_audit.domain.models import ReportDocument, ReportRow, ReportSection
from collection_audit.errors import ExternalCollaboratorFailure
from collection_audit.report.renderer import ReportLabRenderer, render_report


def _document(rows_per_section: int = 3) -> ReportDocument:
    rows = tuple(
        ReportRow(
            position=i,
            display_code=f"X{i}",
            summary=f"Object {i} & <friends>",
            location="Gallery 3",
        )
        for i in range(1, rows_per_section + 1)
    )
    return ReportDocument(
        title="Collection audit: paintings",
        subtitle="default plan",
        sections=(
            ReportSection(title="High value", rows=rows),
            ReportSection(title="General", rows=()),
        ),
    )


class FailingRenderer:
    def __init__(self) -> None:
        self.destinations: List[Path] = []

    def render(self, document, destination: Path, total_pages: Optional[int]) -> int:
        self.destinations.append(Path(destination))
        Path(destination).write_bytes(b"partial")
        raise ExternalCollaboratorFailure("typesetter crashed", collaborator="renderer")


def test_reportlab_renders_a_pdf(tmp_path: Path) -> None:
    output = tmp_path / "reports" / "paintings_audit_2024-01-31.pdf"
    renderer = ReportLabRenderer(header_label="paintings", generated_on=date(2024, 1, 31))

    outcome = render_report(_document(), renderer, output)

    assert output.read_bytes().startswith(b"%PDF")
    assert outcome.path == output
    assert outcome.page_count == 1
    assert outcome.declared_pages == 1
    assert not outcome.page_count_mismatch


@pytest.mark.slow
def test_reportlab_long_section_spans_pages(tmp_path: Path) -> None:
    output = tmp_path / "long.pdf"
    outcome = render_report(_document(rows_per_section=300), ReportLabRenderer(), output)

    assert outcome.page_count > 1
    assert outcome.page_count == outcome.declared_pages


def test_passes_declare_measured_total(tmp_path: Path, renderer_factory) -> None:
    renderer = renderer_factory(pages=(4, 4))
    output = tmp_path / "out.pdf"

    outcome = render_report(_document(), renderer, output)

    (first_dest, first_total), (second_dest, second_total) = renderer.calls
    assert first_total is None
    assert second_total == 4
    assert second_dest == output
    assert first_dest != output
    assert not first_dest.parent.exists()
    assert renderer.documents[0] is renderer.documents[1]
    assert outcome.page_count == 4


def test_page_count_mismatch_is_reported_not_raised(tmp_path: Path, renderer_factory) -> None:
    outcome = render_report(_document(), renderer_factory(pages=(3, 4)), tmp_path / "out.pdf")

    assert outcome.page_count_mismatch
    assert outcome.declared_pages == 3
    assert outcome.page_count == 4


def test_measuring_output_is_removed_on_failure(tmp_path: Path) -> None:
    renderer = FailingRenderer()

    with pytest.raises(ExternalCollaboratorFailure):
        render_report(_document(), renderer, tmp_path / "out.pdf")

    assert len(renderer.destinations) == 1
    assert not renderer.destinations[0].exists()
    assert not renderer.destinations[0].parent.exists()
    assert not (tmp_path / "out.pdf").exists()


def test_zero_measured_pages_is_a_failure(tmp_path: Path, renderer_factory) -> None:
    renderer = renderer_factory(pages=(0, 0))
    with pytest.raises(ExternalCollaboratorFailure):
        render_report(_document(), renderer, tmp_path / "out.pdf")
    assert len(renderer.calls) == 1
