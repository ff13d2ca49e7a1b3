"""
Report package for the collection audit: document assembly and rendering.
"""

from collection_audit.report.assembler import assemble_report, strip_display_code
from collection_audit.report.renderer import (
    PaginatedRenderer,
    RenderOutcome,
    ReportLabRenderer,
    render_report,
)

__all__ = [
    "assemble_report",
    "strip_display_code",
    "PaginatedRenderer",
    "RenderOutcome",
    "ReportLabRenderer",
    "render_report",
]
