from __future__ import annotations

import io
import logging
from typing import Iterable, Optional

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_TAB_ALIGNMENT
from docx.shared import Inches, Pt, RGBColor

from resume_formatter.core.errors import ExportError
from resume_formatter.render.layout import Block, Span, build_layout
from resume_formatter.render.profiles import FormatProfile, get_profile
from resume_formatter.schemas.resume import ResumeFormat, ResumeRecord

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

PAGE_MARGIN = Inches(0.5)
WRITABLE_WIDTH = Inches(7.5)
BULLET_INDENT = Inches(0.25)
BLACK = RGBColor(0, 0, 0)


class _DocxWriter:
    def __init__(self, profile: FormatProfile):
        self.profile = profile
        self.document = Document()

        normal = self.document.styles["Normal"]
        normal.font.name = profile.font_family
        normal.font.size = Pt(profile.body_size_pt)
        normal.font.color.rgb = BLACK
        normal.paragraph_format.space_before = Pt(0)
        normal.paragraph_format.space_after = Pt(0)
        normal.paragraph_format.line_spacing = 1.0

        for section in self.document.sections:
            section.page_width = Inches(8.5)
            section.page_height = Inches(11)
            section.top_margin = PAGE_MARGIN
            section.bottom_margin = PAGE_MARGIN
            section.left_margin = PAGE_MARGIN
            section.right_margin = PAGE_MARGIN

    def _run(self, paragraph, text: str, *, bold: bool = False, size: Optional[int] = None):
        run = paragraph.add_run(text)
        run.font.name = self.profile.font_family
        run.font.size = Pt(size or self.profile.body_size_pt)
        run.font.bold = bold
        run.font.color.rgb = BLACK
        return run

    def _spans(self, paragraph, spans: Iterable[Span], size: Optional[int] = None) -> None:
        for span in spans:
            self._run(paragraph, span.text, bold=span.bold, size=size)

    def _bullet(self, paragraph, spans: Iterable[Span]):
        fmt = paragraph.paragraph_format
        fmt.left_indent = BULLET_INDENT
        fmt.first_line_indent = Inches(-0.25)
        fmt.tab_stops.add_tab_stop(BULLET_INDENT, WD_TAB_ALIGNMENT.LEFT)
        self._run(paragraph, "•\t")
        self._spans(paragraph, spans)
        return paragraph

    def _grid(self, block: Block) -> None:
        table = self.document.add_table(rows=0, cols=2)
        table.alignment = WD_TABLE_ALIGNMENT.LEFT
        table.autofit = False
        half = Inches(3.75)
        for left, right in block.rows:
            cells = table.add_row().cells
            for cell, span in zip(cells, (left, right)):
                cell.width = half
                # A fresh cell carries one empty paragraph.
                if span is not None:
                    self._bullet(cell.paragraphs[0], [span])

    def write(self, block: Block) -> None:
        profile = self.profile
        if block.kind == "bullet":
            self._bullet(self.document.add_paragraph(), block.spans)
        elif block.kind == "grid":
            self._grid(block)
        elif block.kind == "name":
            paragraph = self.document.add_paragraph()
            paragraph.alignment = (
                WD_ALIGN_PARAGRAPH.CENTER if profile.name_alignment == "center" else WD_ALIGN_PARAGRAPH.LEFT
            )
            self._spans(paragraph, block.spans, size=profile.name_size_pt)
        elif block.kind == "contact":
            paragraph = self.document.add_paragraph()
            paragraph.alignment = (
                WD_ALIGN_PARAGRAPH.CENTER if profile.name_alignment == "center" else WD_ALIGN_PARAGRAPH.LEFT
            )
            size = profile.name_size_pt if profile.contact_mode == "location" else profile.body_size_pt
            self._spans(paragraph, block.spans, size=size)
        elif block.kind == "heading":
            paragraph = self.document.add_paragraph()
            paragraph.paragraph_format.space_after = Pt(profile.heading_space_after_pt)
            for span in block.spans:
                self._run(paragraph, span.text, bold=True)
        elif block.kind == "entry_header":
            paragraph = self.document.add_paragraph()
            paragraph.paragraph_format.tab_stops.add_tab_stop(WRITABLE_WIDTH, WD_TAB_ALIGNMENT.RIGHT)
            self._spans(paragraph, block.spans)
            if block.right:
                self._run(paragraph, "\t")
                self._spans(paragraph, block.right)
        elif block.kind == "spacer":
            self.document.add_paragraph()
        else:
            paragraph = self.document.add_paragraph()
            self._spans(paragraph, block.spans)

    def to_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.document.save(buffer)
        return buffer.getvalue()


def render_docx(record: ResumeRecord, fmt: ResumeFormat) -> bytes:
    profile = get_profile(fmt)
    try:
        writer = _DocxWriter(profile)
        for block in build_layout(record, profile):
            writer.write(block)
        data = writer.to_bytes()
    except Exception as exc:
        logger.exception("docx_export_failed format=%s", profile.format.value)
        raise ExportError("Failed to generate DOCX.") from exc
    logger.info("docx_export_ok format=%s bytes=%s", profile.format.value, len(data))
    return data
