from __future__ import annotations

import io
import logging
from typing import Iterable
from xml.sax.saxutils import escape

from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from resume_formatter.core.errors import ExportError
from resume_formatter.render.layout import Block, Span, build_layout
from resume_formatter.render.profiles import FormatProfile, get_profile
from resume_formatter.schemas.resume import ResumeFormat, ResumeRecord

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"

PAGE_MARGIN = 0.5 * inch
WRITABLE_WIDTH = 7.5 * inch
DATES_COLUMN_WIDTH = 2.0 * inch

_FLUSH_TABLE = TableStyle(
    [
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 0),
        ("RIGHTPADDING", (0, 0), (-1, -1), 0),
        ("TOPPADDING", (0, 0), (-1, -1), 0),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 0),
    ]
)


def _styles(profile: FormatProfile) -> dict[str, ParagraphStyle]:
    body = profile.body_size_pt
    leading = body * 1.2
    align = TA_CENTER if profile.name_alignment == "center" else TA_LEFT
    contact_size = profile.name_size_pt if profile.contact_mode == "location" else body
    return {
        "name": ParagraphStyle(
            name="Name",
            fontName=profile.pdf_font_bold,
            fontSize=profile.name_size_pt,
            leading=profile.name_size_pt * 1.2,
            alignment=align,
        ),
        "contact": ParagraphStyle(
            name="Contact",
            fontName=profile.pdf_font,
            fontSize=contact_size,
            leading=contact_size * 1.2,
            alignment=align,
        ),
        "heading": ParagraphStyle(
            name="Heading",
            fontName=profile.pdf_font_bold,
            fontSize=body,
            leading=leading,
            spaceAfter=profile.heading_space_after_pt,
        ),
        "body": ParagraphStyle(name="Body", fontName=profile.pdf_font, fontSize=body, leading=leading),
        "right": ParagraphStyle(
            name="Right", fontName=profile.pdf_font, fontSize=body, leading=leading, alignment=TA_RIGHT
        ),
        "bullet": ParagraphStyle(
            name="Bullet",
            fontName=profile.pdf_font,
            fontSize=body,
            leading=leading,
            leftIndent=0.25 * inch,
            bulletIndent=0,
        ),
    }


def _markup(spans: Iterable[Span]) -> str:
    parts = []
    for span in spans:
        text = escape(span.text)
        parts.append(f"<b>{text}</b>" if span.bold else text)
    return "".join(parts)


def _flowables(blocks: Iterable[Block], styles: dict[str, ParagraphStyle], profile: FormatProfile) -> list:
    story: list = []
    for block in blocks:
        if block.kind == "spacer":
            story.append(Spacer(1, profile.body_size_pt))
        elif block.kind == "bullet":
            story.append(Paragraph(_markup(block.spans), styles["bullet"], bulletText="•"))
        elif block.kind == "grid":
            half = WRITABLE_WIDTH / 2
            rows = [
                [
                    Paragraph(_markup([left]), styles["bullet"], bulletText="•"),
                    Paragraph(_markup([right]), styles["bullet"], bulletText="•") if right is not None else "",
                ]
                for left, right in block.rows
            ]
            table = Table(rows, colWidths=[half, half], hAlign="LEFT")
            table.setStyle(_FLUSH_TABLE)
            story.append(table)
        elif block.kind == "entry_header":
            left = Paragraph(_markup(block.spans), styles["body"])
            right = Paragraph(_markup(block.right), styles["right"]) if block.right else ""
            table = Table(
                [[left, right]],
                colWidths=[WRITABLE_WIDTH - DATES_COLUMN_WIDTH, DATES_COLUMN_WIDTH],
                hAlign="LEFT",
            )
            table.setStyle(_FLUSH_TABLE)
            story.append(table)
        elif block.kind in ("name", "contact", "heading"):
            story.append(Paragraph(_markup(block.spans), styles[block.kind]))
        else:
            story.append(Paragraph(_markup(block.spans), styles["body"]))
    return story


def render_pdf(record: ResumeRecord, fmt: ResumeFormat) -> bytes:
    profile = get_profile(fmt)
    buffer = io.BytesIO()
    try:
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            leftMargin=PAGE_MARGIN,
            rightMargin=PAGE_MARGIN,
            topMargin=PAGE_MARGIN,
            bottomMargin=PAGE_MARGIN,
            title=f"{record.full_name} - Resume",
        )
        doc.build(_flowables(build_layout(record, profile), _styles(profile), profile))
    except Exception as exc:
        logger.exception("pdf_export_failed format=%s", profile.format.value)
        raise ExportError("Failed to generate PDF.") from exc
    data = buffer.getvalue()
    logger.info("pdf_export_ok format=%s bytes=%s", profile.format.value, len(data))
    return data
