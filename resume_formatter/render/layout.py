"""Renderer-neutral layout for a résumé.

``build_layout`` turns a ``ResumeRecord`` and a ``FormatProfile`` into an
ordered list of ``Block`` values. The HTML preview, the DOCX exporter and the
PDF exporter all draw from the same block list, so section order, heading
text, bullet splitting and grid decisions cannot drift apart between them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal, Optional, Sequence

from resume_formatter.normalize.text import (
    LONG_LINE_THRESHOLD,
    expand_months,
    format_section_title,
    normalize_location,
    split_key_value,
    split_long_sentences,
)
from resume_formatter.render.profiles import FormatProfile
from resume_formatter.schemas.resume import CustomSection, EducationEntry, ExperienceEntry, ResumeRecord

BlockKind = Literal[
    "name",
    "contact",
    "heading",
    "paragraph",
    "bullet",
    "line",
    "entry_header",
    "key_value",
    "grid",
    "spacer",
]

GRID_KEYWORDS = ("SKILLS", "COMPETENCIES", "LANGUAGES")
GRID_MAX_ITEM_LENGTH = 60
CONTACT_SEPARATOR = " | "

DEFAULT_SUMMARY_TITLE = "SUMMARY"
DEFAULT_EXPERIENCE_TITLE = "PROFESSIONAL EXPERIENCE"
DEFAULT_INTERNSHIPS_TITLE = "INTERNSHIPS"
DEFAULT_EDUCATION_TITLE = "EDUCATION"


@dataclass(frozen=True)
class Span:
    text: str
    path: Optional[str] = None
    bold: bool = False


@dataclass(frozen=True)
class Block:
    kind: BlockKind
    spans: tuple[Span, ...] = ()
    # Right-aligned run of an inline entry header (the dates).
    right: tuple[Span, ...] = ()
    rows: tuple[tuple[Span, Optional[Span]], ...] = ()

    @property
    def text(self) -> str:
        return "".join(span.text for span in self.spans)

    @property
    def right_text(self) -> str:
        return "".join(span.text for span in self.right)


def _block(kind: BlockKind, *spans: Span, right: Sequence[Span] = ()) -> Block:
    return Block(kind=kind, spans=tuple(spans), right=tuple(right))


def section_heading(title: Optional[str], default: str, profile: FormatProfile) -> str:
    heading = format_section_title(title or default)
    return heading.upper() if profile.uppercase_headings else heading


def is_grid_section(section: CustomSection) -> bool:
    title = section.title.upper()
    if not any(keyword in title for keyword in GRID_KEYWORDS):
        return False
    return bool(section.items) and all(len(item) <= GRID_MAX_ITEM_LENGTH for item in section.items)


def split_with_paths(
    lines: Iterable[str], base_path: str, threshold: int = LONG_LINE_THRESHOLD
) -> list[tuple[str, str]]:
    """Split long lines into sentences, keeping the path of the source line for every fragment."""
    fragments: list[tuple[str, str]] = []
    for index, line in enumerate(lines):
        path = f"{base_path}.{index}"
        for fragment in split_long_sentences([line], threshold):
            fragments.append((fragment, path))
    return fragments


def contact_spans(record: ResumeRecord, profile: FormatProfile) -> list[Span]:
    """Contact line as spans, each field carrying its own path so issues on it can be highlighted."""
    contact = record.contact_info
    location = normalize_location(contact.location or "")
    if profile.contact_mode == "location":
        return [Span(location, path="contactInfo.location", bold=True)] if location else []

    fields = [
        ("location", location),
        ("phone", contact.phone),
        ("email", contact.email),
        ("linkedin", contact.linkedin),
        ("website", contact.website),
    ]
    spans: list[Span] = []
    for name, value in fields:
        if not value or not value.strip():
            continue
        if spans:
            spans.append(Span(CONTACT_SEPARATOR))
        spans.append(Span(value.strip(), path=f"contactInfo.{name}"))
    return spans


def contact_line(record: ResumeRecord, profile: FormatProfile) -> str:
    return "".join(span.text for span in contact_spans(record, profile))


def _header_blocks(record: ResumeRecord, profile: FormatProfile) -> list[Block]:
    blocks = [_block("name", Span(record.full_name, path="fullName", bold=True))]
    spans = contact_spans(record, profile)
    if spans:
        blocks.append(_block("contact", *spans))
    blocks.append(_block("spacer"))
    return blocks


def _summary_blocks(record: ResumeRecord, profile: FormatProfile) -> list[Block]:
    if not record.summary:
        return []
    blocks = [_block("heading", Span(section_heading(record.section_title_summary, DEFAULT_SUMMARY_TITLE, profile)))]
    if len(record.summary) == 1:
        blocks.append(_block("paragraph", Span(record.summary[0], path="summary.0")))
    else:
        blocks.extend(
            _block("bullet", Span(item, path=f"summary.{index}")) for index, item in enumerate(record.summary)
        )
    blocks.append(_block("spacer"))
    return blocks


def _entry_blocks(
    *,
    base_path: str,
    organization: str,
    organization_field: str,
    role: str,
    role_field: str,
    location: Optional[str],
    dates: str,
    lines: Sequence[str],
    lines_field: str,
    profile: FormatProfile,
) -> list[Block]:
    place = normalize_location(location or "")
    org_spans = [Span(organization, path=f"{base_path}.{organization_field}", bold=True)]
    if place:
        org_spans += [Span(", ", bold=True), Span(place, path=f"{base_path}.location", bold=True)]
    role_span = Span(role, path=f"{base_path}.{role_field}", bold=True)
    dates_text = expand_months(dates) if profile.expand_months else dates
    dates_span = Span(dates_text, path=f"{base_path}.dates", bold=True)

    blocks: list[Block] = []
    if profile.entry_layout == "stacked":
        if dates_text:
            blocks.append(_block("line", dates_span))
        blocks.append(_block("line", *org_spans))
        if role:
            blocks.append(_block("line", role_span))
    else:
        blocks.append(_block("entry_header", *org_spans, right=[dates_span] if dates_text else []))
        if role:
            blocks.append(_block("line", role_span))

    for text, path in split_with_paths(lines, f"{base_path}.{lines_field}"):
        blocks.append(_block("bullet", Span(text, path=path)))
    blocks.append(_block("spacer"))
    return blocks


def _experience_blocks(
    entries: Sequence[ExperienceEntry], field: str, title: Optional[str], default: str, profile: FormatProfile
) -> list[Block]:
    if not entries:
        return []
    blocks = [_block("heading", Span(section_heading(title, default, profile)))]
    for index, entry in enumerate(entries):
        blocks.extend(
            _entry_blocks(
                base_path=f"{field}.{index}",
                organization=entry.company,
                organization_field="company",
                role=entry.title,
                role_field="title",
                location=entry.location,
                dates=entry.dates,
                lines=entry.description,
                lines_field="description",
                profile=profile,
            )
        )
    return blocks


def _education_blocks(entries: Sequence[EducationEntry], title: Optional[str], profile: FormatProfile) -> list[Block]:
    if not entries:
        return []
    blocks = [_block("heading", Span(section_heading(title, DEFAULT_EDUCATION_TITLE, profile)))]
    for index, entry in enumerate(entries):
        blocks.extend(
            _entry_blocks(
                base_path=f"education.{index}",
                organization=entry.institution,
                organization_field="institution",
                role=entry.degree,
                role_field="degree",
                location=entry.location,
                dates=entry.dates,
                lines=entry.details,
                lines_field="details",
                profile=profile,
            )
        )
    return blocks


def _custom_section_blocks(index: int, section: CustomSection, profile: FormatProfile) -> list[Block]:
    if not section.items:
        return []
    heading = section_heading(section.title, "ADDITIONAL INFORMATION", profile)
    blocks = [_block("heading", Span(heading, path=f"customSections.{index}.title"))]
    base = f"customSections.{index}.items"

    if is_grid_section(section):
        spans = [Span(item, path=f"{base}.{i}") for i, item in enumerate(section.items)]
        rows = tuple(
            (spans[i], spans[i + 1] if i + 1 < len(spans) else None) for i in range(0, len(spans), 2)
        )
        blocks.append(Block(kind="grid", rows=rows))
    else:
        for i, item in enumerate(section.items):
            path = f"{base}.{i}"
            pair = split_key_value(item)
            if pair is None:
                blocks.append(_block("bullet", Span(item, path=path)))
                continue
            key, value = pair
            spans = [Span(f"{key}:", path=path, bold=True)]
            if value:
                spans.append(Span(f" {value}", path=path))
            blocks.append(_block("key_value", *spans))
    blocks.append(_block("spacer"))
    return blocks


def build_layout(record: ResumeRecord, profile: FormatProfile) -> list[Block]:
    blocks = _header_blocks(record, profile)
    blocks += _summary_blocks(record, profile)
    blocks += _experience_blocks(
        record.experience, "experience", record.section_title_experience, DEFAULT_EXPERIENCE_TITLE, profile
    )
    blocks += _experience_blocks(
        record.internships, "internships", record.section_title_internships, DEFAULT_INTERNSHIPS_TITLE, profile
    )
    blocks += _education_blocks(record.education, record.section_title_education, profile)
    for index, section in enumerate(record.custom_sections):
        blocks += _custom_section_blocks(index, section, profile)
    return blocks


def bullet_texts(blocks: Iterable[Block]) -> list[str]:
    return [block.text for block in blocks if block.kind == "bullet"]
