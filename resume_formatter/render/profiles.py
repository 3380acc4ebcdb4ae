from dataclasses import dataclass
from typing import Literal

from resume_formatter.schemas.resume import ResumeFormat


@dataclass(frozen=True)
class FormatProfile:
    format: ResumeFormat
    label: str
    font_family: str
    # reportlab ships only the base-14 fonts.
    pdf_font: str
    pdf_font_bold: str
    body_size_pt: int
    name_size_pt: int
    name_alignment: Literal["center", "left"]
    contact_mode: Literal["full", "location"]
    entry_layout: Literal["inline", "stacked"]
    expand_months: bool
    uppercase_headings: bool = True
    heading_space_after_pt: int = 0


CLASSIC_PROFESSIONAL = FormatProfile(
    format=ResumeFormat.CLASSIC_PROFESSIONAL,
    label="Classic",
    font_family="Calibri",
    pdf_font="Helvetica",
    pdf_font_bold="Helvetica-Bold",
    body_size_pt=11,
    name_size_pt=14,
    name_alignment="center",
    contact_mode="full",
    entry_layout="inline",
    expand_months=False,
)

MODERN_EXECUTIVE = FormatProfile(
    format=ResumeFormat.MODERN_EXECUTIVE,
    label="Modern",
    font_family="Arial",
    pdf_font="Helvetica",
    pdf_font_bold="Helvetica-Bold",
    body_size_pt=11,
    name_size_pt=12,
    name_alignment="left",
    contact_mode="location",
    entry_layout="stacked",
    expand_months=True,
    heading_space_after_pt=6,
)

PROFILES = {
    ResumeFormat.CLASSIC_PROFESSIONAL: CLASSIC_PROFESSIONAL,
    ResumeFormat.MODERN_EXECUTIVE: MODERN_EXECUTIVE,
}


def get_profile(fmt: ResumeFormat) -> FormatProfile:
    return PROFILES[ResumeFormat(fmt)]


# File name prefix per export kind.
_EXPORT_PREFIXES = {"docx": "Resume", "pdf": "Formatted"}


def export_filename(full_name: str, fmt: ResumeFormat, extension: str) -> str:
    extension = extension.lstrip(".").lower()
    safe_name = "_".join((full_name or "Resume").split())
    prefix = _EXPORT_PREFIXES.get(extension, "Resume")
    return f"{prefix}_{safe_name}_{get_profile(fmt).label}.{extension}"
