from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, get_args

from pydantic import ValidationError

from resume_formatter.ai.types import ChatMessage, ToolInvoker, ToolSpec
from resume_formatter.core.errors import ExtractionError
from resume_formatter.normalize.text import clean_bullet_prefix, normalize_date_range, normalize_location
from resume_formatter.parsing.models import DocumentPayload
from resume_formatter.schemas.resume import ExtractionChangeType, ResumeFormat, ResumeRecord

logger = logging.getLogger(__name__)

EXTRACTION_TOOL_NAME = "save_resume_data"

SYSTEM_INSTRUCTION = """
You are a Resume Parser that extracts content VERBATIM.
Your goal is to STRUCTURE the data exactly as seen in the document without losing ANY section.

CRITICAL RULES:
1. NO REWRITING: Keep text exactly as is.
2. CAPTURE EVERYTHING: Do not skip "Soft Skills", "Tools", "Languages", "Internships", "Projects" or "Digital Skills".
3. MAPPING:
   - Work History / Professional Experience -> 'experience'.
   - Internships -> 'internships'.
   - Education -> 'education'.
   - Summary / Profile -> 'summary'. Split into multiple items if it is a list; a paragraph is a single item.
   - EVERYTHING ELSE (Projects, Certifications, Skills, Tools, Languages, ...) -> 'customSections'.
4. FORMATTING:
   - DATES: extract dates exactly as they appear, using " - " between the ends of a range.
     Do not add a month when none is present ("2023" stays "2023", "Summer 2024" stays "Summer 2024").
     If a month is present, abbreviate it to 3 letters (e.g. "Jan"). Keep "Present" / "Current" as written.
   - LOCATION: format as "City, ST" with a Title Case city and the 2-letter postal code for US states.
   - TITLES: capture the EXACT section titles used in the resume.
5. PRIVACY: Do NOT include any phone number or email address in ANY field other than contactInfo.email and
   contactInfo.phone. Remove them everywhere else.
6. LISTS: If a single line holds several items separated by delimiters such as "|", "•", "·" or ";",
   split it into separate list items. Keep a "Key: Value" line as one string "Key: Value".
7. CHANGE LOGGING (MANDATORY): populate 'extractionChanges' with EVERY change you make.
   - REMOVAL: removed phone numbers, emails, or boilerplate such as "References available upon request".
   - MODIFICATION: every reformatted date (e.g. "Changed 'January 2023' to 'Jan 2023'").
   - ADDITION: every inferred or added section title.
   Give each change a reason (e.g. "PII Policy", "Standardization", "Inferred from content").

VERIFICATION STEP (INTERNAL):
Before answering, verify that every bullet point and every section of the source is present and no list is truncated.

Call 'save_resume_data' with the extracted data.
""".strip()

STYLE_INSTRUCTIONS = {
    ResumeFormat.MODERN_EXECUTIVE: (
        "Focus on clarity and professional expansion. Make sure the location (City, State, Zip) is clearly "
        "extracted. Abbreviate months to 3 letters (e.g. 'Jan') for internal normalization."
    ),
    ResumeFormat.CLASSIC_PROFESSIONAL: (
        "Focus on brevity and traditional formatting. Abbreviate months to 3 letters (e.g. 'Jan')."
    ),
}

_STRING = {"type": "string"}
_STRING_LIST = {"type": "array", "items": _STRING}
_EXPERIENCE_ITEM = {
    "type": "object",
    "properties": {
        "company": _STRING,
        "title": _STRING,
        "dates": _STRING,
        "location": _STRING,
        "description": _STRING_LIST,
    },
}

EXTRACTION_TOOL = ToolSpec(
    name=EXTRACTION_TOOL_NAME,
    description="Saves the verbatim extracted resume data.",
    parameters={
        "type": "object",
        "properties": {
            "fullName": _STRING,
            "contactInfo": {
                "type": "object",
                "properties": {
                    "email": _STRING,
                    "phone": _STRING,
                    "linkedin": _STRING,
                    "website": _STRING,
                    "location": {"type": "string", "description": "City, State, Zip Code"},
                },
            },
            "summary": _STRING_LIST,
            "sectionTitleSummary": {"type": "string", "description": "Exact title e.g. 'PROFILE SUMMARY'"},
            "experience": {"type": "array", "items": _EXPERIENCE_ITEM},
            "sectionTitleExperience": {"type": "string", "description": "Exact title e.g. 'PROFESSIONAL EXPERIENCE'"},
            "internships": {"type": "array", "items": _EXPERIENCE_ITEM},
            "sectionTitleInternships": {"type": "string", "description": "Exact title e.g. 'INTERNSHIPS'"},
            "education": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "institution": _STRING,
                        "degree": _STRING,
                        "dates": _STRING,
                        "location": _STRING,
                        "details": _STRING_LIST,
                    },
                },
            },
            "sectionTitleEducation": {"type": "string", "description": "Exact title e.g. 'EDUCATION'"},
            "customSections": {
                "type": "array",
                "description": "All other sections not covered above. MUST NOT BE EMPTY if other sections exist.",
                "items": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string", "description": "Exact section header, e.g. 'SOFT SKILLS'"},
                        "items": {
                            "type": "array",
                            "items": _STRING,
                            "description": "List of items or lines in this section",
                        },
                    },
                },
            },
            "extractionChanges": {
                "type": "array",
                "description": "Every change made during extraction (PII removal, date formatting, added titles).",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": _STRING,
                        "type": {"type": "string", "enum": ["REMOVAL", "ADDITION", "MODIFICATION"]},
                        "description": {"type": "string", "description": "What was changed"},
                        "reason": {"type": "string", "description": "Why it was changed"},
                    },
                    "required": ["id", "type", "description", "reason"],
                },
            },
        },
        "required": ["fullName"],
    },
)

_LINE_LIST_FIELDS = (
    ("experience", "description"),
    ("internships", "description"),
    ("education", "details"),
    ("customSections", "items"),
)
_DATED_SECTIONS = ("experience", "internships", "education")
_CHANGE_TYPES = frozenset(get_args(ExtractionChangeType))


def build_extraction_messages(payload: DocumentPayload, fmt: ResumeFormat) -> list[ChatMessage]:
    instruction = (
        f"Extract resume data for the {fmt.value} style.\n\n"
        f"STYLE-SPECIFIC INSTRUCTIONS:\n- {STYLE_INSTRUCTIONS[fmt]}\n\n"
        "GENERAL INSTRUCTIONS:\n"
        "Do not miss ANY sections. Map Work to Experience, Internships to Internships, Education to Education. "
        "Put 'Soft Skills', 'Technical Skills', 'Languages', 'Tools', 'Projects' into customSections. "
        "For contactInfo.location, extract City, State, and Zip Code if available. "
        "Remove ALL phone numbers and email addresses from the main content, but keep them in the "
        "contactInfo fields if found."
    )

    if payload.kind == "text":
        parts: list[dict[str, Any]] = [
            {"type": "text", "text": f"Here is the raw text content of a resume:\n\n{payload.text}"},
        ]
    else:
        data_url = f"data:{payload.mime_type};base64,{payload.base64_data}"
        if payload.mime_type == "application/pdf":
            parts = [{"type": "file", "file": {"filename": payload.filename or "resume.pdf", "file_data": data_url}}]
        else:
            parts = [{"type": "image_url", "image_url": {"url": data_url}}]
    parts.append({"type": "text", "text": instruction})

    return [
        ChatMessage(role="system", content=SYSTEM_INSTRUCTION),
        ChatMessage(role="user", content=parts),
    ]


def _new_change_id() -> str:
    return f"chg-{uuid.uuid4().hex[:10]}"


def _clean_lines(values: Any) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]
    cleaned = [clean_bullet_prefix(str(value)) for value in values if value is not None]
    return [line for line in cleaned if line]


def _log_modification(changes: list[dict[str, Any]], label: str, before: str, after: str) -> None:
    changes.append(
        {
            "id": _new_change_id(),
            "type": "MODIFICATION",
            "description": f"Changed {label} '{before}' to '{after}'",
            "reason": "Standardization",
        }
    )


def normalize_extracted(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply the clean-up rules to the arguments of an extraction tool call.

    Works on a copy; the caller's dict is left untouched. Dates and locations
    changed here are appended to ``extractionChanges`` so the audit trail stays
    complete.
    """
    data = copy.deepcopy(raw)

    contact = data.get("contactInfo")
    data["contactInfo"] = contact if isinstance(contact, dict) else {}

    summary = data.get("summary")
    if isinstance(summary, str):
        summary = [summary]
    data["summary"] = _clean_lines(summary)

    changes: list[dict[str, Any]] = []
    for index, change in enumerate(data.get("extractionChanges") or []):
        if not isinstance(change, dict):
            logger.warning("extraction_change_dropped index=%s: not an object", index)
            continue
        change = dict(change)
        change_type = str(change.get("type") or "").strip().upper()
        description = str(change.get("description") or "").strip()
        if change_type not in _CHANGE_TYPES or not description:
            logger.warning(
                "extraction_change_dropped index=%s type=%r: unknown kind or missing description",
                index,
                change.get("type"),
            )
            continue
        change["type"] = change_type
        change["description"] = description
        change["id"] = str(change.get("id") or _new_change_id())
        change["reason"] = str(change.get("reason") or "")
        changes.append(change)

    for section, field in _LINE_LIST_FIELDS:
        entries = data.get(section) or []
        data[section] = [entry for entry in entries if isinstance(entry, dict)]
        for entry in data[section]:
            entry[field] = _clean_lines(entry.get(field))

    for section in _DATED_SECTIONS:
        for entry in data[section]:
            dates = str(entry.get("dates") or "")
            normalized = normalize_date_range(dates)
            if normalized != dates.strip() and dates:
                _log_modification(changes, "dates", dates, normalized)
            entry["dates"] = normalized

            location = entry.get("location")
            if location:
                formatted = normalize_location(str(location))
                if formatted != location:
                    _log_modification(changes, "location", str(location), formatted)
                entry["location"] = formatted

    location = data["contactInfo"].get("location")
    if location:
        formatted = normalize_location(str(location))
        if formatted != location:
            _log_modification(changes, "location", str(location), formatted)
        data["contactInfo"]["location"] = formatted

    data["customSections"] = [
        section for section in data["customSections"] if str(section.get("title") or "").strip() or section["items"]
    ]
    for section in data["customSections"]:
        section["title"] = str(section.get("title") or "").strip()

    data["extractionChanges"] = changes
    return data


class ExtractionClient:
    def __init__(self, invoker: ToolInvoker):
        self._invoker = invoker

    async def extract(self, payload: DocumentPayload, fmt: ResumeFormat) -> ResumeRecord:
        if payload.kind == "text" and not (payload.text or "").strip():
            raise ExtractionError("The document contains no extractable text.")

        messages = build_extraction_messages(payload, fmt)
        raw = await self._invoker.invoke_tool(messages, EXTRACTION_TOOL)
        if raw is None:
            logger.warning("extraction_tool_not_called file=%s format=%s", payload.filename, fmt.value)
            raise ExtractionError("The AI model did not trigger the extraction tool correctly.")

        try:
            record = ResumeRecord.model_validate(normalize_extracted(raw))
        except ValidationError as exc:
            logger.warning("extraction_payload_invalid file=%s: %s", payload.filename, exc)
            raise ExtractionError("The AI model returned resume data that does not match the expected shape.") from exc

        logger.info(
            "extraction_ok file=%s experience=%s internships=%s education=%s custom_sections=%s changes=%s",
            payload.filename,
            len(record.experience),
            len(record.internships),
            len(record.education),
            len(record.custom_sections),
            len(record.extraction_changes),
        )
        return record
