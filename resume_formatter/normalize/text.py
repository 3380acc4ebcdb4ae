from __future__ import annotations

import re
from typing import Iterable

_BULLET_CHARS = "•·-*◆■●|"
_BULLET_PREFIX = re.compile(rf"^[\s{re.escape(_BULLET_CHARS)}]+")
_RANGE_WORD = re.compile(r"\s+to\s+", re.IGNORECASE)
_RANGE_DASH = re.compile(r"\s*[-–—]\s*")
_SENTENCE_BREAK = re.compile(r"\.\s(?=[A-Z])|\.$")
_BRACKET_INDEX = re.compile(r"\[(\d+)\]")
_KEY_VALUE = re.compile(r"^([^:]{1,40}):(?:\s+(.*))?$")

LONG_LINE_THRESHOLD = 100

MONTHS = {
    "Jan": "January",
    "Feb": "February",
    "Mar": "March",
    "Apr": "April",
    "May": "May",
    "Jun": "June",
    "Jul": "July",
    "Aug": "August",
    "Sep": "September",
    "Sept": "September",
    "Oct": "October",
    "Nov": "November",
    "Dec": "December",
}
_MONTH_ABBREVIATIONS = {full: short for short, full in MONTHS.items() if short != "Sept"}
_EXPAND_RE = re.compile(r"\b(" + "|".join(sorted(MONTHS, key=len, reverse=True)) + r")\b")
_ABBREVIATE_RE = re.compile(r"\b(" + "|".join(_MONTH_ABBREVIATIONS) + r")\b")

US_STATES = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR", "california": "CA",
    "colorado": "CO", "connecticut": "CT", "delaware": "DE", "florida": "FL", "georgia": "GA",
    "hawaii": "HI", "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS", "missouri": "MO",
    "montana": "MT", "nebraska": "NE", "nevada": "NV", "new hampshire": "NH", "new jersey": "NJ",
    "new mexico": "NM", "new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
    "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI", "south carolina": "SC",
    "south dakota": "SD", "tennessee": "TN", "texas": "TX", "utah": "UT", "vermont": "VT",
    "virginia": "VA", "washington": "WA", "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
}


def clean_bullet_prefix(line: str) -> str:
    return _BULLET_PREFIX.sub("", line or "").strip()


def normalize_date_range(value: str) -> str:
    text = _RANGE_WORD.sub(" - ", value or "")
    text = _RANGE_DASH.sub(" - ", text)
    return text.strip()


def split_long_sentences(lines: Iterable[str], threshold: int = LONG_LINE_THRESHOLD) -> list[str]:
    processed: list[str] = []
    for line in lines or []:
        if len(line) > threshold and "." in line:
            for fragment in _SENTENCE_BREAK.split(line):
                trimmed = fragment.strip()
                if not trimmed:
                    continue
                processed.append(trimmed if trimmed.endswith(".") else f"{trimmed}.")
        else:
            processed.append(line)
    return processed


def expand_months(value: str) -> str:
    if not value:
        return ""
    return _EXPAND_RE.sub(lambda match: MONTHS[match.group(1)], value)


def abbreviate_months(value: str) -> str:
    if not value:
        return ""
    return _ABBREVIATE_RE.sub(lambda match: _MONTH_ABBREVIATIONS[match.group(1)], value)


def _title_words(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split(" "))


def normalize_location(value: str) -> str:
    """Format a location as "City, ST" without dropping trailing segments."""
    if not value or not value.strip():
        return ""
    parts = [part.strip() for part in value.split(",")]
    parts[0] = _title_words(parts[0])
    if len(parts) >= 2:
        state = parts[1]
        code = US_STATES.get(state.lower())
        if code:
            parts[1] = code
        elif len(state) > 2:
            parts[1] = _title_words(state)
        else:
            parts[1] = state.upper()
    return ", ".join(parts)


def format_section_title(title: str) -> str:
    trimmed = (title or "").strip()
    return trimmed if trimmed.endswith(":") else f"{trimmed}:"


def normalize_path(path: str) -> str:
    return _BRACKET_INDEX.sub(r".\1", (path or "").strip())


def split_key_value(item: str) -> tuple[str, str] | None:
    match = _KEY_VALUE.match(item or "")
    if not match:
        return None
    key = match.group(1).strip()
    if not key:
        return None
    return key, (match.group(2) or "")
