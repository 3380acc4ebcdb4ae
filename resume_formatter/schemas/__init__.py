from .resume import (
    ContactInfo,
    CustomSection,
    EducationEntry,
    ExperienceEntry,
    ExtractionChange,
    ResumeFormat,
    ResumeRecord,
)
from .review import EXTRACTION_PATH, ChangeLogEntry, GrammarIssue

__all__ = [
    "ContactInfo",
    "CustomSection",
    "EducationEntry",
    "ExperienceEntry",
    "ExtractionChange",
    "ResumeFormat",
    "ResumeRecord",
    "EXTRACTION_PATH",
    "ChangeLogEntry",
    "GrammarIssue",
]
