from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field

from .resume import CamelModel, ResumeFormat, ResumeRecord
from .review import ChangeLogEntry, GrammarIssue


class SessionResponse(CamelModel):
    session_id: str
    format: ResumeFormat
    filename: str = ""
    record: ResumeRecord
    issues: list[GrammarIssue] = Field(default_factory=list)
    change_log: list[ChangeLogEntry] = Field(default_factory=list)


class GrammarResponse(CamelModel):
    session_id: str
    issue_count: int
    issues: list[GrammarIssue] = Field(default_factory=list)


class AcceptRequest(CamelModel):
    suggestion: Optional[str] = None


class ReviewActionResponse(CamelModel):
    session_id: str
    changed: bool
    record: ResumeRecord
    issues: list[GrammarIssue] = Field(default_factory=list)
    change_log: list[ChangeLogEntry] = Field(default_factory=list)


class DeleteResponse(CamelModel):
    session_id: str
    deleted: bool


class ExportKind(str, Enum):
    DOCX = "docx"
    PDF = "pdf"
