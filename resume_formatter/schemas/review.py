from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field, computed_field, field_validator, model_validator

from .resume import CamelModel

IssueType = Literal["SPELLING", "GRAMMAR", "STYLE"]

EXTRACTION_PATH = "Extraction"


class GrammarIssue(CamelModel):
    id: str
    path: str
    original: str
    error_text: str = Field(min_length=1)
    suggestions: list[str]
    reason: str = ""
    issue_type: IssueType = Field(alias="type")

    @field_validator("suggestions")
    @classmethod
    def _validate_suggestions(cls, value: list[str]) -> list[str]:
        cleaned = [item for item in value if item and item.strip()]
        if len(cleaned) != 3 or len(set(cleaned)) != 3:
            raise ValueError("suggestions must hold exactly 3 distinct, non-empty values")
        return cleaned

    @model_validator(mode="after")
    def _validate_error_text(self) -> "GrammarIssue":
        if self.error_text not in self.original:
            raise ValueError("errorText must be a substring of original")
        return self


class ChangeLogEntry(CamelModel):
    id: str
    timestamp: datetime
    path: str
    original: str
    new: str
    reason: str = ""

    @computed_field
    @property
    def undoable(self) -> bool:
        return self.path != EXTRACTION_PATH
