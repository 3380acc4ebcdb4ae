from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ExtractionChangeType = Literal["REMOVAL", "ADDITION", "MODIFICATION"]


class ResumeFormat(str, Enum):
    CLASSIC_PROFESSIONAL = "CLASSIC_PROFESSIONAL"
    MODERN_EXECUTIVE = "MODERN_EXECUTIVE"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class ContactInfo(CamelModel):
    email: str | None = None
    phone: str | None = None
    linkedin: str | None = None
    website: str | None = None
    location: str | None = None


class ExperienceEntry(CamelModel):
    company: str = ""
    title: str = ""
    dates: str = ""
    location: str | None = None
    description: list[str] = Field(default_factory=list)


class EducationEntry(CamelModel):
    institution: str = ""
    degree: str = ""
    dates: str = ""
    location: str | None = None
    details: list[str] = Field(default_factory=list)


class CustomSection(CamelModel):
    title: str
    items: list[str] = Field(default_factory=list)


class ExtractionChange(CamelModel):
    id: str
    change_type: ExtractionChangeType = Field(alias="type")
    description: str
    reason: str = ""


class ResumeRecord(CamelModel):
    full_name: str
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    summary: list[str] = Field(default_factory=list)
    section_title_summary: str | None = None
    experience: list[ExperienceEntry] = Field(default_factory=list)
    section_title_experience: str | None = None
    internships: list[ExperienceEntry] = Field(default_factory=list)
    section_title_internships: str | None = None
    education: list[EducationEntry] = Field(default_factory=list)
    section_title_education: str | None = None
    custom_sections: list[CustomSection] = Field(default_factory=list)
    extraction_changes: list[ExtractionChange] = Field(default_factory=list)
