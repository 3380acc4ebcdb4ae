from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, model_validator

PayloadKind = Literal["text", "binary"]


class DocumentPayload(BaseModel):
    """What the extraction call receives: decoded text, or base64 bytes plus MIME type."""

    filename: str = ""
    mime_type: str
    text: str | None = None
    base64_data: str | None = None
    source_type: str = "txt"

    @model_validator(mode="after")
    def _exactly_one_body(self) -> "DocumentPayload":
        if (self.text is None) == (self.base64_data is None):
            raise ValueError("DocumentPayload needs exactly one of text or base64_data")
        return self

    @property
    def kind(self) -> PayloadKind:
        return "text" if self.text is not None else "binary"
