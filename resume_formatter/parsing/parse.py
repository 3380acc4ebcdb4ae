from __future__ import annotations

import base64
import logging
from io import BytesIO

from docx import Document

from resume_formatter.core.errors import ExtractionError, UnsupportedInputError

from .models import DocumentPayload

logger = logging.getLogger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

TEXT_MIME_TYPES = {"text/plain", "text/markdown", "text/rtf", "application/rtf"}
VISUAL_MIME_TYPES = {"application/pdf", "image/jpeg", "image/png", "image/webp"}

EXTENSION_MIME_HINTS = {
    "txt": "text/plain",
    "md": "text/markdown",
    "rtf": "application/rtf",
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "docx": DOCX_MIME,
}

SUPPORTED_TYPES_MESSAGE = "Please upload DOCX, PDF, Text (.txt, .md, .rtf), or Image (.png, .jpg, .webp) files."

PDF_MAGIC = b"%PDF-"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"
WEBP_RIFF_MAGIC = b"RIFF"
WEBP_WEBP_MAGIC = b"WEBP"
ZIP_MAGICS = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def sniff_mime_type(content: bytes) -> str | None:
    head = content[:16]
    if head.startswith(PDF_MAGIC):
        return "application/pdf"
    if head.startswith(PNG_MAGIC):
        return "image/png"
    if head.startswith(JPEG_MAGIC):
        return "image/jpeg"
    if head.startswith(WEBP_RIFF_MAGIC) and content[8:12] == WEBP_WEBP_MAGIC:
        return "image/webp"
    if head.startswith(ZIP_MAGICS):
        return DOCX_MIME
    return None


def resolve_mime_type(filename: str, content: bytes, content_type: str | None = None) -> str:
    declared = (content_type or "").split(";")[0].strip().lower()
    if declared in TEXT_MIME_TYPES or declared in VISUAL_MIME_TYPES or declared == DOCX_MIME:
        return declared

    ext = _extension(filename)
    if ext == "doc":
        raise UnsupportedInputError("Legacy .doc files are not supported. Convert the file to .docx and upload it again.")
    hinted = EXTENSION_MIME_HINTS.get(ext)
    if hinted:
        return hinted

    sniffed = sniff_mime_type(content)
    if sniffed:
        return sniffed
    raise UnsupportedInputError(f"Unsupported file format '{ext or declared or 'unknown'}'. {SUPPORTED_TYPES_MESSAGE}")


def extract_docx_text(content: bytes) -> str:
    try:
        document = Document(BytesIO(content))
    except Exception as exc:
        raise ExtractionError(f"Could not read this Word document: {exc}") from exc

    lines = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            for cell in row.cells:
                text = cell.text.strip()
                if text and text not in lines:
                    lines.append(text)
    return "\n".join(lines)


def _decode_text(content: bytes) -> str:
    text = content.decode("utf-8", errors="replace")
    return text.lstrip("\ufeff")


def build_payload(filename: str, content: bytes, content_type: str | None = None) -> DocumentPayload:
    if not content:
        raise ExtractionError("The uploaded file is empty.")

    mime_type = resolve_mime_type(filename, content, content_type)

    if mime_type == DOCX_MIME:
        text = extract_docx_text(content)
        if not text.strip():
            raise ExtractionError("Could not extract text from this Word document.")
        logger.info("intake_docx_converted file=%s chars=%s", filename, len(text))
        return DocumentPayload(filename=filename, mime_type="text/plain", text=text, source_type="docx")

    if mime_type in TEXT_MIME_TYPES:
        text = _decode_text(content)
        if not text.strip():
            raise ExtractionError("The uploaded text file contains no extractable text.")
        return DocumentPayload(filename=filename, mime_type="text/plain", text=text, source_type=_extension(filename) or "txt")

    if mime_type in VISUAL_MIME_TYPES:
        encoded = base64.b64encode(content).decode("ascii")
        source_type = "pdf" if mime_type == "application/pdf" else "image"
        return DocumentPayload(filename=filename, mime_type=mime_type, base64_data=encoded, source_type=source_type)

    raise UnsupportedInputError(f"Unsupported file format '{mime_type}'. {SUPPORTED_TYPES_MESSAGE}")
