import base64
import sys
import unittest
from io import BytesIO
from pathlib import Path

from docx import Document

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from resume_formatter.core.errors import ExtractionError, UnsupportedInputError  # noqa: E402
from resume_formatter.parsing.parse import build_payload, resolve_mime_type, sniff_mime_type  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _docx_bytes() -> bytes:
    document = Document()
    document.add_paragraph("Jane Doe")
    document.add_paragraph("Senior Engineer at Acme")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Python"
    table.rows[0].cells[1].text = "SQL"
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class IntakeTests(unittest.TestCase):
    def test_text_file_is_decoded_without_bom(self):
        payload = build_payload("resume.txt", "\ufeffJane Doe\nEngineer".encode("utf-8"), "text/plain")
        self.assertEqual(payload.kind, "text")
        self.assertEqual(payload.text, "Jane Doe\nEngineer")
        self.assertIsNone(payload.base64_data)

    def test_markdown_resolved_by_extension(self):
        payload = build_payload("resume.md", b"# Jane Doe", "application/octet-stream")
        self.assertEqual(payload.kind, "text")
        self.assertEqual(payload.source_type, "md")

    def test_docx_is_converted_to_text(self):
        payload = build_payload("resume.docx", _docx_bytes())
        self.assertEqual(payload.kind, "text")
        self.assertEqual(payload.source_type, "docx")
        self.assertIn("Jane Doe", payload.text)
        self.assertIn("Senior Engineer at Acme", payload.text)
        self.assertIn("Python", payload.text)
        self.assertIn("SQL", payload.text)

    def test_image_is_sniffed_and_base64_encoded(self):
        payload = build_payload("scan", PNG_BYTES, "application/octet-stream")
        self.assertEqual(payload.kind, "binary")
        self.assertEqual(payload.mime_type, "image/png")
        self.assertEqual(base64.b64decode(payload.base64_data), PNG_BYTES)

    def test_pdf_by_content_type(self):
        payload = build_payload("resume.pdf", b"%PDF-1.7 fake", "application/pdf")
        self.assertEqual(payload.source_type, "pdf")
        self.assertEqual(payload.mime_type, "application/pdf")

    def test_legacy_doc_is_rejected_with_hint(self):
        with self.assertRaises(UnsupportedInputError) as ctx:
            build_payload("resume.doc", b"\xd0\xcf\x11\xe0", "application/msword")
        self.assertIn(".docx", str(ctx.exception))
        self.assertEqual(ctx.exception.code, "unsupported_input")

    def test_unknown_type_lists_supported_types(self):
        with self.assertRaises(UnsupportedInputError) as ctx:
            build_payload("resume.xyz", b"hello", None)
        self.assertIn("DOCX, PDF", str(ctx.exception))

    def test_empty_inputs_fail(self):
        with self.assertRaises(ExtractionError):
            build_payload("resume.txt", b"", "text/plain")
        with self.assertRaises(ExtractionError):
            build_payload("resume.txt", b"  \n ", "text/plain")
        with self.assertRaises(ExtractionError):
            build_payload("resume.docx", b"PK\x03\x04 not really a zip")

    def test_sniffing(self):
        self.assertEqual(sniff_mime_type(b"%PDF-1.4"), "application/pdf")
        self.assertEqual(sniff_mime_type(b"\xff\xd8\xff\xe0"), "image/jpeg")
        self.assertEqual(sniff_mime_type(b"RIFF\x00\x00\x00\x00WEBPVP8 "), "image/webp")
        self.assertIsNone(sniff_mime_type(b"plain"))
        self.assertEqual(resolve_mime_type("x", b"%PDF-1.4", "text/plain; charset=utf-8"), "text/plain")


if __name__ == "__main__":
    unittest.main()
