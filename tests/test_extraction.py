import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from resume_formatter.core.errors import ExtractionError  # noqa: E402
from resume_formatter.parsing.models import DocumentPayload  # noqa: E402
from resume_formatter.schemas.resume import ResumeFormat  # noqa: E402
from resume_formatter.services.extraction import (  # noqa: E402
    EXTRACTION_TOOL_NAME,
    ExtractionClient,
    normalize_extracted,
)


class _FakeInvoker:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def invoke_tool(self, messages, tool):
        self.calls.append((messages, tool))
        return self.result


RAW_EXTRACTION = {
    "fullName": "Jane Doe",
    "summary": "• Seasoned platform engineer",
    "experience": [
        {
            "company": "Acme",
            "title": "Engineer",
            "dates": "Jan 2020 to Present",
            "location": "austin, texas",
            "description": ["• Led the team", "   ", "- Shipped features"],
        }
    ],
    "education": [
        {"institution": "UT Austin", "degree": "BS Computer Science", "dates": "2014–2018", "details": []}
    ],
    "customSections": [{"title": "Technical Skills", "items": ["• Python", "SQL"]}],
    "extractionChanges": [
        {"type": "REMOVAL", "description": "Removed phone number from summary", "reason": "PII Policy"}
    ],
}


def _text_payload(text="Jane Doe\nEngineer at Acme"):
    return DocumentPayload(filename="resume.txt", mime_type="text/plain", text=text, source_type="txt")


class ExtractionPostProcessingTests(unittest.TestCase):
    def test_scalar_summary_and_bullets_are_cleaned(self):
        data = normalize_extracted(RAW_EXTRACTION)

        self.assertEqual(data["summary"], ["Seasoned platform engineer"])
        self.assertEqual(data["experience"][0]["description"], ["Led the team", "Shipped features"])
        self.assertEqual(data["customSections"][0]["items"], ["Python", "SQL"])

    def test_dates_and_locations_are_normalized_and_logged(self):
        data = normalize_extracted(RAW_EXTRACTION)

        self.assertEqual(data["experience"][0]["dates"], "Jan 2020 - Present")
        self.assertEqual(data["experience"][0]["location"], "Austin, TX")
        self.assertEqual(data["education"][0]["dates"], "2014 - 2018")

        changes = data["extractionChanges"]
        self.assertEqual(len(changes), 4)
        self.assertEqual(changes[0]["type"], "REMOVAL")
        self.assertTrue(changes[0]["id"])
        modifications = [change for change in changes if change["type"] == "MODIFICATION"]
        self.assertEqual(len(modifications), 3)
        self.assertIn("Changed dates 'Jan 2020 to Present' to 'Jan 2020 - Present'", [c["description"] for c in changes])

    def test_input_is_not_mutated(self):
        normalize_extracted(RAW_EXTRACTION)
        self.assertEqual(RAW_EXTRACTION["summary"], "• Seasoned platform engineer")
        self.assertEqual(RAW_EXTRACTION["experience"][0]["dates"], "Jan 2020 to Present")

    def test_missing_contact_info_becomes_empty_object(self):
        data = normalize_extracted({"fullName": "Jane Doe"})
        self.assertEqual(data["contactInfo"], {})
        self.assertEqual(data["summary"], [])
        self.assertEqual(data["extractionChanges"], [])

    def test_unchanged_values_are_not_logged(self):
        data = normalize_extracted(
            {
                "fullName": "Jane Doe",
                "experience": [{"company": "Acme", "dates": "2020 - 2021", "location": "Austin, TX"}],
            }
        )
        self.assertEqual(data["extractionChanges"], [])

    def test_malformed_change_entries_are_repaired_or_dropped(self):
        raw = {
            "fullName": "Jane Doe",
            "extractionChanges": [
                {"type": "removal", "description": "Removed phone", "reason": "PII"},
                {"type": "RENAMED", "description": "Renamed section"},
                {"type": "ADDITION", "description": "  "},
                "not an entry",
            ],
        }

        with self.assertLogs("resume_formatter.services.extraction", level="WARNING") as logs:
            data = normalize_extracted(raw)

        self.assertEqual(len(logs.records), 3)
        self.assertEqual(len(data["extractionChanges"]), 1)
        change = data["extractionChanges"][0]
        self.assertEqual((change["type"], change["description"], change["reason"]), ("REMOVAL", "Removed phone", "PII"))
        self.assertTrue(change["id"])


class ExtractionClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_extract_returns_validated_record(self):
        invoker = _FakeInvoker(RAW_EXTRACTION)
        record = await ExtractionClient(invoker).extract(_text_payload(), ResumeFormat.CLASSIC_PROFESSIONAL)

        self.assertEqual(record.full_name, "Jane Doe")
        self.assertIsNone(record.contact_info.email)
        self.assertEqual(record.experience[0].location, "Austin, TX")
        self.assertEqual(record.summary, ["Seasoned platform engineer"])
        self.assertEqual(len(record.extraction_changes), 4)

        messages, tool = invoker.calls[0]
        self.assertEqual(tool.name, EXTRACTION_TOOL_NAME)
        self.assertEqual(messages[0].role, "system")
        user_parts = messages[1].content
        self.assertIn("Jane Doe\nEngineer at Acme", user_parts[0]["text"])
        self.assertIn("CLASSIC_PROFESSIONAL", user_parts[-1]["text"])

    async def test_modern_format_uses_its_style_instruction(self):
        invoker = _FakeInvoker(RAW_EXTRACTION)
        await ExtractionClient(invoker).extract(_text_payload(), ResumeFormat.MODERN_EXECUTIVE)
        instruction = invoker.calls[0][0][1].content[-1]["text"]
        self.assertIn("City, State, Zip", instruction)

    async def test_bad_change_entry_does_not_lose_the_record(self):
        raw = dict(RAW_EXTRACTION, extractionChanges=[{"type": "removal", "description": "Removed phone", "reason": "PII"}])
        record = await ExtractionClient(_FakeInvoker(raw)).extract(_text_payload(), ResumeFormat.CLASSIC_PROFESSIONAL)

        self.assertEqual(record.full_name, "Jane Doe")
        self.assertEqual(record.extraction_changes[0].change_type, "REMOVAL")

    async def test_missing_tool_call_raises(self):
        with self.assertRaises(ExtractionError) as ctx:
            await ExtractionClient(_FakeInvoker(None)).extract(_text_payload(), ResumeFormat.CLASSIC_PROFESSIONAL)
        self.assertEqual(ctx.exception.code, "extraction_failed")

    async def test_invalid_payload_raises(self):
        with self.assertRaises(ExtractionError):
            await ExtractionClient(_FakeInvoker({"summary": ["no name"]})).extract(
                _text_payload(), ResumeFormat.CLASSIC_PROFESSIONAL
            )

    async def test_empty_text_fails_before_any_call(self):
        invoker = _FakeInvoker(RAW_EXTRACTION)
        with self.assertRaises(ExtractionError):
            await ExtractionClient(invoker).extract(_text_payload("   \n "), ResumeFormat.CLASSIC_PROFESSIONAL)
        self.assertEqual(invoker.calls, [])

    async def test_binary_payloads_become_file_or_image_parts(self):
        invoker = _FakeInvoker(RAW_EXTRACTION)
        client = ExtractionClient(invoker)
        pdf = DocumentPayload(filename="cv.pdf", mime_type="application/pdf", base64_data="JVBERi0=", source_type="pdf")
        png = DocumentPayload(filename="cv.png", mime_type="image/png", base64_data="iVBORw==", source_type="image")

        await client.extract(pdf, ResumeFormat.CLASSIC_PROFESSIONAL)
        await client.extract(png, ResumeFormat.CLASSIC_PROFESSIONAL)

        pdf_part = invoker.calls[0][0][1].content[0]
        png_part = invoker.calls[1][0][1].content[0]
        self.assertEqual(pdf_part["type"], "file")
        self.assertEqual(pdf_part["file"]["file_data"], "data:application/pdf;base64,JVBERi0=")
        self.assertEqual(png_part["type"], "image_url")
        self.assertEqual(png_part["image_url"]["url"], "data:image/png;base64,iVBORw==")


if __name__ == "__main__":
    unittest.main()
