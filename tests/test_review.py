import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from resume_formatter.schemas.resume import (  # noqa: E402
    CustomSection,
    ExperienceEntry,
    ExtractionChange,
    ResumeRecord,
)
from resume_formatter.schemas.review import EXTRACTION_PATH, GrammarIssue  # noqa: E402
from resume_formatter.services.review import (  # noqa: E402
    ReviewSession,
    assign_path,
    highlight_segments,
    locate_issues,
    resolve_path,
)

PATH = "experience.0.description.0"


def _record(text="Led the team to sucess"):
    return ResumeRecord(
        full_name="Jane Doe",
        summary=["Builder of reliable systems"],
        experience=[ExperienceEntry(company="Acme", title="Lead", dates="2020 - 2022", description=[text])],
        custom_sections=[CustomSection(title="Languages", items=["Languages: English, Spanich"])],
        extraction_changes=[
            ExtractionChange(id="x1", change_type="REMOVAL", description="Removed phone number", reason="PII Policy")
        ],
    )


def _issue(issue_id="i1", path=PATH, original="Led the team to sucess", error_text="sucess", suggestions=None):
    return GrammarIssue(
        id=issue_id,
        path=path,
        original=original,
        error_text=error_text,
        suggestions=suggestions or ["success", "successes", "succeeding"],
        reason="Misspelled word",
        issue_type="SPELLING",
    )


class PathTests(unittest.TestCase):
    def test_resolve_and_assign(self):
        data = {"a": [{"b": "x"}], "c": "y"}
        self.assertEqual(resolve_path(data, "a.0.b"), "x")
        self.assertEqual(resolve_path(data, "a[0].b"), "x")
        self.assertIsNone(resolve_path(data, "a.3.b"))
        self.assertIsNone(resolve_path(data, "c.0"))
        self.assertTrue(assign_path(data, "a.0.b", "z"))
        self.assertEqual(data["a"][0]["b"], "z")
        self.assertFalse(assign_path(data, "a.5.b", "z"))
        self.assertFalse(assign_path(data, "missing", "z"))


class AcceptUndoTests(unittest.TestCase):
    def test_accept_then_undo_round_trip(self):
        original = _record()
        session = ReviewSession(original, [_issue()])

        self.assertTrue(session.accept("i1"))
        self.assertEqual(session.record.experience[0].description[0], "Led the team to success")
        self.assertEqual(original.experience[0].description[0], "Led the team to sucess")
        self.assertEqual(session.issues, [])

        entry = session.change_log[0]
        self.assertEqual((entry.path, entry.original, entry.new), (PATH, "sucess", "success"))
        self.assertTrue(entry.undoable)
        self.assertEqual(len(session.change_log), 2)

        self.assertTrue(session.undo(entry.id))
        self.assertEqual(session.record.experience[0].description[0], "Led the team to sucess")
        self.assertEqual(len(session.change_log), 1)
        # Undo does not bring the issue back.
        self.assertEqual(session.issues, [])

    def test_accept_with_chosen_suggestion(self):
        session = ReviewSession(_record(), [_issue()])
        self.assertTrue(session.accept("i1", "succeeding"))
        self.assertEqual(session.record.experience[0].description[0], "Led the team to succeeding")

    def test_accept_rejects_foreign_suggestion(self):
        session = ReviewSession(_record(), [_issue()])
        with self.assertRaises(ValueError):
            session.accept("i1", "victory")
        self.assertEqual(len(session.issues), 1)

    def test_only_first_occurrence_is_replaced(self):
        session = ReviewSession(
            _record("teh plan and teh budget"),
            [_issue(original="teh plan and teh budget", error_text="teh", suggestions=["the", "this", "that"])],
        )
        session.accept("i1")
        self.assertEqual(session.record.experience[0].description[0], "the plan and teh budget")

    def test_stale_issue_is_a_logged_noop(self):
        record = _record("Led the team to success")
        session = ReviewSession(record, [_issue()])

        with self.assertLogs("resume_formatter.services.review", level="WARNING"):
            self.assertFalse(session.accept("i1"))
        self.assertIs(session.record, record)
        self.assertEqual(session.issues, [])
        self.assertEqual(len(session.change_log), 1)

    def test_unresolvable_path_is_a_noop(self):
        record = _record()
        session = ReviewSession(record, [_issue(path="experience.5.description.0")])
        self.assertFalse(session.accept("i1"))
        self.assertIs(session.record, record)

    def test_undo_is_noop_when_text_changed_again(self):
        session = ReviewSession(
            _record(),
            [
                _issue("i1"),
                _issue(
                    "i2",
                    original="Led the team to success",
                    error_text="success",
                    suggestions=["triumph", "victory", "a win"],
                ),
            ],
        )
        session.accept("i1")
        first_entry = session.change_log[0]
        session.accept("i2")
        self.assertEqual(session.record.experience[0].description[0], "Led the team to triumph")

        self.assertFalse(session.undo(first_entry.id))
        self.assertIn(first_entry.id, [entry.id for entry in session.change_log])
        self.assertEqual(session.record.experience[0].description[0], "Led the team to triumph")

    def test_extraction_entries_cannot_be_undone(self):
        session = ReviewSession(_record())
        entry = session.change_log[0]
        self.assertEqual(entry.path, EXTRACTION_PATH)
        self.assertEqual(entry.original, "REMOVAL")
        self.assertEqual(entry.new, "Removed phone number")
        self.assertFalse(entry.undoable)
        with self.assertRaises(ValueError):
            session.undo(entry.id)

    def test_unknown_ids_raise_key_error(self):
        session = ReviewSession(_record(), [_issue()])
        with self.assertRaises(KeyError):
            session.accept("missing")
        with self.assertRaises(KeyError):
            session.ignore("missing")
        with self.assertRaises(KeyError):
            session.undo("missing")

    def test_ignore_only_drops_the_issue(self):
        record = _record()
        session = ReviewSession(record, [_issue()])
        session.ignore("i1")
        self.assertEqual(session.issues, [])
        self.assertIs(session.record, record)
        self.assertEqual(len(session.change_log), 1)

    def test_custom_section_item_can_be_fixed(self):
        issue = _issue(
            path="customSections.0.items.0",
            original="Languages: English, Spanich",
            error_text="Spanich",
            suggestions=["Spanish", "Castilian", "Español"],
        )
        session = ReviewSession(_record(), [issue])
        self.assertTrue(session.accept("i1"))
        self.assertEqual(session.record.custom_sections[0].items[0], "Languages: English, Spanish")

    def test_replace_record_clears_issues_and_reseeds_log(self):
        session = ReviewSession(_record(), [_issue()])
        session.accept("i1")
        fresh = ResumeRecord(full_name="John Roe")
        session.set_issues([_issue("i9")])

        session.replace_record(fresh)

        self.assertIs(session.record, fresh)
        self.assertEqual(session.issues, [])
        self.assertEqual(session.change_log, [])


class HighlightTests(unittest.TestCase):
    def test_segments_interleave_in_offset_order(self):
        text = "Led teh team to sucess"
        issues = [
            _issue("late", original=text, error_text="sucess"),
            _issue("early", path="experience[0].description[0]", original=text, error_text="teh",
                   suggestions=["the", "this", "that"]),
            _issue("other-field", path="summary.0", original=text, error_text="teh",
                   suggestions=["the", "this", "that"]),
        ]

        segments = highlight_segments(text, PATH, issues)

        self.assertEqual([s.text for s in segments], ["Led ", "teh", " team to ", "sucess"])
        self.assertEqual([s.issue.id if s.issue else None for s in segments], [None, "early", None, "late"])

    def test_stale_issues_are_skipped(self):
        issues = [_issue(original="Led the team to sucess")]
        self.assertEqual(locate_issues("Led the team to success", PATH, issues), [])
        segments = highlight_segments("Led the team to success", PATH, issues)
        self.assertEqual([s.text for s in segments], ["Led the team to success"])

    def test_overlapping_issues_do_not_crash(self):
        text = "Led the team to sucess"
        issues = [
            _issue("a", original=text, error_text="team to", suggestions=["group to", "crew to", "staff to"]),
            _issue("b", original=text, error_text="to sucess", suggestions=["to success", "to a win", "to glory"]),
        ]
        segments = highlight_segments(text, PATH, issues)
        self.assertEqual(len([s for s in segments if s.issue is not None]), 2)
        self.assertEqual(segments[0].text, "Led the ")


if __name__ == "__main__":
    unittest.main()
