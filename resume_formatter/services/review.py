from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from resume_formatter.normalize.text import normalize_path
from resume_formatter.schemas.resume import ResumeRecord
from resume_formatter.schemas.review import EXTRACTION_PATH, ChangeLogEntry, GrammarIssue

logger = logging.getLogger(__name__)

_MISSING = object()


def _segments(path: str) -> list[str]:
    normalized = normalize_path(path)
    return [part for part in normalized.split(".") if part] if normalized else []


def resolve_path(data: Any, path: str) -> Any:
    """Return the value at a dot path inside plain dicts/lists, or ``None`` when unresolvable."""
    node = data
    for part in _segments(path):
        if isinstance(node, dict):
            node = node.get(part, _MISSING)
        elif isinstance(node, list) and part.isdigit():
            index = int(part)
            node = node[index] if index < len(node) else _MISSING
        else:
            return None
        if node is _MISSING:
            return None
    return node


def assign_path(data: Any, path: str, value: Any) -> bool:
    parts = _segments(path)
    if not parts:
        return False
    parent = resolve_path(data, ".".join(parts[:-1])) if len(parts) > 1 else data
    leaf = parts[-1]
    if isinstance(parent, dict) and leaf in parent:
        parent[leaf] = value
        return True
    if isinstance(parent, list) and leaf.isdigit() and int(leaf) < len(parent):
        parent[int(leaf)] = value
        return True
    return False


@dataclass(frozen=True)
class LocatedIssue:
    issue: GrammarIssue
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.issue.error_text)


@dataclass(frozen=True)
class TextSegment:
    text: str
    issue: Optional[GrammarIssue] = None


def locate_issues(text: str, path: str, issues: Iterable[GrammarIssue]) -> list[LocatedIssue]:
    target = normalize_path(path)
    located = []
    for issue in issues:
        if normalize_path(issue.path) != target:
            continue
        start = (text or "").find(issue.error_text)
        if start == -1:
            continue
        located.append(LocatedIssue(issue=issue, start=start))
    located.sort(key=lambda item: item.start)
    return located


def highlight_segments(text: str, path: str, issues: Iterable[GrammarIssue]) -> list[TextSegment]:
    """Split ``text`` into plain and highlighted segments for the issues filed against ``path``.

    Overlapping issues are not merged: each located issue gets its own
    highlighted segment, so overlapping flags may repeat characters.
    """
    text = text or ""
    located = locate_issues(text, path, issues)
    if not located:
        return [TextSegment(text)] if text else []

    segments: list[TextSegment] = []
    cursor = 0
    for item in located:
        if item.start > cursor:
            segments.append(TextSegment(text[cursor : item.start]))
        segments.append(TextSegment(item.issue.error_text, item.issue))
        cursor = max(cursor, item.end)
    if cursor < len(text):
        segments.append(TextSegment(text[cursor:]))
    return segments


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def seed_change_log(record: ResumeRecord) -> list[ChangeLogEntry]:
    now = _utcnow()
    return [
        ChangeLogEntry(
            id=change.id or f"chg-{uuid.uuid4().hex[:10]}",
            timestamp=now,
            path=EXTRACTION_PATH,
            original=change.change_type,
            new=change.description,
            reason=change.reason,
        )
        for change in record.extraction_changes
    ]


class ReviewSession:
    """Current record, open grammar issues and the change log of one editing session.

    The record is never mutated in place: every accepted suggestion or undo
    builds a fresh ``ResumeRecord`` from a deep copy of the previous one.
    """

    def __init__(self, record: ResumeRecord, issues: Iterable[GrammarIssue] = ()):
        self._record = record
        self._issues: list[GrammarIssue] = list(issues)
        self._change_log: list[ChangeLogEntry] = seed_change_log(record)

    @property
    def record(self) -> ResumeRecord:
        return self._record

    @property
    def issues(self) -> list[GrammarIssue]:
        return list(self._issues)

    @property
    def change_log(self) -> list[ChangeLogEntry]:
        return list(self._change_log)

    def set_issues(self, issues: Iterable[GrammarIssue]) -> None:
        self._issues = list(issues)

    def replace_record(self, record: ResumeRecord) -> None:
        self._record = record
        self._issues = []
        self._change_log = seed_change_log(record)

    def _find_issue(self, issue_id: str) -> GrammarIssue:
        for issue in self._issues:
            if issue.id == issue_id:
                return issue
        raise KeyError(issue_id)

    def _drop_issue(self, issue_id: str) -> None:
        self._issues = [issue for issue in self._issues if issue.id != issue_id]

    def _replace_once(self, path: str, old: str, new: str) -> Optional[ResumeRecord]:
        data = copy.deepcopy(self._record.to_wire())
        current = resolve_path(data, path)
        if not isinstance(current, str) or not old or old not in current:
            return None
        if not assign_path(data, path, current.replace(old, new, 1)):
            return None
        return ResumeRecord.model_validate(data)

    def accept(self, issue_id: str, suggestion: Optional[str] = None) -> bool:
        issue = self._find_issue(issue_id)
        chosen = issue.suggestions[0] if suggestion is None else suggestion
        if chosen not in issue.suggestions:
            raise ValueError(f"'{chosen}' is not one of the suggestions for issue {issue_id}")

        updated = self._replace_once(issue.path, issue.error_text, chosen)
        self._drop_issue(issue_id)
        if updated is None:
            logger.warning(
                "review_accept_stale issue=%s path=%s error_text=%r", issue_id, issue.path, issue.error_text
            )
            return False

        self._record = updated
        self._change_log.insert(
            0,
            ChangeLogEntry(
                id=f"log-{uuid.uuid4().hex[:12]}",
                timestamp=_utcnow(),
                path=normalize_path(issue.path),
                original=issue.error_text,
                new=chosen,
                reason=issue.reason,
            ),
        )
        logger.info("review_accept issue=%s path=%s type=%s", issue_id, issue.path, issue.issue_type)
        return True

    def ignore(self, issue_id: str) -> None:
        self._find_issue(issue_id)
        self._drop_issue(issue_id)
        logger.info("review_ignore issue=%s", issue_id)

    def undo(self, entry_id: str) -> bool:
        entry = next((item for item in self._change_log if item.id == entry_id), None)
        if entry is None:
            raise KeyError(entry_id)
        if not entry.undoable:
            raise ValueError("Extraction changes cannot be undone")

        updated = self._replace_once(entry.path, entry.new, entry.original)
        if updated is None:
            logger.warning("review_undo_noop entry=%s path=%s", entry_id, entry.path)
            return False

        self._record = updated
        self._change_log = [item for item in self._change_log if item.id != entry_id]
        logger.info("review_undo entry=%s path=%s", entry_id, entry.path)
        return True
