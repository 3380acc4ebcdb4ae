from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from pydantic import ValidationError

from resume_formatter.ai.types import ChatMessage, ToolInvoker, ToolSpec
from resume_formatter.normalize.text import normalize_path
from resume_formatter.schemas.resume import ResumeFormat, ResumeRecord
from resume_formatter.schemas.review import GrammarIssue

logger = logging.getLogger(__name__)

GRAMMAR_TOOL_NAME = "save_grammar_issues"

GRAMMAR_TOOL = ToolSpec(
    name=GRAMMAR_TOOL_NAME,
    description="Saves a list of grammar and spelling issues found in the resume.",
    parameters={
        "type": "object",
        "properties": {
            "issues": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "id": {"type": "string"},
                        "path": {
                            "type": "string",
                            "description": "The JSON path to the field, e.g. 'summary.0', 'experience.0.description.2'",
                        },
                        "original": {"type": "string", "description": "The full text content of the field"},
                        "errorText": {"type": "string", "description": "The EXACT substring that contains the error"},
                        "suggestions": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "List of 3 distinct improvement suggestions",
                        },
                        "reason": {"type": "string"},
                        "type": {
                            "type": "string",
                            "enum": ["SPELLING", "GRAMMAR", "STYLE"],
                            "description": "The category of the issue",
                        },
                    },
                    "required": ["id", "path", "original", "errorText", "suggestions", "reason", "type"],
                },
            },
        },
        "required": ["issues"],
    },
)

TONE_NOTES = {
    ResumeFormat.MODERN_EXECUTIVE: (
        "Ensure suggestions maintain a professional, expanded tone. Dates should remain in the 3-letter "
        "abbreviated format (e.g. 'Jan') as they are expanded at render time."
    ),
    ResumeFormat.CLASSIC_PROFESSIONAL: "Maintain a traditional, concise tone. Dates should remain abbreviated.",
}

REVIEW_INSTRUCTIONS = """
CRITICAL INSTRUCTIONS:
1. Spelling: identify standard US English spelling mistakes. Categorize as 'SPELLING'.
2. Grammar and verb tense: identify grammatical errors, incorrect verb tenses, or punctuation issues. Categorize as 'GRAMMAR'.
3. Resume best practices: suggest stronger action verbs (e.g. "Led" instead of "Was in charge of") and flag
   passive voice with an active alternative. Categorize these as 'STYLE'.
4. Context: for each issue, explain WHY the change is recommended based on resume writing standards.
5. Exclusions: DO NOT flag technical terms, version numbers, framework names, or proper nouns unless clearly misspelled.
6. Return the issues using the 'save_grammar_issues' tool. For each issue provide:
   - 'path': the exact JSON path in dot notation.
   - 'original': the FULL text content of that field.
   - 'errorText': the EXACT substring within 'original' that is incorrect or could be improved.
   - 'suggestions': exactly 3 distinct options to fix or improve the text.
   - 'reason': a detailed explanation of the error or improvement opportunity.
   - 'type': one of 'SPELLING', 'GRAMMAR', or 'STYLE'.
""".strip()


def build_grammar_messages(record: ResumeRecord, fmt: ResumeFormat) -> list[ChatMessage]:
    data = json.dumps(record.to_wire(), ensure_ascii=False)
    prompt = (
        "Review the following resume data for spelling, grammar, and professional writing improvements. "
        f"The target style is {fmt.value}.\n\n"
        f"STYLE-SPECIFIC INSTRUCTIONS:\n- {TONE_NOTES[fmt]}\n\n"
        f"{REVIEW_INSTRUCTIONS}\n\n"
        f"DATA:\n{data}"
    )
    return [ChatMessage(role="user", content=prompt)]


def parse_issues(raw: dict[str, Any] | None) -> list[GrammarIssue]:
    if not raw:
        return []
    entries = raw.get("issues") or []
    if not isinstance(entries, list):
        logger.warning("grammar_issues_not_a_list type=%s", type(entries).__name__)
        return []

    issues: list[GrammarIssue] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("grammar_issue_dropped index=%s: not an object", index)
            continue
        candidate = dict(entry)
        candidate["id"] = str(candidate.get("id") or f"issue-{uuid.uuid4().hex[:10]}")
        candidate["path"] = normalize_path(str(candidate.get("path") or ""))
        try:
            issue = GrammarIssue.model_validate(candidate)
        except ValidationError as exc:
            logger.warning("grammar_issue_dropped index=%s path=%s: %s", index, candidate["path"], exc)
            continue
        if not issue.path:
            logger.warning("grammar_issue_dropped index=%s: empty path", index)
            continue
        issues.append(issue)

    # Model-provided ids are not guaranteed unique.
    seen: set[str] = set()
    unique: list[GrammarIssue] = []
    for issue in issues:
        if issue.id in seen:
            issue = issue.model_copy(update={"id": f"issue-{uuid.uuid4().hex[:10]}"})
        seen.add(issue.id)
        unique.append(issue)
    return unique


class GrammarClient:
    def __init__(self, invoker: ToolInvoker):
        self._invoker = invoker

    async def analyze(self, record: ResumeRecord, fmt: ResumeFormat) -> list[GrammarIssue]:
        raw = await self._invoker.invoke_tool(build_grammar_messages(record, fmt), GRAMMAR_TOOL)
        if raw is None:
            logger.info("grammar_tool_not_called format=%s", fmt.value)
            return []
        issues = parse_issues(raw)
        logger.info("grammar_analysis_ok format=%s issues=%s", fmt.value, len(issues))
        return issues
