from __future__ import annotations

import json
from html import escape
from typing import Iterable, Sequence

from resume_formatter.render.layout import Block, Span, build_layout
from resume_formatter.render.profiles import FormatProfile, get_profile
from resume_formatter.schemas.resume import ResumeFormat, ResumeRecord
from resume_formatter.schemas.review import GrammarIssue
from resume_formatter.services.review import highlight_segments

_ISSUE_LABELS = {
    "SPELLING": "Spelling Error",
    "GRAMMAR": "Grammar Correction",
    "STYLE": "Writing Improvement",
}


def _stylesheet(profile: FormatProfile) -> str:
    return (
        "body{margin:0;background:#fff;color:#000;}"
        f".resume{{font-family:'{profile.font_family}',sans-serif;font-size:{profile.body_size_pt}pt;"
        "line-height:1.15;max-width:7.5in;margin:0.5in auto;}"
        f".name{{font-size:{profile.name_size_pt}pt;font-weight:bold;text-align:{profile.name_alignment};margin:0;}}"
        f".contact{{text-align:{profile.name_alignment};margin:2px 0 0 0;}}"
        f".contact.emphasized{{font-size:{profile.name_size_pt}pt;}}"
        f"h3{{font-size:{profile.body_size_pt}pt;font-weight:bold;margin:0 0 {profile.heading_space_after_pt}pt 0;}}"
        "p{margin:0;}"
        "ul{margin:0;padding-left:0.25in;}"
        ".entry-header{display:flex;justify-content:space-between;font-weight:bold;}"
        ".grid{width:100%;border-collapse:collapse;}.grid td{width:50%;vertical-align:top;padding:0;}"
        ".spacer{height:1em;}"
        ".issue{cursor:pointer;border-radius:2px;padding:0 2px;}"
        ".issue-spelling{border-bottom:2px solid #f87171;background:#fef2f2;}"
        ".issue-grammar,.issue-style{border-bottom:2px solid #4ade80;background:#f0fdf4;}"
    )


def _render_span(span: Span, issues: Sequence[GrammarIssue]) -> str:
    if span.path and issues:
        parts = []
        for segment in highlight_segments(span.text, span.path, issues):
            if segment.issue is None:
                parts.append(escape(segment.text))
                continue
            issue = segment.issue
            kind = issue.issue_type.lower()
            parts.append(
                f'<span class="issue issue-{kind}" data-issue-id="{escape(issue.id)}" '
                f'data-path="{escape(issue.path)}" '
                f'data-suggestions="{escape(json.dumps(issue.suggestions))}" '
                f'title="{escape(_ISSUE_LABELS[issue.issue_type])}: {escape(issue.reason)}">'
                f"{escape(segment.text)}</span>"
            )
        html = "".join(parts)
    else:
        html = escape(span.text)
    return f"<strong>{html}</strong>" if span.bold else html


def _render_spans(spans: Iterable[Span], issues: Sequence[GrammarIssue]) -> str:
    return "".join(_render_span(span, issues) for span in spans)


def _render_blocks(blocks: Sequence[Block], issues: Sequence[GrammarIssue]) -> list[str]:
    out: list[str] = []
    in_list = False
    for block in blocks:
        if block.kind == "bullet":
            if not in_list:
                out.append("<ul>")
                in_list = True
            out.append(f"<li>{_render_spans(block.spans, issues)}</li>")
            continue
        if in_list:
            out.append("</ul>")
            in_list = False

        content = _render_spans(block.spans, issues)
        if block.kind == "name":
            out.append(f'<h1 class="name">{content}</h1>')
        elif block.kind == "contact":
            emphasized = " emphasized" if any(span.bold for span in block.spans) else ""
            out.append(f'<div class="contact{emphasized}">{content}</div>')
        elif block.kind == "heading":
            out.append(f"<h3>{content}</h3>")
        elif block.kind == "entry_header":
            out.append(
                f'<div class="entry-header"><span>{content}</span>'
                f"<span>{_render_spans(block.right, issues)}</span></div>"
            )
        elif block.kind == "grid":
            rows = []
            for left, right in block.rows:
                right_cell = f"&bull; {_render_span(right, issues)}" if right is not None else ""
                rows.append(f"<tr><td>&bull; {_render_span(left, issues)}</td><td>{right_cell}</td></tr>")
            out.append(f'<table class="grid">{"".join(rows)}</table>')
        elif block.kind == "spacer":
            out.append('<div class="spacer"></div>')
        else:
            # paragraph, line, key_value
            out.append(f"<p>{content}</p>")
    if in_list:
        out.append("</ul>")
    return out


def render_preview_html(
    record: ResumeRecord, fmt: ResumeFormat, issues: Sequence[GrammarIssue] = ()
) -> str:
    profile = get_profile(fmt)
    body = "\n".join(_render_blocks(build_layout(record, profile), list(issues)))
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en"><head><meta charset="utf-8">'
        f"<title>{escape(record.full_name)} - {profile.label}</title>"
        f"<style>{_stylesheet(profile)}</style></head>\n"
        f'<body><main class="resume resume-{profile.label.lower()}">\n{body}\n</main></body></html>'
    )
