from __future__ import annotations

import re
from typing import Any, Dict, List, Tuple

WORD_RANGES = {
    "FULL": (600, 1200),
    "ONESHOT": (350, 600),
}

_SENTENCE_END = re.compile(r"[.!?](\s|$)")


def validate_chapter(chapter: Dict[str, Any], course_type: str) -> Tuple[bool, List[str]]:
    """Advisory checks of a chapter against its content profile."""
    issues: List[str] = []
    content = chapter.get("content") or ""
    summary = chapter.get("aiSummary") or chapter.get("ai_summary") or ""

    low, high = WORD_RANGES.get(course_type, WORD_RANGES["FULL"])
    words = len(content.split())
    if not low <= words <= high:
        issues.append(f"Chapter has {words} words, expected {low}-{high}.")

    if "```" not in content:
        issues.append("Chapter has no fenced code example.")

    lowered = content.lower()
    if course_type == "ONESHOT":
        if "remember this" not in lowered:
            issues.append("Chapter is missing a 'Remember This' section.")
    else:
        if not re.search(r"^#{2,3}\s", content, flags=re.MULTILINE):
            issues.append("Chapter has no H2/H3 headings.")
        if "key concepts" not in lowered:
            issues.append("Chapter is missing a 'Key Concepts' section.")
        if "common pitfalls" not in lowered and "best practices" not in lowered:
            issues.append("Chapter is missing a 'Common Pitfalls' or 'Best Practices' section.")

    if len(_SENTENCE_END.findall(summary.strip())) != 2:
        issues.append("AI summary is not exactly two sentences.")

    return (len(issues) == 0, issues)
