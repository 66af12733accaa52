from __future__ import annotations

from typing import Any, Dict, List, Tuple


def validate_outline(outline: Dict[str, Any], expected_topics: int) -> Tuple[bool, List[str]]:
    issues: List[str] = []

    title = outline.get("title")
    if not isinstance(title, str) or not title.strip():
        issues.append("Outline must have a course title.")

    topics = outline.get("topics")
    if not isinstance(topics, list) or not topics:
        issues.append("Outline must contain at least one chapter title.")
    else:
        if len(topics) != expected_topics:
            issues.append(f"Outline has {len(topics)} chapters, expected {expected_topics}.")
        for i, topic in enumerate(topics):
            if not isinstance(topic, str) or not topic.strip():
                issues.append(f"Chapter {i} has an empty title.")

    return (len(issues) == 0, issues)
