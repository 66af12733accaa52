from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict

from agents.base_agent import BaseAgent
from schemas.agent_io import ChapterWriterInput
from schemas.chapter_content import ChapterContent, ChapterFailed, ChapterOk, ChapterResult
from schemas.course_outline import CourseType
from validators.chapter_validator import validate_chapter

logger = logging.getLogger(__name__)

GENERATION_FAILED_MARKER = "Content generation failed"

PROMPT_IDS = {
    CourseType.FULL: "chapter_full",
    CourseType.ONESHOT: "chapter_oneshot",
}

_SENTENCE = re.compile(r"[^.!?]+[.!?]")


def _source_limit() -> int:
    try:
        return int(os.getenv("CHAPTER_SOURCE_CHARS", "4000"))
    except ValueError:
        return 4000


def placeholder_chapter(title: str) -> ChapterContent:
    """Deterministic stand-in for a chapter whose generation failed."""
    content = (
        f"## {title}\n\n"
        f"> {GENERATION_FAILED_MARKER} for this chapter.\n\n"
        "The AI service could not produce this chapter while the course was being built. "
        "The rest of the course is unaffected, and the chapter quiz still works from this title."
    )
    summary = (
        f"This chapter covers {title}. "
        "Its content could not be generated automatically."
    )
    return ChapterContent(title=title, content=content, ai_summary=summary)


def _summary_from_content(content: str) -> str:
    plain = re.sub(r"```.*?```", " ", content, flags=re.DOTALL)
    plain = re.sub(r"[#>*_`]", " ", plain)
    sentences = [s.strip() for s in _SENTENCE.findall(" ".join(plain.split()))]
    return " ".join(sentences[:2])


class ChapterWriterAgent(BaseAgent):
    name = "chapter_writer"

    def _normalize_llm_chapter(self, payload: Any, title: str) -> Dict[str, Any]:
        """
        Adapt common LLM chapter formats into the ChapterContent schema:
        {"title": str, "content": str, "aiSummary": str}
        """
        if not isinstance(payload, dict):
            raise ValueError("Chapter response is not a JSON object.")

        content = (
            payload.get("content")
            or payload.get("markdown")
            or payload.get("body")
            or payload.get("text")
            or ""
        )
        if not isinstance(content, str) or not content.strip():
            raise ValueError("Chapter response has no content.")

        summary = (
            payload.get("aiSummary")
            or payload.get("ai_summary")
            or payload.get("summary")
            or ""
        )
        if not isinstance(summary, str) or not summary.strip():
            summary = _summary_from_content(content) or f"This chapter covers {title}."

        return {"title": title, "content": content.strip(), "aiSummary": summary.strip()}

    def generate(self, input_json: Dict[str, Any]) -> ChapterResult:
        writer_input = ChapterWriterInput.model_validate(input_json)
        course_type = CourseType(writer_input.course_type)
        title = writer_input.chapter_title

        # One bad chapter must never abort the course: every failure becomes ChapterFailed.
        try:
            prompt = self.render_prompt(
                PROMPT_IDS[course_type],
                course_title=writer_input.course_title,
                chapter_title=title,
                position=writer_input.position,
                total=writer_input.total,
                source_text=writer_input.source_text[: _source_limit()].strip(),
            )
            llm_result = self.complete(prompt)
            raw_payload = self.validate_json(llm_result)
            normalized = self._normalize_llm_chapter(raw_payload, title)
            chapter = ChapterContent.model_validate(normalized)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Chapter '%s' generation failed: %s", title, exc)
            return ChapterFailed(title=title, reason=str(exc))

        ok, issues = validate_chapter(chapter.to_json(), course_type.value)
        if not ok:
            logger.info("Chapter '%s' deviates from its profile: %s", title, issues)
        return ChapterOk(chapter=chapter)
