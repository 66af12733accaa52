from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

from agents.base_agent import BaseAgent, LLMError
from schemas.agent_io import OutlineInput
from schemas.course_outline import CourseOutline, CourseType, chapter_count_for
from validators.outline_validator import validate_outline

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Artificial Intelligence Basics"


class OutlineGenerationError(RuntimeError):
    """Raised when no usable course outline could be produced."""


def _source_limit() -> int:
    try:
        return int(os.getenv("OUTLINE_SOURCE_CHARS", "12000"))
    except ValueError:
        return 12000


class OutlineAgent(BaseAgent):
    name = "outline"

    def _normalize_llm_outline(self, payload: Any) -> Dict[str, Any]:
        """
        Adapt common LLM outline formats into the strict CourseOutline schema:
        {"title": str, "topics": [str, ...]}
        """
        if not isinstance(payload, dict):
            raise OutlineGenerationError("Outline response is not a JSON object.")

        title = (
            payload.get("title")
            or payload.get("courseTitle")
            or payload.get("course_title")
            or ""
        )
        topics_raw = (
            payload.get("topics")
            or payload.get("chapters")
            or payload.get("modules")
            or []
        )
        topics: List[str] = []
        if isinstance(topics_raw, list):
            for topic in topics_raw:
                if isinstance(topic, str):
                    name = topic
                elif isinstance(topic, dict):
                    name = topic.get("title") or topic.get("name") or topic.get("chapterTitle") or ""
                else:
                    continue
                if str(name).strip():
                    topics.append(str(name).strip())

        return {"title": str(title).strip(), "topics": topics}

    def generate(self, input_json: Dict[str, Any]) -> Dict[str, Any]:
        outline_input = OutlineInput.model_validate(input_json)
        course_type = CourseType(outline_input.course_type)
        chapter_count = chapter_count_for(course_type)
        source_text = outline_input.source_text.strip() or DEFAULT_SUBJECT

        prompt = self.render_prompt(
            "outline",
            source_text=source_text[: _source_limit()],
            course_type=course_type.value,
            course_label="comprehensive" if course_type is CourseType.FULL else "one-shot revision",
            chapter_count=chapter_count,
        )

        try:
            llm_result = self.complete(prompt)
            raw_payload = self.validate_json(llm_result)
        except (LLMError, ValueError) as exc:
            raise OutlineGenerationError(f"Outline generation failed: {exc}") from exc

        normalized = self._normalize_llm_outline(raw_payload)
        if len(normalized["topics"]) > chapter_count:
            logger.info(
                "Outline returned %d chapters, keeping the first %d",
                len(normalized["topics"]),
                chapter_count,
            )
            normalized["topics"] = normalized["topics"][:chapter_count]

        ok, issues = validate_outline(normalized, chapter_count)
        if not ok:
            raise OutlineGenerationError("Unusable outline: " + "; ".join(issues))

        return CourseOutline.model_validate(normalized).to_json()
