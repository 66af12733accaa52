from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, field_validator


class CourseType(str, Enum):
    FULL = "FULL"
    ONESHOT = "ONESHOT"


CHAPTER_COUNTS = {
    CourseType.FULL: 5,
    CourseType.ONESHOT: 4,
}


def chapter_count_for(course_type: CourseType) -> int:
    return CHAPTER_COUNTS[CourseType(course_type)]


class CourseOutline(BaseModel):
    title: str
    topics: List[str]

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("outline title must not be empty")
        return value

    @field_validator("topics")
    @classmethod
    def validate_topics(cls, value: List[str]) -> List[str]:
        topics = [topic.strip() for topic in value]
        if not topics or not all(topics):
            raise ValueError("outline topics must be non-empty strings")
        return topics

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump()

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CourseOutline":
        return cls.model_validate(data)
