from __future__ import annotations

from pydantic import BaseModel, Field

from schemas.course_outline import CourseType
from schemas.quiz import Difficulty


class OutlineInput(BaseModel):
    source_text: str = ""
    course_type: CourseType


class ChapterWriterInput(BaseModel):
    course_title: str
    chapter_title: str
    position: int = Field(ge=0)
    total: int = Field(gt=0)
    source_text: str = ""
    course_type: CourseType


class QuizInput(BaseModel):
    content: str | None = None
    difficulty: Difficulty = Difficulty.MEDIUM


class AskInput(BaseModel):
    question: str
    text: str
    source: str = "document"  # document | video
