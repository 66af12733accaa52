from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.course_outline import CourseType

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not _EMAIL.match(value):
            raise ValueError("invalid email address")
        return value


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: str


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    course_type: CourseType
    created_at: Optional[datetime] = None


class TopicOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    course_id: int
    title: str
    content: str
    order_index: int
    ai_summary: str
    notebook: Optional[Dict[str, Any]] = None
    unlocked: bool = False


class CourseWithTopicsOut(CourseOut):
    topics: List[TopicOut]


class ProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    topic_id: int
    course_id: int
    difficulty: str
    is_completed: bool
    score: int
    total_questions: int


class ComprehensionSession(BaseModel):
    session_id: str
    text: str


class AskRequest(BaseModel):
    question: str = Field(min_length=1)
    session_id: str
    text: str


class AskResponse(BaseModel):
    answer: str


class VideoExtractRequest(BaseModel):
    url: str = Field(min_length=1)
