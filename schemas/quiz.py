from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, field_validator, model_validator


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Question(BaseModel):
    question: str
    options: List[str]
    correct_answer: str
    explanation: str = ""

    @field_validator("options")
    @classmethod
    def validate_options(cls, value: List[str]) -> List[str]:
        if len(value) < 2:
            raise ValueError("a question needs at least two options")
        return value

    @model_validator(mode="after")
    def validate_correct_answer(self) -> "Question":
        if self.options.count(self.correct_answer) != 1:
            raise ValueError("correct_answer must match exactly one option")
        return self


class Quiz(BaseModel):
    difficulty: Difficulty
    questions: List[Question]

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "Quiz":
        return cls.model_validate(data)
