from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, model_validator

from schemas.quiz import Difficulty


class QuizSubmission(BaseModel):
    topic_id: int
    answers: List[str] = Field(min_length=1)
    correct_answers: List[str]

    @model_validator(mode="after")
    def validate_lengths(self) -> "QuizSubmission":
        if len(self.answers) != len(self.correct_answers):
            raise ValueError(
                f"answers ({len(self.answers)}) and correct_answers "
                f"({len(self.correct_answers)}) must have the same length"
            )
        return self


class QuizResult(BaseModel):
    score: int
    total: int
    percentage: float
    next_difficulty: Difficulty
    message: str
