from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from learning_service import models, storage
from schemas.progress import QuizResult
from schemas.quiz import Difficulty

logger = logging.getLogger(__name__)

HARD_THRESHOLD = 80.0
EASY_BELOW = 50.0

PASS_MESSAGE = "Excellent work!"
PRACTICE_MESSAGE = "Keep practicing!"


def score_answers(answers: Sequence[str], correct_answers: Sequence[str]) -> int:
    if len(answers) != len(correct_answers):
        raise ValueError("answers and correct_answers must have the same length")
    return sum(1 for given, expected in zip(answers, correct_answers) if given == expected)


def percentage_of(score: int, total: int) -> float:
    if total <= 0:
        raise ValueError("total must be positive")
    # multiply first so whole percentages (4/5 -> 80.0) stay exact
    return score * 100 / total


def next_difficulty(percentage: float) -> Difficulty:
    if percentage >= HARD_THRESHOLD:
        return Difficulty.HARD
    if percentage < EASY_BELOW:
        return Difficulty.EASY
    return Difficulty.MEDIUM


def encouragement(percentage: float) -> str:
    return PASS_MESSAGE if percentage >= HARD_THRESHOLD else PRACTICE_MESSAGE


def grade_submission(answers: Sequence[str], correct_answers: Sequence[str]) -> QuizResult:
    score = score_answers(answers, correct_answers)
    total = len(answers)
    percentage = percentage_of(score, total)
    return QuizResult(
        score=score,
        total=total,
        percentage=round(percentage, 2),
        next_difficulty=next_difficulty(percentage),
        message=encouragement(percentage),
    )


async def record_attempt(
    db: AsyncSession, *, user_id: int, topic: models.Topic, result: QuizResult
) -> models.Progress:
    """Store the latest attempt for (user, topic); the previous one is overwritten."""
    progress = await storage.upsert_progress(
        db,
        user_id=user_id,
        topic_id=topic.id,
        course_id=topic.course_id,
        difficulty=result.next_difficulty.value,
        is_completed=True,
        score=result.score,
        total_questions=result.total,
    )
    logger.info(
        "Progress for user=%s topic=%s: %d/%d, next difficulty %s",
        user_id,
        topic.id,
        result.score,
        result.total,
        result.next_difficulty.value,
    )
    return progress
