from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agents.quiz_agent import QuizAgent, QuizGenerationError
from learning_service import models, storage
from learning_service.database import get_db
from learning_service.dependencies import get_quiz_agent, get_session_user
from manager.progression import grade_submission, record_attempt
from schemas.api import ProgressOut
from schemas.chapter_content import Notebook
from schemas.progress import QuizResult, QuizSubmission
from schemas.quiz import Difficulty

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quiz", tags=["quiz"])

DEFAULT_NOTEBOOK = {
    "cells": [
        {"type": "markdown", "content": "### Interactive Notebook"},
        {"type": "code", "content": "print('Welcome to the interactive coding environment!')"},
    ]
}


async def _get_owned_topic_or_404(db: AsyncSession, topic_id: int, user_id: int) -> models.Topic:
    """Chapters of someone else's course are reported as missing."""
    topic = await storage.get_topic(db, topic_id)
    if not topic:
        raise HTTPException(status_code=404, detail="Chapter not found")
    course = await storage.get_course(db, topic.course_id)
    if not course or course.user_id != user_id:
        raise HTTPException(status_code=404, detail="Chapter not found")
    return topic


async def resolve_quiz_difficulty(db: AsyncSession, user_id: int, topic: models.Topic) -> Difficulty:
    """The tier unlocked by the last attempt on this chapter, else on the previous one, else Easy."""
    own = await storage.get_progress(db, user_id, topic.id)
    if own is not None:
        return Difficulty(own.difficulty)

    if topic.order_index > 1:
        topics = await storage.get_topics_by_course(db, topic.course_id)
        previous = next((t for t in topics if t.order_index == topic.order_index - 1), None)
        if previous is not None:
            earlier = await storage.get_progress(db, user_id, previous.id)
            if earlier is not None:
                return Difficulty(earlier.difficulty)
    return Difficulty.EASY


@router.get("/chapter/{topic_id}")
async def get_chapter_quiz(
    topic_id: int,
    difficulty: Optional[Difficulty] = None,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_session_user),
    quiz_agent: QuizAgent = Depends(get_quiz_agent),
) -> Dict[str, Any]:
    topic = await _get_owned_topic_or_404(db, topic_id, user_id)
    level = difficulty or await resolve_quiz_difficulty(db, user_id, topic)
    try:
        return await run_in_threadpool(quiz_agent.generate, {"content": topic.content, "difficulty": level})
    except QuizGenerationError as exc:
        logger.error("Quiz generation failed for topic %s: %s", topic_id, exc)
        raise HTTPException(status_code=502, detail="AI generation failed") from exc


@router.post("/submit", response_model=QuizResult)
async def submit_quiz(
    submission: QuizSubmission,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_session_user),
) -> QuizResult:
    topic = await _get_owned_topic_or_404(db, submission.topic_id, user_id)
    # TODO: grade against a server-held answer key once quizzes are stored with their answers.
    result = grade_submission(submission.answers, submission.correct_answers)

    try:
        await record_attempt(db, user_id=user_id, topic=topic, result=result)
    except SQLAlchemyError:
        # the score still reaches the learner; only the unlock state stays behind
        await db.rollback()
        logger.exception("Failed to record progress for user %s topic %s", user_id, topic.id)
    return result


@router.get("/full-test/{topic_id}")
async def get_full_test(
    topic_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_session_user),
    quiz_agent: QuizAgent = Depends(get_quiz_agent),
) -> List[Dict[str, Any]]:
    topic = await _get_owned_topic_or_404(db, topic_id, user_id)
    try:
        return await run_in_threadpool(quiz_agent.generate_full_test, {"content": topic.content})
    except QuizGenerationError as exc:
        logger.error("Full test generation failed for topic %s: %s", topic_id, exc)
        raise HTTPException(status_code=502, detail="AI generation failed") from exc


@router.get("/notebook/{topic_id}", response_model=Notebook)
async def get_notebook(
    topic_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_session_user),
):
    topic = await _get_owned_topic_or_404(db, topic_id, user_id)
    return topic.notebook or DEFAULT_NOTEBOOK


@router.get("/progress/{course_id}", response_model=List[ProgressOut])
async def get_course_progress(
    course_id: int,
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_session_user),
):
    return await storage.get_course_progress(db, user_id, course_id)
