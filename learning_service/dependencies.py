from functools import lru_cache
from typing import Any

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from agents.base_agent import LLMConfig, LLMError, build_llm_client
from agents.chapter_writer_agent import ChapterWriterAgent
from agents.comprehension_agent import ComprehensionAgent
from agents.outline_agent import OutlineAgent
from agents.quiz_agent import QuizAgent
from learning_service import models, storage
from learning_service.database import get_db
from learning_service.transcripts import TranscriptService
from manager.course_assembler import CourseAssembler


async def get_session_user(request: Request) -> int:
    """Dependency: returns the user id stored in the session cookie or answers 401."""
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return int(user_id)


async def get_current_user(
    user_id: int = Depends(get_session_user),
    db: AsyncSession = Depends(get_db),
) -> models.User:
    user = await storage.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


@lru_cache(maxsize=1)
def get_llm_client() -> Any:
    """One gateway client per process, shared by every agent."""
    try:
        return build_llm_client(LLMConfig())
    except LLMError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def get_course_assembler(llm_client: Any = Depends(get_llm_client)) -> CourseAssembler:
    return CourseAssembler(
        outline_agent=OutlineAgent(llm_client=llm_client),
        chapter_writer=ChapterWriterAgent(llm_client=llm_client),
    )


def get_quiz_agent(llm_client: Any = Depends(get_llm_client)) -> QuizAgent:
    return QuizAgent(llm_client=llm_client)


def get_comprehension_agent(llm_client: Any = Depends(get_llm_client)) -> ComprehensionAgent:
    return ComprehensionAgent(llm_client=llm_client)


def get_transcript_service() -> TranscriptService:
    return TranscriptService()
