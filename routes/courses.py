from __future__ import annotations

import logging
import os
from typing import List, Optional, Sequence

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from learning_service import models, storage
from learning_service.database import get_db
from learning_service.dependencies import get_course_assembler, get_session_user
from learning_service.text_extraction import ExtractionError, extract_text
from manager.course_assembler import CourseAssembler, CourseGenerationError, CoursePersistenceError
from manager.gating import annotate_unlocked
from schemas.api import CourseOut, CourseWithTopicsOut, TopicOut
from schemas.course_outline import CourseType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["courses"])


def _max_upload_bytes() -> int:
    try:
        return int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    except ValueError:
        return 10 * 1024 * 1024


async def read_upload_text(upload: Optional[UploadFile]) -> str:
    """Read an uploaded source document and return its plain text ('' when absent)."""
    if upload is None:
        return ""
    data = await upload.read()
    await upload.close()
    if len(data) > _max_upload_bytes():
        raise HTTPException(status_code=400, detail="Uploaded file is too large.")
    try:
        return await run_in_threadpool(extract_text, data, upload.filename, upload.content_type)
    except ExtractionError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def course_with_topics(
    course: models.Course, topics: Sequence[models.Topic], progress: Sequence[models.Progress]
) -> CourseWithTopicsOut:
    topic_views: List[TopicOut] = []
    for topic, unlocked in annotate_unlocked(topics, progress):
        view = TopicOut.model_validate(topic)
        view.unlocked = unlocked
        topic_views.append(view)
    return CourseWithTopicsOut(**CourseOut.model_validate(course).model_dump(), topics=topic_views)


async def _create_course(
    course_type: CourseType,
    upload: Optional[UploadFile],
    db: AsyncSession,
    user_id: int,
    assembler: CourseAssembler,
) -> CourseWithTopicsOut:
    source_text = await read_upload_text(upload)
    try:
        assembled = await assembler.assemble(
            db, user_id=user_id, course_type=course_type, source_text=source_text
        )
    except (CourseGenerationError, CoursePersistenceError) as exc:
        logger.error("Course creation failed for user %s: %s", user_id, exc)
        raise HTTPException(status_code=500, detail="AI generation failed") from exc
    return course_with_topics(assembled.course, assembled.topics, progress=[])


@router.post("/fullcourse/create", response_model=CourseWithTopicsOut, status_code=201)
async def create_full_course(
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_session_user),
    assembler: CourseAssembler = Depends(get_course_assembler),
):
    # the generated outline title wins; the form title is only logged
    logger.info("Creating FULL course for user %s (requested title: %s)", user_id, title)
    return await _create_course(CourseType.FULL, file, db, user_id, assembler)


@router.post("/oneshot/create", response_model=CourseWithTopicsOut, status_code=201)
async def create_oneshot_course(
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
    user_id: int = Depends(get_session_user),
    assembler: CourseAssembler = Depends(get_course_assembler),
):
    logger.info("Creating ONESHOT course for user %s (requested title: %s)", user_id, title)
    return await _create_course(CourseType.ONESHOT, file, db, user_id, assembler)


@router.get("/fullcourse", response_model=List[CourseOut])
async def list_full_courses(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_session_user)):
    return await storage.get_courses_by_user(db, user_id, CourseType.FULL.value)


@router.get("/oneshot", response_model=List[CourseOut])
async def list_oneshot_courses(db: AsyncSession = Depends(get_db), user_id: int = Depends(get_session_user)):
    return await storage.get_courses_by_user(db, user_id, CourseType.ONESHOT.value)


@router.get("/fullcourse/{course_id}", response_model=CourseWithTopicsOut)
async def get_course(course_id: int, db: AsyncSession = Depends(get_db), user_id: int = Depends(get_session_user)):
    course = await storage.get_course(db, course_id)
    if not course or course.user_id != user_id:
        raise HTTPException(status_code=404, detail="Not found")
    topics = await storage.get_topics_by_course(db, course.id)
    progress = await storage.get_course_progress(db, user_id, course.id)
    return course_with_topics(course, topics, progress)
