from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agents.chapter_writer_agent import ChapterWriterAgent, placeholder_chapter
from agents.outline_agent import OutlineAgent, OutlineGenerationError
from learning_service import models, storage
from manager.telemetry import FeedbackMonitor, PerformanceMonitor, WorkloadManager
from schemas.chapter_content import ChapterContent, ChapterFailed, ChapterOk, ChapterResult
from schemas.course_outline import CourseOutline, CourseType

logger = logging.getLogger(__name__)


class CourseGenerationError(RuntimeError):
    """The outline could not be generated; nothing was persisted."""


class CoursePersistenceError(RuntimeError):
    """Storing the course shell or one of its chapters failed."""


def _default_workers() -> int:
    try:
        return max(1, int(os.getenv("CHAPTER_WORKERS", "2")))
    except ValueError:
        return 2


@dataclass
class AssembledCourse:
    course: models.Course
    topics: List[models.Topic]
    failed_chapters: List[int] = field(default_factory=list)  # order indices that got placeholders
    telemetry: Dict[str, Any] = field(default_factory=dict)


class CourseAssembler:
    """Outline -> course shell -> per-chapter content -> ordered chapter rows.

    Chapter calls may run concurrently (bounded by ``max_workers``) but rows are
    written strictly in outline order, so order indices are always 1..N.
    """

    def __init__(
        self,
        outline_agent: OutlineAgent,
        chapter_writer: ChapterWriterAgent,
        max_workers: int | None = None,
    ) -> None:
        self.outline_agent = outline_agent
        self.chapter_writer = chapter_writer
        self.max_workers = max_workers if max_workers is not None else _default_workers()

    def _resolve_chapter(
        self, result: ChapterResult, order_index: int, feedback: FeedbackMonitor
    ) -> ChapterContent:
        if isinstance(result, ChapterOk):
            feedback.log_event("chapter.generate", True, {"order_index": order_index})
            return result.chapter
        feedback.log_event(
            "chapter.generate",
            False,
            {"order_index": order_index, "title": result.title, "reason": result.reason},
        )
        return placeholder_chapter(result.title)

    async def assemble(
        self,
        db: AsyncSession,
        *,
        user_id: int,
        course_type: CourseType | str,
        source_text: str,
    ) -> AssembledCourse:
        course_type = CourseType(course_type)
        feedback = FeedbackMonitor()
        performance = PerformanceMonitor()

        # 1. Outline: without it there is nothing to build, so failure is fatal.
        logger.info("Generating %s course outline", course_type.value)
        try:
            with performance.track("outline.generate"):
                outline_json = await run_in_threadpool(
                    self.outline_agent.generate,
                    {"source_text": source_text, "course_type": course_type},
                )
        except OutlineGenerationError as exc:
            logger.exception("Outline generation failed")
            raise CourseGenerationError("AI generation failed") from exc
        outline = CourseOutline.model_validate(outline_json)
        feedback.log_event("outline.generate", True, {"chapters": len(outline.topics)})

        # 2. Course shell, only after the outline exists.
        try:
            with performance.track("course.persist"):
                course = await storage.create_course(
                    db, user_id=user_id, title=outline.title, course_type=course_type.value
                )
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.exception("Failed to persist course shell '%s'", outline.title)
            raise CoursePersistenceError("Failed to store the course") from exc

        # 3. Chapters: isolated generation, ordered persistence.
        total = len(outline.topics)
        workload = WorkloadManager(max_workers=self.max_workers)
        topics: List[models.Topic] = []
        failed: List[int] = []
        try:
            futures = [
                workload.submit_task(
                    title,
                    self.chapter_writer.generate,
                    {
                        "course_title": outline.title,
                        "chapter_title": title,
                        "position": position,
                        "total": total,
                        "source_text": source_text,
                        "course_type": course_type,
                    },
                )
                for position, title in enumerate(outline.topics)
            ]

            for order_index, (title, future) in enumerate(zip(outline.topics, futures), start=1):
                try:
                    result = await asyncio.wrap_future(future)
                except Exception as exc:  # noqa: BLE001
                    result = ChapterFailed(title=title, reason=str(exc))
                if isinstance(result, ChapterFailed):
                    failed.append(order_index)
                chapter = self._resolve_chapter(result, order_index, feedback)

                try:
                    with performance.track("chapter.persist"):
                        topic = await storage.create_topic(
                            db, course_id=course.id, chapter=chapter, order_index=order_index
                        )
                except SQLAlchemyError as exc:
                    await db.rollback()
                    logger.exception("Failed to persist chapter %d of course %s", order_index, course.id)
                    raise CoursePersistenceError(f"Failed to store chapter {order_index}") from exc
                topics.append(topic)
        finally:
            workload.shutdown(wait=False)

        telemetry = {
            "feedback": feedback.summary(),
            "performance": performance.summary(),
            "workload": workload.summary(),
        }
        logger.info(
            "Course %s assembled with %d chapters (%d placeholders); telemetry=%s",
            course.id,
            len(topics),
            len(failed),
            telemetry,
        )
        return AssembledCourse(course=course, topics=topics, failed_chapters=failed, telemetry=telemetry)
