from typing import List, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from schemas.chapter_content import ChapterContent
from learning_service import models

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


# --- Users ---

async def get_user(db: AsyncSession, user_id: int) -> Optional[models.User]:
    result = await db.execute(select(models.User).where(models.User.id == user_id))
    return result.scalars().first()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[models.User]:
    result = await db.execute(select(models.User).where(models.User.email == email))
    return result.scalars().first()


async def create_user(db: AsyncSession, *, email: str, hashed_password: str, full_name: str) -> models.User:
    user = models.User(email=email, hashed_password=hashed_password, full_name=full_name)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


# --- Courses and topics ---

async def create_course(db: AsyncSession, *, user_id: int, title: str, course_type: str) -> models.Course:
    course = models.Course(user_id=user_id, title=title, course_type=course_type)
    db.add(course)
    await db.commit()
    await db.refresh(course)
    return course


async def create_topic(
    db: AsyncSession, *, course_id: int, chapter: ChapterContent, order_index: int
) -> models.Topic:
    topic = models.Topic(
        course_id=course_id,
        title=chapter.title,
        content=chapter.content,
        order_index=order_index,
        ai_summary=chapter.ai_summary,
        notebook=None,
    )
    db.add(topic)
    await db.commit()
    await db.refresh(topic)
    return topic


async def get_course(db: AsyncSession, course_id: int) -> Optional[models.Course]:
    result = await db.execute(select(models.Course).where(models.Course.id == course_id))
    return result.scalars().first()


async def get_courses_by_user(db: AsyncSession, user_id: int, course_type: str) -> List[models.Course]:
    result = await db.execute(
        select(models.Course)
        .where(models.Course.user_id == user_id)
        .where(models.Course.course_type == course_type)
        .order_by(models.Course.created_at.desc(), models.Course.id.desc())
    )
    return list(result.scalars().all())


async def get_topics_by_course(db: AsyncSession, course_id: int) -> List[models.Topic]:
    result = await db.execute(
        select(models.Topic)
        .where(models.Topic.course_id == course_id)
        .order_by(models.Topic.order_index)
    )
    return list(result.scalars().all())


async def get_topic(db: AsyncSession, topic_id: int) -> Optional[models.Topic]:
    result = await db.execute(select(models.Topic).where(models.Topic.id == topic_id))
    return result.scalars().first()


# --- Progress ---

async def get_progress(db: AsyncSession, user_id: int, topic_id: int) -> Optional[models.Progress]:
    result = await db.execute(
        select(models.Progress)
        .where(models.Progress.user_id == user_id)
        .where(models.Progress.topic_id == topic_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def get_course_progress(db: AsyncSession, user_id: int, course_id: int) -> List[models.Progress]:
    result = await db.execute(
        select(models.Progress)
        .where(models.Progress.user_id == user_id)
        .where(models.Progress.course_id == course_id)
        .order_by(models.Progress.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def upsert_progress(
    db: AsyncSession,
    *,
    user_id: int,
    topic_id: int,
    course_id: int,
    difficulty: str,
    is_completed: bool,
    score: int,
    total_questions: int,
) -> models.Progress:
    """Insert-or-update the single progress row for (user, topic) in one statement."""
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Progress upsert is not supported on '{dialect}'.")

    values = {
        "difficulty": difficulty,
        "is_completed": is_completed,
        "score": score,
        "total_questions": total_questions,
    }
    stmt = insert(models.Progress).values(user_id=user_id, topic_id=topic_id, course_id=course_id, **values)
    stmt = stmt.on_conflict_do_update(index_elements=["user_id", "topic_id"], set_=values)
    await db.execute(stmt)
    await db.commit()

    result = await db.execute(
        select(models.Progress)
        .where(models.Progress.user_id == user_id)
        .where(models.Progress.topic_id == topic_id)
        .execution_options(populate_existing=True)
    )
    # raises NoResultFound, an SQLAlchemyError, if the row vanished
    return result.scalar_one()
