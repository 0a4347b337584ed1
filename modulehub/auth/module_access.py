from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from uuid import UUID

from modulehub.errors import NotFoundError, UnauthorizedError, PreconditionFailedError
from modulehub.models import Module, Enrollment, Quiz, Lesson, User


async def get_teacher_module(
    module_id: UUID,
    teacher: User,
    db: AsyncSession,
    options=(),
) -> Module:
    """
    Fetch a module assigned to this teacher.
    A module that exists but belongs to someone else is reported as missing.
    """
    result = await db.execute(
        select(Module)
        .options(*options)
        .where(Module.id == module_id, Module.teacher_id == teacher.id)
        .execution_options(populate_existing=True)
    )
    module = result.scalar_one_or_none()
    if not module:
        raise NotFoundError("Module not found or not assigned to you")
    return module


async def get_owned_quiz(
    quiz_id: UUID,
    teacher: User,
    db: AsyncSession,
    options=(),
) -> Quiz:
    """Fetch a quiz whose module is assigned to this teacher."""
    result = await db.execute(
        select(Quiz)
        .options(selectinload(Quiz.module), *options)
        .where(Quiz.id == quiz_id)
        .execution_options(populate_existing=True)
    )
    quiz = result.scalar_one_or_none()

    if not quiz:
        raise NotFoundError("Quiz not found")

    if quiz.module.teacher_id != teacher.id:
        raise UnauthorizedError("You are not authorized to access this quiz")
    return quiz


async def get_owned_lesson(
    lesson_id: UUID,
    teacher: User,
    db: AsyncSession,
    options=(),
) -> Lesson:
    result = await db.execute(
        select(Lesson)
        .options(selectinload(Lesson.module), *options)
        .where(Lesson.id == lesson_id)
        .execution_options(populate_existing=True)
    )
    lesson = result.scalar_one_or_none()

    if not lesson:
        raise NotFoundError("Lesson not found")

    if lesson.module.teacher_id != teacher.id:
        raise UnauthorizedError("You are not authorized to access this lesson")
    return lesson


async def is_student_enrolled(module_id: UUID, student_id: UUID, db: AsyncSession) -> bool:
    result = await db.execute(
        select(Enrollment.id).where(
            Enrollment.module_id == module_id,
            Enrollment.student_id == student_id,
        )
    )
    return result.first() is not None


async def ensure_student_enrolled(
    module_id: UUID,
    student_id: UUID,
    db: AsyncSession,
):
    if not await is_student_enrolled(module_id, student_id, db):
        raise PreconditionFailedError("You are not enrolled in this module")
