import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, update
from typing import Optional
from uuid import UUID

from modulehub.auth.dependencies import is_admin
from modulehub.database import get_db
from modulehub.errors import NotFoundError, PreconditionFailedError
from modulehub.helpers.file_paths import delete_uploads_safely
from modulehub.helpers.module_files import collect_file_paths
from modulehub.helpers.module_serializer import LESSON_TREE_OPTIONS
from modulehub.models import (
    User, UserRole, Module, Enrollment, Lesson, Quiz, QuizSubmission, QuizAnswer,
)
from modulehub.schemas.user import UserListBasic

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/user",
    tags=["Admin User Endpoints"]
)


@router.get("/list-users", response_model=list[UserListBasic])
async def list_users(
    role: Optional[UserRole] = None,
    admin: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db)
):
    query = select(User)
    if role is not None:
        query = query.where(User.role == role)

    result = await db.execute(query.order_by(User.created_at))
    return result.scalars().all()


@router.get("/pending-approvals", response_model=list[UserListBasic])
async def list_pending_approvals(
    admin: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(User)
        .where(User.is_approved.is_(False))
        .order_by(User.created_at)
    )
    return result.scalars().all()


@router.put("/approve/{user_id}", response_model=UserListBasic)
async def approve_user(
    user_id: UUID,
    admin: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")

    user.is_approved = True
    await db.commit()
    return user


@router.delete("/delete-user/{user_id}")
async def delete_user(
    user_id: UUID,
    admin: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Remove a teacher or student account.

    A teacher's modules lose their teacher and keep their content; quizzes
    they wrote stay with the module. A student's enrollments and quiz
    submissions go with the account. Lessons the user wrote are deleted,
    and their stored files are removed one by one, best effort.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")

    if user.role == UserRole.ADMIN:
        raise PreconditionFailedError("Cannot delete admin users")

    if user.role == UserRole.TEACHER:
        await db.execute(
            update(Module).where(Module.teacher_id == user.id).values(teacher_id=None)
        )
        await db.execute(
            update(Quiz).where(Quiz.created_by == user.id).values(created_by=None)
        )
    else:
        submission_ids = select(QuizSubmission.id).where(QuizSubmission.student_id == user.id)
        await db.execute(delete(QuizAnswer).where(QuizAnswer.submission_id.in_(submission_ids)))
        await db.execute(delete(QuizSubmission).where(QuizSubmission.student_id == user.id))
        await db.execute(delete(Enrollment).where(Enrollment.student_id == user.id))

    # --------------------------
    # Lessons written by the user
    # --------------------------
    result = await db.execute(
        select(Lesson)
        .options(*LESSON_TREE_OPTIONS)
        .where(Lesson.created_by == user.id)
    )
    lessons = result.scalars().all()
    file_paths = collect_file_paths(
        chapter for lesson in lessons for chapter in lesson.chapters
    )
    for lesson in lessons:
        await db.delete(lesson)
    await db.flush()

    await db.delete(user)
    await db.commit()

    deleted = delete_uploads_safely(file_paths)
    if deleted != len(file_paths):
        logger.warning(
            f"User {user_id} deleted but only {deleted} of {len(file_paths)} stored lesson files were removed"
        )
    logger.info(f"User {user.username} ({user.role.value}) deleted by {admin.username}")

    return {
        "message": "User deleted successfully",
        "user_id": str(user_id),
        "lessons_deleted": len(lessons),
        "files_deleted": deleted,
    }
