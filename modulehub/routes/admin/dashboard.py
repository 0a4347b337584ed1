from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from modulehub.auth.dependencies import is_admin
from modulehub.database import get_db
from modulehub.models import User, UserRole, Module, Lesson, Enrollment, Quiz, QuizSubmission
from modulehub.schemas.user import DashboardStats

router = APIRouter(
    prefix="/admin",
    tags=["Admin Dashboard Endpoints"]
)


async def _count(db: AsyncSession, model, *conditions) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*conditions))
    return result.scalar_one()


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard_stats(
    admin: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db),
):
    return DashboardStats(
        total_users=await _count(db, User),
        total_teachers=await _count(db, User, User.role == UserRole.TEACHER),
        total_students=await _count(db, User, User.role == UserRole.STUDENT),
        pending_approvals=await _count(
            db,
            User,
            User.is_approved.is_(False),
            User.role.in_([UserRole.TEACHER, UserRole.STUDENT]),
        ),
        total_modules=await _count(db, Module),
        total_lessons=await _count(db, Lesson),
        total_enrollments=await _count(db, Enrollment),
        total_quizzes=await _count(db, Quiz),
        total_submissions=await _count(db, QuizSubmission),
    )
