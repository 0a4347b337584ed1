import logging
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from modulehub.auth.dependencies import is_student
from modulehub.auth.module_access import ensure_student_enrolled, is_student_enrolled
from modulehub.database import get_db
from modulehub.errors import NotFoundError, PreconditionFailedError
from modulehub.helpers.module_serializer import MODULE_TREE_OPTIONS, serialize_module
from modulehub.models import Enrollment, Module, User
from modulehub.schemas.module import ModuleLite, ModuleDetail

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/student/module",
    tags=["Student Module Endpoints"]
)


@router.post("/enroll/{module_id}", status_code=201)
async def enroll_in_module(
    module_id: UUID,
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Module).where(Module.id == module_id))
    module = result.scalar_one_or_none()

    if not module:
        raise NotFoundError("Module not found")

    if module.teacher_id is None:
        raise PreconditionFailedError("This module has no teacher assigned yet")

    if current_user.level and module.level != current_user.level:
        raise PreconditionFailedError("This module is not available for your level")

    if await is_student_enrolled(module.id, current_user.id, db):
        raise PreconditionFailedError("You are already enrolled in this module")

    db.add(Enrollment(student_id=current_user.id, module_id=module.id))
    await db.commit()

    logger.info(f"Student {current_user.username} enrolled in module {module.id}")
    return {"message": "Enrolled successfully", "module_id": str(module.id)}


@router.get("/available-modules", response_model=list[ModuleLite])
async def get_available_modules(
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    """
    Modules the student could enroll in: a teacher is assigned, the level
    matches the student's, and the student is not enrolled yet.
    """
    enrolled = select(Enrollment.module_id).where(Enrollment.student_id == current_user.id)

    query = select(Module).where(
        Module.teacher_id.is_not(None),
        Module.id.not_in(enrolled),
    )
    if current_user.level:
        query = query.where(Module.level == current_user.level)

    result = await db.execute(query.order_by(Module.created_at.desc()))
    return result.scalars().all()


@router.get("/my-modules", response_model=list[ModuleLite])
async def get_enrolled_modules(
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Module)
        .join(Enrollment, Enrollment.module_id == Module.id)
        .where(Enrollment.student_id == current_user.id)
        .order_by(Enrollment.enrolled_at.desc())
    )
    return result.scalars().all()


@router.get("/module-details/{module_id}", response_model=ModuleDetail)
async def get_module_details_for_student(
    module_id: UUID,
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Module)
        .options(*MODULE_TREE_OPTIONS)
        .where(Module.id == module_id)
    )
    module = result.scalar_one_or_none()

    if not module:
        raise NotFoundError("Module not found")

    await ensure_student_enrolled(module.id, current_user.id, db)

    # temporary uploads are filtered out by the serializer
    return serialize_module(module)
