import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from uuid import UUID

from modulehub.auth.dependencies import is_admin
from modulehub.database import get_db
from modulehub.errors import NotFoundError
from modulehub.helpers.file_paths import delete_uploads_safely
from modulehub.helpers.module_files import collect_file_paths, iter_containers
from modulehub.helpers.module_serializer import MODULE_TREE_OPTIONS
from modulehub.models import (
    User, UserRole, Module, Enrollment,
    Quiz, QuizQuestion, QuizOption, QuizSubmission, QuizAnswer,
)
from modulehub.schemas.module import ModuleCreate, ModuleLite, ModuleUpdate

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/module",
    tags=["Admin Module Endpoints"]
)


@router.post("/create-module", response_model=ModuleLite, status_code=201)
async def create_module(
    module_in: ModuleCreate,
    admin: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db),
):
    module = Module(
        title=module_in.title,
        description=module_in.description,
        academic_year=module_in.academic_year,
        level=module_in.level,
        semester=module_in.semester,
        created_by=admin.id,
    )
    db.add(module)
    await db.commit()
    return module


@router.get("/list-modules", response_model=list[ModuleLite])
async def list_modules(
    admin: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Module).order_by(Module.created_at.desc()))
    return result.scalars().all()


@router.put("/assign-teacher/{module_id}/{teacher_id}", response_model=ModuleLite)
async def assign_teacher(
    module_id: UUID,
    teacher_id: UUID,
    admin: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Module).where(Module.id == module_id))
    module = result.scalar_one_or_none()
    if not module:
        raise NotFoundError("Module not found")

    result = await db.execute(
        select(User).where(
            User.id == teacher_id,
            User.role == UserRole.TEACHER,
            User.is_approved.is_(True),
        )
    )
    teacher = result.scalar_one_or_none()
    if not teacher:
        raise NotFoundError("Teacher not found or not approved")

    module.teacher_id = teacher.id
    await db.commit()
    return module


@router.put("/update-module/{module_id}", response_model=ModuleLite)
async def update_module(
    module_id: UUID,
    payload: ModuleUpdate,
    admin: User = Depends(is_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Module).where(Module.id == module_id))
    module = result.scalar_one_or_none()
    if not module:
        raise NotFoundError("Module not found")

    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(module, field, value)

    await db.commit()
    logger.info(f"Module {module.id} updated by {admin.username}")
    return module


@router.delete("/delete-module/{module_id}")
async def delete_module(
    module_id: UUID,
    admin: User = Depends(is_admin),
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

    file_paths = collect_file_paths(iter_containers(module))

    # --------------------------
    # Quizzes and everything hanging off them
    # --------------------------
    quiz_ids = select(Quiz.id).where(Quiz.module_id == module.id)
    submission_ids = select(QuizSubmission.id).where(QuizSubmission.quiz_id.in_(quiz_ids))
    question_ids = select(QuizQuestion.id).where(QuizQuestion.quiz_id.in_(quiz_ids))

    await db.execute(delete(QuizAnswer).where(QuizAnswer.submission_id.in_(submission_ids)))
    await db.execute(delete(QuizSubmission).where(QuizSubmission.quiz_id.in_(quiz_ids)))
    await db.execute(delete(QuizOption).where(QuizOption.question_id.in_(question_ids)))
    await db.execute(delete(QuizQuestion).where(QuizQuestion.quiz_id.in_(quiz_ids)))
    await db.execute(delete(Quiz).where(Quiz.module_id == module.id))

    await db.execute(delete(Enrollment).where(Enrollment.module_id == module.id))

    # chapters, syllabus, references, lessons and their files go with the module
    await db.delete(module)
    await db.commit()

    # --------------------------
    # Physical files, best effort
    # --------------------------
    deleted = delete_uploads_safely(file_paths)
    if deleted != len(file_paths):
        logger.warning(
            f"Module {module_id} deleted but only {deleted} of {len(file_paths)} stored files were removed"
        )

    return {
        "message": "Module deleted successfully",
        "module_id": str(module_id),
        "files_deleted": deleted,
    }
