import logging
import os
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from modulehub.auth.dependencies import is_student
from modulehub.auth.module_access import ensure_student_enrolled
from modulehub.database import get_db
from modulehub.errors import NotFoundError
from modulehub.helpers.file_paths import get_upload_fs_path
from modulehub.helpers.module_serializer import LESSON_TREE_OPTIONS, serialize_lesson
from modulehub.models import Lesson, LessonChapter, Module, ModuleFile, User
from modulehub.schemas.lesson import LessonView

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/student/lesson",
    tags=["Student Lesson Endpoints"]
)


@router.get("/module-lessons/{module_id}", response_model=list[LessonView])
async def get_module_lessons_for_student(
    module_id: UUID,
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Module.id).where(Module.id == module_id))
    if result.first() is None:
        raise NotFoundError("Module not found")

    await ensure_student_enrolled(module_id, current_user.id, db)

    result = await db.execute(
        select(Lesson)
        .options(*LESSON_TREE_OPTIONS)
        .where(Lesson.module_id == module_id)
        .order_by(Lesson.created_at)
    )
    # temporary uploads are filtered out by the serializer
    return [serialize_lesson(lesson) for lesson in result.scalars().all()]


@router.get("/download/{lesson_id}/{file_id}")
async def download_lesson_file(
    lesson_id: UUID,
    file_id: UUID,
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    """
    Stream a saved attachment of one of the lesson's chapters.
    Temporary uploads are not downloadable.
    """
    result = await db.execute(select(Lesson).where(Lesson.id == lesson_id))
    lesson = result.scalar_one_or_none()
    if not lesson:
        raise NotFoundError("Lesson not found")

    await ensure_student_enrolled(lesson.module_id, current_user.id, db)

    result = await db.execute(
        select(ModuleFile)
        .join(LessonChapter, ModuleFile.lesson_chapter_id == LessonChapter.id)
        .where(
            LessonChapter.lesson_id == lesson.id,
            ModuleFile.id == file_id,
            ModuleFile.temporary.is_(False),
        )
    )
    record = result.scalar_one_or_none()
    if not record:
        raise NotFoundError("File not found")

    fs_path = get_upload_fs_path(record.path)
    if not os.path.exists(fs_path):
        logger.warning(f"Lesson file {record.id} points at missing bytes {fs_path}")
        raise NotFoundError("File is no longer available")

    return FileResponse(fs_path, filename=record.original_name or os.path.basename(fs_path))
