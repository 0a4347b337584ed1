import logging
from fastapi import APIRouter, Depends, Form, UploadFile, File
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from modulehub.auth.dependencies import is_teacher
from modulehub.auth.module_access import get_owned_lesson, get_teacher_module
from modulehub.database import get_db
from modulehub.errors import NotFoundError
from modulehub.helpers.file_paths import delete_uploads_safely
from modulehub.helpers.module_files import apply_container_files, attach_upload, collect_file_paths
from modulehub.helpers.module_serializer import LESSON_TREE_OPTIONS, serialize_lesson, serialize_upload
from modulehub.models import User, Lesson, LessonChapter
from modulehub.schemas.lesson import LessonCreate, LessonUpdate, LessonView
from modulehub.schemas.module import FileUploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/teacher/lesson",
    tags=["Teacher Lesson Endpoints"]
)


async def _load_lesson(lesson_id: UUID, teacher: User, db: AsyncSession) -> Lesson:
    return await get_owned_lesson(lesson_id, teacher, db, options=LESSON_TREE_OPTIONS)


def _find_lesson_chapter(lesson: Lesson, chapter_id: UUID) -> LessonChapter:
    for chapter in lesson.chapters:
        if chapter.id == chapter_id:
            return chapter
    raise NotFoundError("Lesson chapter not found")


@router.post("/add-lesson/{module_id}", response_model=LessonView, status_code=201)
async def add_lesson(
    module_id: UUID,
    payload: LessonCreate,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await get_teacher_module(module_id, current_user, db)

    chapters_in = payload.chapters or []
    if chapters_in:
        chapters = [
            LessonChapter(position=i, title=c.title, content=c.content or "", files=[])
            for i, c in enumerate(chapters_in)
        ]
    else:
        chapters = [LessonChapter(position=0, title="Chapter 1", content="", files=[])]

    lesson = Lesson(
        module_id=module.id,
        created_by=current_user.id,
        title=payload.title,
        description=payload.description or "",
        chapters=chapters,
    )
    db.add(lesson)
    await db.commit()

    logger.info(f"Lesson {lesson.id} added to module {module.id} by {current_user.username}")
    return serialize_lesson(lesson)


@router.get("/module-lessons/{module_id}", response_model=list[LessonView])
async def get_module_lessons(
    module_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await get_teacher_module(module_id, current_user, db)

    result = await db.execute(
        select(Lesson)
        .options(*LESSON_TREE_OPTIONS)
        .where(Lesson.module_id == module.id)
        .order_by(Lesson.created_at)
    )
    return [serialize_lesson(lesson) for lesson in result.scalars().all()]


@router.get("/lesson-details/{lesson_id}", response_model=LessonView)
async def get_lesson_details(
    lesson_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    lesson = await _load_lesson(lesson_id, current_user, db)
    return serialize_lesson(lesson)


@router.put("/update-lesson/{lesson_id}", response_model=LessonView)
async def update_lesson(
    lesson_id: UUID,
    payload: LessonUpdate,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    """
    Partial update. A supplied chapter list replaces the lesson's chapters;
    chapters sent with a known id keep their identity and attachments.
    """
    lesson = await _load_lesson(lesson_id, current_user, db)

    if payload.title is not None:
        lesson.title = payload.title
    if payload.description is not None:
        lesson.description = payload.description

    if payload.chapters is not None:
        existing = {chapter.id: chapter for chapter in lesson.chapters}

        updated = []
        for position, chapter_in in enumerate(payload.chapters):
            chapter = existing.get(chapter_in.id) if chapter_in.id else None
            if chapter is None or chapter in updated:
                chapter = LessonChapter(lesson_id=lesson.id, files=[])

            chapter.position = position
            chapter.title = chapter_in.title
            chapter.content = chapter_in.content or ""
            apply_container_files(chapter, chapter_in.files)
            updated.append(chapter)

        lesson.chapters = updated

    await db.commit()

    lesson = await _load_lesson(lesson_id, current_user, db)
    return serialize_lesson(lesson)


@router.delete("/delete-lesson/{lesson_id}")
async def delete_lesson(
    lesson_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    lesson = await _load_lesson(lesson_id, current_user, db)
    file_paths = collect_file_paths(lesson.chapters)

    await db.delete(lesson)
    await db.commit()

    deleted = delete_uploads_safely(file_paths)
    if deleted != len(file_paths):
        logger.warning(
            f"Lesson {lesson_id} deleted but only {deleted} of {len(file_paths)} stored files were removed"
        )

    return {
        "message": "Lesson deleted successfully",
        "lesson_id": str(lesson_id),
        "files_deleted": deleted,
    }


@router.post("/upload-lesson-chapter-file/{lesson_id}", response_model=FileUploadResponse)
async def upload_lesson_chapter_file(
    lesson_id: UUID,
    chapter_id: Optional[UUID] = Form(None),
    file_type: Optional[str] = Form("pdf"),
    custom_name: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    """
    Attach a temporary file to a lesson chapter. Without chapter_id a new
    chapter is appended to hold it.
    """
    lesson = await _load_lesson(lesson_id, current_user, db)

    if file is None or not file.filename:
        return serialize_upload(None, "lesson chapter", lesson_id=lesson.id, chapter_id=chapter_id)

    if chapter_id:
        chapter = _find_lesson_chapter(lesson, chapter_id)
    else:
        chapter = LessonChapter(
            lesson_id=lesson.id,
            position=len(lesson.chapters),
            title=f"Chapter {len(lesson.chapters) + 1}",
            content="",
            files=[],
        )
        lesson.chapters.append(chapter)

    record = await attach_upload(lesson.module_id, chapter, file, file_type, custom_name)
    await db.commit()

    return serialize_upload(record, "lesson chapter", lesson_id=lesson.id, chapter_id=chapter.id)
