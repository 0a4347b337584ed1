from typing import List, Optional

from sqlalchemy.orm import selectinload

from modulehub.models import (
    Module, Chapter, Syllabus, Reference, ModuleFile, Lesson, LessonChapter,
)
from modulehub.schemas.module import (
    FileView, ChapterView, SyllabusView, ReferenceView, ModuleDetail, ModuleLite,
    FileUploadResponse,
)
from modulehub.schemas.lesson import LessonView, LessonChapterView


# Eager-load options for the whole module tree
MODULE_TREE_OPTIONS = (
    selectinload(Module.chapters).selectinload(Chapter.files),
    selectinload(Module.syllabus).selectinload(Syllabus.files),
    selectinload(Module.references).selectinload(Reference.files),
    selectinload(Module.lessons)
    .selectinload(Lesson.chapters)
    .selectinload(LessonChapter.files),
)

LESSON_TREE_OPTIONS = (
    selectinload(Lesson.chapters).selectinload(LessonChapter.files),
)


def visible_files(files: List[ModuleFile]) -> List[FileView]:
    """Temporary uploads are never part of a read."""
    return [FileView.model_validate(f) for f in files if not f.temporary]


def serialize_chapter(chapter: Chapter) -> ChapterView:
    return ChapterView(
        id=chapter.id,
        title=chapter.title,
        content=chapter.content or "",
        files=visible_files(chapter.files),
    )


def serialize_syllabus(syllabus: Syllabus) -> SyllabusView:
    return SyllabusView(
        id=syllabus.id,
        content=syllabus.content or "",
        files=visible_files(syllabus.files),
    )


def serialize_reference(reference: Reference) -> ReferenceView:
    return ReferenceView(
        id=reference.id,
        title=reference.title,
        description=reference.description or "",
        files=visible_files(reference.files),
    )


def serialize_module(module: Module) -> ModuleDetail:
    lite = ModuleLite.model_validate(module)
    return ModuleDetail(
        **lite.model_dump(),
        chapters=[serialize_chapter(c) for c in module.chapters],
        syllabus=serialize_syllabus(module.syllabus) if module.syllabus else None,
        references=[serialize_reference(r) for r in module.references],
    )


def serialize_lesson(lesson: Lesson) -> LessonView:
    return LessonView(
        id=lesson.id,
        module_id=lesson.module_id,
        title=lesson.title,
        description=lesson.description or "",
        created_by=lesson.created_by,
        created_at=lesson.created_at,
        chapters=[
            LessonChapterView(
                id=chapter.id,
                title=chapter.title,
                content=chapter.content or "",
                files=visible_files(chapter.files),
            )
            for chapter in lesson.chapters
        ],
    )


def serialize_upload(record: Optional[ModuleFile], container_label: str, **ids) -> FileUploadResponse:
    """The one read that shows a temporary file: the upload's own response."""
    if record is None:
        return FileUploadResponse(message="No file attached", file=None, **ids)
    return FileUploadResponse(
        message=f"File uploaded to {container_label} successfully",
        file=FileView.model_validate(record),
        **ids,
    )
