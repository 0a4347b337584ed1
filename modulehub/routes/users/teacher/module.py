import logging
from fastapi import APIRouter, Depends, Form, UploadFile, File
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from modulehub.auth.dependencies import is_teacher
from modulehub.auth.module_access import get_teacher_module
from modulehub.database import get_db
from modulehub.errors import NotFoundError
from modulehub.helpers.file_paths import delete_uploads_safely
from modulehub.helpers.module_files import (
    apply_container_files,
    attach_upload,
    discard_temporary_files,
    ensure_syllabus,
)
from modulehub.helpers.module_serializer import (
    MODULE_TREE_OPTIONS,
    serialize_module,
    serialize_syllabus,
    serialize_reference,
    serialize_upload,
)
from modulehub.models import User, Module, Chapter, Reference
from modulehub.schemas.module import (
    ModuleLite, ModuleDetail, SyllabusView, ReferenceView,
    ChaptersUpdate, SyllabusUpdate, ReferenceCreate, ReferenceUpdate,
    FileUploadResponse, DiscardTempFilesResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/teacher/module",
    tags=["Teacher Module Endpoints"]
)


async def _load_module_tree(module_id: UUID, teacher: User, db: AsyncSession) -> Module:
    return await get_teacher_module(module_id, teacher, db, options=MODULE_TREE_OPTIONS)


def _find_reference(module: Module, reference_id: UUID) -> Reference:
    for reference in module.references:
        if reference.id == reference_id:
            return reference
    raise NotFoundError("Reference not found")


def _find_chapter(module: Module, chapter_id: UUID) -> Chapter:
    for chapter in module.chapters:
        if chapter.id == chapter_id:
            return chapter
    raise NotFoundError("Chapter not found")


# --------------------------
# Reads
# --------------------------
@router.get("/my-modules", response_model=list[ModuleLite])
async def get_assigned_modules(
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Module)
        .where(Module.teacher_id == current_user.id)
        .order_by(Module.created_at.desc())
    )
    return result.scalars().all()


@router.get("/module-details/{module_id}", response_model=ModuleDetail)
async def get_module_details(
    module_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await _load_module_tree(module_id, current_user, db)
    return serialize_module(module)


# --------------------------
# Chapters
# --------------------------
@router.put("/update-chapters/{module_id}", response_model=ModuleDetail)
async def update_module_chapters(
    module_id: UUID,
    payload: ChaptersUpdate,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace the module's chapter list. Chapters sent with a known id keep
    their identity; chapters missing from the list are removed.
    """
    module = await _load_module_tree(module_id, current_user, db)
    existing = {chapter.id: chapter for chapter in module.chapters}

    updated = []
    for position, chapter_in in enumerate(payload.chapters):
        chapter = existing.get(chapter_in.id) if chapter_in.id else None
        if chapter is None or chapter in updated:
            chapter = Chapter(module_id=module.id, files=[])

        chapter.position = position
        chapter.title = chapter_in.title
        chapter.content = chapter_in.content or ""
        apply_container_files(chapter, chapter_in.files)
        updated.append(chapter)

    module.chapters = updated
    await db.commit()

    module = await _load_module_tree(module_id, current_user, db)
    return serialize_module(module)


@router.delete("/delete-chapter/{module_id}/{chapter_id}")
async def delete_chapter(
    module_id: UUID,
    chapter_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await _load_module_tree(module_id, current_user, db)
    chapter = _find_chapter(module, chapter_id)
    file_paths = [f.path for f in chapter.files]

    module.chapters.remove(chapter)
    for position, remaining in enumerate(module.chapters):
        remaining.position = position
    await db.commit()

    delete_uploads_safely(file_paths)
    return {"message": "Chapter deleted successfully", "chapter_id": str(chapter_id)}


@router.post("/upload-chapter-file/{module_id}", response_model=FileUploadResponse)
async def upload_chapter_file(
    module_id: UUID,
    chapter_id: Optional[UUID] = Form(None),
    file_type: Optional[str] = Form("pdf"),
    custom_name: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    """
    Attach a temporary file to a chapter. Without chapter_id a new chapter
    is appended to hold it, mirroring an unsaved chapter in the editor.
    """
    module = await _load_module_tree(module_id, current_user, db)

    if file is None or not file.filename:
        return serialize_upload(None, "chapter", chapter_id=chapter_id)

    if chapter_id:
        chapter = _find_chapter(module, chapter_id)
    else:
        chapter = Chapter(
            module_id=module.id,
            position=len(module.chapters),
            title=f"Chapter {len(module.chapters) + 1}",
            content="",
            files=[],
        )
        module.chapters.append(chapter)

    record = await attach_upload(module.id, chapter, file, file_type, custom_name)
    await db.commit()

    return serialize_upload(record, "chapter", chapter_id=chapter.id)


# --------------------------
# Syllabus
# --------------------------
@router.put("/update-syllabus/{module_id}", response_model=SyllabusView)
async def update_syllabus(
    module_id: UUID,
    payload: SyllabusUpdate,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await _load_module_tree(module_id, current_user, db)
    syllabus = ensure_syllabus(module)

    if payload.content is not None:
        syllabus.content = payload.content
    apply_container_files(syllabus, payload.files)

    await db.commit()

    module = await _load_module_tree(module_id, current_user, db)
    return serialize_syllabus(module.syllabus)


@router.post("/upload-syllabus-file/{module_id}", response_model=FileUploadResponse)
async def upload_syllabus_file(
    module_id: UUID,
    file_type: Optional[str] = Form("pdf"),
    custom_name: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await _load_module_tree(module_id, current_user, db)

    if file is None or not file.filename:
        return serialize_upload(None, "syllabus")

    syllabus = ensure_syllabus(module)
    record = await attach_upload(module.id, syllabus, file, file_type, custom_name)
    await db.commit()

    return serialize_upload(record, "syllabus")


# --------------------------
# References
# --------------------------
@router.post("/add-reference/{module_id}", response_model=ReferenceView, status_code=201)
async def add_reference(
    module_id: UUID,
    payload: ReferenceCreate,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await _load_module_tree(module_id, current_user, db)

    reference = Reference(
        module_id=module.id,
        position=len(module.references),
        title=payload.title,
        description=payload.description or "",
        files=[],
    )
    module.references.append(reference)
    await db.commit()

    return serialize_reference(reference)


@router.put("/update-reference/{module_id}/{reference_id}", response_model=ReferenceView)
async def update_reference(
    module_id: UUID,
    reference_id: UUID,
    payload: ReferenceUpdate,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await _load_module_tree(module_id, current_user, db)
    reference = _find_reference(module, reference_id)

    if payload.title is not None:
        reference.title = payload.title
    if payload.description is not None:
        reference.description = payload.description
    apply_container_files(reference, payload.files)

    await db.commit()

    module = await _load_module_tree(module_id, current_user, db)
    return serialize_reference(_find_reference(module, reference_id))


@router.delete("/delete-reference/{module_id}/{reference_id}")
async def delete_reference(
    module_id: UUID,
    reference_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await _load_module_tree(module_id, current_user, db)
    reference = _find_reference(module, reference_id)
    file_paths = [f.path for f in reference.files]

    module.references.remove(reference)
    for position, remaining in enumerate(module.references):
        remaining.position = position
    await db.commit()

    delete_uploads_safely(file_paths)
    return {"message": "Reference deleted successfully", "reference_id": str(reference_id)}


@router.post("/upload-reference-file/{module_id}/{reference_id}", response_model=FileUploadResponse)
async def upload_reference_file(
    module_id: UUID,
    reference_id: UUID,
    file_type: Optional[str] = Form("pdf"),
    custom_name: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await _load_module_tree(module_id, current_user, db)
    reference = _find_reference(module, reference_id)

    record = await attach_upload(module.id, reference, file, file_type, custom_name)
    if record is not None:
        await db.commit()

    return serialize_upload(record, "reference", reference_id=reference.id)


# --------------------------
# Temporary files
# --------------------------
@router.post("/discard-temp-files/{module_id}", response_model=DiscardTempFilesResponse)
async def discard_temp_files(
    module_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await _load_module_tree(module_id, current_user, db)

    files_removed = discard_temporary_files(module)
    await db.commit()
    logger.info(f"Discarded {files_removed} temporary file(s) of module {module.id}")

    return DiscardTempFilesResponse(
        message=f"Successfully discarded {files_removed} temporary files",
        files_removed=files_removed,
    )
