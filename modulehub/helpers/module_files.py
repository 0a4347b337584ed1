"""
Attachment lifecycle for chapters, the syllabus, references and lesson chapters.

An uploaded file starts temporary. Saving its container with the file in
the payload promotes it; leaving the `files` field out of the payload does
not touch the container's attachments at all. Temporary files never show
up in reads and are eventually discarded by the teacher or by the sweep.
"""
import logging
import os
import random
import re
import time
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

import aiofiles
from fastapi import UploadFile

from modulehub.config import UPLOADS_DIR, MAX_FILE_SIZE
from modulehub.errors import ValidationFailedError
from modulehub.helpers.datetime_utils import utcnow
from modulehub.helpers.file_paths import get_upload_url
from modulehub.models import (
    Module, ModuleFile, FileType, Syllabus, Chapter, Reference, LessonChapter,
)
from modulehub.schemas.module import FileIn

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
MAX_BASE_NAME_LENGTH = 30
CONTAINER_LABELS = {
    Chapter: "chapter",
    Syllabus: "syllabus",
    Reference: "reference",
    LessonChapter: "lesson chapter",
}


def build_stored_filename(original_name: str) -> str:
    """
    <sanitised base, truncated>-<epoch millis>-<random><ext>
    """
    safe_name = re.sub(r"[^a-zA-Z0-9.]", "_", original_name or "file")
    base, ext = os.path.splitext(safe_name)
    unique_suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return f"{base[:MAX_BASE_NAME_LENGTH]}-{unique_suffix}{ext}"


def build_display_name(original_name: str, custom_name: Optional[str]) -> str:
    if not custom_name:
        return original_name
    ext = os.path.splitext(original_name)[1]
    return f"{custom_name}{ext}"


def parse_file_type(file_type: Optional[str]) -> str:
    try:
        return FileType(file_type or FileType.PDF.value).value
    except ValueError:
        allowed = ", ".join(t.value for t in FileType)
        raise ValidationFailedError(f"File type must be one of: {allowed}")


async def store_upload(file: UploadFile) -> Tuple[str, int]:
    """
    Write the upload to durable storage, fully, before returning.
    Returns the public path and the byte size.
    """
    os.makedirs(UPLOADS_DIR, exist_ok=True)

    filename = build_stored_filename(file.filename)
    fs_path = os.path.join(UPLOADS_DIR, filename)

    size = 0
    async with aiofiles.open(fs_path, "wb") as f:
        while True:
            chunk = await file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > MAX_FILE_SIZE:
                break
            await f.write(chunk)

    if size > MAX_FILE_SIZE:
        os.remove(fs_path)
        raise ValidationFailedError(
            f"File is too large. Maximum size is {MAX_FILE_SIZE} bytes"
        )

    return get_upload_url(filename), size


def new_temporary_file(
    module_id: UUID,
    path: str,
    file_type: str,
    original_name: str,
    size: int,
) -> ModuleFile:
    return ModuleFile(
        module_id=module_id,
        path=path,
        file_type=file_type,
        original_name=original_name,
        size=size,
        uploaded_at=utcnow(),
        temporary=True,
    )


async def attach_upload(
    module_id: UUID,
    container,
    file: Optional[UploadFile],
    file_type: Optional[str],
    custom_name: Optional[str],
) -> Optional[ModuleFile]:
    """
    Store an optional upload and hang it on the container as temporary.
    Returns the new record, or None when no file came with the request.
    """
    if file is None or not file.filename:
        return None

    file_type = parse_file_type(file_type)
    path, size = await store_upload(file)

    record = new_temporary_file(
        module_id,
        path=path,
        file_type=file_type,
        original_name=build_display_name(file.filename, custom_name),
        size=size,
    )
    container.files.append(record)
    logger.info(f"Stored temporary file {path} ({size} bytes) for module {module_id}")
    return record


def apply_container_files(container, files_in: Optional[List[FileIn]]):
    """
    Replace a container's attachments with the saved list and promote each
    of them. Entries are matched against the container's own records, by
    id, then by path. An entry that matches nothing is rejected: a saved
    file must have been uploaded to this container first. Size and upload
    time stay as recorded at upload. `files_in is None` leaves the
    container untouched.
    """
    if files_in is None:
        return

    by_id = {f.id: f for f in container.files}
    by_path = {f.path: f for f in container.files}

    kept: List[ModuleFile] = []
    for item in files_in:
        record = by_id.get(item.id) if item.id else None
        if record is None:
            record = by_path.get(item.path)
        if record is None:
            raise ValidationFailedError(
                f"File {item.path} was not uploaded to this {container_label(container)}"
            )
        if record in kept:
            continue

        record.file_type = item.file_type.value
        if item.original_name:
            record.original_name = item.original_name
        record.temporary = False
        kept.append(record)

    container.files = kept


def container_label(container) -> str:
    return CONTAINER_LABELS.get(type(container), "container")


def iter_containers(module: Module) -> Iterable:
    for chapter in module.chapters:
        yield chapter
    if module.syllabus is not None:
        yield module.syllabus
    for reference in module.references:
        yield reference
    for lesson in module.lessons:
        for chapter in lesson.chapters:
            yield chapter


def discard_temporary_files(module: Module) -> int:
    """Drop every temporary attachment of the module; returns how many."""
    removed = 0
    for container in iter_containers(module):
        kept = [f for f in container.files if not f.temporary]
        removed += len(container.files) - len(kept)
        if len(kept) != len(container.files):
            container.files = kept
    return removed


def ensure_syllabus(module: Module) -> Syllabus:
    if module.syllabus is None:
        module.syllabus = Syllabus(module_id=module.id, content="", files=[])
    return module.syllabus


def collect_file_paths(containers: Iterable) -> List[str]:
    return [f.path for container in containers for f in container.files]
