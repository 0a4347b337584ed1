from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime
from uuid import UUID

from modulehub.models import FileType
from modulehub.helpers.datetime_utils import to_naive_utc


# --------------------------
# Attachments
# --------------------------
class FileView(BaseModel):
    id: UUID
    path: str
    file_type: str
    original_name: Optional[str] = ""
    size: int = 0
    uploaded_at: datetime
    temporary: bool

    model_config = {"from_attributes": True}


class FileIn(BaseModel):
    """An attachment as echoed back by the client when saving a container."""
    id: Optional[UUID] = None
    path: str
    file_type: FileType = FileType.PDF
    original_name: Optional[str] = ""
    size: Optional[int] = 0
    uploaded_at: Optional[datetime] = None

    @field_validator("uploaded_at")
    @classmethod
    def normalize_uploaded_at(cls, value):
        return to_naive_utc(value)


class FileUploadResponse(BaseModel):
    message: str
    file: Optional[FileView] = None
    chapter_id: Optional[UUID] = None
    reference_id: Optional[UUID] = None
    lesson_id: Optional[UUID] = None


class DiscardTempFilesResponse(BaseModel):
    message: str
    files_removed: int


# --------------------------
# Containers
# --------------------------
class ChapterView(BaseModel):
    id: UUID
    title: str
    content: Optional[str] = ""
    files: List[FileView] = []


class SyllabusView(BaseModel):
    id: UUID
    content: Optional[str] = ""
    files: List[FileView] = []


class ReferenceView(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = ""
    files: List[FileView] = []


class ChapterIn(BaseModel):
    id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=100)
    content: Optional[str] = ""
    # None means "leave this chapter's attachments alone"
    files: Optional[List[FileIn]] = None


class ChaptersUpdate(BaseModel):
    chapters: List[ChapterIn]


class SyllabusUpdate(BaseModel):
    content: Optional[str] = None
    files: Optional[List[FileIn]] = None


class ReferenceCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = ""


class ReferenceUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    files: Optional[List[FileIn]] = None


# --------------------------
# Modules
# --------------------------
class ModuleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., max_length=500)
    academic_year: str
    level: Literal["lmd1", "lmd2", "lmd3", "ing1", "ing2"]
    semester: Literal[1, 2]


class ModuleLite(BaseModel):
    id: UUID
    title: str
    description: str
    academic_year: str
    level: str
    semester: int
    teacher_id: Optional[UUID] = None
    created_by: UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class ModuleDetail(ModuleLite):
    chapters: List[ChapterView] = []
    syllabus: Optional[SyllabusView] = None
    references: List[ReferenceView] = []


class ModuleUpdate(BaseModel):
    """Partial update: only the fields present in the payload are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    academic_year: Optional[str] = None
    level: Optional[Literal["lmd1", "lmd2", "lmd3", "ing1", "ing2"]] = None
    semester: Optional[Literal[1, 2]] = None
