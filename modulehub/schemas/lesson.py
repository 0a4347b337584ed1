from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from modulehub.schemas.module import FileIn, FileView


class LessonChapterCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    content: Optional[str] = ""


class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field("", max_length=500)
    # empty or missing gets a single "Chapter 1"
    chapters: Optional[List[LessonChapterCreate]] = None


class LessonChapterIn(BaseModel):
    id: Optional[UUID] = None
    title: str = Field(..., min_length=1, max_length=100)
    content: Optional[str] = ""
    # None means "leave this chapter's attachments alone"
    files: Optional[List[FileIn]] = None


class LessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    chapters: Optional[List[LessonChapterIn]] = None


class LessonChapterView(BaseModel):
    id: UUID
    title: str
    content: Optional[str] = ""
    files: List[FileView] = []


class LessonView(BaseModel):
    id: UUID
    module_id: UUID
    title: str
    description: Optional[str] = ""
    created_by: UUID
    created_at: datetime
    chapters: List[LessonChapterView] = []
