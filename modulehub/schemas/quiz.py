from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from uuid import UUID

from modulehub.models import QuestionType
from modulehub.helpers.datetime_utils import to_naive_utc


class QuizOptionCreate(BaseModel):
    id: Optional[UUID] = None
    option_text: str
    is_correct: bool = False


class QuizQuestionCreate(BaseModel):
    id: Optional[UUID] = None
    question_text: str = Field(..., min_length=1)
    question_type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: List[QuizOptionCreate] = []


class QuizCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., max_length=500)
    due_date: Optional[datetime] = None
    questions: List[QuizQuestionCreate] = []

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value):
        return to_naive_utc(value)


class QuizUpdate(BaseModel):
    """Partial update: only the fields present in the payload are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    due_date: Optional[datetime] = None
    questions: Optional[List[QuizQuestionCreate]] = None
    is_published: Optional[bool] = None

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value):
        return to_naive_utc(value)


# Listing Quiz and its questions to the users

class QuizOptionView(BaseModel):
    id: UUID
    option_text: str
    is_correct: Optional[bool] = None


class QuizQuestionView(BaseModel):
    id: UUID
    question_text: str
    question_type: str
    options: List[QuizOptionView]


class QuizDetailView(BaseModel):
    id: UUID
    module_id: UUID
    title: str
    description: str
    is_published: bool
    due_date: Optional[datetime]
    created_at: datetime
    questions: List[QuizQuestionView]


class QuizLite(BaseModel):
    id: UUID
    module_id: UUID
    title: str
    description: str
    is_published: bool
    due_date: Optional[datetime]
    no_of_questions: int


class StudentQuizItem(QuizLite):
    is_submitted: bool = False
    is_graded: bool = False
    score: Optional[float] = None
    submission_id: Optional[UUID] = None


class StudentQuizList(BaseModel):
    count: int
    data: List[StudentQuizItem]
    message: Optional[str] = None
