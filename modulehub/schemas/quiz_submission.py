from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime

#for students
class QuizAnswerSubmit(BaseModel):
    question_id: UUID
    selected_options: List[UUID] = []
    text_answer: Optional[str] = None


class QuizSubmitRequest(BaseModel):
    answers: List[QuizAnswerSubmit]


class QuizAnswerView(BaseModel):
    question_id: UUID
    selected_options: List[UUID]
    text_answer: Optional[str] = None


class QuizSubmissionView(BaseModel):
    id: UUID
    quiz_id: UUID
    student_id: UUID
    answers: List[QuizAnswerView]
    score: float
    max_score: int
    is_graded: bool
    teacher_feedback: Optional[str] = None
    submitted_at: datetime
    graded_at: Optional[datetime] = None


class QuizSubmitResponse(BaseModel):
    message: str
    is_retake: bool
    submission: QuizSubmissionView


class StudentSubmissionDetail(QuizSubmissionView):
    quiz_title: str


#for teachers
class QuizSubmissionListItem(BaseModel):
    submission_id: UUID
    quiz_id: UUID
    student_id: UUID
    student_name: Optional[str]
    student_username: Optional[str]
    score: float
    max_score: int
    is_graded: bool
    submitted_at: datetime
    graded_at: Optional[datetime] = None


class GradeSubmissionRequest(BaseModel):
    # range is checked against the submission, not here
    score: float = Field(..., allow_inf_nan=False)
    teacher_feedback: Optional[str] = None


class TeacherSubmissionDetail(QuizSubmissionView):
    quiz_title: str
    student_name: Optional[str]
    student_username: Optional[str]
