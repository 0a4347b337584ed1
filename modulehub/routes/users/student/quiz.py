from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from uuid import UUID

from modulehub.auth.dependencies import is_student
from modulehub.auth.module_access import ensure_student_enrolled
from modulehub.database import get_db
from modulehub.errors import NotFoundError, PreconditionFailedError
from modulehub.helpers.quiz_serializer import (
    QUIZ_TREE_OPTIONS,
    serialize_quiz_detail,
    serialize_quiz_lite,
)
from modulehub.models import Quiz, QuizSubmission, User
from modulehub.schemas.quiz import QuizDetailView, StudentQuizItem, StudentQuizList

router = APIRouter(
    prefix="/student/quiz",
    tags=["Student Quiz Endpoints"]
)


@router.get("/module-quizzes/{module_id}", response_model=StudentQuizList)
async def list_module_quizzes_for_student(
    module_id: UUID,
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    # --------------------------
    # Enrollment check
    # --------------------------
    await ensure_student_enrolled(module_id, current_user.id, db)

    # --------------------------
    # Fetch quizzes, published only are listed
    # --------------------------
    result = await db.execute(
        select(Quiz)
        .options(selectinload(Quiz.questions))
        .where(Quiz.module_id == module_id)
        .order_by(Quiz.created_at.desc())
    )
    all_quizzes = result.scalars().all()
    quizzes = [q for q in all_quizzes if q.is_published]

    if all_quizzes and not quizzes:
        return StudentQuizList(
            count=0,
            data=[],
            message="There are quizzes for this module, but they have not been published yet.",
        )

    # --------------------------
    # Attach the student's submission status
    # --------------------------
    latest = {}
    if quizzes:
        result = await db.execute(
            select(QuizSubmission)
            .where(
                QuizSubmission.student_id == current_user.id,
                QuizSubmission.quiz_id.in_([q.id for q in quizzes]),
            )
            .order_by(QuizSubmission.submitted_at.desc())
        )
        for submission in result.scalars().all():
            latest.setdefault(submission.quiz_id, submission)

    data = []
    for quiz in quizzes:
        submission = latest.get(quiz.id)
        data.append(
            StudentQuizItem(
                **serialize_quiz_lite(quiz).model_dump(),
                is_submitted=submission is not None,
                is_graded=bool(submission.is_graded) if submission else False,
                score=submission.score if submission else None,
                submission_id=submission.id if submission else None,
            )
        )

    return StudentQuizList(count=len(data), data=data)


@router.get("/attend-quiz/{quiz_id}", response_model=QuizDetailView)
async def attend_quiz(
    quiz_id: UUID,
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Quiz)
        .options(*QUIZ_TREE_OPTIONS)
        .where(Quiz.id == quiz_id)
    )
    quiz = result.scalar_one_or_none()

    if not quiz:
        raise NotFoundError("Quiz not found")

    if not quiz.is_published:
        raise PreconditionFailedError("This quiz is not available yet")

    await ensure_student_enrolled(quiz.module_id, current_user.id, db)

    # correctness flags are stripped for students
    return serialize_quiz_detail(quiz, reveal_answers=False)
