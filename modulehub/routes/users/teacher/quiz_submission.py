import math
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from uuid import UUID

from modulehub.auth.dependencies import is_teacher
from modulehub.auth.module_access import get_owned_quiz
from modulehub.database import get_db
from modulehub.errors import NotFoundError, UnauthorizedError, PreconditionFailedError
from modulehub.helpers.datetime_utils import utcnow
from modulehub.helpers.quiz_serializer import serialize_submission
from modulehub.models import Quiz, QuizSubmission, User
from modulehub.schemas.quiz_submission import (
    QuizSubmissionListItem,
    QuizSubmissionView,
    TeacherSubmissionDetail,
    GradeSubmissionRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/teacher/quiz-submission",
    tags=["Teacher Quiz Submission Endpoints"]
)


async def _get_owned_submission(
    submission_id: UUID,
    current_user: User,
    db: AsyncSession,
) -> QuizSubmission:
    result = await db.execute(
        select(QuizSubmission)
        .options(
            selectinload(QuizSubmission.quiz).selectinload(Quiz.module),
            selectinload(QuizSubmission.answers),
            selectinload(QuizSubmission.student),
        )
        .where(QuizSubmission.id == submission_id)
        .execution_options(populate_existing=True)
    )
    submission = result.scalar_one_or_none()

    if not submission:
        raise NotFoundError("Submission not found")

    if submission.quiz.module.teacher_id != current_user.id:
        raise UnauthorizedError("You are not allowed to access this submission")

    return submission


@router.get(
    "/list-quiz-submissions/{quiz_id}",
    response_model=list[QuizSubmissionListItem],
)
async def list_quiz_submissions_for_teacher(
    quiz_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    # --------------------------
    # Fetch quiz + ownership check
    # --------------------------
    quiz = await get_owned_quiz(quiz_id, current_user, db)

    # --------------------------
    # Fetch submissions (latest first)
    # --------------------------
    result = await db.execute(
        select(QuizSubmission)
        .options(selectinload(QuizSubmission.student))
        .where(QuizSubmission.quiz_id == quiz.id)
        .order_by(QuizSubmission.submitted_at.desc())
    )
    submissions = result.scalars().all()

    return [
        QuizSubmissionListItem(
            submission_id=sub.id,
            quiz_id=sub.quiz_id,
            student_id=sub.student_id,
            student_name=sub.student.name if sub.student else None,
            student_username=sub.student.username if sub.student else None,
            score=sub.score,
            max_score=sub.max_score,
            is_graded=bool(sub.is_graded),
            submitted_at=sub.submitted_at,
            graded_at=sub.graded_at,
        )
        for sub in submissions
    ]


@router.get(
    "/quiz-submission-detail/{submission_id}",
    response_model=TeacherSubmissionDetail,
)
async def get_quiz_submission_details_for_teacher(
    submission_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    submission = await _get_owned_submission(submission_id, current_user, db)
    view = serialize_submission(submission)

    return TeacherSubmissionDetail(
        **view.model_dump(),
        quiz_title=submission.quiz.title,
        student_name=submission.student.name if submission.student else None,
        student_username=submission.student.username if submission.student else None,
    )


@router.put(
    "/grade-submission/{submission_id}",
    response_model=QuizSubmissionView,
)
async def grade_submission(
    submission_id: UUID,
    payload: GradeSubmissionRequest,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    """
    Overrides the automatic score. Short-answer questions are only ever
    scored this way.
    """
    submission = await _get_owned_submission(submission_id, current_user, db)

    # --------------------------
    # Range check, nothing is written on failure
    # --------------------------
    if not math.isfinite(payload.score) or not 0 <= payload.score <= submission.max_score:
        raise PreconditionFailedError(
            f"Score must be between 0 and {submission.max_score}"
        )

    submission.score = payload.score
    submission.teacher_feedback = payload.teacher_feedback or ""
    submission.is_graded = True
    submission.graded_at = utcnow()

    await db.commit()

    logger.info(
        f"Submission {submission.id} graded {payload.score}/{submission.max_score} "
        f"by {current_user.username}"
    )
    return serialize_submission(submission)
