import logging
from fastapi import APIRouter, Depends, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from uuid import UUID

from modulehub.auth.dependencies import is_student
from modulehub.auth.module_access import ensure_student_enrolled
from modulehub.config import RETAKE_POLICY, RETAKE_POLICY_LOCKED
from modulehub.database import get_db
from modulehub.errors import NotFoundError, UnauthorizedError, PreconditionFailedError
from modulehub.helpers.datetime_utils import utcnow
from modulehub.helpers.quiz_answer_evaluator import evaluate_quiz_answers
from modulehub.helpers.quiz_serializer import QUIZ_TREE_OPTIONS, serialize_submission
from modulehub.models import Quiz, QuizSubmission, User
from modulehub.schemas.quiz_submission import (
    QuizSubmitRequest,
    QuizSubmitResponse,
    StudentSubmissionDetail,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/student/quiz-submission",
    tags=["Student Quiz Submission Endpoints"]
)


@router.post(
    "/submit-quiz/{quiz_id}",
    response_model=QuizSubmitResponse,
    status_code=201,
)
async def submit_quiz(
    quiz_id: UUID,
    payload: QuizSubmitRequest,
    response: Response,
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    """
    First attempt creates the submission (201). Any later attempt overwrites
    the same submission in place (200, is_retake=true).
    """
    # --------------------------
    # Fetch quiz with questions
    # --------------------------
    result = await db.execute(
        select(Quiz)
        .options(*QUIZ_TREE_OPTIONS)
        .where(Quiz.id == quiz_id)
    )
    quiz = result.scalar_one_or_none()

    if not quiz:
        raise NotFoundError("Quiz not found")

    # --------------------------
    # Availability checks
    # --------------------------
    if not quiz.is_published:
        raise PreconditionFailedError("This quiz is not available for submission")

    if quiz.due_date is not None and utcnow() > quiz.due_date:
        raise PreconditionFailedError("The due date for this quiz has passed")

    await ensure_student_enrolled(quiz.module_id, current_user.id, db)

    # --------------------------
    # Existing submission?
    # --------------------------
    result = await db.execute(
        select(QuizSubmission)
        .options(selectinload(QuizSubmission.answers))
        .where(
            QuizSubmission.quiz_id == quiz.id,
            QuizSubmission.student_id == current_user.id,
        )
        .order_by(QuizSubmission.submitted_at.desc())
    )
    existing = result.scalars().first()

    if (
        existing is not None
        and RETAKE_POLICY == RETAKE_POLICY_LOCKED
        and existing.graded_at is not None
    ):
        raise PreconditionFailedError("This quiz has already been graded and cannot be retaken")

    # --------------------------
    # Auto-grade
    # --------------------------
    score, answer_rows = evaluate_quiz_answers(quiz, payload.answers)

    if existing is not None:
        # max_score, feedback and graded_at stay as they were
        existing.answers = answer_rows
        existing.score = score
        existing.submitted_at = utcnow()
        existing.is_graded = True

        await db.commit()

        logger.info(f"Quiz {quiz.id} retaken by {current_user.username}: {score}/{existing.max_score}")
        response.status_code = 200
        return QuizSubmitResponse(
            message="Quiz retaken successfully",
            is_retake=True,
            submission=serialize_submission(existing),
        )

    submission = QuizSubmission(
        quiz_id=quiz.id,
        student_id=current_user.id,
        answers=answer_rows,
        score=score,
        max_score=len(quiz.questions),
        is_graded=True,
        teacher_feedback=None,
        submitted_at=utcnow(),
        graded_at=None,
    )
    db.add(submission)
    await db.commit()

    logger.info(f"Quiz {quiz.id} submitted by {current_user.username}: {score}/{submission.max_score}")
    return QuizSubmitResponse(
        message="Quiz submitted successfully",
        is_retake=False,
        submission=serialize_submission(submission),
    )


@router.get(
    "/submission-detail/{submission_id}",
    response_model=StudentSubmissionDetail,
)
async def get_submission_detail(
    submission_id: UUID,
    current_user: User = Depends(is_student),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(QuizSubmission)
        .options(
            selectinload(QuizSubmission.quiz),
            selectinload(QuizSubmission.answers),
        )
        .where(QuizSubmission.id == submission_id)
    )
    submission = result.scalar_one_or_none()

    if not submission:
        raise NotFoundError("Submission not found")

    if submission.student_id != current_user.id:
        raise UnauthorizedError("You are not allowed to view this submission")

    return StudentSubmissionDetail(
        **serialize_submission(submission).model_dump(),
        quiz_title=submission.quiz.title,
    )
