import logging
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from uuid import UUID

from modulehub.auth.dependencies import is_teacher
from modulehub.auth.module_access import get_teacher_module, get_owned_quiz
from modulehub.database import get_db
from modulehub.helpers.quiz_builder import apply_quiz_questions
from modulehub.helpers.quiz_serializer import (
    QUIZ_TREE_OPTIONS,
    serialize_quiz_detail,
    serialize_quiz_lite,
)
from modulehub.models import User, Quiz, QuizQuestion, QuizSubmission
from modulehub.schemas.quiz import QuizCreate, QuizUpdate, QuizDetailView, QuizLite

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/teacher/quiz",
    tags=["Teacher Quiz Endpoints"]
)


async def _reload_quiz(quiz_id: UUID, current_user: User, db: AsyncSession) -> Quiz:
    return await get_owned_quiz(quiz_id, current_user, db, options=QUIZ_TREE_OPTIONS)


@router.post(
    "/create-quiz/{module_id}",
    response_model=QuizDetailView,
    status_code=201
)
async def create_quiz(
    module_id: UUID,
    quiz_in: QuizCreate,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    # --------------------------
    # Fetch module
    # --------------------------
    module = await get_teacher_module(module_id, current_user, db)

    # --------------------------
    # Create quiz (always unpublished)
    # --------------------------
    quiz = Quiz(
        module_id=module.id,
        created_by=current_user.id,
        title=quiz_in.title,
        description=quiz_in.description,
        due_date=quiz_in.due_date,
        is_published=False,
        questions=[],
    )
    apply_quiz_questions(quiz, quiz_in.questions)

    db.add(quiz)
    await db.commit()

    logger.info(f"Quiz {quiz.id} created in module {module.id} by {current_user.username}")

    quiz = await _reload_quiz(quiz.id, current_user, db)
    return serialize_quiz_detail(quiz, reveal_answers=True)


@router.get("/module-quizzes/{module_id}", response_model=list[QuizLite])
async def list_module_quizzes(
    module_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    module = await get_teacher_module(module_id, current_user, db)

    result = await db.execute(
        select(Quiz)
        .options(selectinload(Quiz.questions))
        .where(Quiz.module_id == module.id)
        .order_by(Quiz.created_at.desc())
    )
    return [serialize_quiz_lite(q) for q in result.scalars().all()]


@router.get("/quiz-details/{quiz_id}", response_model=QuizDetailView)
async def get_quiz_details_teacher(
    quiz_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    quiz = await _reload_quiz(quiz_id, current_user, db)
    return serialize_quiz_detail(quiz, reveal_answers=True)


@router.patch("/update-quiz/{quiz_id}", response_model=QuizDetailView)
async def update_quiz(
    quiz_id: UUID,
    quiz_in: QuizUpdate,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    """
    Partial update. Fields left out of the payload keep their values;
    `due_date: null` clears the due date. Publishing is `is_published: true`.
    """
    quiz = await _reload_quiz(quiz_id, current_user, db)
    sent = quiz_in.model_fields_set

    # --------------------------
    # Scalar fields
    # --------------------------
    if "title" in sent and quiz_in.title is not None:
        quiz.title = quiz_in.title
    if "description" in sent and quiz_in.description is not None:
        quiz.description = quiz_in.description
    if "due_date" in sent:
        quiz.due_date = quiz_in.due_date
    if "is_published" in sent and quiz_in.is_published is not None:
        quiz.is_published = quiz_in.is_published

    # --------------------------
    # Questions (ids preserved when supplied)
    # --------------------------
    if "questions" in sent and quiz_in.questions is not None:
        apply_quiz_questions(quiz, quiz_in.questions)

    await db.commit()

    quiz = await _reload_quiz(quiz_id, current_user, db)
    return serialize_quiz_detail(quiz, reveal_answers=True)


@router.delete("/delete-quiz/{quiz_id}")
async def delete_quiz(
    quiz_id: UUID,
    current_user: User = Depends(is_teacher),
    db: AsyncSession = Depends(get_db),
):
    # --------------------------
    # Fetch quiz with everything the cascade touches
    # --------------------------
    quiz = await get_owned_quiz(
        quiz_id,
        current_user,
        db,
        options=(
            selectinload(Quiz.questions).selectinload(QuizQuestion.options),
            selectinload(Quiz.submissions).selectinload(QuizSubmission.answers),
        ),
    )
    submissions_deleted = len(quiz.submissions)

    await db.delete(quiz)
    await db.commit()

    logger.info(f"Quiz {quiz_id} deleted with {submissions_deleted} submission(s)")
    return {
        "message": "Quiz deleted successfully",
        "quiz_id": str(quiz_id),
        "submissions_deleted": submissions_deleted,
    }
