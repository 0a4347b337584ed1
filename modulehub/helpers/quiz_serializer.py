from sqlalchemy.orm import selectinload

from modulehub.models import Quiz, QuizQuestion, QuizSubmission
from modulehub.schemas.quiz import (
    QuizDetailView, QuizQuestionView, QuizOptionView, QuizLite,
)
from modulehub.schemas.quiz_submission import QuizSubmissionView, QuizAnswerView


QUIZ_TREE_OPTIONS = (
    selectinload(Quiz.questions).selectinload(QuizQuestion.options),
)


def serialize_quiz_detail(quiz: Quiz, reveal_answers: bool) -> QuizDetailView:
    """Students never see which options are correct."""
    return QuizDetailView(
        id=quiz.id,
        module_id=quiz.module_id,
        title=quiz.title,
        description=quiz.description,
        is_published=bool(quiz.is_published),
        due_date=quiz.due_date,
        created_at=quiz.created_at,
        questions=[
            QuizQuestionView(
                id=q.id,
                question_text=q.question_text,
                question_type=q.question_type,
                options=[
                    QuizOptionView(
                        id=opt.id,
                        option_text=opt.option_text,
                        is_correct=opt.is_correct if reveal_answers else None,
                    )
                    for opt in q.options
                ],
            )
            for q in quiz.questions
        ],
    )


def serialize_quiz_lite(quiz: Quiz) -> QuizLite:
    return QuizLite(
        id=quiz.id,
        module_id=quiz.module_id,
        title=quiz.title,
        description=quiz.description,
        is_published=bool(quiz.is_published),
        due_date=quiz.due_date,
        no_of_questions=len(quiz.questions),
    )


def serialize_submission(submission: QuizSubmission) -> QuizSubmissionView:
    return QuizSubmissionView(
        id=submission.id,
        quiz_id=submission.quiz_id,
        student_id=submission.student_id,
        answers=[
            QuizAnswerView(
                question_id=ans.question_id,
                selected_options=ans.selected_option_ids or [],
                text_answer=ans.text_answer,
            )
            for ans in submission.answers
        ],
        score=submission.score,
        max_score=submission.max_score,
        is_graded=bool(submission.is_graded),
        teacher_feedback=submission.teacher_feedback,
        submitted_at=submission.submitted_at,
        graded_at=submission.graded_at,
    )
