from typing import Dict, Iterable, List, Set, Tuple
from uuid import UUID

from modulehub.schemas.quiz_submission import QuizAnswerSubmit
from modulehub.models import Quiz, QuizAnswer, QuizQuestion, QuestionType


def is_auto_gradable(question: QuizQuestion) -> bool:
    return question.question_type != QuestionType.SHORT_ANSWER.value


def is_answer_correct(question: QuizQuestion, selected_option_ids: Iterable) -> bool:
    """
    Exact match: every selected option is correct and every correct option
    was selected. No partial credit.
    """
    correct: Set[str] = {str(opt.id) for opt in question.options if opt.is_correct}
    selected: Set[str] = {str(opt_id) for opt_id in selected_option_ids}
    return correct == selected


def evaluate_quiz_answers(
    quiz: Quiz,
    answers_payload: List[QuizAnswerSubmit],
) -> Tuple[int, List[QuizAnswer]]:
    """
    Evaluates quiz answers and returns:
    - score: number of objective questions answered exactly right
    - list of QuizAnswer ORM objects (not yet attached to a submission)

    Answers pointing at unknown questions are kept but never scored.
    Short-answer questions wait for the teacher.
    """
    score = 0
    answer_rows: List[QuizAnswer] = []

    question_map: Dict[UUID, QuizQuestion] = {q.id: q for q in quiz.questions}

    for position, ans in enumerate(answers_payload):
        question = question_map.get(ans.question_id)

        if question is not None and is_auto_gradable(question):
            if is_answer_correct(question, ans.selected_options):
                score += 1

        answer_rows.append(
            QuizAnswer(
                position=position,
                question_id=ans.question_id,
                selected_option_ids=[str(opt_id) for opt_id in ans.selected_options],
                text_answer=ans.text_answer,
            )
        )

    return score, answer_rows
