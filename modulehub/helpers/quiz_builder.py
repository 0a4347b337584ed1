from typing import List

from modulehub.models import Quiz, QuizQuestion, QuizOption, QuestionType
from modulehub.schemas.quiz import QuizQuestionCreate


def apply_quiz_questions(quiz: Quiz, questions_in: List[QuizQuestionCreate]):
    """
    Replace the quiz's question list.

    Questions and options sent with an id that already exists keep that id,
    so submissions pointing at them stay meaningful. Anything not sent is
    removed. Short-answer questions carry no options.
    """
    existing = {q.id: q for q in quiz.questions}

    updated: List[QuizQuestion] = []
    for position, question_in in enumerate(questions_in):
        question = existing.get(question_in.id) if question_in.id else None
        if question is None or question in updated:
            question = QuizQuestion(options=[])

        question.position = position
        question.question_text = question_in.question_text
        question.question_type = question_in.question_type.value

        if question_in.question_type == QuestionType.SHORT_ANSWER:
            options_in = []
        else:
            options_in = question_in.options

        existing_options = {o.id: o for o in question.options}
        options: List[QuizOption] = []
        for option_position, option_in in enumerate(options_in):
            option = existing_options.get(option_in.id) if option_in.id else None
            if option is None or option in options:
                option = QuizOption()

            option.position = option_position
            option.option_text = option_in.option_text
            option.is_correct = option_in.is_correct
            options.append(option)

        question.options = options
        updated.append(question)

    quiz.questions = updated
