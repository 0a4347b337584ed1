from datetime import timedelta

import pytest
from sqlalchemy import func, select

from modulehub.config import RETAKE_POLICY_LOCKED
from modulehub.helpers.datetime_utils import utcnow
from modulehub.models import QuizSubmission, QuizAnswer, UserRole
from modulehub.routes.users.student import quiz_submission as student_submission_routes


def quiz_payload(**overrides):
    payload = {
        "title": "Q1",
        "description": "Warm-up quiz",
        "questions": [
            {
                "question_text": "Pick B",
                "question_type": "multiple-choice",
                "options": [
                    {"option_text": "A", "is_correct": False},
                    {"option_text": "B", "is_correct": True},
                ],
            },
            {
                "question_text": "Say hello",
                "question_type": "short-answer",
            },
        ],
    }
    payload.update(overrides)
    return payload


async def create_quiz(client, headers, module_id, **overrides):
    response = await client.post(
        f"/teacher/quiz/create-quiz/{module_id}",
        json=quiz_payload(**overrides),
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def publish_quiz(client, headers, quiz_id):
    response = await client.patch(
        f"/teacher/quiz/update-quiz/{quiz_id}",
        json={"is_published": True},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


def option_ids(quiz, question_index=0):
    options = quiz["questions"][question_index]["options"]
    return {opt["option_text"]: opt["id"] for opt in options}


async def count_submissions(session):
    result = await session.execute(select(func.count()).select_from(QuizSubmission))
    return result.scalar_one()


@pytest.fixture
async def published_quiz(client, auth_headers, teacher, module):
    quiz = await create_quiz(client, auth_headers(teacher), module.id)
    return await publish_quiz(client, auth_headers(teacher), quiz["id"])


@pytest.fixture
async def enrolled_student(enroll, student, module):
    await enroll(student, module)
    return student


# --------------------------
# Teacher side
# --------------------------
async def test_create_quiz_is_unpublished(client, auth_headers, teacher, module):
    payload = quiz_payload()
    payload["questions"][1]["options"] = [{"option_text": "ignored", "is_correct": True}]

    response = await client.post(
        f"/teacher/quiz/create-quiz/{module.id}",
        json=payload,
        headers=auth_headers(teacher),
    )

    assert response.status_code == 201
    quiz = response.json()
    assert quiz["is_published"] is False
    assert [q["question_type"] for q in quiz["questions"]] == ["multiple-choice", "short-answer"]
    assert quiz["questions"][1]["options"] == []
    assert option_ids(quiz).keys() == {"A", "B"}


async def test_create_quiz_on_foreign_module_is_not_found(client, auth_headers, make_user, module):
    other_teacher = await make_user(UserRole.TEACHER)

    response = await client.post(
        f"/teacher/quiz/create-quiz/{module.id}",
        json=quiz_payload(),
        headers=auth_headers(other_teacher),
    )

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


async def test_students_cannot_create_quizzes(client, auth_headers, student, module):
    response = await client.post(
        f"/teacher/quiz/create-quiz/{module.id}",
        json=quiz_payload(),
        headers=auth_headers(student),
    )

    assert response.status_code == 403
    assert response.json()["error"] == "unauthorized"


async def test_partial_update_keeps_omitted_fields(client, auth_headers, teacher, module):
    headers = auth_headers(teacher)
    quiz = await create_quiz(client, headers, module.id)

    response = await client.patch(
        f"/teacher/quiz/update-quiz/{quiz['id']}",
        json={"title": "Renamed"},
        headers=headers,
    )

    assert response.status_code == 200
    updated = response.json()
    assert updated["title"] == "Renamed"
    assert updated["description"] == "Warm-up quiz"
    assert updated["is_published"] is False
    assert [q["id"] for q in updated["questions"]] == [q["id"] for q in quiz["questions"]]


async def test_update_questions_keeps_supplied_ids(client, auth_headers, teacher, module):
    headers = auth_headers(teacher)
    quiz = await create_quiz(client, headers, module.id)
    first = quiz["questions"][0]

    response = await client.patch(
        f"/teacher/quiz/update-quiz/{quiz['id']}",
        json={
            "questions": [
                {
                    "id": first["id"],
                    "question_text": "Pick B, reworded",
                    "question_type": "multiple-choice",
                    "options": [
                        {"id": opt["id"], "option_text": opt["option_text"], "is_correct": opt["is_correct"]}
                        for opt in first["options"]
                    ],
                },
                {
                    "question_text": "True?",
                    "question_type": "true-false",
                    "options": [
                        {"option_text": "True", "is_correct": True},
                        {"option_text": "False", "is_correct": False},
                    ],
                },
            ]
        },
        headers=headers,
    )

    assert response.status_code == 200
    questions = response.json()["questions"]
    assert len(questions) == 2
    assert questions[0]["id"] == first["id"]
    assert questions[0]["question_text"] == "Pick B, reworded"
    assert [o["id"] for o in questions[0]["options"]] == [o["id"] for o in first["options"]]
    assert questions[1]["id"] != quiz["questions"][1]["id"]


async def test_due_date_can_be_cleared(client, auth_headers, teacher, module):
    headers = auth_headers(teacher)
    due = (utcnow() + timedelta(days=3)).isoformat()
    quiz = await create_quiz(client, headers, module.id, due_date=due)
    assert quiz["due_date"] is not None

    response = await client.patch(
        f"/teacher/quiz/update-quiz/{quiz['id']}",
        json={"due_date": None},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json()["due_date"] is None


async def test_update_foreign_quiz_is_unauthorized(client, auth_headers, make_user, published_quiz):
    other_teacher = await make_user(UserRole.TEACHER)

    response = await client.patch(
        f"/teacher/quiz/update-quiz/{published_quiz['id']}",
        json={"title": "Hijacked"},
        headers=auth_headers(other_teacher),
    )

    assert response.status_code == 403


async def test_teacher_lists_unpublished_quizzes(client, auth_headers, teacher, module, published_quiz):
    headers = auth_headers(teacher)
    await create_quiz(client, headers, module.id, title="Draft")

    response = await client.get(f"/teacher/quiz/module-quizzes/{module.id}", headers=headers)

    assert response.status_code == 200
    titles = {q["title"]: q for q in response.json()}
    assert titles.keys() == {"Q1", "Draft"}
    assert titles["Draft"]["is_published"] is False
    assert titles["Q1"]["no_of_questions"] == 2


async def test_teacher_quiz_details_reveal_correct_options(client, auth_headers, teacher, published_quiz):
    response = await client.get(
        f"/teacher/quiz/quiz-details/{published_quiz['id']}",
        headers=auth_headers(teacher),
    )

    assert response.status_code == 200
    flags = [o["is_correct"] for o in response.json()["questions"][0]["options"]]
    assert flags == [False, True]


# --------------------------
# Student side
# --------------------------
async def test_attend_quiz_hides_correct_options(client, auth_headers, enrolled_student, published_quiz):
    response = await client.get(
        f"/student/quiz/attend-quiz/{published_quiz['id']}",
        headers=auth_headers(enrolled_student),
    )

    assert response.status_code == 200
    for question in response.json()["questions"]:
        for option in question["options"]:
            assert option["is_correct"] is None


async def test_student_list_explains_unpublished_quizzes(
    client, auth_headers, teacher, module, enrolled_student
):
    await create_quiz(client, auth_headers(teacher), module.id)

    response = await client.get(
        f"/student/quiz/module-quizzes/{module.id}",
        headers=auth_headers(enrolled_student),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 0
    assert body["data"] == []
    assert body["message"] == "There are quizzes for this module, but they have not been published yet."


async def test_student_list_carries_submission_status(
    client, auth_headers, module, enrolled_student, published_quiz
):
    headers = auth_headers(enrolled_student)

    response = await client.get(f"/student/quiz/module-quizzes/{module.id}", headers=headers)
    item = response.json()["data"][0]
    assert item["is_submitted"] is False
    assert item["submission_id"] is None

    submit = await client.post(
        f"/student/quiz-submission/submit-quiz/{published_quiz['id']}",
        json={"answers": []},
        headers=headers,
    )
    assert submit.status_code == 201

    response = await client.get(f"/student/quiz/module-quizzes/{module.id}", headers=headers)
    item = response.json()["data"][0]
    assert item["is_submitted"] is True
    assert item["is_graded"] is True
    assert item["score"] == 0
    assert item["submission_id"] == submit.json()["submission"]["id"]


async def test_student_list_requires_enrollment(client, auth_headers, student, module):
    response = await client.get(
        f"/student/quiz/module-quizzes/{module.id}",
        headers=auth_headers(student),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "You are not enrolled in this module"


# --------------------------
# Submission lifecycle
# --------------------------
async def test_submit_grade_and_retake(client, auth_headers, teacher, enrolled_student, published_quiz):
    student_headers = auth_headers(enrolled_student)
    teacher_headers = auth_headers(teacher)
    options = option_ids(published_quiz)
    q1, q2 = (q["id"] for q in published_quiz["questions"])

    # first attempt
    response = await client.post(
        f"/student/quiz-submission/submit-quiz/{published_quiz['id']}",
        json={"answers": [
            {"question_id": q1, "selected_options": [options["B"]]},
            {"question_id": q2, "text_answer": "hello"},
        ]},
        headers=student_headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["is_retake"] is False
    submission = body["submission"]
    assert submission["score"] == 1
    assert submission["max_score"] == 2
    assert submission["is_graded"] is True
    assert submission["graded_at"] is None

    # manual grade
    response = await client.put(
        f"/teacher/quiz-submission/grade-submission/{submission['id']}",
        json={"score": 2, "teacher_feedback": "good short answer"},
        headers=teacher_headers,
    )
    assert response.status_code == 200
    graded = response.json()
    assert graded["score"] == 2
    assert graded["teacher_feedback"] == "good short answer"
    assert graded["graded_at"] is not None

    # retake overwrites the same submission
    response = await client.post(
        f"/student/quiz-submission/submit-quiz/{published_quiz['id']}",
        json={"answers": [
            {"question_id": q1, "selected_options": [options["A"], options["B"]]},
        ]},
        headers=student_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["is_retake"] is True
    assert body["message"] == "Quiz retaken successfully"
    retaken = body["submission"]
    assert retaken["id"] == submission["id"]
    assert retaken["score"] == 0
    assert retaken["max_score"] == 2
    assert len(retaken["answers"]) == 1

    response = await client.get(
        f"/teacher/quiz-submission/list-quiz-submissions/{published_quiz['id']}",
        headers=teacher_headers,
    )
    assert response.status_code == 200
    assert len(response.json()) == 1


async def test_retake_leaves_one_submission_without_old_answers(
    client, auth_headers, session, enrolled_student, published_quiz
):
    headers = auth_headers(enrolled_student)
    q1, q2 = (q["id"] for q in published_quiz["questions"])
    url = f"/student/quiz-submission/submit-quiz/{published_quiz['id']}"

    await client.post(url, json={"answers": [{"question_id": q2, "text_answer": "first"}]}, headers=headers)
    await client.post(url, json={"answers": [{"question_id": q1, "selected_options": []}]}, headers=headers)

    assert await count_submissions(session) == 1
    result = await session.execute(select(QuizAnswer.text_answer))
    assert result.scalars().all() == [None]


async def test_submit_to_unpublished_quiz_fails(
    client, auth_headers, session, teacher, module, enrolled_student
):
    quiz = await create_quiz(client, auth_headers(teacher), module.id)

    response = await client.post(
        f"/student/quiz-submission/submit-quiz/{quiz['id']}",
        json={"answers": []},
        headers=auth_headers(enrolled_student),
    )

    assert response.status_code == 400
    assert response.json() == {
        "error": "precondition_failed",
        "message": "This quiz is not available for submission",
        "status_code": 400,
    }
    assert await count_submissions(session) == 0


async def test_submit_after_due_date_fails(
    client, auth_headers, session, teacher, module, enrolled_student
):
    headers = auth_headers(teacher)
    due = (utcnow() - timedelta(hours=1)).isoformat()
    quiz = await create_quiz(client, headers, module.id, due_date=due)
    await publish_quiz(client, headers, quiz["id"])

    response = await client.post(
        f"/student/quiz-submission/submit-quiz/{quiz['id']}",
        json={"answers": []},
        headers=auth_headers(enrolled_student),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "The due date for this quiz has passed"
    assert await count_submissions(session) == 0


async def test_submit_requires_enrollment(client, auth_headers, session, student, published_quiz):
    response = await client.post(
        f"/student/quiz-submission/submit-quiz/{published_quiz['id']}",
        json={"answers": []},
        headers=auth_headers(student),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "You are not enrolled in this module"
    assert await count_submissions(session) == 0


async def test_grade_out_of_range_changes_nothing(
    client, auth_headers, teacher, enrolled_student, published_quiz
):
    options = option_ids(published_quiz)
    q1 = published_quiz["questions"][0]["id"]
    response = await client.post(
        f"/student/quiz-submission/submit-quiz/{published_quiz['id']}",
        json={"answers": [{"question_id": q1, "selected_options": [options["B"]]}]},
        headers=auth_headers(enrolled_student),
    )
    submission_id = response.json()["submission"]["id"]
    teacher_headers = auth_headers(teacher)

    for score in (-1, 3):
        response = await client.put(
            f"/teacher/quiz-submission/grade-submission/{submission_id}",
            json={"score": score, "teacher_feedback": "nope"},
            headers=teacher_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Score must be between 0 and 2"

    response = await client.get(
        f"/teacher/quiz-submission/quiz-submission-detail/{submission_id}",
        headers=teacher_headers,
    )
    detail = response.json()
    assert detail["score"] == 1
    assert detail["teacher_feedback"] is None
    assert detail["graded_at"] is None
    assert detail["quiz_title"] == "Q1"


async def test_grade_with_nan_score_changes_nothing(
    client, auth_headers, teacher, enrolled_student, published_quiz
):
    options = option_ids(published_quiz)
    q1 = published_quiz["questions"][0]["id"]
    response = await client.post(
        f"/student/quiz-submission/submit-quiz/{published_quiz['id']}",
        json={"answers": [{"question_id": q1, "selected_options": [options["B"]]}]},
        headers=auth_headers(enrolled_student),
    )
    submission_id = response.json()["submission"]["id"]
    teacher_headers = auth_headers(teacher)

    for raw_score in ("NaN", "Infinity", "-Infinity"):
        response = await client.put(
            f"/teacher/quiz-submission/grade-submission/{submission_id}",
            content=f'{{"score": {raw_score}, "teacher_feedback": "x"}}',
            headers={**teacher_headers, "Content-Type": "application/json"},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "validation_failed"

    response = await client.get(
        f"/teacher/quiz-submission/quiz-submission-detail/{submission_id}",
        headers=teacher_headers,
    )
    detail = response.json()
    assert detail["score"] == 1
    assert detail["teacher_feedback"] is None
    assert detail["is_graded"] is False
    assert detail["graded_at"] is None


async def test_locked_policy_rejects_retake_after_grading(
    client, auth_headers, monkeypatch, teacher, enrolled_student, published_quiz
):
    monkeypatch.setattr(student_submission_routes, "RETAKE_POLICY", RETAKE_POLICY_LOCKED)
    student_headers = auth_headers(enrolled_student)
    url = f"/student/quiz-submission/submit-quiz/{published_quiz['id']}"

    response = await client.post(url, json={"answers": []}, headers=student_headers)
    submission_id = response.json()["submission"]["id"]

    # ungraded submissions can still be retaken
    response = await client.post(url, json={"answers": []}, headers=student_headers)
    assert response.status_code == 200

    await client.put(
        f"/teacher/quiz-submission/grade-submission/{submission_id}",
        json={"score": 1},
        headers=auth_headers(teacher),
    )

    response = await client.post(url, json={"answers": []}, headers=student_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "precondition_failed"


async def test_student_cannot_read_someone_elses_submission(
    client, auth_headers, make_user, enroll, module, enrolled_student, published_quiz
):
    response = await client.post(
        f"/student/quiz-submission/submit-quiz/{published_quiz['id']}",
        json={"answers": []},
        headers=auth_headers(enrolled_student),
    )
    submission_id = response.json()["submission"]["id"]

    response = await client.get(
        f"/student/quiz-submission/submission-detail/{submission_id}",
        headers=auth_headers(enrolled_student),
    )
    assert response.status_code == 200
    assert response.json()["quiz_title"] == "Q1"

    classmate = await make_user(UserRole.STUDENT, level="lmd1")
    await enroll(classmate, module)
    response = await client.get(
        f"/student/quiz-submission/submission-detail/{submission_id}",
        headers=auth_headers(classmate),
    )
    assert response.status_code == 403


async def test_delete_quiz_removes_submissions(
    client, auth_headers, session, teacher, enrolled_student, published_quiz
):
    await client.post(
        f"/student/quiz-submission/submit-quiz/{published_quiz['id']}",
        json={"answers": []},
        headers=auth_headers(enrolled_student),
    )

    response = await client.delete(
        f"/teacher/quiz/delete-quiz/{published_quiz['id']}",
        headers=auth_headers(teacher),
    )

    assert response.status_code == 200
    assert response.json()["submissions_deleted"] == 1
    assert await count_submissions(session) == 0
