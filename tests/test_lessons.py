import os

import pytest
from sqlalchemy import func, select

from modulehub.config import UPLOADS_DIR
from modulehub.models import Lesson, ModuleFile, UserRole

PDF_BYTES = b"%PDF-1.4\n% lesson handout\n"


async def add_lesson(client, headers, module_id, **overrides):
    payload = {"title": "Sorting", "description": "Comparison sorts"}
    payload.update(overrides)
    return await client.post(f"/teacher/lesson/add-lesson/{module_id}", json=payload, headers=headers)


async def upload_to_lesson(client, headers, lesson_id, data=None, filename="handout.pdf"):
    return await client.post(
        f"/teacher/lesson/upload-lesson-chapter-file/{lesson_id}",
        data=data or {"file_type": "pdf"},
        files={"file": (filename, PDF_BYTES, "application/pdf")},
        headers=headers,
    )


def stored_path(file_view):
    return os.path.join(UPLOADS_DIR, os.path.basename(file_view["path"]))


async def count_rows(session, model):
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


@pytest.fixture
def teacher_headers(auth_headers, teacher):
    return auth_headers(teacher)


@pytest.fixture
async def lesson(client, teacher_headers, module):
    response = await add_lesson(client, teacher_headers, module.id)
    return response.json()


@pytest.fixture
async def saved_handout(client, teacher_headers, lesson):
    """A lesson file that has been uploaded and then saved."""
    chapter_id = lesson["chapters"][0]["id"]
    uploaded = (await upload_to_lesson(client, teacher_headers, lesson["id"], data={"chapter_id": chapter_id})).json()
    response = await client.put(
        f"/teacher/lesson/update-lesson/{lesson['id']}",
        json={"chapters": [{
            "id": chapter_id,
            "title": "Chapter 1",
            "files": [{"id": uploaded["file"]["id"], "path": uploaded["file"]["path"]}],
        }]},
        headers=teacher_headers,
    )
    assert response.status_code == 200
    return uploaded["file"]


async def test_add_lesson_without_chapters_gets_a_default_one(client, teacher_headers, module):
    response = await add_lesson(client, teacher_headers, module.id)

    assert response.status_code == 201
    body = response.json()
    assert body["module_id"] == str(module.id)
    assert [c["title"] for c in body["chapters"]] == ["Chapter 1"]


async def test_add_lesson_keeps_chapter_order(client, teacher_headers, module):
    response = await add_lesson(
        client,
        teacher_headers,
        module.id,
        chapters=[{"title": "Insertion sort"}, {"title": "Merge sort", "content": "Divide and conquer"}],
    )

    chapters = response.json()["chapters"]
    assert [c["title"] for c in chapters] == ["Insertion sort", "Merge sort"]
    assert chapters[1]["content"] == "Divide and conquer"


async def test_add_lesson_to_foreign_module_is_not_found(client, auth_headers, make_user, module):
    other_teacher = await make_user(UserRole.TEACHER)

    response = await add_lesson(client, auth_headers(other_teacher), module.id)

    assert response.status_code == 404


async def test_foreign_lesson_is_unauthorized(client, auth_headers, make_user, lesson):
    other_teacher = await make_user(UserRole.TEACHER)

    response = await client.get(
        f"/teacher/lesson/lesson-details/{lesson['id']}",
        headers=auth_headers(other_teacher),
    )

    assert response.status_code == 403
    assert response.json()["message"] == "You are not authorized to access this lesson"


async def test_lesson_upload_is_hidden_until_saved(client, teacher_headers, lesson):
    chapter_id = lesson["chapters"][0]["id"]

    response = await upload_to_lesson(client, teacher_headers, lesson["id"], data={"chapter_id": chapter_id})

    assert response.status_code == 200
    body = response.json()
    assert body["lesson_id"] == lesson["id"]
    assert body["chapter_id"] == chapter_id
    assert body["file"]["temporary"] is True
    details = await client.get(f"/teacher/lesson/lesson-details/{lesson['id']}", headers=teacher_headers)
    assert details.json()["chapters"][0]["files"] == []


async def test_upload_without_chapter_appends_one(client, teacher_headers, lesson):
    response = await upload_to_lesson(client, teacher_headers, lesson["id"])

    new_chapter_id = response.json()["chapter_id"]
    details = (await client.get(f"/teacher/lesson/lesson-details/{lesson['id']}", headers=teacher_headers)).json()
    assert [c["title"] for c in details["chapters"]] == ["Chapter 1", "Chapter 2"]
    assert details["chapters"][1]["id"] == new_chapter_id


async def test_update_lesson_promotes_files_and_keeps_omitted_fields(
    client, teacher_headers, lesson, saved_handout
):
    response = await client.put(
        f"/teacher/lesson/update-lesson/{lesson['id']}",
        json={"title": "Sorting, revised"},
        headers=teacher_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Sorting, revised"
    assert body["description"] == "Comparison sorts"
    files = body["chapters"][0]["files"]
    assert [f["id"] for f in files] == [saved_handout["id"]]
    assert files[0]["temporary"] is False


async def test_delete_lesson_removes_stored_files(client, teacher_headers, session, lesson, saved_handout):
    pending = (await upload_to_lesson(client, teacher_headers, lesson["id"], filename="draft.pdf")).json()

    response = await client.delete(f"/teacher/lesson/delete-lesson/{lesson['id']}", headers=teacher_headers)

    assert response.status_code == 200
    assert response.json()["files_deleted"] == 2
    assert not os.path.exists(stored_path(saved_handout))
    assert not os.path.exists(stored_path(pending["file"]))
    assert await count_rows(session, Lesson) == 0
    assert await count_rows(session, ModuleFile) == 0


async def test_discard_temp_files_covers_lessons(client, teacher_headers, session, module, lesson, saved_handout):
    await upload_to_lesson(client, teacher_headers, lesson["id"], filename="draft.pdf")

    response = await client.post(f"/teacher/module/discard-temp-files/{module.id}", headers=teacher_headers)

    assert response.json()["files_removed"] == 1
    assert await count_rows(session, ModuleFile) == 1


async def test_student_lists_lessons_without_temporary_files(
    client, auth_headers, teacher_headers, enroll, student, module, lesson, saved_handout
):
    await enroll(student, module)
    await upload_to_lesson(client, teacher_headers, lesson["id"], data={"chapter_id": lesson["chapters"][0]["id"]})

    response = await client.get(f"/student/lesson/module-lessons/{module.id}", headers=auth_headers(student))

    assert response.status_code == 200
    lessons = response.json()
    assert [lesson_view["id"] for lesson_view in lessons] == [lesson["id"]]
    assert [f["id"] for f in lessons[0]["chapters"][0]["files"]] == [saved_handout["id"]]


async def test_student_lessons_require_enrollment(client, auth_headers, student, module, lesson):
    response = await client.get(f"/student/lesson/module-lessons/{module.id}", headers=auth_headers(student))

    assert response.status_code == 400
    assert response.json()["message"] == "You are not enrolled in this module"


async def test_student_downloads_saved_lesson_file(
    client, auth_headers, enroll, student, module, lesson, saved_handout
):
    await enroll(student, module)

    response = await client.get(
        f"/student/lesson/download/{lesson['id']}/{saved_handout['id']}",
        headers=auth_headers(student),
    )

    assert response.status_code == 200
    assert response.content == PDF_BYTES


async def test_temporary_lesson_file_is_not_downloadable(
    client, auth_headers, teacher_headers, enroll, student, module, lesson
):
    await enroll(student, module)
    pending = (await upload_to_lesson(client, teacher_headers, lesson["id"])).json()

    response = await client.get(
        f"/student/lesson/download/{lesson['id']}/{pending['file']['id']}",
        headers=auth_headers(student),
    )

    assert response.status_code == 404
    assert response.json()["message"] == "File not found"


async def test_download_of_missing_bytes_is_not_found(
    client, auth_headers, enroll, student, module, lesson, saved_handout
):
    await enroll(student, module)
    os.remove(stored_path(saved_handout))

    response = await client.get(
        f"/student/lesson/download/{lesson['id']}/{saved_handout['id']}",
        headers=auth_headers(student),
    )

    assert response.status_code == 404
    assert response.json()["message"] == "File is no longer available"


async def test_delete_module_removes_lessons_and_their_files(
    client, auth_headers, make_user, session, module, saved_handout
):
    admin = await make_user(UserRole.ADMIN)

    response = await client.delete(f"/admin/module/delete-module/{module.id}", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["files_deleted"] == 1
    assert not os.path.exists(stored_path(saved_handout))
    assert await count_rows(session, Lesson) == 0
