import pytest

from fastapi.testclient import TestClient

from app.core.constants import RoleEnum
from tests.helpers.builders import correct_option_id


def test_academy_authors_and_publishes_exam(client: TestClient, academy_factory, auth_headers):
    academy = academy_factory()
    headers = auth_headers(academy.user)

    r_exam = client.post("/exams/", headers=headers, json={
        "title": "Networking Basics", "duration_minutes": 30, "passing_score": 70, "price": 15
    })
    assert r_exam.status_code == 201, r_exam.text
    exam_id = r_exam.json()["data"]["id"]
    assert r_exam.json()["data"]["status"] == "DRAFT"

    r_question = client.post(f"/exams/{exam_id}/questions", headers=headers, json={
        "text": "Which layer routes packets?",
        "question_type": "MULTIPLE_CHOICE",
        "points": 5,
        "options": [
            {"text": "Network", "is_correct": True},
            {"text": "Physical", "is_correct": False},
        ],
    })
    assert r_question.status_code == 201, r_question.text
    assert len(r_question.json()["data"]["options"]) == 2

    r_publish = client.post(f"/exams/{exam_id}/publish", headers=headers)
    assert r_publish.status_code == 200
    assert r_publish.json()["data"]["status"] == "PUBLISHED"


def test_invalid_answer_key_returns_validation_error(client: TestClient, academy_factory, auth_headers):
    academy = academy_factory()
    headers = auth_headers(academy.user)
    exam_id = client.post("/exams/", headers=headers, json={
        "title": "Logic", "duration_minutes": 10, "passing_score": 50
    }).json()["data"]["id"]

    response = client.post(f"/exams/{exam_id}/questions", headers=headers, json={
        "text": "Is this statement true?",
        "question_type": "TRUE_FALSE",
        "points": 1,
        "options": [{"text": "True", "is_correct": True}, {"text": "False", "is_correct": True}],
    })

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_duration_below_minimum_is_rejected(client: TestClient, academy_factory, auth_headers):
    academy = academy_factory()
    response = client.post("/exams/", headers=auth_headers(academy.user), json={
        "title": "Speed Run", "duration_minutes": 2, "passing_score": 50
    })
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_students_cannot_create_exams(client: TestClient, user_factory, auth_headers):
    student = user_factory(RoleEnum.STUDENT)
    response = client.post("/exams/", headers=auth_headers(student), json={
        "title": "Sneaky", "duration_minutes": 10, "passing_score": 50
    })
    assert response.status_code == 403


def test_answer_key_hidden_from_students(client: TestClient, user_factory, exam_factory,
                                         started_enrollment, auth_headers):
    exam = exam_factory()
    student = user_factory(RoleEnum.STUDENT)
    started_enrollment(student, exam)

    response = client.get(f"/exams/{exam.id}/questions", headers=auth_headers(student))

    assert response.status_code == 200
    for question in response.json()["data"]:
        assert all("is_correct" not in option for option in question["options"])


def test_answer_key_visible_to_owner(client: TestClient, exam_factory, auth_headers):
    exam = exam_factory()

    response = client.get(f"/exams/{exam.id}/questions", headers=auth_headers(exam.academy.user))

    assert response.status_code == 200
    first = response.json()["data"][0]
    correct = [o["id"] for o in first["options"] if o["is_correct"]]
    assert correct == [correct_option_id(exam.questions[0])]


@pytest.mark.parametrize("field", ["title", "duration_minutes", "passing_score", "price", "manual_review"])
def test_update_rejects_null_for_required_fields(field, client: TestClient, academy_factory, auth_headers):
    academy = academy_factory()
    headers = auth_headers(academy.user)
    exam_id = client.post("/exams/", headers=headers, json={
        "title": "Routing", "duration_minutes": 10, "passing_score": 50
    }).json()["data"]["id"]

    response = client.put(f"/exams/{exam_id}", headers=headers, json={field: None})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    assert client.get(f"/exams/{exam_id}", headers=headers).json()["data"]["title"] == "Routing"


def test_update_rejects_blank_title_and_keeps_omitted_fields(client: TestClient, academy_factory, auth_headers):
    academy = academy_factory()
    headers = auth_headers(academy.user)
    exam_id = client.post("/exams/", headers=headers, json={
        "title": "Switching", "duration_minutes": 15, "passing_score": 60
    }).json()["data"]["id"]

    assert client.put(f"/exams/{exam_id}", headers=headers, json={"title": "   "}).status_code == 422

    r_update = client.put(f"/exams/{exam_id}", headers=headers, json={"title": " VLANs ", "description": None})
    assert r_update.status_code == 200, r_update.text
    data = r_update.json()["data"]
    assert data["title"] == "VLANs"
    assert data["duration_minutes"] == 15
    assert data["passing_score"] == 60
