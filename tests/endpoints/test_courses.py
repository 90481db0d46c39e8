import pytest
from fastapi.testclient import TestClient

import main


def create_course(client: TestClient, headers, **fields):
    payload = {"title": "API Course", "description": "Made over HTTP", "category": "Programming", "difficulty": "beginner"}
    payload.update(fields)
    response = client.post("/courses/", json=payload, headers=headers)
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def test_list_courses_empty(client: TestClient):
    response = client.get("/courses/")

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["notice"] is None


def test_admin_creates_course_with_lessons(client: TestClient, admin_headers):
    course = create_course(client, admin_headers, instructor="Jane Smith")

    first = client.post(f"/courses/{course['id']}/lessons", json={"title": "Intro", "video_url": "https://youtu.be/x"}, headers=admin_headers)
    second = client.post(f"/courses/{course['id']}/lessons", json={"title": "Deep Dive"}, headers=admin_headers)
    assert first.status_code == 201
    assert second.status_code == 201

    detail = client.get(f"/courses/{course['id']}").json()["data"]
    assert [l["title"] for l in detail["lessons"]] == ["Intro", "Deep Dive"]
    assert detail["lesson_count"] == 2
    assert detail["rating"] == 0.0


def test_member_cannot_create_course(client: TestClient, user_headers):
    response = client.post("/courses/", json={"title": "Nope"}, headers=user_headers)

    assert response.status_code == 403


def test_anonymous_create_redirects_to_login(client: TestClient):
    response = client.post("/courses/", json={"title": "Nope"})

    assert response.status_code == 401
    body = response.json()
    assert body["error"]["code"] == "AUTH_REQUIRED"
    assert body["redirect_to"] == "/login?redirect=/courses/"


def test_missing_course_is_404(client: TestClient):
    response = client.get("/courses/unknown-id")

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Course not found"


def test_update_and_delete_course(client: TestClient, admin_headers):
    course = create_course(client, admin_headers)

    updated = client.put(f"/courses/{course['id']}", json={"title": "Renamed Course"}, headers=admin_headers)
    assert updated.status_code == 200
    assert updated.json()["data"]["title"] == "Renamed Course"

    deleted = client.delete(f"/courses/{course['id']}", headers=admin_headers)
    assert deleted.status_code == 200
    assert client.get(f"/courses/{course['id']}").status_code == 404


def test_lesson_update_and_delete(client: TestClient, admin_headers):
    course = create_course(client, admin_headers)
    lesson = client.post(f"/courses/{course['id']}/lessons", json={"title": "Draft"}, headers=admin_headers).json()["data"]

    updated = client.put(f"/courses/lessons/{lesson['id']}", json={"title": "Final", "duration": 12}, headers=admin_headers)
    assert updated.json()["data"]["title"] == "Final"
    assert client.get(f"/courses/lessons/{lesson['id']}").json()["data"]["duration"] == 12

    assert client.delete(f"/courses/lessons/{lesson['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/courses/lessons/{lesson['id']}").status_code == 404


def test_categories_and_instructors(client: TestClient, admin_headers):
    create_course(client, admin_headers, category="Programming", instructor="Jane Smith")
    create_course(client, admin_headers, category="Design", instructor="Mike Johnson")
    create_course(client, admin_headers, category="Programming", instructor="Jane Smith")

    assert client.get("/courses/categories").json()["data"] == ["Design", "Programming"]
    assert client.get("/courses/instructors").json()["data"] == ["Jane Smith", "Mike Johnson"]


def test_filters_from_query_params(client: TestClient, admin_headers):
    create_course(client, admin_headers, title="JavaScript Basics", category="Programming", difficulty="beginner")
    create_course(client, admin_headers, title="CSS Layouts", category="Web Design", difficulty="intermediate")

    assert [c["title"] for c in client.get("/courses/?search=javascript").json()["data"]] == ["JavaScript Basics"]
    assert [c["title"] for c in client.get("/courses/?category=web design").json()["data"]] == ["CSS Layouts"]
    assert len(client.get("/courses/?category=all&difficulty=all").json()["data"]) == 2
    assert [c["title"] for c in client.get("/courses/?sort=title").json()["data"]] == ["CSS Layouts", "JavaScript Basics"]
    assert client.get("/courses/?sort=sideways").status_code == 422


def test_review_requires_enrollment(client: TestClient, admin_headers, user_headers):
    course = create_course(client, admin_headers)

    refused = client.post(f"/courses/{course['id']}/reviews", json={"rating": 5}, headers=user_headers)
    assert refused.status_code == 403

    client.post(f"/enrollments/courses/{course['id']}", headers=user_headers)
    created = client.post(f"/courses/{course['id']}/reviews", json={"rating": 5, "comment": "Great"}, headers=user_headers)
    assert created.status_code == 200
    assert created.json()["notice"]["title"] == "Review submitted"

    updated = client.post(f"/courses/{course['id']}/reviews", json={"rating": 3}, headers=user_headers)
    assert updated.json()["notice"]["title"] == "Review updated"

    reviews = client.get(f"/courses/{course['id']}/reviews").json()["data"]
    assert len(reviews) == 1
    assert reviews[0]["rating"] == 3
    assert client.get(f"/courses/{course['id']}").json()["data"]["rating"] == 3.0


def test_review_rating_bounds(client: TestClient, admin_headers, user_headers):
    course = create_course(client, admin_headers)

    response = client.post(f"/courses/{course['id']}/reviews", json={"rating": 6}, headers=user_headers)

    assert response.status_code == 422


@pytest.mark.parametrize("backend", ["relational", "local"])
def test_null_for_required_fields_is_rejected(client: TestClient, local_storage, admin_headers, backend):
    if backend == "local":
        main.app.state.storage = local_storage
    course = create_course(client, admin_headers, instructor="Jane Smith")
    lesson = client.post(f"/courses/{course['id']}/lessons", json={"title": "Kept"}, headers=admin_headers).json()["data"]

    for field in ("title", "description", "category"):
        response = client.put(f"/courses/{course['id']}", json={field: None}, headers=admin_headers)
        assert response.status_code == 422, field
    for field in ("title", "video_url", "order_index"):
        response = client.put(f"/courses/lessons/{lesson['id']}", json={field: None}, headers=admin_headers)
        assert response.status_code == 422, field

    detail = client.get(f"/courses/{course['id']}").json()["data"]
    assert detail["title"] == "API Course"
    assert detail["lessons"][0]["title"] == "Kept"

    cleared = client.put(f"/courses/{course['id']}", json={"instructor": None}, headers=admin_headers)
    assert cleared.status_code == 200
    assert cleared.json()["data"]["instructor"] is None
    assert client.get("/courses/").status_code == 200
