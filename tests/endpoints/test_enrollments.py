from fastapi.testclient import TestClient


def test_enroll_and_track_progress(client: TestClient, storage, course_factory, user_headers):
    course = course_factory(storage, lessons=2)

    enrolled = client.post(f"/enrollments/courses/{course.id}", headers=user_headers)
    assert enrolled.status_code == 200
    assert enrolled.json()["notice"]["title"] == "Enrolled successfully"
    assert enrolled.json()["data"]["status"] == "enrolled"

    status = client.get(f"/enrollments/courses/{course.id}/status", headers=user_headers).json()["data"]
    assert status == {"course_id": course.id, "enrolled": True, "status": "enrolled"}

    done = client.post(f"/enrollments/courses/{course.id}/lessons/{course.lessons[0].id}/complete", headers=user_headers)
    assert done.status_code == 200
    assert done.json()["data"]["progress"] == 50
    assert done.json()["notice"]["description"] == "Course progress: 50%"

    progress = client.get(f"/enrollments/courses/{course.id}/progress", headers=user_headers).json()["data"]
    assert progress["status"] == "in_progress"
    assert progress["completed_lesson_ids"] == [course.lessons[0].id]


def test_enroll_twice_reports_already_enrolled(client: TestClient, storage, course_factory, user_headers):
    course = course_factory(storage)

    first = client.post(f"/enrollments/courses/{course.id}", headers=user_headers).json()
    second = client.post(f"/enrollments/courses/{course.id}", headers=user_headers).json()

    assert second["notice"]["title"] == "Already enrolled"
    assert second["data"]["id"] == first["data"]["id"]
    assert second["data"]["started_at"] == first["data"]["started_at"]


def test_anonymous_enroll_redirects_with_origin(client: TestClient, storage, course_factory):
    course = course_factory(storage)

    response = client.post(f"/enrollments/courses/{course.id}")

    assert response.status_code == 401
    assert response.json()["redirect_to"] == f"/login?redirect=/enrollments/courses/{course.id}"


def test_enroll_unknown_course(client: TestClient, user_headers):
    response = client.post("/enrollments/courses/missing", headers=user_headers)

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "This course does not exist."


def test_anonymous_reads_degrade(client: TestClient, storage, course_factory):
    course = course_factory(storage)

    status = client.get(f"/enrollments/courses/{course.id}/status").json()["data"]
    progress = client.get(f"/enrollments/courses/{course.id}/progress").json()["data"]

    assert status["enrolled"] is False
    assert progress["progress"] == 0
    assert progress["enrolled"] is False


def test_complete_lesson_without_enrollment(client: TestClient, storage, course_factory, user_headers):
    course = course_factory(storage)

    response = client.post(f"/enrollments/courses/{course.id}/lessons/{course.lessons[0].id}/complete", headers=user_headers)

    assert response.status_code == 404


def test_uncomplete_lesson(client: TestClient, storage, course_factory, user_headers):
    course = course_factory(storage, lessons=1)
    client.post(f"/enrollments/courses/{course.id}", headers=user_headers)
    path = f"/enrollments/courses/{course.id}/lessons/{course.lessons[0].id}/complete"

    completed = client.post(path, headers=user_headers).json()["data"]
    assert completed["status"] == "completed"
    assert completed["completed_at"] is not None

    reopened = client.delete(path, headers=user_headers).json()["data"]
    assert reopened["status"] == "in_progress"
    assert reopened["progress"] == 0
    assert reopened["completed_at"] is None


def test_my_learning_and_dashboard(client: TestClient, storage, course_factory, user_headers):
    course = course_factory(storage, lessons=2, title="Mine")
    course_factory(storage, lessons=1, title="Not Mine")
    client.post(f"/enrollments/courses/{course.id}", headers=user_headers)

    mine = client.get("/enrollments/me", headers=user_headers).json()["data"]
    assert [e["course"]["title"] for e in mine] == ["Mine"]

    dashboard = client.get("/enrollments/dashboard", headers=user_headers).json()["data"]
    assert dashboard["total_enrollments"] == 1
    assert dashboard["status_counts"]["enrolled"] == 1
    assert [c["title"] for c in dashboard["recommended"]] == ["Not Mine"]


def test_my_learning_requires_login(client: TestClient):
    response = client.get("/enrollments/me")

    assert response.status_code == 401
    assert response.json()["redirect_to"] == "/login?redirect=/enrollments/me"


def test_unenroll(client: TestClient, storage, course_factory, user_headers):
    course = course_factory(storage)
    enrollment = client.post(f"/enrollments/courses/{course.id}", headers=user_headers).json()["data"]

    response = client.delete(f"/enrollments/{enrollment['id']}", headers=user_headers)

    assert response.status_code == 200
    assert response.json()["notice"]["title"] == "Unenrolled"
    assert client.get("/enrollments/me", headers=user_headers).json()["data"] == []
    assert client.delete(f"/enrollments/{enrollment['id']}", headers=user_headers).status_code == 404


def test_cannot_unenroll_someone_else(client: TestClient, storage, course_factory, user_headers, account_factory, login):
    course = course_factory(storage)
    enrollment = client.post(f"/enrollments/courses/{course.id}", headers=user_headers).json()["data"]
    other = account_factory()
    other_headers = {"Authorization": f"Bearer {login(other.email)}"}

    response = client.delete(f"/enrollments/{enrollment['id']}", headers=other_headers)

    assert response.status_code == 403


def test_learning_activity(client: TestClient, storage, course_factory, user_headers):
    course = course_factory(storage, lessons=2)
    client.post(f"/enrollments/courses/{course.id}", headers=user_headers)
    client.post(f"/enrollments/courses/{course.id}/lessons/{course.lessons[0].id}/complete", headers=user_headers)

    dashboard = client.get("/enrollments/dashboard", headers=user_headers).json()["data"]
    assert len(dashboard["activity"]) == 30
    assert dashboard["activity"][-1]["count"] == 1
    assert dashboard["current_streak"] == 1

    week = client.get("/enrollments/activity?days=7", headers=user_headers)
    assert week.status_code == 200
    assert len(week.json()["data"]) == 7

    assert client.get("/enrollments/activity?days=0", headers=user_headers).status_code == 422
    assert client.get("/enrollments/activity").status_code == 401
