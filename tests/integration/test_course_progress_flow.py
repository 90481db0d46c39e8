import pytest
from fastapi.testclient import TestClient

import main


def run_four_lesson_course(client: TestClient, admin_headers, user_headers):
    """
    Admin builds a four-lesson course, a learner enrolls and works through it.
    Progress moves 0 -> 25 -> 50 -> 75 -> 100 and the course completes on the last lesson.
    """
    print("\n[TEST] Four lesson course progress")

    print("[1] Creating course")
    course = client.post(
        "/courses/",
        headers=admin_headers,
        json={"title": "Four Lessons", "category": "Programming", "difficulty": "beginner"},
    ).json()["data"]

    print("[2] Creating 4 lessons")
    lesson_ids = []
    for i in range(4):
        response = client.post(f"/courses/{course['id']}/lessons", headers=admin_headers, json={"title": f"Lesson {i + 1}"})
        assert response.status_code == 201
        lesson_ids.append(response.json()["data"]["id"])

    print("[3] Enrolling learner")
    enrollment = client.post(f"/enrollments/courses/{course['id']}", headers=user_headers).json()["data"]
    assert enrollment["progress"] == 0
    assert enrollment["lesson_count"] == 4

    print("[4] Completing lessons and checking progress")
    for done, lesson_id in enumerate(lesson_ids, start=1):
        response = client.post(f"/enrollments/courses/{course['id']}/lessons/{lesson_id}/complete", headers=user_headers)
        snapshot = response.json()["data"]
        assert snapshot["progress"] == done * 25
        assert snapshot["completed_lessons_count"] == done
        if done < 4:
            assert snapshot["status"] == "in_progress"
            assert snapshot["completed_at"] is None

    assert snapshot["status"] == "completed"
    assert snapshot["completed_at"] is not None
    completed_at = snapshot["completed_at"]

    print("[5] Re-marking a lesson changes nothing")
    again = client.post(f"/enrollments/courses/{course['id']}/lessons/{lesson_ids[0]}/complete", headers=user_headers)
    assert again.json()["data"]["completed_lessons_count"] == 4
    assert again.json()["data"]["completed_at"] == completed_at

    mine = client.get("/enrollments/me", headers=user_headers).json()["data"]
    assert mine[0]["status"] == "completed"
    assert mine[0]["progress"] == 100
    print("[OK] Course completed")


def test_four_lesson_course_on_relational_storage(client: TestClient, admin_headers, user_headers):
    run_four_lesson_course(client, admin_headers, user_headers)


def test_four_lesson_course_on_local_storage(client: TestClient, local_storage, admin_headers, user_headers):
    main.app.state.storage = local_storage
    run_four_lesson_course(client, admin_headers, user_headers)


def test_adding_a_lesson_reopens_progress(client: TestClient, admin_headers, user_headers):
    course = client.post("/courses/", headers=admin_headers, json={"title": "Growing"}).json()["data"]
    lesson = client.post(f"/courses/{course['id']}/lessons", headers=admin_headers, json={"title": "Only"}).json()["data"]
    client.post(f"/enrollments/courses/{course['id']}", headers=user_headers)
    client.post(f"/enrollments/courses/{course['id']}/lessons/{lesson['id']}/complete", headers=user_headers)

    client.post(f"/courses/{course['id']}/lessons", headers=admin_headers, json={"title": "Bonus"})
    progress = client.get(f"/enrollments/courses/{course['id']}/progress", headers=user_headers).json()["data"]

    assert progress["lesson_count"] == 2
    assert progress["progress"] == 50


@pytest.mark.parametrize("lessons,completed,expected", [(3, 1, 33), (3, 2, 67), (8, 1, 13)])
def test_progress_rounding_through_api(client: TestClient, storage, course_factory, user_headers, lessons, completed, expected):
    course = course_factory(storage, lessons=lessons)
    client.post(f"/enrollments/courses/{course.id}", headers=user_headers)

    for lesson in course.lessons[:completed]:
        response = client.post(f"/enrollments/courses/{course.id}/lessons/{lesson.id}/complete", headers=user_headers)

    assert response.json()["data"]["progress"] == expected
