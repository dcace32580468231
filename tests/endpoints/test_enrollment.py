from fastapi.testclient import TestClient
from sqlalchemy.orm import Session


def test_reconcile_all(client: TestClient, admin, auth_headers, user_factory, course_factory, enrollment_factory, complete_lessons):
    course = course_factory(lessons=2)
    student = user_factory()
    enrollment_factory(student, course, progress=0)
    complete_lessons(student, course, 1)

    response = client.post("/enrollments/reconcile", headers=auth_headers(admin))

    assert response.status_code == 200, response.text
    summary = response.json()["data"]
    assert summary["total_processed"] == 1
    assert summary["fixed_count"] == 1
    assert summary["failed_count"] == 0


def test_reconcile_all_dry_run(client, db_session: Session, admin, auth_headers, student, course_factory, enrollment_factory, complete_lessons):
    course = course_factory(lessons=2)
    enrollment = enrollment_factory(student, course, progress=0)
    complete_lessons(student, course, 2)

    response = client.post("/enrollments/reconcile?dry_run=true", headers=auth_headers(admin))

    assert response.json()["data"]["fixed_count"] == 1
    db_session.refresh(enrollment)
    assert enrollment.progress == 0


def test_reconcile_requires_admin(client, student, auth_headers):
    response = client.post("/enrollments/reconcile", headers=auth_headers(student))
    assert response.status_code == 403


def test_reconcile_single_enrollment(client, admin, auth_headers, student, course_factory, enrollment_factory, complete_lessons):
    course = course_factory(lessons=4)
    enrollment_factory(student, course, progress=0)
    complete_lessons(student, course, 3)

    response = client.post(f"/enrollments/reconcile/{student.id}/{course.id}", headers=auth_headers(admin))

    assert response.status_code == 200, response.text
    outcome = response.json()["data"]
    assert outcome["result"] == "fixed"
    assert outcome["progress"] == 75


def test_reconcile_single_enrollment_not_found(client, admin, auth_headers, student, course_factory):
    course = course_factory(lessons=1)

    response = client.post(f"/enrollments/reconcile/{student.id}/{course.id}", headers=auth_headers(admin))

    assert response.status_code == 404
    body = response.json()
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["path"].endswith(f"/enrollments/reconcile/{student.id}/{course.id}")
