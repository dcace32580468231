import os
import subprocess
import sys

import pytest

from app.core.constants import EnrollmentStatusEnum, RoleEnum
from app.core.database import Base, SessionLocal, create_db_engine
from app.models.chapter import Chapter
from app.models.course import Course
from app.models.course_enrollment import CourseEnrollment
from app.models.lesson import Lesson
from app.models.lesson_progress import LessonProgress
from app.models.user import User
from app.services.enrollment_progress import ReconcilerConfig, enrollment_progress_service

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
SCRIPT = os.path.join(ROOT_DIR, "scripts", "fix_enrollment_progress.py")


@pytest.fixture
def seeded_database(tmp_path):
    """Separate SQLite file holding one drifted and one correct enrollment."""
    url = f"sqlite:///{tmp_path / 'maintenance.db'}"
    engine = create_db_engine(url)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal(bind=engine)
    try:
        student = User(full_name="Script Student", email="script-student@test.com", role=RoleEnum.STUDENT)
        course = Course(title="Ten lessons")
        db.add_all([student, course])
        db.flush()
        chapter = Chapter(title="Chapter 1", order=1, course_id=course.id)
        db.add(chapter)
        db.flush()
        lessons = [
            Lesson(title=f"Lesson {i + 1}", order=i + 1, chapter_id=chapter.id, course_id=course.id, is_published=True)
            for i in range(10)
        ]
        db.add_all(lessons)
        db.flush()
        for lesson in lessons[:7]:
            db.add(LessonProgress(user_id=student.id, course_id=course.id, lesson_id=lesson.id, is_completed=True))

        other = User(full_name="Other Student", email="other-student@test.com", role=RoleEnum.STUDENT)
        db.add(other)
        db.flush()
        drifted = CourseEnrollment(student_id=student.id, course_id=course.id, progress=50, status=EnrollmentStatusEnum.ACTIVE)
        correct = CourseEnrollment(student_id=other.id, course_id=course.id, progress=0, status=EnrollmentStatusEnum.ACTIVE)
        db.add_all([drifted, correct])
        db.commit()
        ids = {"drifted": drifted.id, "correct": correct.id}
    finally:
        db.close()
        engine.dispose()
    return url, ids


def _enrollment_state(url, enrollment_id):
    engine = create_db_engine(url)
    db = SessionLocal(bind=engine)
    try:
        enrollment = db.get(CourseEnrollment, enrollment_id)
        return enrollment.progress, enrollment.status, enrollment.last_accessed_at
    finally:
        db.close()
        engine.dispose()


def _run_script(tmp_path, *args):
    env = {
        key: value for key, value in os.environ.items()
        if key not in ("SECRET_KEY", "DATABASE_URL", "SSLCOMMERZ_STORE_ID", "SSLCOMMERZ_STORE_PASSWORD")
    }
    env["LOG_DIR"] = str(tmp_path / "logs")
    return subprocess.run(
        [sys.executable, SCRIPT, *args],
        cwd=ROOT_DIR,
        env=env,
        capture_output=True,
        text=True,
        timeout=120,
    )


def test_script_fixes_drift_with_only_a_database_url(tmp_path, seeded_database):
    url, ids = seeded_database

    completed = _run_script(tmp_path, "--database-url", url)

    assert completed.returncode == 0, completed.stderr
    assert "Fixed:             1" in completed.stdout
    assert "Already correct:   1" in completed.stdout
    progress, status, last_accessed_at = _enrollment_state(url, ids["drifted"])
    assert progress == 70
    assert status == EnrollmentStatusEnum.ACTIVE
    assert last_accessed_at is not None
    assert _enrollment_state(url, ids["correct"])[0] == 0


def test_script_dry_run_leaves_rows_alone(tmp_path, seeded_database):
    url, ids = seeded_database

    completed = _run_script(tmp_path, "--database-url", url, "--dry-run")

    assert completed.returncode == 0, completed.stderr
    assert "Fixed:             1" in completed.stdout
    assert _enrollment_state(url, ids["drifted"])[0] == 50


def test_script_without_database_url_exits_with_usage_error(tmp_path):
    completed = _run_script(tmp_path)

    assert completed.returncode == 2
    assert "DATABASE_URL" in completed.stderr


def test_run_uses_its_own_engine(seeded_database):
    url, ids = seeded_database

    summary = enrollment_progress_service.run(ReconcilerConfig(database_url=url, batch_size=1))

    assert summary.total_processed == 2
    assert summary.fixed_count == 1
    assert summary.already_correct_count == 1
    assert summary.failed_count == 0
    assert _enrollment_state(url, ids["drifted"])[:2] == (70, EnrollmentStatusEnum.ACTIVE)

    again = enrollment_progress_service.run(ReconcilerConfig(database_url=url))
    assert again.fixed_count == 0
    assert again.already_correct_count == 2
