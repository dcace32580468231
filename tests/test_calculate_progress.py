import pytest

from app.core.constants import EnrollmentStatusEnum
from app.models.course_enrollment import CourseEnrollment
from app.services.enrollment_progress import calculate_progress, has_drift, apply_snapshot
from datetime import datetime, timezone


@pytest.mark.parametrize(
    "total, completed, expected",
    [
        (4, 0, 0),
        (4, 1, 25),
        (3, 1, 33),
        (3, 2, 67),
        (8, 1, 13),   # 12.5 rounds up
        (200, 1, 1),  # 0.5 rounds up
        (7, 7, 100),
        (10, 7, 70),
        (12, 11, 92),
        (12, 12, 100),
    ],
)
def test_progress_is_rounded_half_up(total, completed, expected):
    assert calculate_progress(total, completed).progress == expected


def test_completion_requires_every_lesson():
    assert calculate_progress(5, 5).should_be_completed is True
    assert calculate_progress(5, 4).should_be_completed is False
    assert calculate_progress(12, 12).should_be_completed is True
    assert calculate_progress(12, 11).should_be_completed is False
    assert calculate_progress(10, 7).should_be_completed is False


def test_zero_lessons_never_completes():
    snapshot = calculate_progress(0, 0)
    assert snapshot.progress == 0
    assert snapshot.should_be_completed is False


def _enrollment(progress, status):
    return CourseEnrollment(student_id=1, course_id=1, progress=progress, status=status)


def test_drift_detection():
    snapshot = calculate_progress(4, 4)
    assert has_drift(_enrollment(100, EnrollmentStatusEnum.ACTIVE), snapshot)
    assert has_drift(_enrollment(75, EnrollmentStatusEnum.COMPLETED), calculate_progress(4, 3))
    assert has_drift(_enrollment(50, EnrollmentStatusEnum.ACTIVE), calculate_progress(4, 3))
    assert not has_drift(_enrollment(100, EnrollmentStatusEnum.COMPLETED), snapshot)
    assert not has_drift(_enrollment(75, EnrollmentStatusEnum.ACTIVE), calculate_progress(4, 3))


def test_apply_snapshot_stamps_completion_only_on_transition():
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    earlier = datetime(2024, 1, 1, tzinfo=timezone.utc)

    enrollment = _enrollment(50, EnrollmentStatusEnum.ACTIVE)
    apply_snapshot(enrollment, calculate_progress(2, 2), now)
    assert enrollment.status == EnrollmentStatusEnum.COMPLETED
    assert enrollment.progress == 100
    assert enrollment.completed_at == now
    assert enrollment.last_accessed_at == now

    already_done = _enrollment(90, EnrollmentStatusEnum.COMPLETED)
    already_done.completed_at = earlier
    apply_snapshot(already_done, calculate_progress(2, 2), now)
    assert already_done.completed_at == earlier


def test_apply_snapshot_demotes_to_active():
    enrollment = _enrollment(100, EnrollmentStatusEnum.COMPLETED)
    apply_snapshot(enrollment, calculate_progress(3, 2), datetime.now(timezone.utc))
    assert enrollment.status == EnrollmentStatusEnum.ACTIVE
    assert enrollment.progress == 67
