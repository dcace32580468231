import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.orm import Session

from app.core.constants import EnrollmentStatusEnum, ReconcileResultEnum
from app.core.database import SessionLocal, create_db_engine
from app.core.exceptions import NotFoundError
from app.crud.course_enrollment import course_enrollment as crud_enrollment
from app.crud.lesson import lesson as crud_lesson
from app.crud.lesson_progress import lesson_progress as crud_lesson_progress
from app.models.course_enrollment import CourseEnrollment
# Registers the mappers CourseEnrollment relationships point at
from app.models.course import Course  # noqa: F401
from app.models.payment import Payment  # noqa: F401
from app.models.user import User  # noqa: F401
from app.schemas.course_enrollment import ProgressSnapshot, ReconcileOutcome, ReconciliationSummary

logger = logging.getLogger(__name__)


class ReconcilerConfig(BaseModel):
    """Settings handed to a standalone reconciliation run at process start."""
    database_url: str
    dry_run: bool = False
    batch_size: int = 500


def calculate_progress(total_lessons: int, completed_lessons: int) -> ProgressSnapshot:
    """Integer percentage rounded half-up; zero lessons never counts as complete."""
    if total_lessons <= 0:
        return ProgressSnapshot(total_lessons=0, completed_lessons=completed_lessons, progress=0, should_be_completed=False)
    progress = (200 * completed_lessons + total_lessons) // (2 * total_lessons)
    return ProgressSnapshot(
        total_lessons=total_lessons,
        completed_lessons=completed_lessons,
        progress=progress,
        should_be_completed=completed_lessons == total_lessons,
    )


def has_drift(enrollment: CourseEnrollment, snapshot: ProgressSnapshot) -> bool:
    is_completed = enrollment.status == EnrollmentStatusEnum.COMPLETED
    return (
        enrollment.progress != snapshot.progress
        or (snapshot.should_be_completed and not is_completed)
        or (not snapshot.should_be_completed and is_completed)
    )


def apply_snapshot(enrollment: CourseEnrollment, snapshot: ProgressSnapshot, now: datetime) -> None:
    was_completed = enrollment.status == EnrollmentStatusEnum.COMPLETED
    enrollment.progress = snapshot.progress
    enrollment.status = EnrollmentStatusEnum.COMPLETED if snapshot.should_be_completed else EnrollmentStatusEnum.ACTIVE
    enrollment.last_accessed_at = now
    if snapshot.should_be_completed and not was_completed:
        enrollment.completed_at = now


class EnrollmentProgressService:

    def snapshot_for(self, db: Session, enrollment: CourseEnrollment) -> ProgressSnapshot:
        total = crud_lesson.count_published_by_course(db, course_id=enrollment.course_id)
        completed = crud_lesson_progress.count_completed(
            db, user_id=enrollment.student_id, course_id=enrollment.course_id
        )
        return calculate_progress(total, completed)

    def reconcile_enrollment(
        self,
        db: Session,
        enrollment: CourseEnrollment,
        now: Optional[datetime] = None,
        dry_run: bool = False,
    ) -> ReconcileOutcome:
        snapshot = self.snapshot_for(db, enrollment)
        outcome = ReconcileOutcome(
            enrollment_id=enrollment.id,
            result=ReconcileResultEnum.ALREADY_CORRECT,
            previous_progress=enrollment.progress,
            previous_status=enrollment.status,
            progress=enrollment.progress,
            status=enrollment.status,
        )

        if snapshot.total_lessons == 0:
            logger.info(f"Course {enrollment.course_id} has no published lessons, skipping enrollment {enrollment.id}")
            outcome.result = ReconcileResultEnum.SKIPPED
            return outcome

        if not has_drift(enrollment, snapshot):
            return outcome

        target_status = EnrollmentStatusEnum.COMPLETED if snapshot.should_be_completed else EnrollmentStatusEnum.ACTIVE
        logger.info(
            f"Fixing enrollment {enrollment.id} (student {enrollment.student_id}, course {enrollment.course_id}): "
            f"progress {enrollment.progress}% -> {snapshot.progress}%, status {enrollment.status.value} -> {target_status.value}"
        )
        outcome.result = ReconcileResultEnum.FIXED
        outcome.progress = snapshot.progress
        outcome.status = target_status
        if dry_run:
            return outcome

        apply_snapshot(enrollment, snapshot, now or datetime.now(timezone.utc))
        crud_enrollment.save(db, db_obj=enrollment)
        return outcome

    def reconcile_for_student(self, db: Session, student_id: int, course_id: int) -> ReconcileOutcome:
        enrollment = crud_enrollment.get_by_student_and_course(db, student_id=student_id, course_id=course_id)
        if not enrollment:
            raise NotFoundError(f"No enrollment for student {student_id} in course {course_id}")
        return self.reconcile_enrollment(db, enrollment)

    def reconcile_all(self, db: Session, dry_run: bool = False, batch_size: int = 500) -> ReconciliationSummary:
        summary = ReconciliationSummary()
        for enrollment in crud_enrollment.iter_all(db, batch_size=batch_size):
            enrollment_id = enrollment.id
            try:
                outcome = self.reconcile_enrollment(db, enrollment, dry_run=dry_run)
            except (IntegrityError, DataError, StaleDataError) as e:
                db.rollback()
                summary.failed_count += 1
                logger.error(f"Failed to reconcile enrollment {enrollment_id}: {e}")
                continue

            if outcome.result == ReconcileResultEnum.SKIPPED:
                summary.skipped_count += 1
                continue
            if outcome.result == ReconcileResultEnum.FIXED:
                summary.fixed_count += 1
            else:
                summary.already_correct_count += 1
            summary.total_processed += 1

        logger.info(
            f"Reconciliation finished: processed={summary.total_processed} fixed={summary.fixed_count} "
            f"already_correct={summary.already_correct_count} skipped={summary.skipped_count} failed={summary.failed_count}"
        )
        return summary

    def run(self, config: ReconcilerConfig) -> ReconciliationSummary:
        """Standalone sweep with its own engine, for maintenance scripts."""
        engine = create_db_engine(config.database_url)
        db = SessionLocal(bind=engine)
        try:
            return self.reconcile_all(db, dry_run=config.dry_run, batch_size=config.batch_size)
        finally:
            db.close()
            engine.dispose()


enrollment_progress_service = EnrollmentProgressService()
