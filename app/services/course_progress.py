from datetime import datetime, timezone
from typing import List, Optional
from sqlalchemy.orm import Session

from app.crud.course_enrollment import course_enrollment as crud_enrollment
from app.crud.lesson_progress import lesson_progress as crud_lesson_progress
from app.crud.course import course as crud_course
from app.crud.lesson import lesson as crud_lesson
from app.core.constants import EnrollmentStatusEnum
from app.core.exceptions import NotFoundError, ValidationError
from app.schemas.lesson_progress import LessonProgressCreate
from app.services.enrollment_progress import enrollment_progress_service



class CourseProgressService:

    def _get_or_raise_enrollment(self, db: Session, user_id: int, course_id: int):
        enrollment = crud_enrollment.get_by_student_and_course(db, student_id=user_id, course_id=course_id)
        if not enrollment:
            raise NotFoundError("You are not enrolled in this course.")
        return enrollment

    def complete_lesson(self, db: Session, user_id: int, lesson_id: int, time_spent: Optional[int] = None):
        lesson = crud_lesson.get(db, id=lesson_id)
        if not lesson or not lesson.is_published:
            raise NotFoundError("Lesson not found.")

        enrollment = self._get_or_raise_enrollment(db, user_id, lesson.course_id)
        if enrollment.status in (EnrollmentStatusEnum.DROPPED, EnrollmentStatusEnum.SUSPENDED):
            raise ValidationError("enrollment", f"Enrollment is {enrollment.status.value}.")

        now = datetime.now(timezone.utc)
        lesson_progress = crud_lesson_progress.get_by_user_and_lesson(db, user_id=user_id, lesson_id=lesson_id)
        if not lesson_progress:
            lesson_progress = crud_lesson_progress.create(
                db,
                obj_in=LessonProgressCreate(
                    user_id=user_id,
                    course_id=lesson.course_id,
                    lesson_id=lesson_id,
                    last_accessed_at=now,
                ),
                commit=False,
            )

        lesson_progress.last_accessed_at = now
        if time_spent:
            lesson_progress.time_spent = (lesson_progress.time_spent or 0) + time_spent
        if not lesson_progress.is_completed:
            lesson_progress.is_completed = True
        if not lesson_progress.completed_at:
            lesson_progress.completed_at = now
        crud_lesson_progress.save(db, db_obj=lesson_progress)

        enrollment_progress_service.reconcile_enrollment(db, enrollment, now=now)
        return lesson_progress

    def get_course_progress(self, db: Session, user_id: int, course_id: int):
        course = crud_course.get(db, id=course_id)
        if not course:
            raise NotFoundError("Course not found.")
        return self._get_or_raise_enrollment(db, user_id, course_id)

    def get_completed_lessons(self, db: Session, user_id: int, course_id: int) -> List[int]:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise NotFoundError("Course not found.")
        return crud_lesson_progress.get_completed_lesson_ids(db, user_id=user_id, course_id=course_id)


course_progress_service = CourseProgressService()
