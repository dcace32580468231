from sqlalchemy.orm import Session, selectinload
from typing import Iterator, Optional

from app.crud.base import CRUDBase
from app.models.course_enrollment import CourseEnrollment
from app.schemas.course_enrollment import CourseEnrollmentCreate, CourseEnrollmentUpdate

class CRUDCourseEnrollment(CRUDBase[CourseEnrollment, CourseEnrollmentCreate, CourseEnrollmentUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(CourseEnrollment).options(
            selectinload(CourseEnrollment.student),
            selectinload(CourseEnrollment.course),
        )

    def get(self, db: Session, id: int) -> Optional[CourseEnrollment]:
        return self._query_with_relationships(db).filter(CourseEnrollment.id == id).first()

    def get_by_student_and_course(self, db: Session, student_id: int, course_id: int) -> Optional[CourseEnrollment]:
        return (
            self._query_with_relationships(db)
            .filter(CourseEnrollment.student_id == student_id)
            .filter(CourseEnrollment.course_id == course_id)
            .first()
        )

    def iter_all(self, db: Session, batch_size: int = 500) -> Iterator[CourseEnrollment]:
        """Yield every enrollment, ordered by id, in batches."""
        last_id = 0
        while True:
            batch = (
                self._query_with_relationships(db)
                .filter(CourseEnrollment.id > last_id)
                .order_by(CourseEnrollment.id)
                .limit(batch_size)
                .all()
            )
            if not batch:
                return
            for enrollment in batch:
                last_id = enrollment.id
                yield enrollment

course_enrollment = CRUDCourseEnrollment(CourseEnrollment)
