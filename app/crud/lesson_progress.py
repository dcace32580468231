from sqlalchemy.orm import Session
from typing import List, Optional

from app.crud.base import CRUDBase
from app.models.lesson_progress import LessonProgress
from app.models.lesson import Lesson
from app.schemas.lesson_progress import LessonProgressCreate, LessonProgressUpdate

class CRUDLessonProgress(CRUDBase[LessonProgress, LessonProgressCreate, LessonProgressUpdate]):

    def get_by_user_and_lesson(self, db: Session, user_id: int, lesson_id: int) -> Optional[LessonProgress]:
        return (
            db.query(LessonProgress)
            .filter(LessonProgress.user_id == user_id)
            .filter(LessonProgress.lesson_id == lesson_id)
            .first()
        )

    def count_completed(self, db: Session, user_id: int, course_id: int) -> int:
        """Completed records whose lesson is still published in the course."""
        return (
            db.query(LessonProgress)
            .join(Lesson, Lesson.id == LessonProgress.lesson_id)
            .filter(Lesson.is_published.is_(True))
            .filter(LessonProgress.user_id == user_id)
            .filter(LessonProgress.course_id == course_id)
            .filter(LessonProgress.is_completed.is_(True))
            .count()
        )

    def get_completed_lesson_ids(self, db: Session, user_id: int, course_id: int) -> List[int]:
        results = (
            db.query(LessonProgress.lesson_id)
            .filter(LessonProgress.user_id == user_id)
            .filter(LessonProgress.course_id == course_id)
            .filter(LessonProgress.is_completed.is_(True))
            .all()
        )
        return [row.lesson_id for row in results]


lesson_progress = CRUDLessonProgress(LessonProgress)
