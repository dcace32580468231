from sqlalchemy.orm import Session
from pydantic import BaseModel

from app.crud.base import CRUDBase
from app.models.lesson import Lesson


class CRUDLesson(CRUDBase[Lesson, BaseModel, BaseModel]):

    def count_published_by_course(self, db: Session, course_id: int) -> int:
        return (
            db.query(Lesson)
            .filter(Lesson.course_id == course_id)
            .filter(Lesson.is_published.is_(True))
            .count()
        )


lesson = CRUDLesson(Lesson)
