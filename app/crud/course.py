from app.crud.base import CRUDBase
from app.models.course import Course
from pydantic import BaseModel


class CRUDCourse(CRUDBase[Course, BaseModel, BaseModel]):
    pass


course = CRUDCourse(Course)
