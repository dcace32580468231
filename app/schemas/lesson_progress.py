from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime


class LessonProgressBase(BaseModel):
    user_id: int
    course_id: int
    lesson_id: int


class LessonProgressCreate(LessonProgressBase):
    last_accessed_at: Optional[datetime] = None


class LessonProgressUpdate(BaseModel):
    is_completed: Optional[bool] = None
    completed_at: Optional[datetime] = None
    time_spent: Optional[int] = None
    last_accessed_at: Optional[datetime] = None


class LessonCompletionRequest(BaseModel):
    time_spent: Optional[int] = None


class LessonProgress(LessonProgressBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_completed: bool
    completed_at: Optional[datetime] = None
    time_spent: int
    last_accessed_at: Optional[datetime] = None
