from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.models.chapter import Chapter  # noqa: F401  registers the mapper

class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    order = Column(Integer, nullable=False, default=1)
    duration = Column(Integer, nullable=True)  # minutes
    is_published = Column(Boolean, nullable=False, default=False)
    is_free = Column(Boolean, nullable=False, default=False)
    chapter_id = Column(Integer, ForeignKey("chapters.id"), nullable=False, index=True)
    # Denormalized from the chapter for counting without a join
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    chapter = relationship("Chapter", back_populates="lessons")
    course = relationship("Course", back_populates="lessons")
    progress_records = relationship("LessonProgress", back_populates="lesson")
