from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Float
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import CourseStatusEnum

class Course(Base):
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(String, nullable=True)
    is_paid = Column(Boolean, nullable=False, default=False)
    price = Column(Float, nullable=False, default=0)
    sale_price = Column(Float, nullable=True)
    status = Column(Enum(CourseStatusEnum), nullable=False, default=CourseStatusEnum.DRAFT)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    chapters = relationship("Chapter", back_populates="course", cascade="all, delete-orphan")
    lessons = relationship("Lesson", back_populates="course")
    enrollments = relationship("CourseEnrollment", back_populates="course")

    @property
    def effective_price(self) -> float:
        if self.sale_price is not None:
            return self.sale_price
        return self.price

    def pricing_errors(self):
        """Return (field, message) pairs for every broken pricing rule."""
        errors = []
        if self.is_paid and not (self.price or 0) > 0:
            errors.append(("price", "Paid courses must have a price greater than 0"))
        if self.sale_price is not None and not self.sale_price < (self.price or 0):
            errors.append(("sale_price", "Sale price must be lower than the regular price"))
        return errors
