from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum as SQLEnum, Float, String, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.constants import EnrollmentStatusEnum, EnrollmentPaymentStatusEnum

class CourseEnrollment(Base):
    __tablename__ = "course_enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_enrollment_progress_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    enrolled_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    status = Column(SQLEnum(EnrollmentStatusEnum), nullable=False, default=EnrollmentStatusEnum.ACTIVE)
    progress = Column(Integer, nullable=False, default=0)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    payment_status = Column(SQLEnum(EnrollmentPaymentStatusEnum), nullable=False, default=EnrollmentPaymentStatusEnum.PENDING)
    payment_amount = Column(Float, nullable=True)
    payment_id = Column(String, nullable=True, index=True)  # gateway transaction id
    notes = Column(String(500), nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)

    student = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")
    payments = relationship("Payment", back_populates="enrollment")

    __mapper_args__ = {"version_id_col": version}
