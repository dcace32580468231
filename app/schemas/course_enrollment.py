from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
from app.core.constants import EnrollmentStatusEnum, EnrollmentPaymentStatusEnum, ReconcileResultEnum


class CourseEnrollmentBase(BaseModel):
    student_id: int
    course_id: int
    status: Optional[EnrollmentStatusEnum] = EnrollmentStatusEnum.ACTIVE


class CourseEnrollmentCreate(CourseEnrollmentBase):
    payment_status: Optional[EnrollmentPaymentStatusEnum] = EnrollmentPaymentStatusEnum.PENDING
    payment_amount: Optional[float] = None
    payment_id: Optional[str] = None


class CourseEnrollmentUpdate(BaseModel):
    status: Optional[EnrollmentStatusEnum] = None
    progress: Optional[int] = None
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    payment_status: Optional[EnrollmentPaymentStatusEnum] = None
    notes: Optional[str] = None


class CourseEnrollment(CourseEnrollmentBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    enrolled_at: datetime
    progress: int
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    payment_status: EnrollmentPaymentStatusEnum
    payment_amount: Optional[float] = None


class ProgressSnapshot(BaseModel):
    """Progress recomputed from completion records."""
    total_lessons: int
    completed_lessons: int
    progress: int
    should_be_completed: bool


class ReconcileOutcome(BaseModel):
    enrollment_id: int
    result: ReconcileResultEnum
    previous_progress: Optional[int] = None
    previous_status: Optional[EnrollmentStatusEnum] = None
    progress: Optional[int] = None
    status: Optional[EnrollmentStatusEnum] = None


class ReconciliationSummary(BaseModel):
    total_processed: int = 0
    fixed_count: int = 0
    already_correct_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
