from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, JSON, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import PaymentStatusEnum, RefundStatusEnum, PaymentGatewayEnum

class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_student_course", "student_id", "course_id"),
        Index("ix_payments_status_initiated", "status", "initiated_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(String, unique=True, index=True, nullable=False)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id"), nullable=False, index=True)
    enrollment_id = Column(Integer, ForeignKey("course_enrollments.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="BDT")
    status = Column(SQLEnum(PaymentStatusEnum), nullable=False, default=PaymentStatusEnum.PENDING, index=True)
    payment_gateway = Column(SQLEnum(PaymentGatewayEnum), nullable=False, default=PaymentGatewayEnum.SSLCOMMERZ)

    # Gateway fields
    session_key = Column(String, nullable=True)
    val_id = Column(String, nullable=True, index=True)
    bank_tran_id = Column(String, nullable=True)
    card_type = Column(String, nullable=True)
    card_issuer = Column(String, nullable=True)
    tran_date = Column(String, nullable=True)
    gateway_response = Column(JSON, nullable=True)

    # Lifecycle timestamps, each written once
    initiated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)

    notes = Column(String(500), nullable=True)
    refund_reason = Column(String(500), nullable=True)
    refund_amount = Column(Float, nullable=True)
    refund_ref_id = Column(String, nullable=True, index=True)
    refund_transaction_id = Column(String, nullable=True)
    refund_status = Column(SQLEnum(RefundStatusEnum), nullable=True)
    refund_initiated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    refunded_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    student = relationship("User", foreign_keys=[student_id])
    course = relationship("Course")
    enrollment = relationship("CourseEnrollment", back_populates="payments")
    refunder = relationship("User", foreign_keys=[refunded_by])

    __mapper_args__ = {"version_id_col": version}
