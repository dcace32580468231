from enum import Enum


class RoleEnum(str, Enum):
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"

class CourseStatusEnum(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

class EnrollmentStatusEnum(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"
    SUSPENDED = "suspended"

class EnrollmentPaymentStatusEnum(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"

class PaymentStatusEnum(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

class RefundStatusEnum(str, Enum):
    INITIATED = "initiated"
    PROCESSING = "processing"
    REFUNDED = "refunded"
    FAILED = "failed"

class PaymentGatewayEnum(str, Enum):
    SSLCOMMERZ = "sslcommerz"

class ReconcileResultEnum(str, Enum):
    FIXED = "fixed"
    ALREADY_CORRECT = "already_correct"
    SKIPPED = "skipped"

PAYMENT_LOGGER_NAME = "app.payments"
