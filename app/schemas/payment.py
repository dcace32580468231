from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from typing import Optional, Literal, Union, Any, Dict, Annotated
from datetime import datetime

from app.core.constants import PaymentStatusEnum, RefundStatusEnum, PaymentGatewayEnum


class PaymentSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transaction_id: str
    student_id: int
    course_id: int
    enrollment_id: int
    amount: float
    currency: str
    status: PaymentStatusEnum
    payment_gateway: PaymentGatewayEnum
    bank_tran_id: Optional[str] = None
    initiated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    refund_status: Optional[RefundStatusEnum] = None
    refund_amount: Optional[float] = None
    refund_reason: Optional[str] = None
    refund_ref_id: Optional[str] = None
    refunded_by: Optional[int] = None


class CheckoutRequest(BaseModel):
    course_id: int


class CheckoutSession(BaseModel):
    payment_id: int
    transaction_id: str
    amount: float
    currency: str
    session_key: Optional[str] = None
    gateway_url: str


class PaymentTransitionRequest(BaseModel):
    status: PaymentStatusEnum
    gateway_payload: Optional[Dict[str, Any]] = None


class RefundRequest(BaseModel):
    """Admin refund request. Bounds against the payment are checked by the service."""
    amount: float
    reason: str
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: str) -> str:
        return v.strip()


class RefundInitiated(BaseModel):
    refund_ref_id: str
    refund_transaction_id: str
    refund_amount: float
    status: RefundStatusEnum


class RefundStatusResult(BaseModel):
    refund_ref_id: str
    refund_status: RefundStatusEnum
    payment_status: PaymentStatusEnum
    changed: bool
    initiated_on: Optional[str] = None
    refunded_on: Optional[str] = None


class PaymentStats(BaseModel):
    total: int = 0
    pending: int = 0
    success: int = 0
    failed: int = 0
    cancelled: int = 0
    refunded: int = 0
    total_amount: float = 0
    average_amount: float = 0


# Gateway IPN events, validated at the boundary and dispatched on `status`.

class _GatewayEventBase(BaseModel):
    model_config = ConfigDict(extra="allow")

    tran_id: str
    amount: float
    val_id: Optional[str] = None
    bank_tran_id: Optional[str] = None
    tran_date: Optional[str] = None
    currency: Optional[str] = None

    def raw(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ValidPaymentEvent(_GatewayEventBase):
    status: Literal["VALID", "VALIDATED"]
    card_type: Optional[str] = None
    card_issuer: Optional[str] = None

    @property
    def target_status(self) -> PaymentStatusEnum:
        return PaymentStatusEnum.SUCCESS


class FailedPaymentEvent(_GatewayEventBase):
    status: Literal["FAILED", "EXPIRED", "UNATTEMPTED"]
    risk_title: Optional[str] = None

    @property
    def target_status(self) -> PaymentStatusEnum:
        return PaymentStatusEnum.FAILED


class CancelledPaymentEvent(_GatewayEventBase):
    status: Literal["CANCELLED"]

    @property
    def target_status(self) -> PaymentStatusEnum:
        return PaymentStatusEnum.CANCELLED


GatewayEvent = Annotated[
    Union[ValidPaymentEvent, FailedPaymentEvent, CancelledPaymentEvent],
    Field(discriminator="status"),
]

gateway_event_adapter = TypeAdapter(GatewayEvent)
