"""Payment and refund state machines.

Both tables list every legal move; anything else raises InvalidTransitionError.
Re-observing the current state is accepted and changes nothing, so duplicate
gateway callbacks are harmless. Lifecycle timestamps are only written when empty.
"""
from datetime import datetime, timezone
from typing import Optional

from app.core.constants import PaymentStatusEnum, RefundStatusEnum
from app.core.exceptions import InvalidTransitionError
from app.models.payment import Payment

PAYMENT_TRANSITIONS = {
    PaymentStatusEnum.PENDING: {PaymentStatusEnum.SUCCESS, PaymentStatusEnum.FAILED, PaymentStatusEnum.CANCELLED},
    PaymentStatusEnum.SUCCESS: {PaymentStatusEnum.REFUNDED},
    PaymentStatusEnum.FAILED: set(),
    PaymentStatusEnum.CANCELLED: set(),
    PaymentStatusEnum.REFUNDED: set(),
}

# None is the state before any refund was requested
REFUND_TRANSITIONS = {
    None: {RefundStatusEnum.INITIATED},
    RefundStatusEnum.INITIATED: {RefundStatusEnum.PROCESSING, RefundStatusEnum.REFUNDED, RefundStatusEnum.FAILED},
    RefundStatusEnum.PROCESSING: {RefundStatusEnum.REFUNDED, RefundStatusEnum.FAILED},
    RefundStatusEnum.REFUNDED: set(),
    RefundStatusEnum.FAILED: set(),
}

# Position in the refund lifecycle; gateway reports can arrive out of order
REFUND_STATUS_RANK = {
    RefundStatusEnum.INITIATED: 1,
    RefundStatusEnum.PROCESSING: 2,
    RefundStatusEnum.REFUNDED: 3,
    RefundStatusEnum.FAILED: 3,
}

TIMESTAMP_FIELDS = {
    PaymentStatusEnum.SUCCESS: "completed_at",
    PaymentStatusEnum.FAILED: "failed_at",
    PaymentStatusEnum.CANCELLED: "failed_at",
    PaymentStatusEnum.REFUNDED: "refunded_at",
}


def assert_payment_transition(current: PaymentStatusEnum, target: PaymentStatusEnum) -> None:
    if target not in PAYMENT_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError("payment", current.value if current else None, target.value)


def assert_refund_transition(current: Optional[RefundStatusEnum], target: RefundStatusEnum) -> None:
    if target not in REFUND_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError("refund", current.value if current else None, target.value)


def is_stale_refund_report(current: Optional[RefundStatusEnum], reported: RefundStatusEnum) -> bool:
    """True when the gateway reports a refund state the payment has already moved past."""
    if current is None:
        return False
    return REFUND_STATUS_RANK[reported] < REFUND_STATUS_RANK[current]


def _stamp_once(payment: Payment, status: PaymentStatusEnum, now: datetime) -> None:
    field = TIMESTAMP_FIELDS.get(status)
    if field and getattr(payment, field) is None:
        setattr(payment, field, now)


def apply_payment_status(
    payment: Payment,
    target: PaymentStatusEnum,
    now: Optional[datetime] = None,
    via_refund: bool = False,
) -> bool:
    """Move payment.status to target. Returns False when already there."""
    if payment.status == target:
        return False
    if target == PaymentStatusEnum.REFUNDED and not via_refund:
        raise InvalidTransitionError("payment", payment.status.value, target.value)
    assert_payment_transition(payment.status, target)

    payment.status = target
    _stamp_once(payment, target, now or datetime.now(timezone.utc))
    return True


def apply_refund_status(
    payment: Payment,
    target: RefundStatusEnum,
    acting_admin_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Move payment.refund_status to target; completing the refund also refunds the payment."""
    if payment.refund_status == target:
        return False
    if payment.status != PaymentStatusEnum.SUCCESS:
        raise InvalidTransitionError("refund", payment.refund_status.value if payment.refund_status else None, target.value)
    assert_refund_transition(payment.refund_status, target)

    now = now or datetime.now(timezone.utc)
    payment.refund_status = target
    if target == RefundStatusEnum.REFUNDED:
        apply_payment_status(payment, PaymentStatusEnum.REFUNDED, now=now, via_refund=True)
        if payment.refunded_by is None:
            payment.refunded_by = acting_admin_id or payment.refund_initiated_by
    return True
