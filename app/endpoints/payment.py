from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.crud.payment import payment as crud_payment
from app.models.user import User
from app.schemas.payment import (
    CheckoutRequest,
    CheckoutSession,
    PaymentSchema,
    PaymentStats,
    PaymentTransitionRequest,
    RefundInitiated,
    RefundRequest,
    RefundStatusResult,
    gateway_event_adapter,
)
from app.schemas.response import APIResponse, Page
from app.services.payment import payment_service
from app.utils import deps

router = APIRouter()


@router.post("/checkout", response_model=APIResponse[CheckoutSession])
async def initiate_checkout(
    *,
    db: Session = Depends(deps.get_transactional_db),
    checkout_in: CheckoutRequest,
    current_user: User = Depends(deps.require_student)
):
    session = await payment_service.initiate_checkout(db, student_id=current_user.id, course_id=checkout_in.course_id)
    return APIResponse(message="Payment session created", data=session)


@router.post("/ipn", response_model=APIResponse[PaymentSchema])
async def payment_ipn(
    *,
    request: Request,
    db: Session = Depends(deps.get_transactional_db)
):
    form = await request.form()
    try:
        event = gateway_event_adapter.validate_python(dict(form))
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "payload"
        raise ValidationError(field, first.get("msg", "Invalid gateway payload"))

    payment = await payment_service.handle_gateway_event(db, event)
    return APIResponse(message="IPN processed", data=PaymentSchema.model_validate(payment))


@router.post("/{payment_id}/transition", response_model=APIResponse[PaymentSchema])
def transition_payment(
    *,
    db: Session = Depends(deps.get_transactional_db),
    payment_id: int,
    transition_in: PaymentTransitionRequest,
    current_user: User = Depends(deps.require_admin)
):
    payment = payment_service.transition(
        db, payment_id=payment_id, target_status=transition_in.status, gateway_payload=transition_in.gateway_payload
    )
    return APIResponse(message="Payment status updated", data=PaymentSchema.model_validate(payment))


@router.post("/{payment_id}/refund", response_model=APIResponse[RefundInitiated])
async def initiate_refund(
    *,
    db: Session = Depends(deps.get_transactional_db),
    payment_id: int,
    refund_in: RefundRequest,
    current_user: User = Depends(deps.require_admin)
):
    refund = await payment_service.initiate_refund(
        db, payment_id=payment_id, request=refund_in, acting_admin_id=current_user.id
    )
    return APIResponse(message="Refund initiated successfully", data=refund)


@router.get("/refunds/{refund_ref_id}/status", response_model=APIResponse[RefundStatusResult])
async def check_refund_status(
    *,
    db: Session = Depends(deps.get_transactional_db),
    refund_ref_id: str,
    current_user: User = Depends(deps.require_admin)
):
    result = await payment_service.check_refund_status(
        db, refund_ref_id=refund_ref_id, acting_admin_id=current_user.id
    )
    return APIResponse(message="Refund status retrieved", data=result)


@router.get("/eligible-refunds", response_model=APIResponse[Page[PaymentSchema]])
def get_eligible_refunds(
    *,
    db: Session = Depends(deps.get_db),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    current_user: User = Depends(deps.require_admin)
):
    items, total = crud_payment.get_eligible_for_refund(db, search=search, skip=(page - 1) * size, limit=size)
    return APIResponse(
        message="Eligible refunds retrieved",
        data=Page(items=[PaymentSchema.model_validate(p) for p in items], total=total, page=page, size=size)
    )


@router.get("/refund-history", response_model=APIResponse[Page[PaymentSchema]])
def get_refund_history(
    *,
    db: Session = Depends(deps.get_db),
    page: int = Query(1, ge=1),
    size: int = Query(10, ge=1, le=100),
    current_user: User = Depends(deps.require_admin)
):
    items, total = crud_payment.get_refund_history(db, skip=(page - 1) * size, limit=size)
    return APIResponse(
        message="Refund history retrieved",
        data=Page(items=[PaymentSchema.model_validate(p) for p in items], total=total, page=page, size=size)
    )


@router.get("/stats", response_model=APIResponse[PaymentStats])
def get_payment_stats(
    *,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.require_admin)
):
    return APIResponse(message="Payment statistics retrieved", data=PaymentStats(**crud_payment.get_stats(db)))
