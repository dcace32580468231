import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import (
    PAYMENT_LOGGER_NAME,
    EnrollmentPaymentStatusEnum,
    EnrollmentStatusEnum,
    PaymentGatewayEnum,
    PaymentStatusEnum,
    RefundStatusEnum,
)
from app.core.exceptions import GatewayError, InvalidTransitionError, NotFoundError, ValidationError
from app.crud.course import course as crud_course
from app.crud.course_enrollment import course_enrollment as crud_enrollment
from app.crud.payment import payment as crud_payment
from app.crud.user import user as crud_user
from app.models.payment import Payment
from app.schemas.payment import (
    CheckoutSession,
    RefundInitiated,
    RefundRequest,
    RefundStatusResult,
    ValidPaymentEvent,
)
from app.services.payment_state import (
    apply_payment_status,
    apply_refund_status,
    assert_refund_transition,
    is_stale_refund_report,
)
from app.services.sslcommerz import SSLCommerzClient, sslcommerz_client

logger = logging.getLogger(__name__)
payment_logger = logging.getLogger(PAYMENT_LOGGER_NAME)

ENROLLMENT_PAYMENT_STATUS = {
    PaymentStatusEnum.SUCCESS: EnrollmentPaymentStatusEnum.PAID,
    PaymentStatusEnum.FAILED: EnrollmentPaymentStatusEnum.FAILED,
    PaymentStatusEnum.CANCELLED: EnrollmentPaymentStatusEnum.FAILED,
    PaymentStatusEnum.REFUNDED: EnrollmentPaymentStatusEnum.REFUNDED,
}

AMOUNT_TOLERANCE = 0.01


class PaymentService:
    def __init__(self, gateway: SSLCommerzClient = sslcommerz_client):
        self.gateway = gateway

    def _get_or_raise(self, db: Session, payment_id: int) -> Payment:
        payment = crud_payment.get(db, id=payment_id)
        if not payment:
            raise NotFoundError("Payment not found")
        return payment

    def _sync_enrollment(self, payment: Payment, note: Optional[str] = None) -> None:
        enrollment = payment.enrollment
        if not enrollment:
            return
        enrollment_status = ENROLLMENT_PAYMENT_STATUS.get(payment.status)
        if enrollment_status:
            enrollment.payment_status = enrollment_status
        if payment.status == PaymentStatusEnum.SUCCESS and enrollment.status == EnrollmentStatusEnum.SUSPENDED:
            enrollment.status = EnrollmentStatusEnum.ACTIVE
        if note:
            enrollment.notes = note[:500]

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    async def initiate_checkout(self, db: Session, student_id: int, course_id: int) -> CheckoutSession:
        course = crud_course.get(db, id=course_id)
        if not course:
            raise NotFoundError("Course not found")
        if not course.is_paid:
            raise ValidationError("course_id", "Course is free, no payment required")
        pricing_errors = course.pricing_errors()
        if pricing_errors:
            field, message = pricing_errors[0]
            raise ValidationError(field, message)

        student = crud_user.get(db, id=student_id)
        if not student:
            raise NotFoundError("User not found")

        enrollment = crud_enrollment.get_by_student_and_course(db, student_id=student_id, course_id=course_id)
        if enrollment and enrollment.payment_status == EnrollmentPaymentStatusEnum.PAID:
            raise ValidationError("course_id", "Already enrolled in this course")

        amount = course.effective_price
        transaction_id = f"ENROLL_{course_id}_{student_id}_{uuid4().hex[:12]}"

        # Enrollment stays suspended until the gateway confirms payment
        enrollment_fields = {
            "payment_status": EnrollmentPaymentStatusEnum.PENDING,
            "payment_amount": amount,
            "payment_id": transaction_id,
            "status": EnrollmentStatusEnum.SUSPENDED,
        }
        if enrollment:
            enrollment = crud_enrollment.update(db, db_obj=enrollment, obj_in=enrollment_fields, commit=False)
        else:
            enrollment = crud_enrollment.create(
                db, obj_in={"student_id": student_id, "course_id": course_id, **enrollment_fields}, commit=False
            )

        payment = crud_payment.create(
            db,
            obj_in={
                "transaction_id": transaction_id,
                "student_id": student_id,
                "course_id": course_id,
                "enrollment_id": enrollment.id,
                "amount": amount,
                "currency": settings.PAYMENT_CURRENCY,
                "status": PaymentStatusEnum.PENDING,
                "payment_gateway": PaymentGatewayEnum.SSLCOMMERZ,
            },
        )
        payment_logger.info(
            "Payment initiated",
            extra={"event": "initiate", "transaction_id": transaction_id, "payment_id": payment.id},
        )

        session = await self.gateway.create_session({
            "total_amount": f"{amount:.2f}",
            "currency": settings.PAYMENT_CURRENCY,
            "tran_id": transaction_id,
            "success_url": f"{settings.SSLCOMMERZ_SUCCESS_URL}/{transaction_id}",
            "fail_url": f"{settings.SSLCOMMERZ_FAIL_URL}?tran_id={transaction_id}",
            "cancel_url": f"{settings.SSLCOMMERZ_CANCEL_URL}?tran_id={transaction_id}",
            "ipn_url": settings.SSLCOMMERZ_IPN_URL or "",
            "cus_name": student.full_name or student.email,
            "cus_email": student.email,
            "product_name": course.title,
            "product_category": "education",
            "product_profile": "general",
            "shipping_method": "NO",
            "value_a": str(student_id),
            "value_b": str(course_id),
            "value_c": transaction_id,
            "value_d": "course_enrollment",
        })

        payment.session_key = session.get("session_key")
        crud_payment.save(db, db_obj=payment)

        return CheckoutSession(
            payment_id=payment.id,
            transaction_id=transaction_id,
            amount=amount,
            currency=payment.currency,
            session_key=payment.session_key,
            gateway_url=session["gateway_url"],
        )

    # ------------------------------------------------------------------
    # Payment status transitions
    # ------------------------------------------------------------------

    async def handle_gateway_event(self, db: Session, event) -> Payment:
        """Apply a validated IPN event. Duplicate deliveries leave the payment untouched."""
        payment = crud_payment.get_by_transaction_id(db, transaction_id=event.tran_id)
        if not payment:
            raise NotFoundError(f"Payment record not found for transaction {event.tran_id}")

        if payment.status == event.target_status:
            logger.info(f"Duplicate gateway event {event.status} for transaction {event.tran_id}, ignoring")
            return payment

        if isinstance(event, ValidPaymentEvent):
            if abs(event.amount - payment.amount) > AMOUNT_TOLERANCE:
                raise ValidationError("amount", "Paid amount does not match the payment amount")
            if settings.SSLCOMMERZ_VALIDATE_IPN:
                if not event.val_id:
                    raise ValidationError("val_id", "Validation id is required")
                if not await self.gateway.validate_transaction(event.val_id):
                    raise ValidationError("val_id", "Payment validation failed")

        apply_payment_status(payment, event.target_status)

        payment.gateway_response = event.raw()
        if isinstance(event, ValidPaymentEvent):
            payment.val_id = event.val_id
            payment.bank_tran_id = event.bank_tran_id
            payment.card_type = event.card_type
            payment.card_issuer = event.card_issuer
            payment.tran_date = event.tran_date
            note = f"Payment successful. Bank Txn ID: {event.bank_tran_id}"
        elif event.target_status == PaymentStatusEnum.CANCELLED:
            note = "Payment cancelled by user"
        else:
            note = f"Payment {event.status.lower()}. Reason: {getattr(event, 'risk_title', None) or 'Unknown'}"

        self._sync_enrollment(payment, note)
        crud_payment.save(db, db_obj=payment)

        payment_logger.info(
            f"Payment {payment.status.value}",
            extra={"event": "ipn", "transaction_id": payment.transaction_id, "payment_id": payment.id},
        )
        return payment

    def transition(
        self,
        db: Session,
        payment_id: int,
        target_status: PaymentStatusEnum,
        gateway_payload: Optional[Dict[str, Any]] = None,
    ) -> Payment:
        payment = self._get_or_raise(db, payment_id)
        if not apply_payment_status(payment, target_status):
            return payment

        if gateway_payload:
            payment.gateway_response = gateway_payload
        self._sync_enrollment(payment)
        crud_payment.save(db, db_obj=payment)

        payment_logger.info(
            f"Payment manually moved to {target_status.value}",
            extra={"event": "manual_update", "transaction_id": payment.transaction_id, "payment_id": payment.id},
        )
        return payment

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    def validate_refund_request(self, payment: Payment, request: RefundRequest) -> None:
        if not request.reason or not request.reason.strip():
            raise ValidationError("reason", "Refund reason is required")
        if request.amount <= 0:
            raise ValidationError("amount", "Refund amount must be greater than 0")
        if request.amount > payment.amount:
            raise ValidationError("amount", "Refund amount cannot exceed original payment amount")

    async def initiate_refund(
        self, db: Session, payment_id: int, request: RefundRequest, acting_admin_id: int
    ) -> RefundInitiated:
        payment = self._get_or_raise(db, payment_id)
        self.validate_refund_request(payment, request)

        if payment.status != PaymentStatusEnum.SUCCESS:
            raise InvalidTransitionError("payment", payment.status.value, PaymentStatusEnum.REFUNDED.value)
        assert_refund_transition(payment.refund_status, RefundStatusEnum.INITIATED)
        if not payment.bank_tran_id:
            raise ValidationError("payment_id", "Payment has no bank transaction id to refund against")

        refund_transaction_id = f"REF_{uuid4().hex}"
        try:
            result = await self.gateway.initiate_refund(
                bank_tran_id=payment.bank_tran_id,
                refund_transaction_id=refund_transaction_id,
                refund_amount=request.amount,
                refund_remarks=request.reason,
            )
        except GatewayError as e:
            payment_logger.error(
                f"Refund initiation failed: {e.message}",
                extra={"event": "refund_failed", "transaction_id": payment.transaction_id, "payment_id": payment.id},
            )
            raise

        payment.refund_amount = request.amount
        payment.refund_reason = request.reason
        payment.refund_ref_id = result["refund_ref_id"]
        payment.refund_transaction_id = refund_transaction_id
        payment.refund_initiated_by = acting_admin_id
        if request.notes:
            payment.notes = request.notes
        apply_refund_status(payment, RefundStatusEnum.INITIATED, acting_admin_id=acting_admin_id)
        crud_payment.save(db, db_obj=payment)

        payment_logger.info(
            f"Refund initiated for {request.amount}",
            extra={
                "event": "refund_initiate",
                "transaction_id": payment.transaction_id,
                "payment_id": payment.id,
                "refund_ref_id": payment.refund_ref_id,
            },
        )
        return RefundInitiated(
            refund_ref_id=payment.refund_ref_id,
            refund_transaction_id=refund_transaction_id,
            refund_amount=request.amount,
            status=payment.refund_status,
        )

    async def check_refund_status(
        self, db: Session, refund_ref_id: str, acting_admin_id: Optional[int] = None
    ) -> RefundStatusResult:
        payment = crud_payment.get_by_refund_ref_id(db, refund_ref_id=refund_ref_id)
        if not payment:
            raise NotFoundError("Refund not found")

        result = await self.gateway.query_refund_status(refund_ref_id)
        if is_stale_refund_report(payment.refund_status, result["status"]):
            payment_logger.warning(
                f"Ignoring out-of-order refund status {result['status'].value}; refund is already {payment.refund_status.value}",
                extra={
                    "event": "refund_status_stale",
                    "transaction_id": payment.transaction_id,
                    "payment_id": payment.id,
                    "refund_ref_id": refund_ref_id,
                },
            )
            changed = False
        else:
            changed = apply_refund_status(payment, result["status"], acting_admin_id=acting_admin_id)
        if changed:
            if payment.status == PaymentStatusEnum.REFUNDED:
                self._sync_enrollment(payment, f"Payment refunded. Refund ID: {refund_ref_id}. Reason: {payment.refund_reason}")
            crud_payment.save(db, db_obj=payment)
            payment_logger.info(
                f"Refund status is now {payment.refund_status.value}",
                extra={
                    "event": "refund_status",
                    "transaction_id": payment.transaction_id,
                    "payment_id": payment.id,
                    "refund_ref_id": refund_ref_id,
                },
            )

        return RefundStatusResult(
            refund_ref_id=refund_ref_id,
            refund_status=payment.refund_status,
            payment_status=payment.status,
            changed=changed,
            initiated_on=result.get("initiated_on"),
            refunded_on=result.get("refunded_on"),
        )


payment_service = PaymentService()
