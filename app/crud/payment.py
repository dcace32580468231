from typing import List, Optional, Tuple
from sqlalchemy import func, case
from sqlalchemy.orm import Session, selectinload

from app.crud.base import CRUDBase
from app.models.payment import Payment
from app.core.constants import PaymentStatusEnum
from pydantic import BaseModel


class CRUDPayment(CRUDBase[Payment, BaseModel, BaseModel]):

    def _query_with_relationships(self, db: Session):
        return db.query(Payment).options(
            selectinload(Payment.student),
            selectinload(Payment.course),
            selectinload(Payment.enrollment),
        )

    def get_by_transaction_id(self, db: Session, *, transaction_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.transaction_id == transaction_id).first()

    def get_by_refund_ref_id(self, db: Session, *, refund_ref_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.refund_ref_id == refund_ref_id).first()

    def get_eligible_for_refund(
        self, db: Session, *, search: Optional[str] = None, skip: int = 0, limit: int = 10
    ) -> Tuple[List[Payment], int]:
        query = (
            self._query_with_relationships(db)
            .filter(Payment.status == PaymentStatusEnum.SUCCESS)
            .filter(Payment.refund_status.is_(None))
        )
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                Payment.transaction_id.ilike(pattern) | Payment.bank_tran_id.ilike(pattern)
            )
        total = query.count()
        items = query.order_by(Payment.completed_at.desc()).offset(skip).limit(limit).all()
        return items, total

    def get_refund_history(self, db: Session, *, skip: int = 0, limit: int = 10) -> Tuple[List[Payment], int]:
        query = self._query_with_relationships(db).filter(Payment.refund_status.isnot(None))
        total = query.count()
        items = query.order_by(Payment.updated_at.desc(), Payment.id.desc()).offset(skip).limit(limit).all()
        return items, total

    def get_stats(self, db: Session) -> dict:
        def count_status(status: PaymentStatusEnum):
            return func.coalesce(func.sum(case((Payment.status == status, 1), else_=0)), 0)

        row = db.query(
            func.count(Payment.id).label("total"),
            count_status(PaymentStatusEnum.PENDING).label("pending"),
            count_status(PaymentStatusEnum.SUCCESS).label("success"),
            count_status(PaymentStatusEnum.FAILED).label("failed"),
            count_status(PaymentStatusEnum.CANCELLED).label("cancelled"),
            count_status(PaymentStatusEnum.REFUNDED).label("refunded"),
            func.coalesce(func.sum(case((Payment.status == PaymentStatusEnum.SUCCESS, Payment.amount), else_=0)), 0).label("total_amount"),
            func.coalesce(func.avg(case((Payment.status == PaymentStatusEnum.SUCCESS, Payment.amount), else_=None)), 0).label("average_amount"),
        ).one()
        return dict(row._mapping)


payment = CRUDPayment(Payment)
