from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import func

from ..core.enums import PaymentStatus, PaymentType, RefundStatus
from ..database import orm
from ..database.session import session_scope
from ..extensions import db
from .model import Payment, Refund
from .repository import PaymentRepository


def _to_payment(row: orm.Payment) -> Payment:
    return Payment(
        payment_id=int(row.id),
        user_id=int(row.user_id),
        course_id=int(row.course_id),
        payment_type=PaymentType(row.payment_type),
        amount=float(row.amount),
        currency=row.currency,
        reference=row.reference,
        status=PaymentStatus(row.status),
        created_at=row.created_at,
        installment_number=row.installment_number,
        due_date=row.due_date,
        paid_at=row.paid_at,
        gateway_transaction_id=row.gateway_transaction_id,
        authorization_url=row.authorization_url,
        is_manual=bool(row.is_manual),
        last_reminded_at=row.last_reminded_at,
        user_email=row.user.email if row.user else None,
        user_name=row.user.full_name if row.user else None,
        course_title=row.course.title if row.course else None,
    )


def _to_refund(row: orm.Refund) -> Refund:
    return Refund(
        refund_id=int(row.id),
        payment_id=int(row.payment_id),
        amount=float(row.amount),
        reason=row.reason,
        status=RefundStatus(row.status),
        created_at=row.created_at,
        processed_by=row.processed_by,
    )


class SQLAlchemyPaymentRepository(PaymentRepository):
    def create(
        self,
        *,
        user_id,
        course_id,
        payment_type,
        amount,
        reference,
        status=PaymentStatus.PENDING,
        installment_number=None,
        due_date=None,
        paid_at=None,
        is_manual=False,
    ) -> int:
        with session_scope(conflict_message="Payment reference already exists") as session:
            row = orm.Payment(
                user_id=int(user_id),
                course_id=int(course_id),
                payment_type=PaymentType(payment_type).value,
                amount=float(amount),
                reference=reference,
                status=PaymentStatus(status).value,
                installment_number=installment_number,
                due_date=due_date,
                paid_at=paid_at,
                is_manual=bool(is_manual),
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        row = db.session.get(orm.Payment, int(payment_id))
        return _to_payment(row) if row else None

    def get_by_reference(self, reference: str) -> Optional[Payment]:
        row = orm.Payment.query.filter_by(reference=reference).first()
        return _to_payment(row) if row else None

    def update_status(self, payment_id, status, *, paid_at=None, gateway_transaction_id=None, is_manual=None) -> bool:
        with session_scope() as session:
            row = session.get(orm.Payment, int(payment_id))
            if not row:
                return False
            row.status = PaymentStatus(status).value
            if paid_at is not None:
                row.paid_at = paid_at
            if gateway_transaction_id is not None:
                row.gateway_transaction_id = str(gateway_transaction_id)
            if is_manual is not None:
                row.is_manual = bool(is_manual)
            return True

    def set_authorization_url(self, payment_id: int, url: str) -> None:
        with session_scope() as session:
            row = session.get(orm.Payment, int(payment_id))
            if row:
                row.authorization_url = url

    def list_payments(self, *, status=None, user_id=None, course_id=None, payment_type=None, limit=50, offset=0) -> Sequence[Payment]:
        q = orm.Payment.query
        if status:
            q = q.filter(orm.Payment.status == PaymentStatus(status).value)
        if user_id is not None:
            q = q.filter(orm.Payment.user_id == int(user_id))
        if course_id is not None:
            q = q.filter(orm.Payment.course_id == int(course_id))
        if payment_type:
            q = q.filter(orm.Payment.payment_type == PaymentType(payment_type).value)
        rows = q.order_by(orm.Payment.created_at.desc(), orm.Payment.id.desc()).offset(int(offset)).limit(int(limit)).all()
        return [_to_payment(r) for r in rows]

    def total_revenue(self) -> float:
        total = db.session.query(func.coalesce(func.sum(orm.Payment.amount), 0.0)).filter(
            orm.Payment.status == PaymentStatus.COMPLETED.value
        ).scalar()
        return float(total or 0.0)

    def list_pending_due(self, until, *, limit=200) -> Sequence[Payment]:
        rows = (
            orm.Payment.query.filter(
                orm.Payment.status == PaymentStatus.PENDING.value,
                orm.Payment.due_date.isnot(None),
                orm.Payment.due_date <= until,
            )
            .order_by(orm.Payment.due_date, orm.Payment.id)
            .limit(int(limit))
            .all()
        )
        return [_to_payment(r) for r in rows]

    def mark_reminded(self, payment_id: int, at) -> None:
        with session_scope() as session:
            row = session.get(orm.Payment, int(payment_id))
            if row:
                row.last_reminded_at = at

    def create_refund(self, *, payment_id, amount, reason, processed_by) -> int:
        with session_scope() as session:
            row = orm.Refund(
                payment_id=int(payment_id),
                amount=float(amount),
                reason=reason,
                status=RefundStatus.PENDING.value,
                processed_by=int(processed_by),
            )
            session.add(row)
            session.flush()
            return int(row.id)

    def get_refund(self, refund_id: int) -> Optional[Refund]:
        row = db.session.get(orm.Refund, int(refund_id))
        return _to_refund(row) if row else None

    def set_refund_status(self, refund_id: int, status: RefundStatus) -> bool:
        with session_scope() as session:
            row = session.get(orm.Refund, int(refund_id))
            if not row:
                return False
            row.status = RefundStatus(status).value
            return True

    def list_refunds(self, payment_id: int) -> Sequence[Refund]:
        rows = orm.Refund.query.filter_by(payment_id=int(payment_id)).order_by(orm.Refund.created_at).all()
        return [_to_refund(r) for r in rows]
