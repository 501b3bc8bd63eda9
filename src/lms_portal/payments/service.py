from __future__ import annotations

import json
import logging
import math
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import PAYMENT_REMINDER_INTERVAL_HOURS, PAYMENT_REMINDER_WINDOW_DAYS
from ..core.enums import (
    CourseStatus,
    NotificationCategory,
    NotificationPriority,
    PaymentStatus,
    PaymentType,
    RefundStatus,
    Role,
)
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PaymentGatewayError,
    ValidationError,
)
from ..courses.model import Course
from ..courses.repository import CourseRepository
from ..enrollments.service import EnrollmentService
from ..notifications.service import NotificationService
from ..users.repository import UserRepository
from .installments import build_schedule
from .model import Payment, Refund
from .paystack import PaystackClient
from .receipts import receipt_payload, receipt_qr_png
from .repository import PaymentRepository

logger = logging.getLogger(__name__)

_REF_ALPHABET = string.ascii_uppercase + string.digits

# Only these states can still move to COMPLETED.
_COMPLETABLE = (PaymentStatus.PENDING, PaymentStatus.FAILED)


def generate_reference(prefix: str = "LMS", *, now: Optional[datetime] = None) -> str:
    now = now or now_local()
    suffix = "".join(secrets.choice(_REF_ALPHABET) for _ in range(6))
    return f"{prefix}_{int(now.timestamp() * 1000)}_{suffix}".upper()


@dataclass(frozen=True)
class PaymentReminderResult:
    reminded: int
    overdue: int
    failed: int

    def to_dict(self) -> dict:
        return {"reminded": self.reminded, "overdue": self.overdue, "failed": self.failed}


def _grants_access(payment: Payment) -> bool:
    """Tuition, or the first installment of a schedule, unlocks the course."""
    return payment.payment_type == PaymentType.TUITION or (
        payment.payment_type == PaymentType.INSTALLMENT and payment.installment_number == 1
    )


class PaymentService:
    def __init__(
        self,
        payments: PaymentRepository,
        courses: CourseRepository,
        users: UserRepository,
        enrollments: EnrollmentService,
        gateway: PaystackClient,
        notifier: NotificationService,
        *,
        callback_url: Optional[str] = None,
    ):
        self._payments = payments
        self._courses = courses
        self._users = users
        self._enrollments = enrollments
        self._gateway = gateway
        self._notifier = notifier
        self._callback_url = callback_url

    def _course(self, course_id: int) -> Course:
        course = self._courses.get_by_id(int(course_id))
        if not course:
            raise NotFoundError("Course not found")
        return course

    def get_payment(self, *, current_role: Role, current_user_id: int, payment_id: int) -> Payment:
        payment = self._payments.get_by_id(int(payment_id))
        if not payment:
            raise NotFoundError("Payment not found")
        if current_role != Role.ADMIN and payment.user_id != int(current_user_id):
            raise AuthorizationError("Not your payment")
        return payment

    @staticmethod
    def _amount_for(course: Course, payment_type: PaymentType) -> float:
        if payment_type == PaymentType.APPLICATION_FEE:
            return course.application_fee
        if payment_type == PaymentType.TUITION:
            return course.price
        raise ValidationError("Installments are paid through an installment schedule")

    def _has_completed(self, user_id: int, course_id: int, payment_type: PaymentType) -> bool:
        return bool(
            self._payments.list_payments(
                user_id=user_id, course_id=course_id, payment_type=payment_type, status=PaymentStatus.COMPLETED, limit=1
            )
        )

    def _start_checkout(self, payment: Payment, *, email: str) -> str:
        data = self._gateway.initialize_transaction(
            email=email,
            amount=payment.amount,
            reference=payment.reference,
            metadata={
                "payment_id": payment.payment_id,
                "course_id": payment.course_id,
                "type": payment.payment_type.value,
                "installment_number": payment.installment_number,
            },
            callback_url=self._callback_url,
        )
        url = data.get("authorization_url", "")
        if url:
            self._payments.set_authorization_url(payment.payment_id, url)
        return url

    def initialize_payment(
        self,
        *,
        current_role: Role,
        user_id: int,
        course_id: int,
        payment_type: PaymentType,
        now: Optional[datetime] = None,
    ) -> dict:
        if current_role != Role.STUDENT:
            raise AuthorizationError("Only students can make payments")

        course = self._course(course_id)
        if course.status != CourseStatus.PUBLISHED:
            raise ValidationError("Course is not open for enrollment")
        amount = self._amount_for(course, payment_type)
        if amount <= 0:
            raise ValidationError(f"This course has no {payment_type.value.lower().replace('_', ' ')} to pay")
        if self._has_completed(int(user_id), course.course_id, payment_type):
            raise ConflictError("This payment has already been completed")

        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")

        payment_id = self._payments.create(
            user_id=user.user_id,
            course_id=course.course_id,
            payment_type=payment_type,
            amount=amount,
            reference=generate_reference(now=now),
        )
        payment = self._payments.get_by_id(payment_id)
        try:
            url = self._start_checkout(payment, email=user.email)
        except PaymentGatewayError:
            self._payments.update_status(payment_id, PaymentStatus.FAILED)
            raise

        logger.info("payment %s initialized ref=%s amount=%.2f", payment_id, payment.reference, amount)
        return {"payment": self._payments.get_by_id(payment_id).to_dict(), "authorization_url": url, "reference": payment.reference}

    def pay_installment(self, *, current_role: Role, user_id: int, payment_id: int) -> dict:
        payment = self.get_payment(current_role=current_role, current_user_id=user_id, payment_id=payment_id)
        if payment.payment_type != PaymentType.INSTALLMENT:
            raise ValidationError("Not an installment payment")
        if payment.status != PaymentStatus.PENDING:
            raise ValidationError(f"Installment is already {payment.status.value}")
        user = self._users.get_by_id(payment.user_id)
        url = self._start_checkout(payment, email=user.email)
        return {"payment": self._payments.get_by_id(payment.payment_id).to_dict(), "authorization_url": url, "reference": payment.reference}

    def create_installment_schedule(
        self,
        *,
        current_role: Role,
        user_id: int,
        course_id: int,
        plan: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Payment]:
        if current_role not in (Role.STUDENT, Role.ADMIN):
            raise AuthorizationError("Insufficient permissions")
        course = self._course(course_id)
        if course.is_free:
            raise ValidationError("Free courses have no tuition to split")
        if self._payments.list_payments(user_id=int(user_id), course_id=course.course_id, payment_type=PaymentType.INSTALLMENT, limit=1):
            raise ConflictError("An installment schedule already exists for this course")
        if self._has_completed(int(user_id), course.course_id, PaymentType.TUITION):
            raise ConflictError("Tuition has already been paid")

        now = now or now_local()
        created: List[Payment] = []
        for item in build_schedule(course.price, plan or course.installment_plan, start=now):
            payment_id = self._payments.create(
                user_id=int(user_id),
                course_id=course.course_id,
                payment_type=PaymentType.INSTALLMENT,
                amount=item.amount,
                reference=generate_reference(now=now),
                installment_number=item.number,
                due_date=item.due_date,
            )
            created.append(self._payments.get_by_id(payment_id))
        return created

    def _complete(self, payment: Payment, *, transaction_id: Optional[str], now: datetime, manual: bool = False) -> Payment:
        self._payments.update_status(
            payment.payment_id,
            PaymentStatus.COMPLETED,
            paid_at=now,
            gateway_transaction_id=transaction_id,
            is_manual=manual or None,
        )
        if _grants_access(payment):
            self._enrollments.activate(user_id=payment.user_id, course_id=payment.course_id)

        self._notifier.send(
            user_id=payment.user_id,
            title="Payment received",
            message=f"We received your payment of {payment.amount:,.2f} {payment.currency} (ref {payment.reference}).",
            category=NotificationCategory.PAYMENT,
            priority=NotificationPriority.MEDIUM,
        )
        logger.info("payment %s completed ref=%s manual=%s", payment.payment_id, payment.reference, manual)
        return self._payments.get_by_id(payment.payment_id)

    def verify_payment(self, *, reference: str, now: Optional[datetime] = None) -> Payment:
        payment = self._payments.get_by_reference(require_non_empty(reference, "reference"))
        if not payment:
            raise NotFoundError("Payment not found")
        if payment.status not in _COMPLETABLE:
            return payment

        data = self._gateway.verify_transaction(payment.reference)
        if data.get("status") == "success":
            return self._complete(payment, transaction_id=str(data.get("id") or "") or None, now=now or now_local())

        self._payments.update_status(payment.payment_id, PaymentStatus.FAILED)
        return self._payments.get_by_id(payment.payment_id)

    def handle_webhook(self, *, raw_body: bytes, signature: Optional[str], now: Optional[datetime] = None) -> dict:
        if not self._gateway.verify_signature(raw_body, signature):
            raise AuthenticationError("Invalid webhook signature")

        try:
            event = json.loads(raw_body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError("Invalid webhook payload") from exc

        kind = event.get("event")
        data = event.get("data") or {}
        payment = self._payments.get_by_reference(str(data.get("reference", "")))
        if kind not in ("charge.success", "charge.failed"):
            return {"event": kind, "handled": False}
        if not payment:
            logger.warning("webhook %s for unknown reference %s", kind, data.get("reference"))
            return {"event": kind, "handled": False}

        if kind == "charge.success" and payment.status in _COMPLETABLE:
            self._complete(payment, transaction_id=str(data.get("id") or "") or None, now=now or now_local())
        elif kind == "charge.failed" and payment.status == PaymentStatus.PENDING:
            self._payments.update_status(payment.payment_id, PaymentStatus.FAILED)
        return {"event": kind, "handled": True}

    # Admin
    def list_payments(
        self,
        *,
        current_role: Role,
        status: Optional[PaymentStatus] = None,
        user_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Payment]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        return self._payments.list_payments(status=status, user_id=user_id, limit=limit, offset=offset)

    def list_my_payments(self, *, user_id: int) -> Sequence[Payment]:
        return self._payments.list_payments(user_id=int(user_id), limit=500)

    def confirm_manual(self, *, current_role: Role, payment_id: int, now: Optional[datetime] = None) -> Payment:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        payment = self._payments.get_by_id(int(payment_id))
        if not payment:
            raise NotFoundError("Payment not found")
        if payment.status not in _COMPLETABLE:
            raise ValidationError(f"Payment is already {payment.status.value}")
        return self._complete(payment, transaction_id=None, now=now or now_local(), manual=True)

    def record_manual(
        self,
        *,
        current_role: Role,
        user_id: int,
        course_id: int,
        amount: float,
        payment_type: PaymentType = PaymentType.TUITION,
        now: Optional[datetime] = None,
    ) -> Payment:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        course = self._course(course_id)
        if not self._users.get_by_id(int(user_id)):
            raise NotFoundError("User not found")
        if float(amount) <= 0:
            raise ValidationError("Amount must be greater than zero", {"amount": ["Must be greater than zero"]})

        payment_id = self._payments.create(
            user_id=int(user_id),
            course_id=course.course_id,
            payment_type=payment_type,
            amount=float(amount),
            reference=generate_reference("MAN", now=now),
            is_manual=True,
        )
        return self._complete(self._payments.get_by_id(payment_id), transaction_id=None, now=now or now_local(), manual=True)

    def refund(
        self,
        *,
        current_role: Role,
        admin_id: int,
        payment_id: int,
        reason: str,
        amount: Optional[float] = None,
    ) -> Refund:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        reason = require_non_empty(reason, "reason")
        payment = self._payments.get_by_id(int(payment_id))
        if not payment:
            raise NotFoundError("Payment not found")
        if payment.status == PaymentStatus.REFUNDED:
            raise ValidationError("Payment has already been refunded")
        if payment.status != PaymentStatus.COMPLETED:
            raise ValidationError("Only completed payments can be refunded")

        already = sum(r.amount for r in self._payments.list_refunds(payment.payment_id) if r.status != RefundStatus.FAILED)
        refund_amount = float(amount) if amount is not None else payment.amount - already
        if refund_amount <= 0 or refund_amount > payment.amount - already + 1e-9:
            raise ValidationError(
                f"Refund amount must be between 0 and {payment.amount - already:.2f}", {"amount": ["Invalid refund amount"]}
            )

        refund_id = self._payments.create_refund(
            payment_id=payment.payment_id, amount=refund_amount, reason=reason, processed_by=int(admin_id)
        )
        if payment.gateway_transaction_id:
            try:
                self._gateway.refund(transaction=payment.gateway_transaction_id, amount=refund_amount, reason=reason)
                self._payments.set_refund_status(refund_id, RefundStatus.PROCESSING)
            except PaymentGatewayError:
                logger.warning("gateway refund for payment %s failed", payment.payment_id)
                self._payments.set_refund_status(refund_id, RefundStatus.FAILED)
        return self._payments.get_refund(refund_id)

    def update_refund_status(self, *, current_role: Role, refund_id: int, status: RefundStatus) -> Refund:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Insufficient permissions")
        refund = self._payments.get_refund(int(refund_id))
        if not refund:
            raise NotFoundError("Refund not found")
        if refund.status in (RefundStatus.COMPLETED, RefundStatus.FAILED):
            raise ValidationError(f"Refund is already {refund.status.value}")
        self._payments.set_refund_status(refund.refund_id, status)
        if status == RefundStatus.COMPLETED:
            self._payments.update_status(refund.payment_id, PaymentStatus.REFUNDED)
            self._revoke_access(self._payments.get_by_id(refund.payment_id))
        return self._payments.get_refund(refund.refund_id)

    def _revoke_access(self, payment: Payment) -> None:
        if not _grants_access(payment):
            return
        self._enrollments.suspend(user_id=payment.user_id, course_id=payment.course_id)
        self._notifier.send(
            user_id=payment.user_id,
            title="Payment refunded",
            message=f"Your payment {payment.reference} was refunded and your access to the course has been suspended.",
            category=NotificationCategory.PAYMENT,
            priority=NotificationPriority.HIGH,
        )

    # Reminders
    def process_payment_reminders(self, *, now: Optional[datetime] = None) -> PaymentReminderResult:
        """Nudge students about PENDING payments due within the reminder window or already overdue.

        A payment is reminded at most once per ``PAYMENT_REMINDER_INTERVAL_HOURS``.
        """
        now = now or now_local()
        interval = timedelta(hours=PAYMENT_REMINDER_INTERVAL_HOURS)
        reminded = overdue = failed = 0

        for payment in self._payments.list_pending_due(now + timedelta(days=PAYMENT_REMINDER_WINDOW_DAYS)):
            if payment.last_reminded_at and now - payment.last_reminded_at < interval:
                continue
            try:
                self._send_payment_reminder(payment, now)
                self._payments.mark_reminded(payment.payment_id, now)
            except Exception:
                failed += 1
                logger.exception("payment reminder for payment %s failed", payment.payment_id)
                continue
            reminded += 1
            if payment.due_date < now:
                overdue += 1

        if reminded or failed:
            logger.info("payment reminders sent=%d overdue=%d failed=%d", reminded, overdue, failed)
        return PaymentReminderResult(reminded=reminded, overdue=overdue, failed=failed)

    def _send_payment_reminder(self, payment: Payment, now: datetime) -> None:
        label = payment.payment_type.value.replace("_", " ").lower()
        if payment.installment_number:
            label = f"installment {payment.installment_number}"
        course = f" for \"{payment.course_title}\"" if payment.course_title else ""
        amount = f"{payment.amount:,.2f} {payment.currency}"

        if payment.due_date < now:
            days = math.ceil((now - payment.due_date) / timedelta(days=1))
            title = f"Overdue payment: {label}"
            message = f"Your {label} payment of {amount}{course} is overdue by {days} day(s). Please pay as soon as possible."
            priority = NotificationPriority.URGENT
        else:
            days = math.ceil((payment.due_date - now) / timedelta(days=1))
            title = f"Payment reminder: {label}"
            message = f"Your {label} payment of {amount}{course} is due in {days} day(s)."
            priority = NotificationPriority.HIGH if days <= 3 else NotificationPriority.MEDIUM

        self._notifier.send(
            user_id=payment.user_id,
            title=title,
            message=message,
            category=NotificationCategory.PAYMENT,
            priority=priority,
            action_url=f"/payments/{payment.payment_id}",
        )

    # Receipts
    def receipt(self, *, current_role: Role, current_user_id: int, payment_id: int) -> dict:
        payment = self.get_payment(current_role=current_role, current_user_id=current_user_id, payment_id=payment_id)
        if payment.status not in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
            raise ValidationError("Receipts are only available for completed payments")
        return receipt_payload(payment)

    def receipt_qr(self, *, current_role: Role, current_user_id: int, payment_id: int) -> bytes:
        payment = self.get_payment(current_role=current_role, current_user_id=current_user_id, payment_id=payment_id)
        if payment.status not in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
            raise ValidationError("Receipts are only available for completed payments")
        return receipt_qr_png(payment)

    def revenue(self) -> float:
        return self._payments.total_revenue()
