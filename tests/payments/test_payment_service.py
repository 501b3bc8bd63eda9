from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

import pytest

from lms_portal.core.enums import (
    CourseStatus,
    NotificationCategory,
    NotificationPriority,
    PaymentStatus,
    PaymentType,
    RefundStatus,
    Role,
    UserStatus,
)
from lms_portal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    PaymentGatewayError,
    ValidationError,
)
from lms_portal.courses.model import Course
from lms_portal.payments.model import Payment, Refund
from lms_portal.payments.paystack import compute_signature
from lms_portal.payments.service import PaymentService, generate_reference
from lms_portal.users.model import User

SECRET = "sk_test_secret"


class InMemoryPayments:
    def __init__(self):
        self.payments: dict[int, Payment] = {}
        self.refunds: dict[int, Refund] = {}

    def create(self, *, user_id, course_id, payment_type, amount, reference, status=PaymentStatus.PENDING,
               installment_number=None, due_date=None, paid_at=None, is_manual=False) -> int:
        payment_id = len(self.payments) + 1
        self.payments[payment_id] = Payment(
            payment_id=payment_id,
            user_id=user_id,
            course_id=course_id,
            payment_type=payment_type,
            amount=amount,
            currency="NGN",
            reference=reference,
            status=status,
            created_at=datetime(2026, 3, 1),
            installment_number=installment_number,
            due_date=due_date,
            paid_at=paid_at,
            is_manual=is_manual,
        )
        return payment_id

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        return self.payments.get(payment_id)

    def get_by_reference(self, reference: str) -> Optional[Payment]:
        return next((p for p in self.payments.values() if p.reference == reference), None)

    def update_status(self, payment_id, status, *, paid_at=None, gateway_transaction_id=None, is_manual=None) -> bool:
        p = self.payments[payment_id]
        self.payments[payment_id] = replace(
            p,
            status=status,
            paid_at=paid_at or p.paid_at,
            gateway_transaction_id=gateway_transaction_id or p.gateway_transaction_id,
            is_manual=p.is_manual if is_manual is None else is_manual,
        )
        return True

    def set_authorization_url(self, payment_id: int, url: str) -> None:
        self.payments[payment_id] = replace(self.payments[payment_id], authorization_url=url)

    def list_payments(self, *, status=None, user_id=None, course_id=None, payment_type=None, limit=50, offset=0):
        rows = [
            p
            for p in self.payments.values()
            if (status is None or p.status == status)
            and (user_id is None or p.user_id == user_id)
            and (course_id is None or p.course_id == course_id)
            and (payment_type is None or p.payment_type == payment_type)
        ]
        return rows[offset : offset + limit]

    def total_revenue(self) -> float:
        return sum(p.amount for p in self.payments.values() if p.status == PaymentStatus.COMPLETED)

    def create_refund(self, *, payment_id, amount, reason, processed_by) -> int:
        refund_id = len(self.refunds) + 1
        self.refunds[refund_id] = Refund(refund_id, payment_id, amount, reason, RefundStatus.PENDING, datetime(2026, 3, 2), processed_by)
        return refund_id

    def get_refund(self, refund_id: int) -> Optional[Refund]:
        return self.refunds.get(refund_id)

    def set_refund_status(self, refund_id: int, status: RefundStatus) -> bool:
        self.refunds[refund_id] = replace(self.refunds[refund_id], status=status)
        return True

    def list_refunds(self, payment_id: int):
        return [r for r in self.refunds.values() if r.payment_id == payment_id]

    def list_pending_due(self, until, *, limit=200):
        rows = [
            p
            for p in self.payments.values()
            if p.status == PaymentStatus.PENDING and p.due_date is not None and p.due_date <= until
        ]
        return sorted(rows, key=lambda p: (p.due_date, p.payment_id))[:limit]

    def mark_reminded(self, payment_id: int, at: datetime) -> None:
        self.payments[payment_id] = replace(self.payments[payment_id], last_reminded_at=at)


class InMemoryCourses:
    def __init__(self, *courses: Course):
        self.courses = {c.course_id: c for c in courses}

    def get_by_id(self, course_id: int) -> Optional[Course]:
        return self.courses.get(course_id)


class InMemoryUsers:
    def __init__(self, *users: User):
        self.users = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)


class RecordingEnrollments:
    def __init__(self):
        self.activated = []
        self.suspended = []

    def activate(self, *, user_id: int, course_id: int):
        self.activated.append((user_id, course_id))

    def suspend(self, *, user_id: int, course_id: int):
        self.suspended.append((user_id, course_id))


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, **kwargs):
        self.sent.append(kwargs)


class FakeGateway:
    def __init__(self, *, fail_init: bool = False, verify_status: str = "success", fail_refund: bool = False):
        self.fail_init = fail_init
        self.verify_status = verify_status
        self.fail_refund = fail_refund
        self.refunds = []

    def initialize_transaction(self, *, email, amount, reference, metadata=None, callback_url=None):
        if self.fail_init:
            raise PaymentGatewayError("Payment gateway request failed")
        return {"authorization_url": f"https://checkout.test/{reference}", "reference": reference}

    def verify_transaction(self, reference: str):
        return {"status": self.verify_status, "id": 9001, "reference": reference}

    def refund(self, *, transaction, amount, reason):
        if self.fail_refund:
            raise PaymentGatewayError("Payment gateway request failed")
        self.refunds.append((transaction, amount))
        return {"status": "pending"}

    def verify_signature(self, raw_body: bytes, signature):
        return bool(signature) and signature == compute_signature(SECRET, raw_body)


def _course(course_id=1, *, price=50000.0, fee=5000.0, status=CourseStatus.PUBLISHED, plan="3-month") -> Course:
    return Course(
        course_id=course_id,
        title="Data Science",
        slug=f"data-science-{course_id}",
        description="",
        category=None,
        price=price,
        application_fee=fee,
        installment_plan=plan,
        status=status,
        instructor_id=2,
        created_at=datetime(2026, 1, 1),
    )


STUDENT = User(7, "student@example.com", "Stu Dent", "x", Role.STUDENT, UserStatus.ACTIVE, datetime(2026, 1, 1))


def _service(*courses, gateway=None):
    payments = InMemoryPayments()
    enrollments = RecordingEnrollments()
    notifier = RecordingNotifier()
    service = PaymentService(
        payments,
        InMemoryCourses(*(courses or (_course(),))),
        InMemoryUsers(STUDENT),
        enrollments,
        gateway or FakeGateway(),
        notifier,
        callback_url="http://localhost/payments/callback",
    )
    return service, payments, enrollments, notifier


def _webhook(event: str, reference: str) -> tuple[bytes, str]:
    body = json.dumps({"event": event, "data": {"reference": reference, "id": 555}}).encode()
    return body, compute_signature(SECRET, body)


def test_generate_reference_format(fixed_now):
    ref = generate_reference("man", now=fixed_now)
    prefix, millis, suffix = ref.split("_")
    assert prefix == "MAN"
    assert millis == str(int(fixed_now.timestamp() * 1000))
    assert len(suffix) == 6 and suffix.isalnum() and suffix.upper() == suffix


def test_initialize_tuition_creates_pending_payment(fixed_now):
    service, payments, _, _ = _service()

    result = service.initialize_payment(
        current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.TUITION, now=fixed_now
    )

    payment = payments.get_by_reference(result["reference"])
    assert payment.status == PaymentStatus.PENDING
    assert payment.amount == 50000.0
    assert result["authorization_url"] == f"https://checkout.test/{payment.reference}"
    assert payment.authorization_url == result["authorization_url"]


def test_initialize_rejects_non_students_unpublished_and_zero_amounts(fixed_now):
    service, _, _, _ = _service(_course(1), _course(2, status=CourseStatus.DRAFT), _course(3, fee=0))

    with pytest.raises(AuthorizationError):
        service.initialize_payment(current_role=Role.INSTRUCTOR, user_id=7, course_id=1, payment_type=PaymentType.TUITION)
    with pytest.raises(ValidationError):
        service.initialize_payment(current_role=Role.STUDENT, user_id=7, course_id=2, payment_type=PaymentType.TUITION)
    with pytest.raises(ValidationError):
        service.initialize_payment(current_role=Role.STUDENT, user_id=7, course_id=3, payment_type=PaymentType.APPLICATION_FEE)
    with pytest.raises(ValidationError):
        service.initialize_payment(current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.INSTALLMENT)


def test_gateway_failure_marks_payment_failed(fixed_now):
    service, payments, _, _ = _service(gateway=FakeGateway(fail_init=True))

    with pytest.raises(PaymentGatewayError):
        service.initialize_payment(current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.TUITION)

    assert [p.status for p in payments.payments.values()] == [PaymentStatus.FAILED]


def test_webhook_success_completes_and_activates_enrollment(fixed_now):
    service, payments, enrollments, notifier = _service()
    result = service.initialize_payment(
        current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.TUITION, now=fixed_now
    )
    body, signature = _webhook("charge.success", result["reference"])

    assert service.handle_webhook(raw_body=body, signature=signature, now=fixed_now) == {"event": "charge.success", "handled": True}

    payment = payments.get_by_reference(result["reference"])
    assert payment.status == PaymentStatus.COMPLETED
    assert payment.paid_at == fixed_now
    assert payment.gateway_transaction_id == "555"
    assert enrollments.activated == [(7, 1)]
    assert notifier.sent[0]["title"] == "Payment received"

    # A second successful payment of the same type is refused
    with pytest.raises(ConflictError):
        service.initialize_payment(current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.TUITION)


def test_webhook_rejects_bad_signature_and_ignores_unknown_references():
    service, _, _, _ = _service()
    body, _ = _webhook("charge.success", "LMS_UNKNOWN")

    with pytest.raises(AuthenticationError):
        service.handle_webhook(raw_body=body, signature="deadbeef")
    assert service.handle_webhook(raw_body=body, signature=compute_signature(SECRET, body))["handled"] is False


def test_application_fee_does_not_activate_enrollment(fixed_now):
    service, _, enrollments, _ = _service()
    result = service.initialize_payment(
        current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.APPLICATION_FEE, now=fixed_now
    )

    payment = service.verify_payment(reference=result["reference"], now=fixed_now)

    assert payment.status == PaymentStatus.COMPLETED
    assert payment.amount == 5000.0
    assert enrollments.activated == []


def test_failed_verification_marks_payment_failed(fixed_now):
    service, _, _, _ = _service(gateway=FakeGateway(verify_status="abandoned"))
    result = service.initialize_payment(
        current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.TUITION, now=fixed_now
    )
    assert service.verify_payment(reference=result["reference"]).status == PaymentStatus.FAILED


def test_installment_schedule_first_installment_activates(fixed_now):
    service, payments, enrollments, _ = _service()

    schedule = service.create_installment_schedule(current_role=Role.STUDENT, user_id=7, course_id=1, now=fixed_now)

    assert [p.installment_number for p in schedule] == [1, 2, 3]
    assert [p.amount for p in schedule] == [20000.0, 15000.0, 15000.0]
    with pytest.raises(ConflictError):
        service.create_installment_schedule(current_role=Role.STUDENT, user_id=7, course_id=1, now=fixed_now)

    second = schedule[1]
    body, signature = _webhook("charge.success", second.reference)
    service.handle_webhook(raw_body=body, signature=signature, now=fixed_now)
    assert enrollments.activated == []

    body, signature = _webhook("charge.success", schedule[0].reference)
    service.handle_webhook(raw_body=body, signature=signature, now=fixed_now)
    assert enrollments.activated == [(7, 1)]


def test_free_course_has_no_installments(fixed_now):
    service, _, _, _ = _service(_course(1, price=0))
    with pytest.raises(ValidationError):
        service.create_installment_schedule(current_role=Role.STUDENT, user_id=7, course_id=1, now=fixed_now)


def test_manual_payment_and_partial_refunds(fixed_now):
    service, payments, enrollments, _ = _service()
    payment = service.record_manual(current_role=Role.ADMIN, user_id=7, course_id=1, amount=50000, now=fixed_now)

    assert payment.reference.startswith("MAN_")
    assert payment.is_manual
    assert enrollments.activated == [(7, 1)]
    assert service.revenue() == 50000

    first = service.refund(current_role=Role.ADMIN, admin_id=1, payment_id=payment.payment_id, reason="Partial", amount=20000)
    # manual payments have no gateway transaction, so the refund stays pending for an admin to settle
    assert first.status == RefundStatus.PENDING

    with pytest.raises(ValidationError):
        service.refund(current_role=Role.ADMIN, admin_id=1, payment_id=payment.payment_id, reason="Too much", amount=30001)

    rest = service.refund(current_role=Role.ADMIN, admin_id=1, payment_id=payment.payment_id, reason="Rest")
    assert rest.amount == 30000

    service.update_refund_status(current_role=Role.ADMIN, refund_id=rest.refund_id, status=RefundStatus.COMPLETED)
    assert payments.get_by_id(payment.payment_id).status == PaymentStatus.REFUNDED
    assert enrollments.suspended == [(7, 1)]


def test_gateway_refund_moves_to_processing_or_failed(fixed_now):
    gateway = FakeGateway()
    service, payments, _, _ = _service(gateway=gateway)
    result = service.initialize_payment(
        current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.TUITION, now=fixed_now
    )
    payment = service.verify_payment(reference=result["reference"], now=fixed_now)

    refund = service.refund(current_role=Role.ADMIN, admin_id=1, payment_id=payment.payment_id, reason="Dropped", amount=1000)
    assert refund.status == RefundStatus.PROCESSING
    assert gateway.refunds == [("9001", 1000.0)]

    gateway.fail_refund = True
    failed = service.refund(current_role=Role.ADMIN, admin_id=1, payment_id=payment.payment_id, reason="Again", amount=1000)
    assert failed.status == RefundStatus.FAILED


def test_receipts_only_for_owner_and_completed_payments(fixed_now):
    service, _, _, _ = _service()
    result = service.initialize_payment(
        current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.TUITION, now=fixed_now
    )
    payment_id = result["payment"]["id"]

    with pytest.raises(ValidationError):
        service.receipt(current_role=Role.STUDENT, current_user_id=7, payment_id=payment_id)

    service.verify_payment(reference=result["reference"], now=fixed_now)
    receipt = service.receipt(current_role=Role.STUDENT, current_user_id=7, payment_id=payment_id)
    assert receipt["receipt_number"] == f"RCP-20260302-{payment_id:06d}"
    assert receipt["status"] == "COMPLETED"

    with pytest.raises(AuthorizationError):
        service.receipt(current_role=Role.STUDENT, current_user_id=99, payment_id=payment_id)

    png = service.receipt_qr(current_role=Role.ADMIN, current_user_id=1, payment_id=payment_id)
    assert png.startswith(b"\x89PNG")


def _refunded_tuition(service, payments, now):
    result = service.initialize_payment(
        current_role=Role.STUDENT, user_id=7, course_id=1, payment_type=PaymentType.TUITION, now=now
    )
    payment = service.verify_payment(reference=result["reference"], now=now)
    refund = service.refund(current_role=Role.ADMIN, admin_id=1, payment_id=payment.payment_id, reason="Dropped")
    assert refund.status == RefundStatus.PROCESSING
    service.update_refund_status(current_role=Role.ADMIN, refund_id=refund.refund_id, status=RefundStatus.COMPLETED)
    return payments.get_by_id(payment.payment_id)


def test_refunded_payment_cannot_be_completed_again(fixed_now):
    service, payments, enrollments, _ = _service()
    payment = _refunded_tuition(service, payments, fixed_now)
    assert payment.status == PaymentStatus.REFUNDED
    assert service.revenue() == 0

    assert service.verify_payment(reference=payment.reference, now=fixed_now).status == PaymentStatus.REFUNDED

    body, signature = _webhook("charge.success", payment.reference)
    assert service.handle_webhook(raw_body=body, signature=signature, now=fixed_now)["handled"] is True
    assert payments.get_by_id(payment.payment_id).status == PaymentStatus.REFUNDED

    assert enrollments.activated == [(7, 1)]
    assert service.revenue() == 0


def test_completed_tuition_refund_suspends_enrollment(fixed_now):
    service, payments, enrollments, notifier = _service()
    _refunded_tuition(service, payments, fixed_now)

    assert enrollments.suspended == [(7, 1)]
    last = notifier.sent[-1]
    assert last["title"] == "Payment refunded"
    assert last["user_id"] == 7
    assert last["category"] == NotificationCategory.PAYMENT
    assert last["priority"] == NotificationPriority.HIGH


def test_application_fee_refund_keeps_enrollment(fixed_now):
    service, payments, enrollments, _ = _service()
    payment = service.record_manual(
        current_role=Role.ADMIN, user_id=7, course_id=1, amount=5000, payment_type=PaymentType.APPLICATION_FEE, now=fixed_now
    )
    refund = service.refund(current_role=Role.ADMIN, admin_id=1, payment_id=payment.payment_id, reason="Withdrawn")
    assert refund.status == RefundStatus.PENDING

    service.update_refund_status(current_role=Role.ADMIN, refund_id=refund.refund_id, status=RefundStatus.COMPLETED)

    assert payments.get_by_id(payment.payment_id).status == PaymentStatus.REFUNDED
    assert enrollments.suspended == []


def _installment(payments, number, due_date, *, status=PaymentStatus.PENDING):
    return payments.create(
        user_id=7,
        course_id=1,
        payment_type=PaymentType.INSTALLMENT,
        amount=15000.0,
        reference=f"INS_{number}",
        status=status,
        installment_number=number,
        due_date=due_date,
    )


def test_payment_reminders_cover_window_and_overdue(fixed_now):
    service, payments, _, notifier = _service()
    overdue_id = _installment(payments, 1, fixed_now - timedelta(days=2))
    soon_id = _installment(payments, 2, fixed_now + timedelta(days=3))
    later_id = _installment(payments, 3, fixed_now + timedelta(days=6))
    _installment(payments, 4, fixed_now + timedelta(days=10))
    _installment(payments, 5, fixed_now + timedelta(days=1), status=PaymentStatus.COMPLETED)
    payments.create(user_id=7, course_id=1, payment_type=PaymentType.APPLICATION_FEE, amount=5000.0, reference="FEE_1")

    result = service.process_payment_reminders(now=fixed_now)

    assert result.to_dict() == {"reminded": 3, "overdue": 1, "failed": 0}
    assert [n["title"] for n in notifier.sent] == [
        "Overdue payment: installment 1",
        "Payment reminder: installment 2",
        "Payment reminder: installment 3",
    ]
    assert [n["priority"] for n in notifier.sent] == [
        NotificationPriority.URGENT,
        NotificationPriority.HIGH,
        NotificationPriority.MEDIUM,
    ]
    assert "overdue by 2 day(s)" in notifier.sent[0]["message"]
    assert "due in 3 day(s)" in notifier.sent[1]["message"]
    assert notifier.sent[1]["action_url"] == f"/payments/{soon_id}"
    assert all(n["category"] == NotificationCategory.PAYMENT for n in notifier.sent)
    for payment_id in (overdue_id, soon_id, later_id):
        assert payments.get_by_id(payment_id).last_reminded_at == fixed_now


def test_payment_reminders_wait_a_day_between_runs(fixed_now):
    service, payments, _, notifier = _service()
    _installment(payments, 2, fixed_now + timedelta(days=3))

    assert service.process_payment_reminders(now=fixed_now).reminded == 1
    assert service.process_payment_reminders(now=fixed_now + timedelta(hours=1)).reminded == 0
    assert service.process_payment_reminders(now=fixed_now + timedelta(hours=25)).reminded == 1
    assert len(notifier.sent) == 2


class FlakyNotifier(RecordingNotifier):
    def __init__(self, fail_titles):
        super().__init__()
        self.fail_titles = set(fail_titles)

    def send(self, **kwargs):
        if kwargs["title"] in self.fail_titles:
            raise RuntimeError("smtp down")
        super().send(**kwargs)


def test_failed_payment_reminder_does_not_stop_the_batch(fixed_now):
    payments = InMemoryPayments()
    notifier = FlakyNotifier({"Overdue payment: installment 1"})
    service = PaymentService(
        payments,
        InMemoryCourses(_course()),
        InMemoryUsers(STUDENT),
        RecordingEnrollments(),
        FakeGateway(),
        notifier,
        callback_url="http://localhost/payments/callback",
    )
    failing_id = _installment(payments, 1, fixed_now - timedelta(days=1))
    ok_id = _installment(payments, 2, fixed_now + timedelta(days=2))

    result = service.process_payment_reminders(now=fixed_now)

    assert result.to_dict() == {"reminded": 1, "overdue": 0, "failed": 1}
    assert payments.get_by_id(failing_id).last_reminded_at is None
    assert payments.get_by_id(ok_id).last_reminded_at == fixed_now
