from __future__ import annotations

import io

from flask import Flask, request, send_file

from ..core.enums import AuditAction, ResourceType, Role
from ..web.auth import current_role, role_required
from ..web.http import current_user_id, ok, pagination, parse_body, parse_query, record_audit
from ..web.rate_limit import rate_limited
from .installments import PLANS
from .schemas import (
    InitializePaymentRequest,
    InstallmentScheduleRequest,
    ManualPaymentRequest,
    PaymentListQuery,
    RefundRequest,
    RefundStatusRequest,
)


def register(app: Flask, container) -> None:
    payments = container.payment_service
    limit = container.rate_limiter

    @app.route("/api/payments/plans", endpoint="payment_plans")
    def payment_plans():
        return ok([plan.to_dict() for plan in PLANS.values()])

    @app.route("/api/payments/initialize", methods=["POST"], endpoint="payment_initialize")
    @role_required(Role.STUDENT)
    @rate_limited(limit, "payment")
    def payment_initialize():
        body = parse_body(InitializePaymentRequest)
        result = payments.initialize_payment(
            current_role=current_role(), user_id=current_user_id(), course_id=body.course_id, payment_type=body.payment_type
        )
        record_audit(
            container,
            AuditAction.PAYMENT_CREATE,
            ResourceType.PAYMENT,
            result["payment"]["id"],
            {"reference": result["reference"], "amount": result["payment"]["amount"]},
        )
        return ok(result, status=201)

    @app.route("/api/payments/installments", methods=["POST"], endpoint="payment_installment_schedule")
    @role_required(Role.STUDENT)
    @rate_limited(limit, "payment")
    def payment_installment_schedule():
        body = parse_body(InstallmentScheduleRequest)
        rows = payments.create_installment_schedule(
            current_role=current_role(), user_id=current_user_id(), course_id=body.course_id, plan=body.plan
        )
        return ok([p.to_dict() for p in rows], status=201)

    @app.route("/api/payments/<int:payment_id>/pay", methods=["POST"], endpoint="payment_pay_installment")
    @role_required(Role.STUDENT)
    @rate_limited(limit, "payment")
    def payment_pay_installment(payment_id: int):
        return ok(payments.pay_installment(current_role=current_role(), user_id=current_user_id(), payment_id=payment_id))

    @app.route("/api/payments/verify/<reference>", endpoint="payment_verify")
    @role_required(Role.STUDENT, Role.ADMIN)
    def payment_verify(reference: str):
        payment = payments.verify_payment(reference=reference)
        if current_role() != Role.ADMIN and payment.user_id != current_user_id():
            return ok({"status": payment.status.value, "reference": payment.reference})
        record_audit(container, AuditAction.PAYMENT_VERIFY, ResourceType.PAYMENT, payment.payment_id, {"status": payment.status.value})
        return ok(payment.to_dict())

    @app.route("/api/payments/mine", endpoint="payment_mine")
    @role_required(Role.STUDENT)
    def payment_mine():
        return ok([p.to_dict() for p in payments.list_my_payments(user_id=current_user_id())])

    @app.route("/api/payments/<int:payment_id>/receipt", endpoint="payment_receipt")
    @role_required(Role.STUDENT, Role.ADMIN)
    def payment_receipt(payment_id: int):
        return ok(payments.receipt(current_role=current_role(), current_user_id=current_user_id(), payment_id=payment_id))

    @app.route("/api/payments/<int:payment_id>/receipt/qr", endpoint="payment_receipt_qr")
    @role_required(Role.STUDENT, Role.ADMIN)
    def payment_receipt_qr(payment_id: int):
        png = payments.receipt_qr(current_role=current_role(), current_user_id=current_user_id(), payment_id=payment_id)
        return send_file(io.BytesIO(png), mimetype="image/png")

    @app.route("/api/webhooks/paystack", methods=["POST"], endpoint="paystack_webhook")
    def paystack_webhook():
        # Signature is computed over the exact bytes received
        result = payments.handle_webhook(
            raw_body=request.get_data(cache=False),
            signature=request.headers.get("x-paystack-signature"),
        )
        return ok(result)

    # Admin
    @app.route("/api/admin/payments", endpoint="admin_payments")
    @role_required(Role.ADMIN)
    def admin_payments():
        query = parse_query(PaymentListQuery)
        limit_, offset = pagination()
        rows = payments.list_payments(
            current_role=current_role(), status=query.status, user_id=query.user_id, limit=limit_, offset=offset
        )
        return ok([p.to_dict() for p in rows], total_revenue=payments.revenue())

    @app.route("/api/admin/payments/<int:payment_id>/confirm", methods=["POST"], endpoint="admin_confirm_payment")
    @role_required(Role.ADMIN)
    def admin_confirm_payment(payment_id: int):
        payment = payments.confirm_manual(current_role=current_role(), payment_id=payment_id)
        record_audit(container, AuditAction.PAYMENT_VERIFY, ResourceType.PAYMENT, payment_id, {"manual": True})
        container.cache.delete_prefix("stats:")
        return ok(payment.to_dict())

    @app.route("/api/admin/payments/manual", methods=["POST"], endpoint="admin_record_payment")
    @role_required(Role.ADMIN)
    def admin_record_payment():
        body = parse_body(ManualPaymentRequest)
        payment = payments.record_manual(current_role=current_role(), **body.model_dump())
        record_audit(
            container,
            AuditAction.PAYMENT_CREATE,
            ResourceType.PAYMENT,
            payment.payment_id,
            {"manual": True, "amount": payment.amount, "user_id": payment.user_id},
        )
        container.cache.delete_prefix("stats:")
        return ok(payment.to_dict(), status=201)

    @app.route("/api/admin/payments/<int:payment_id>/refund", methods=["POST"], endpoint="admin_refund_payment")
    @role_required(Role.ADMIN)
    def admin_refund_payment(payment_id: int):
        body = parse_body(RefundRequest)
        refund = payments.refund(
            current_role=current_role(), admin_id=current_user_id(), payment_id=payment_id, reason=body.reason, amount=body.amount
        )
        record_audit(
            container,
            AuditAction.PAYMENT_REFUND,
            ResourceType.PAYMENT,
            payment_id,
            {"refund_id": refund.refund_id, "amount": refund.amount, "status": refund.status.value},
        )
        return ok(refund.to_dict(), status=201)

    @app.route("/api/admin/refunds/<int:refund_id>", methods=["PATCH"], endpoint="admin_update_refund")
    @role_required(Role.ADMIN)
    def admin_update_refund(refund_id: int):
        body = parse_body(RefundStatusRequest)
        refund = payments.update_refund_status(current_role=current_role(), refund_id=refund_id, status=body.status)
        container.cache.delete_prefix("stats:")
        return ok(refund.to_dict())
