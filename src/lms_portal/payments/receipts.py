from __future__ import annotations

import io
import json

import qrcode

from .model import Payment


def receipt_payload(payment: Payment) -> dict:
    return {
        "receipt_number": payment.receipt_number,
        "reference": payment.reference,
        "student": payment.user_name,
        "email": payment.user_email,
        "course": payment.course_title,
        "type": payment.payment_type.value,
        "installment_number": payment.installment_number,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status.value,
        "paid_at": payment.paid_at.isoformat() if payment.paid_at else None,
        "manual": payment.is_manual,
    }


def receipt_qr_png(payment: Payment) -> bytes:
    """PNG QR code encoding the receipt number and payment reference."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=2,
    )
    qr.add_data(json.dumps({"receipt": payment.receipt_number, "reference": payment.reference}, separators=(",", ":")))
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
