from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import PaymentStatus, PaymentType, RefundStatus


@dataclass(frozen=True)
class Payment:
    payment_id: int
    user_id: int
    course_id: int
    payment_type: PaymentType
    amount: float
    currency: str
    reference: str
    status: PaymentStatus
    created_at: datetime
    installment_number: Optional[int] = None
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    gateway_transaction_id: Optional[str] = None
    authorization_url: Optional[str] = None
    is_manual: bool = False
    last_reminded_at: Optional[datetime] = None
    user_email: Optional[str] = None
    user_name: Optional[str] = None
    course_title: Optional[str] = None

    @property
    def receipt_number(self) -> str:
        stamp = (self.paid_at or self.created_at).strftime("%Y%m%d")
        return f"RCP-{stamp}-{self.payment_id:06d}"

    def to_dict(self) -> dict:
        return {
            "id": self.payment_id,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "user_name": self.user_name,
            "course_id": self.course_id,
            "course_title": self.course_title,
            "type": self.payment_type.value,
            "amount": self.amount,
            "currency": self.currency,
            "reference": self.reference,
            "status": self.status.value,
            "installment_number": self.installment_number,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "gateway_transaction_id": self.gateway_transaction_id,
            "authorization_url": self.authorization_url,
            "is_manual": self.is_manual,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Refund:
    refund_id: int
    payment_id: int
    amount: float
    reason: str
    status: RefundStatus
    created_at: datetime
    processed_by: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.refund_id,
            "payment_id": self.payment_id,
            "amount": self.amount,
            "reason": self.reason,
            "status": self.status.value,
            "processed_by": self.processed_by,
            "created_at": self.created_at.isoformat(),
        }
