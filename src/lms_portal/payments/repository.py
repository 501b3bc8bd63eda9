from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import PaymentStatus, PaymentType, RefundStatus
from .model import Payment, Refund


class PaymentRepository(Protocol):
    def create(
        self,
        *,
        user_id: int,
        course_id: int,
        payment_type: PaymentType,
        amount: float,
        reference: str,
        status: PaymentStatus = PaymentStatus.PENDING,
        installment_number: Optional[int] = None,
        due_date: Optional[datetime] = None,
        paid_at: Optional[datetime] = None,
        is_manual: bool = False,
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        raise NotImplementedError

    def get_by_reference(self, reference: str) -> Optional[Payment]:
        raise NotImplementedError

    def update_status(
        self,
        payment_id: int,
        status: PaymentStatus,
        *,
        paid_at: Optional[datetime] = None,
        gateway_transaction_id: Optional[str] = None,
        is_manual: Optional[bool] = None,
    ) -> bool:
        raise NotImplementedError

    def set_authorization_url(self, payment_id: int, url: str) -> None:
        raise NotImplementedError

    def list_payments(
        self,
        *,
        status: Optional[PaymentStatus] = None,
        user_id: Optional[int] = None,
        course_id: Optional[int] = None,
        payment_type: Optional[PaymentType] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Payment]:
        raise NotImplementedError

    def total_revenue(self) -> float:
        """Sum of COMPLETED payments."""

        raise NotImplementedError

    def list_pending_due(self, until: datetime, *, limit: int = 200) -> Sequence[Payment]:
        """PENDING payments with a due date on or before ``until``, oldest due first."""

        raise NotImplementedError

    def mark_reminded(self, payment_id: int, at: datetime) -> None:
        raise NotImplementedError

    # Refunds
    def create_refund(self, *, payment_id: int, amount: float, reason: str, processed_by: int) -> int:
        raise NotImplementedError

    def get_refund(self, refund_id: int) -> Optional[Refund]:
        raise NotImplementedError

    def set_refund_status(self, refund_id: int, status: RefundStatus) -> bool:
        raise NotImplementedError

    def list_refunds(self, payment_id: int) -> Sequence[Refund]:
        raise NotImplementedError
