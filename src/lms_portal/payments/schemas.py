from typing import Optional

from pydantic import BaseModel, Field

from ..core.enums import PaymentStatus, PaymentType, RefundStatus


class InitializePaymentRequest(BaseModel):
    course_id: int = Field(..., ge=1)
    payment_type: PaymentType = PaymentType.TUITION


class InstallmentScheduleRequest(BaseModel):
    course_id: int = Field(..., ge=1)
    plan: Optional[str] = None


class ManualPaymentRequest(BaseModel):
    user_id: int = Field(..., ge=1)
    course_id: int = Field(..., ge=1)
    amount: float = Field(..., gt=0)
    payment_type: PaymentType = PaymentType.TUITION


class RefundRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    amount: Optional[float] = Field(default=None, gt=0)


class RefundStatusRequest(BaseModel):
    status: RefundStatus


class PaymentListQuery(BaseModel):
    status: Optional[PaymentStatus] = None
    user_id: Optional[int] = None
