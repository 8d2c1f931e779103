# tenant_portal/schemas/payment.py
from datetime import date
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from tenant_portal.models.payment import PaymentMethod, PaymentStatus
from tenant_portal.schemas.billing import ValidationResult


class PaymentRecord(BaseModel):
    """A payment as the billing engine sees it; built from a row or by hand."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: int = Field(..., gt=0, description="Amount in minor units")
    due_date: date
    status: PaymentStatus = PaymentStatus.PENDING
    paid_date: Optional[date] = None
    payment_method: Optional[PaymentMethod] = None
    transaction_id: Optional[str] = None
    late_fees: Optional[int] = None
    amount_paid: int = 0


class PaymentCreate(BaseModel):
    amount: int = Field(..., gt=0, description="Amount in minor units")
    due_date: date
    notes: Optional[str] = None


class PaymentOut(BaseModel):
    id: str
    tenant_id: str
    amount: int
    amount_display: str
    due_date: date
    status: PaymentStatus
    days_late: Optional[int] = None
    late_fees: Optional[int] = None
    amount_paid: int = 0
    paid_date: Optional[date] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None


class PaymentForm(BaseModel):
    """Raw values as typed by the tenant in the pay dialog."""

    amount: str
    payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD
    method_token: Optional[str] = None
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""


class CardValidationRequest(BaseModel):
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""


class CardValidationOut(BaseModel):
    valid: bool
    fields: Dict[str, ValidationResult]


class CheckoutResult(BaseModel):
    success: bool
    payment_id: str
    status: Optional[PaymentStatus] = None
    transaction_id: Optional[str] = None
    amount_charged: Optional[int] = None
    error: Optional[str] = None
    errors: Dict[str, ValidationResult] = Field(default_factory=dict)
