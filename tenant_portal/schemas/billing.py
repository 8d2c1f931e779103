# tenant_portal/schemas/billing.py
import enum
from typing import Optional

from pydantic import BaseModel

from tenant_portal.models.payment import PaymentStatus


class BillingError(str, enum.Enum):
    INVALID_AMOUNT = "InvalidAmount"
    AMOUNT_TOO_HIGH = "AmountTooHigh"
    INVALID_CARD = "InvalidCard"
    INVALID_EXPIRY = "InvalidExpiry"
    INVALID_CVV = "InvalidCVV"
    INVALID_AMOUNT_FORMAT = "InvalidAmountFormat"


class ValidationResult(BaseModel):
    """Tagged outcome of a validator. Falsy when the check failed."""

    ok: bool
    error: Optional[BillingError] = None
    message: Optional[str] = None
    value: Optional[int] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: Optional[int] = None) -> "ValidationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BillingError, message: str) -> "ValidationResult":
        return cls(ok=False, error=error, message=message)


class PaymentStatusResult(BaseModel):
    status: PaymentStatus
    days_late: Optional[int] = None
    late_fees: Optional[int] = None


class PaymentHistorySummary(BaseModel):
    total_paid: int = 0
    total_pending: int = 0
    total_overdue: int = 0
    total_partial: int = 0
    total_late_fees: int = 0
    average_payment_time: int = 0
    on_time_payments: int = 0
    late_payments: int = 0
    on_time_rate: int = 0
