# tenant_portal/services/billing.py
"""
Billing engine for tenant rent payments.

Everything here is a pure function over payment-shaped objects (ORM rows or
PaymentRecord schemas both work). Amounts are integer minor units; the only
place a division by the currency exponent happens is the final display string.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Iterable, Optional, Union

from tenant_portal.core.config import settings
from tenant_portal.models.payment import PaymentStatus
from tenant_portal.schemas.billing import (
    BillingError,
    PaymentHistorySummary,
    PaymentStatusResult,
    ValidationResult,
)

DateLike = Union[date, datetime]

# code -> (display prefix, minor-unit exponent)
CURRENCIES = {
    "USD": ("$", 2),
    "CAD": ("CA$", 2),
    "AUD": ("A$", 2),
    "EUR": ("€", 2),
    "GBP": ("£", 2),
    "JPY": ("¥", 0),
}

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _today() -> date:
    return date.today()


def _round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half-up, for non-negative operands."""
    return (2 * numerator + denominator) // (2 * denominator)


def _currency(code: Optional[str]) -> tuple:
    code = (code or settings.DEFAULT_CURRENCY).upper()
    return CURRENCIES.get(code, (f"{code} ", 2))


def days_between(start: DateLike, end: DateLike) -> int:
    """Whole calendar days from start to end (negative when end is earlier)."""
    return (_as_date(end) - _as_date(start)).days


# ------------------------------------------------------------------------
# Late fees and status
# ------------------------------------------------------------------------

def compute_late_fee(amount: int, days_late: int) -> int:
    """
    Late fee in minor units.

    One LATE_FEE_RATE charge per started period of LATE_FEE_PERIOD_DAYS,
    capped at LATE_FEE_CAP_RATE of the principal.
    """
    if days_late <= 0 or amount <= 0:
        return 0

    period = settings.LATE_FEE_PERIOD_DAYS
    periods = -(-days_late // period)
    principal = Decimal(amount)

    fee = principal * Decimal(str(settings.LATE_FEE_RATE)) * periods
    cap = principal * Decimal(str(settings.LATE_FEE_CAP_RATE))

    return int(min(fee, cap).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def derive_status(payment, as_of: Optional[DateLike] = None) -> PaymentStatusResult:
    """Effective status of a payment as of the given date (today by default)."""
    if payment.status == PaymentStatus.PAID:
        return PaymentStatusResult(status=PaymentStatus.PAID)

    if payment.status == PaymentStatus.PARTIAL:
        return PaymentStatusResult(status=PaymentStatus.PARTIAL)

    as_of = as_of if as_of is not None else _today()
    days_late = max(0, days_between(payment.due_date, as_of))

    if days_late > 0:
        return PaymentStatusResult(
            status=PaymentStatus.OVERDUE,
            days_late=days_late,
            late_fees=compute_late_fee(payment.amount, days_late),
        )

    return PaymentStatusResult(status=PaymentStatus.PENDING)


def amount_due(payment, as_of: Optional[DateLike] = None) -> int:
    """
    Outstanding balance as of the date.

    Principal plus the late fee accrued so far, less whatever earlier partial
    charges already covered. Settled payments owe nothing.
    """
    if payment.status == PaymentStatus.PAID:
        return 0

    as_of = as_of if as_of is not None else _today()
    days_late = max(0, days_between(payment.due_date, as_of))
    owed = payment.amount + compute_late_fee(payment.amount, days_late)
    already_paid = getattr(payment, "amount_paid", None) or 0

    return max(0, owed - already_paid)


def validate_payment_amount(amount: int, due_amount: int) -> ValidationResult:
    if amount <= 0:
        return ValidationResult.failure(
            BillingError.INVALID_AMOUNT, "Payment amount must be greater than zero"
        )

    ratio = Decimal(str(settings.MAX_OVERPAYMENT_RATIO))
    if Decimal(amount) > Decimal(due_amount) * ratio:
        percent = int(ratio * 100)
        return ValidationResult.failure(
            BillingError.AMOUNT_TOO_HIGH,
            f"Payment amount cannot exceed {percent}% of due amount",
        )

    return ValidationResult.success(amount)


# ------------------------------------------------------------------------
# History
# ------------------------------------------------------------------------

def aggregate_payment_history(
    payments: Iterable, as_of: Optional[DateLike] = None
) -> PaymentHistorySummary:
    """Totals and punctuality figures for a tenant's payments, in one pass."""
    as_of = as_of if as_of is not None else _today()

    total_paid = total_pending = total_overdue = total_partial = total_late_fees = 0
    on_time = late = 0
    settled_days = 0

    for payment in payments:
        derived = derive_status(payment, as_of)

        if derived.status == PaymentStatus.PAID:
            total_paid += payment.amount

            # A paid row without a paid date has no settlement timing to judge
            if payment.paid_date is None:
                continue

            diff = days_between(payment.due_date, payment.paid_date)
            if diff > 0:
                late += 1
            else:
                on_time += 1
            settled_days += abs(diff)

        elif derived.status == PaymentStatus.PENDING:
            total_pending += payment.amount
        elif derived.status == PaymentStatus.OVERDUE:
            total_overdue += payment.amount
            total_late_fees += derived.late_fees or 0
        elif derived.status == PaymentStatus.PARTIAL:
            total_partial += payment.amount

    settled = on_time + late

    return PaymentHistorySummary(
        total_paid=total_paid,
        total_pending=total_pending,
        total_overdue=total_overdue,
        total_partial=total_partial,
        total_late_fees=total_late_fees,
        average_payment_time=_round_half_up(settled_days, settled) if settled else 0,
        on_time_payments=on_time,
        late_payments=late,
        on_time_rate=_round_half_up(on_time * 100, settled) if settled else 0,
    )


# ------------------------------------------------------------------------
# Currency
# ------------------------------------------------------------------------

def format_currency(minor_units: int, currency: Optional[str] = None) -> str:
    """420000 -> "$4,200.00" for USD."""
    symbol, exponent = _currency(currency)
    whole, frac = divmod(abs(int(minor_units)), 10 ** exponent)
    sign = "-" if minor_units < 0 else ""
    if not exponent:
        return f"{sign}{symbol}{whole:,}"
    return f"{sign}{symbol}{whole:,}.{frac:0{exponent}d}"


def parse_currency_to_minor_units(display: str, currency: Optional[str] = None) -> ValidationResult:
    """
    Parse a user-typed or formatted amount into minor units.

    Everything except digits, "." and "-" is discarded first, so "$4,200.00"
    and "4200" both parse. The result is rounded half-up to a whole minor unit.
    """
    if not isinstance(display, str):
        return ValidationResult.failure(BillingError.INVALID_AMOUNT_FORMAT, "Amount is not a number")

    _, exponent = _currency(currency)
    cleaned = _NON_NUMERIC.sub("", display)

    # Precision sized to the input so long amounts are never rounded away
    with localcontext() as ctx:
        ctx.prec = len(cleaned) + exponent + 2
        try:
            minor = Decimal(cleaned).scaleb(exponent).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return ValidationResult.failure(BillingError.INVALID_AMOUNT_FORMAT, "Amount is not a number")

    return ValidationResult.success(int(minor))


# ------------------------------------------------------------------------
# Receipts
# ------------------------------------------------------------------------

def _receipt_date(value: Optional[DateLike]) -> str:
    if value is None:
        return "N/A"
    value = _as_date(value)
    return f"{value.month}/{value.day}/{value.year}"


def _method_label(method) -> str:
    if not method:
        return "N/A"
    return getattr(method, "value", method)


def generate_receipt(payment, currency: Optional[str] = None) -> str:
    lines = [
        "PAYMENT RECEIPT",
        "",
        f"Receipt ID: {payment.id}",
        f"Date: {_receipt_date(payment.paid_date)}",
        f"Amount: {format_currency(payment.amount, currency)}",
        f"Method: {_method_label(payment.payment_method)}",
        f"Transaction ID: {payment.transaction_id or 'N/A'}",
        "",
        "Thank you for your payment!",
    ]
    return "\n".join(lines) + "\n"
