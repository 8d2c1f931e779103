# tenant_portal/services/payment_validation.py
import re
from datetime import date
from typing import Dict, Optional

from tenant_portal.models.payment import CARD_METHODS
from tenant_portal.schemas.billing import BillingError, ValidationResult
from tenant_portal.schemas.payment import PaymentForm
from tenant_portal.services.billing import parse_currency_to_minor_units

_NON_DIGIT = re.compile(r"[^0-9]")
_EXPIRY = re.compile(r"([0-9]{2})/([0-9]{2})")
_CVV = re.compile(r"[0-9]{3,4}")

# A Luhn number is at least a payload digit plus its check digit
MIN_CARD_DIGITS = 2


def validate_card_number(card_number: str) -> ValidationResult:
    digits = _NON_DIGIT.sub("", card_number or "")
    if len(digits) < MIN_CARD_DIGITS:
        return ValidationResult.failure(BillingError.INVALID_CARD, "Invalid card number")

    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit

    if total % 10 != 0:
        return ValidationResult.failure(BillingError.INVALID_CARD, "Invalid card number")
    return ValidationResult.success()


def validate_expiry_date(mm_yy: str, today: Optional[date] = None) -> ValidationResult:
    """MM/YY; the current month is still valid."""
    match = _EXPIRY.fullmatch((mm_yy or "").strip())
    if not match:
        return ValidationResult.failure(BillingError.INVALID_EXPIRY, "Invalid expiry date")

    month = int(match.group(1))
    year = 2000 + int(match.group(2))
    if not 1 <= month <= 12:
        return ValidationResult.failure(BillingError.INVALID_EXPIRY, "Invalid expiry date")

    today = today or date.today()
    if (year, month) < (today.year, today.month):
        return ValidationResult.failure(BillingError.INVALID_EXPIRY, "Card has expired")

    return ValidationResult.success()


def validate_cvv(cvv: str) -> ValidationResult:
    if not _CVV.fullmatch(cvv or ""):
        return ValidationResult.failure(BillingError.INVALID_CVV, "Invalid CVV")
    return ValidationResult.success()


def validate_amount_input(text: str) -> ValidationResult:
    """Amount field check: must parse and be strictly positive."""
    parsed = parse_currency_to_minor_units(text)
    if not parsed:
        return parsed
    if parsed.value <= 0:
        return ValidationResult.failure(
            BillingError.INVALID_AMOUNT, "Payment amount must be greater than zero"
        )
    return parsed


def validate_card_fields(card_number: str, expiry_date: str, cvv: str,
                         today: Optional[date] = None) -> Dict[str, ValidationResult]:
    return {
        "card_number": validate_card_number(card_number),
        "expiry_date": validate_expiry_date(expiry_date, today),
        "cvv": validate_cvv(cvv),
    }


def validate_payment_form(form: PaymentForm, today: Optional[date] = None) -> Dict[str, ValidationResult]:
    """Failing fields only; an empty dict means the form is acceptable."""
    results = {"amount": validate_amount_input(form.amount)}

    if form.payment_method in CARD_METHODS:
        results.update(validate_card_fields(form.card_number, form.expiry_date, form.cvv, today))

    return {field: result for field, result in results.items() if not result}
