# tenant_portal/services/checkout.py
"""
Checkout flow behind the tenant's "Pay now" dialog.

Validates what the tenant typed, charges the gateway once, and writes the
outcome back to the payment row. Network failures are not retried here;
the caller decides whether to resubmit.
"""

import logging
from datetime import date
from typing import Optional

from tenant_portal.models.payment import PaymentStatus
from tenant_portal.repositories.payments import PaymentRepository
from tenant_portal.schemas.payment import CheckoutResult, PaymentForm
from tenant_portal.services import billing
from tenant_portal.services.gateway import PaymentGateway
from tenant_portal.services.payment_validation import validate_payment_form

logger = logging.getLogger(__name__)


class PaymentNotFound(ValueError):
    pass


class PaymentAlreadySettled(ValueError):
    pass


class CheckoutService:
    def __init__(self, repository: PaymentRepository, gateway: PaymentGateway):
        self.repository = repository
        self.gateway = gateway

    def pay(self, payment_id: str, form: PaymentForm, today: Optional[date] = None) -> CheckoutResult:
        today = today or date.today()

        payment = self.repository.get_payment(payment_id)
        if not payment:
            raise PaymentNotFound("Payment not found")
        if payment.status == PaymentStatus.PAID:
            raise PaymentAlreadySettled("Payment already settled")

        errors = validate_payment_form(form, today)
        if errors:
            return CheckoutResult(
                success=False,
                payment_id=payment_id,
                error="Please correct the highlighted fields",
                errors=errors,
            )

        amount = billing.parse_currency_to_minor_units(form.amount).value
        # Balance still owed, net of earlier partial charges
        due = billing.amount_due(payment, today)

        check = billing.validate_payment_amount(amount, due)
        if not check:
            return CheckoutResult(
                success=False,
                payment_id=payment_id,
                error=check.message,
                errors={"amount": check},
            )

        method_token = form.method_token or form.payment_method.value
        logger.info(f"Charging {amount} for payment {payment_id} via {form.payment_method.value}")
        charge = self.gateway.charge(amount, method_token)

        if not charge.success:
            logger.warning(f"Charge declined for payment {payment_id}: {charge.error}")
            return CheckoutResult(
                success=False,
                payment_id=payment_id,
                error=charge.error or "Payment failed",
            )

        status = PaymentStatus.PAID if amount >= due else PaymentStatus.PARTIAL
        updated = self.repository.update_payment_status(
            payment_id,
            status,
            today if status == PaymentStatus.PAID else None,
            transaction_id=charge.transaction_id,
            payment_method=form.payment_method.value,
            amount_paid=(payment.amount_paid or 0) + amount,
        )
        if not updated:
            logger.error(
                f"Charge {charge.transaction_id} succeeded but payment {payment_id} was not updated"
            )
            return CheckoutResult(
                success=False,
                payment_id=payment_id,
                transaction_id=charge.transaction_id,
                amount_charged=amount,
                error="Failed to update payment status",
            )

        return CheckoutResult(
            success=True,
            payment_id=payment_id,
            status=status,
            transaction_id=charge.transaction_id,
            amount_charged=amount,
        )
