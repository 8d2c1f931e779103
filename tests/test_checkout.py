import random
from datetime import date

import pytest

from tenant_portal.models.payment import PaymentMethod, PaymentStatus
from tenant_portal.schemas.billing import BillingError
from tenant_portal.schemas.payment import PaymentForm
from tenant_portal.services.checkout import CheckoutService, PaymentAlreadySettled, PaymentNotFound
from tenant_portal.services.gateway import MockPaymentGateway

from tests.conftest import StubGateway

TODAY = date(2024, 1, 15)


@pytest.fixture
def payment(repository):
    return repository.create_payment("tenant-1", 420000, date(2024, 2, 1))


def card_form(amount="4200.00", **overrides):
    fields = {
        "amount": amount,
        "card_number": "4242424242424242",
        "expiry_date": "12/30",
        "cvv": "123",
    }
    fields.update(overrides)
    return PaymentForm(**fields)


def test_successful_payment_marks_paid(repository, gateway, payment):
    result = CheckoutService(repository, gateway).pay(payment.id, card_form(), today=TODAY)

    assert result.success
    assert result.status == PaymentStatus.PAID
    assert result.transaction_id == "txn_1"
    assert result.amount_charged == 420000
    assert gateway.calls == [(420000, "credit_card")]

    stored = repository.get_payment(payment.id)
    assert stored.status == "paid"
    assert stored.paid_date == TODAY
    assert stored.transaction_id == "txn_1"
    assert stored.payment_method == "credit_card"


def test_underpayment_marks_partial(repository, gateway, payment):
    result = CheckoutService(repository, gateway).pay(payment.id, card_form("1000"), today=TODAY)

    assert result.success
    assert result.status == PaymentStatus.PARTIAL
    stored = repository.get_payment(payment.id)
    assert stored.status == "partial"
    assert stored.paid_date is None


def test_overdue_payment_requires_late_fee(repository, gateway, payment):
    late = date(2024, 2, 10)
    service = CheckoutService(repository, gateway)

    result = service.pay(payment.id, card_form("4200.00"), today=late)

    assert result.status == PaymentStatus.PARTIAL

    other = repository.create_payment("tenant-1", 420000, date(2024, 2, 1))
    result = service.pay(other.id, card_form("4410.00"), today=late)
    assert result.status == PaymentStatus.PAID


def test_invalid_fields_skip_the_gateway(repository, gateway, payment):
    result = CheckoutService(repository, gateway).pay(
        payment.id, card_form(card_number="4242424242424241", cvv="1"), today=TODAY
    )

    assert not result.success
    assert set(result.errors) == {"card_number", "cvv"}
    assert gateway.calls == []
    assert repository.get_payment(payment.id).status == "pending"


def test_amount_too_high(repository, gateway, payment):
    result = CheckoutService(repository, gateway).pay(payment.id, card_form("9000"), today=TODAY)

    assert not result.success
    assert result.errors["amount"].error == BillingError.AMOUNT_TOO_HIGH
    assert gateway.calls == []


def test_bank_transfer_needs_no_card(repository, gateway, payment):
    form = PaymentForm(amount="4200", payment_method=PaymentMethod.BANK_TRANSFER, method_token="ba_123")

    result = CheckoutService(repository, gateway).pay(payment.id, form, today=TODAY)

    assert result.success
    assert gateway.calls == [(420000, "ba_123")]
    assert repository.get_payment(payment.id).payment_method == "bank_transfer"


def test_declined_charge_leaves_payment_pending(repository, payment):
    gateway = StubGateway(approve=False, error="Insufficient funds")

    result = CheckoutService(repository, gateway).pay(payment.id, card_form(), today=TODAY)

    assert not result.success
    assert result.error == "Insufficient funds"
    assert result.transaction_id is None
    assert repository.get_payment(payment.id).status == "pending"


def test_unknown_payment(repository, gateway):
    with pytest.raises(PaymentNotFound):
        CheckoutService(repository, gateway).pay("missing", card_form(), today=TODAY)


def test_already_paid(repository, gateway, payment):
    service = CheckoutService(repository, gateway)
    service.pay(payment.id, card_form(), today=TODAY)

    with pytest.raises(PaymentAlreadySettled):
        service.pay(payment.id, card_form(), today=TODAY)
    assert len(gateway.calls) == 1


def test_failed_write_back_is_reported(repository, gateway, payment, monkeypatch):
    monkeypatch.setattr(repository, "update_payment_status", lambda *args, **kwargs: False)

    result = CheckoutService(repository, gateway).pay(payment.id, card_form(), today=TODAY)

    assert not result.success
    assert result.transaction_id == "txn_1"
    assert result.error == "Failed to update payment status"


class TestMockPaymentGateway:
    def test_always_approves_at_full_rate(self):
        result = MockPaymentGateway(success_rate=1.0, rng=random.Random(7)).charge(100, "tok")
        assert result.success
        assert result.transaction_id.startswith("mock_txn_")
        assert len(result.transaction_id.rsplit("_", 1)[1]) == 9

    def test_always_declines_at_zero_rate(self):
        result = MockPaymentGateway(success_rate=0.0).charge(100, "tok")
        assert not result.success
        assert result.error == "Payment declined. Please try again."


def test_balance_payment_settles_partial(repository, gateway, payment):
    service = CheckoutService(repository, gateway)

    first = service.pay(payment.id, card_form("10.00"), today=TODAY)
    second = service.pay(payment.id, card_form("4190.00"), today=TODAY)

    assert first.status == PaymentStatus.PARTIAL
    assert second.status == PaymentStatus.PAID
    assert gateway.calls == [(1000, "credit_card"), (419000, "credit_card")]

    stored = repository.get_payment(payment.id)
    assert stored.status == "paid"
    assert stored.amount_paid == 420000
    assert stored.paid_date == TODAY


def test_overpayment_limit_uses_remaining_balance(repository, gateway, payment):
    service = CheckoutService(repository, gateway)
    service.pay(payment.id, card_form("4000.00"), today=TODAY)

    # $200 left, so anything above $300 is too much
    result = service.pay(payment.id, card_form("400.00"), today=TODAY)

    assert not result.success
    assert result.errors["amount"].error == BillingError.AMOUNT_TOO_HIGH
    assert len(gateway.calls) == 1


def test_very_long_amount_is_rejected_without_charging(repository, gateway, payment):
    result = CheckoutService(repository, gateway).pay(payment.id, card_form("9" * 40), today=TODAY)

    assert not result.success
    assert result.errors["amount"].error == BillingError.AMOUNT_TOO_HIGH
    assert gateway.calls == []
