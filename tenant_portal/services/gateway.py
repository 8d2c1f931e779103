# tenant_portal/services/gateway.py
"""
Card gateway contract.

The portal never talks to a card processor directly; whatever client the
deployment plugs in only has to satisfy PaymentGateway.charge. The mock
gateway is what development and demo environments charge through.
"""

import logging
import random
import string
import time
from typing import Optional, Protocol

from pydantic import BaseModel

from tenant_portal.core.config import settings

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


class ChargeResult(BaseModel):
    success: bool
    transaction_id: Optional[str] = None
    error: Optional[str] = None


class PaymentGateway(Protocol):
    def charge(self, amount_minor_units: int, method_token: str) -> ChargeResult:
        ...


class MockPaymentGateway:
    """Approves roughly success_rate of charges and invents transaction ids."""

    def __init__(self, success_rate: float = 0.95, rng: Optional[random.Random] = None):
        self.success_rate = success_rate
        self.rng = rng or random.Random()

    def charge(self, amount_minor_units: int, method_token: str) -> ChargeResult:
        if self.rng.random() >= self.success_rate:
            logger.info(f"Mock gateway declined charge of {amount_minor_units} via {method_token}")
            return ChargeResult(success=False, error="Payment declined. Please try again.")

        suffix = "".join(self.rng.choice(_BASE36) for _ in range(9))
        transaction_id = f"mock_txn_{int(time.time() * 1000)}_{suffix}"
        return ChargeResult(success=True, transaction_id=transaction_id)


def get_payment_gateway() -> PaymentGateway:
    """Factory for the configured gateway"""
    if settings.PAYMENT_GATEWAY == "mock":
        return MockPaymentGateway(success_rate=settings.MOCK_GATEWAY_SUCCESS_RATE)
    raise ValueError(f"Unsupported payment gateway: {settings.PAYMENT_GATEWAY}")
