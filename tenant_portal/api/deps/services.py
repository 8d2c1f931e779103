from fastapi import Depends
from sqlalchemy.orm import Session

from tenant_portal.core.db import get_db
from tenant_portal.repositories.payments import PaymentRepository
from tenant_portal.services.checkout import CheckoutService
from tenant_portal.services.gateway import PaymentGateway, get_payment_gateway


def get_gateway() -> PaymentGateway:
    return get_payment_gateway()


def get_payment_repository(db: Session = Depends(get_db)) -> PaymentRepository:
    return PaymentRepository(db)


def get_checkout_service(
    repository: PaymentRepository = Depends(get_payment_repository),
    gateway: PaymentGateway = Depends(get_gateway),
) -> CheckoutService:
    return CheckoutService(repository, gateway)
