# tenant_portal/api/routers/payments.py
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, PlainTextResponse

from tenant_portal.api.deps.services import get_checkout_service, get_payment_repository
from tenant_portal.core.config import settings
from tenant_portal.models.payment import Payment, PaymentStatus
from tenant_portal.repositories.payments import PaymentRepository
from tenant_portal.schemas.billing import PaymentHistorySummary
from tenant_portal.schemas.payment import (
    CardValidationOut,
    CardValidationRequest,
    CheckoutResult,
    PaymentCreate,
    PaymentForm,
    PaymentOut,
)
from tenant_portal.services import billing
from tenant_portal.services.checkout import CheckoutService, PaymentNotFound
from tenant_portal.services.payment_validation import validate_card_fields

router = APIRouter(tags=["Payments"])


def _to_out(payment: Payment, as_of: date) -> PaymentOut:
    derived = billing.derive_status(payment, as_of)
    return PaymentOut(
        id=payment.id,
        tenant_id=payment.tenant_id,
        amount=payment.amount,
        amount_display=billing.format_currency(payment.amount, settings.DEFAULT_CURRENCY),
        due_date=payment.due_date,
        status=derived.status,
        days_late=derived.days_late,
        late_fees=derived.late_fees,
        amount_paid=payment.amount_paid or 0,
        paid_date=payment.paid_date,
        payment_method=payment.payment_method,
        transaction_id=payment.transaction_id,
    )


@router.get("/tenants/{tenant_id}/payments", response_model=List[PaymentOut])
def list_payments(
    tenant_id: str,
    repository: PaymentRepository = Depends(get_payment_repository),
):
    today = date.today()
    return [_to_out(p, today) for p in repository.get_payments(tenant_id)]


@router.post("/tenants/{tenant_id}/payments", response_model=PaymentOut, status_code=201)
def create_payment(
    tenant_id: str,
    payload: PaymentCreate,
    repository: PaymentRepository = Depends(get_payment_repository),
):
    try:
        payment = repository.create_payment(
            tenant_id=tenant_id,
            amount=payload.amount,
            due_date=payload.due_date,
            notes=payload.notes,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_out(payment, date.today())


@router.get("/tenants/{tenant_id}/payments/summary", response_model=PaymentHistorySummary)
def payment_summary(
    tenant_id: str,
    repository: PaymentRepository = Depends(get_payment_repository),
):
    return billing.aggregate_payment_history(repository.get_payments(tenant_id))


@router.get("/tenants/{tenant_id}/payments/history", response_model=List[PaymentOut])
def payment_history(
    tenant_id: str,
    months: int = Query(12, ge=1, le=120),
    repository: PaymentRepository = Depends(get_payment_repository),
):
    today = date.today()
    return [_to_out(p, today) for p in repository.get_payment_history(tenant_id, months, today)]


@router.post("/payments/{payment_id}/pay", response_model=CheckoutResult)
def pay(
    payment_id: str,
    form: PaymentForm,
    checkout: CheckoutService = Depends(get_checkout_service),
):
    try:
        result = checkout.pay(payment_id, form)
    except PaymentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if result.success:
        return result
    if result.errors:
        return JSONResponse(status_code=422, content=result.model_dump(mode="json"))
    if result.transaction_id:
        # Charged but not recorded
        return JSONResponse(status_code=500, content=result.model_dump(mode="json"))
    return JSONResponse(status_code=402, content=result.model_dump(mode="json"))


@router.get("/payments/{payment_id}/receipt", response_class=PlainTextResponse)
def payment_receipt(
    payment_id: str,
    repository: PaymentRepository = Depends(get_payment_repository),
):
    payment = repository.get_payment(payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    if payment.status != PaymentStatus.PAID:
        raise HTTPException(status_code=409, detail="Receipts are only available for paid payments")
    return PlainTextResponse(
        billing.generate_receipt(payment, settings.DEFAULT_CURRENCY),
        headers={"Content-Disposition": f'attachment; filename="receipt_{payment.id}.txt"'},
    )


@router.post("/payments/validate-card", response_model=CardValidationOut)
def validate_card(payload: CardValidationRequest):
    fields = validate_card_fields(payload.card_number, payload.expiry_date, payload.cvv)
    return CardValidationOut(valid=all(fields.values()), fields=fields)
