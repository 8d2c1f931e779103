# tenant_portal/repositories/payments.py
import calendar
import logging
from datetime import date, datetime, time, timezone
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tenant_portal.models.payment import Payment, PaymentStatus

logger = logging.getLogger(__name__)


def _months_back(today: date, months: int) -> date:
    """Same day-of-month `months` earlier, clamped to the month's length."""
    index = today.year * 12 + (today.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(today.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class PaymentRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_payments(self, tenant_id: str) -> List[Payment]:
        """All payments for a tenant, latest due date first"""
        return self.db.execute(
            select(Payment)
            .where(Payment.tenant_id == tenant_id)
            .order_by(desc(Payment.due_date))
        ).scalars().all()

    def get_payment(self, payment_id: str) -> Optional[Payment]:
        return self.db.get(Payment, payment_id)

    def create_payment(
        self,
        tenant_id: str,
        amount: int,
        due_date: date,
        notes: Optional[str] = None,
    ) -> Payment:
        if amount <= 0:
            raise ValueError("Payment amount must be greater than zero")

        payment = Payment(
            tenant_id=tenant_id,
            amount=amount,
            due_date=due_date,
            status=PaymentStatus.PENDING.value,
            amount_paid=0,
            notes=notes,
        )
        self.db.add(payment)
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error creating payment for tenant {tenant_id}: {e}")
            raise
        return payment

    def update_payment_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        paid_date: Optional[date] = None,
        *,
        transaction_id: Optional[str] = None,
        payment_method: Optional[str] = None,
        amount_paid: Optional[int] = None,
    ) -> bool:
        payment = self.get_payment(payment_id)
        if not payment:
            logger.warning(f"Cannot update missing payment {payment_id}")
            return False

        status = PaymentStatus(status)
        payment.status = status.value
        # paid_date is only meaningful on paid rows
        if status == PaymentStatus.PAID:
            payment.paid_date = paid_date or payment.paid_date or date.today()
        else:
            payment.paid_date = None
        if transaction_id:
            payment.transaction_id = transaction_id
        if payment_method:
            payment.payment_method = getattr(payment_method, "value", payment_method)
        if amount_paid is not None:
            payment.amount_paid = amount_paid

        try:
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating payment {payment_id}: {e}")
            raise
        return True

    def get_payment_history(
        self, tenant_id: str, months: int = 12, today: Optional[date] = None
    ) -> List[Payment]:
        """Payments created in the last `months` months, newest first"""
        start = _months_back(today or date.today(), months)
        since = datetime.combine(start, time.min, tzinfo=timezone.utc)

        return self.db.execute(
            select(Payment)
            .where(Payment.tenant_id == tenant_id, Payment.created_at >= since)
            .order_by(desc(Payment.created_at))
        ).scalars().all()
