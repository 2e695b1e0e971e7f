"""Mirrors of the Acumatica-backed business tables."""

import datetime as dt
from typing import List, Literal, Optional

from ar_admin.models.base import ServerRecord

ColorStatus = Literal["red", "yellow", "green"]


class Customer(ServerRecord):
    """A row of ``acumatica_customers``."""

    id: str
    acumatica_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    status: Optional[str] = None
    credit_limit: Optional[float] = None
    current_balance: Optional[float] = None
    overdue_balance: Optional[float] = None
    total_invoices: int = 0
    red_threshold_days: Optional[int] = None
    updated_at: Optional[dt.datetime] = None


class Invoice(ServerRecord):
    """A row of ``acumatica_invoices``.

    Attributes:
        color_status: Collector traffic light (red, yellow, green) or None
        promise_date: Date the customer promised payment
    """

    id: str
    reference_number: str
    acumatica_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None
    date: Optional[dt.date] = None
    due_date: Optional[dt.date] = None
    amount: float = 0.0
    balance: float = 0.0
    description: Optional[str] = None
    color_status: Optional[ColorStatus] = None
    color_changed_at: Optional[dt.datetime] = None
    promise_date: Optional[dt.date] = None

    def is_overdue(self, today: Optional[dt.date] = None) -> bool:
        """Open balance with a due date in the past."""
        if self.due_date is None or self.balance <= 0:
            return False
        return self.due_date < (today or dt.date.today())


class PaymentApplication(ServerRecord):
    """One invoice a payment was applied to."""

    doc_type: Optional[str] = None
    reference_nbr: Optional[str] = None
    amount_paid: float = 0.0
    balance: Optional[float] = None
    invoice_date: Optional[dt.date] = None
    invoice_due_date: Optional[dt.date] = None


class Payment(ServerRecord):
    """A row of ``acumatica_payments``.

    Attributes:
        application_date: ``timestamptz`` column, usually with an offset
    """

    id: str
    reference_number: str
    acumatica_id: Optional[str] = None
    type: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    application_date: Optional[dt.datetime] = None
    payment_date: Optional[dt.datetime] = None
    payment_method: Optional[str] = None
    status: Optional[str] = None
    amount: float = 0.0
    unapplied_balance: Optional[float] = None
    description: Optional[str] = None
    application_history: Optional[List[PaymentApplication]] = None
