"""Invoice reminder models."""

import datetime as dt
from typing import Literal, Optional

from pydantic import Field, field_validator

from ar_admin.models.base import BaseDataModel, ServerRecord

REMINDER_PRIORITIES = ("low", "medium", "high", "urgent")
REMINDER_TYPES = ("general", "call", "email", "meeting", "payment", "follow_up")


class Reminder(ServerRecord):
    """A row of ``invoice_reminders`` flattened with its joins."""

    id: str
    user_id: Optional[str] = None
    invoice_id: Optional[str] = None
    ticket_id: Optional[str] = None
    title: str
    reminder_date: dt.datetime
    priority: str = "medium"
    reminder_type: str = "payment"
    description: Optional[str] = None
    send_email_notification: bool = False
    email_sent: bool = False
    status: Optional[str] = None
    completed_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None
    invoice_reference: Optional[str] = None
    ticket_number: Optional[str] = None
    customer_name: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


class ReminderDraft(BaseDataModel):
    """A reminder typed into the create form.

    Example:
        >>> draft = ReminderDraft(
        ...     title="Follow up on invoice 001234",
        ...     reminder_date=dt.date(2024, 5, 2),
        ... )
        >>> draft.reminder_datetime().isoformat()
        '2024-05-02T09:00:00'
    """

    title: str = Field(..., min_length=1)
    reminder_date: dt.date
    reminder_time: dt.time = dt.time(9, 0)
    description: Optional[str] = None
    priority: Literal["low", "medium", "high", "urgent"] = "medium"
    reminder_type: Literal[
        "general", "call", "email", "meeting", "payment", "follow_up"
    ] = "payment"
    send_email_notification: bool = False
    status: Literal["pending"] = "pending"
    invoice_id: Optional[str] = None
    invoice_reference_number: Optional[str] = None
    ticket_id: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title cannot be empty or whitespace")
        return v.strip()

    def reminder_datetime(self) -> dt.datetime:
        return dt.datetime.combine(self.reminder_date, self.reminder_time)
