"""Invoice and ticket reminders of the signed-in user."""

import datetime as dt
import logging
from typing import Any, Dict, List, Optional, Sequence

from ar_admin.models.reminders import Reminder, ReminderDraft
from ar_admin.services.edge_functions import EdgeFunctionClient
from ar_admin.services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

REMINDER_FILTERS = (
    "all",
    "pending",
    "today",
    "tomorrow",
    "week",
    "overdue",
    "completed",
)

REMINDER_COLUMNS = """
    *,
    acumatica_invoices(reference_number, customer_name),
    collection_tickets(ticket_number, customer_name)
"""


def _embedded(row: Dict[str, Any], relation: str) -> Dict[str, Any]:
    value = row.get(relation)
    if isinstance(value, list):
        value = value[0] if value else None
    return value or {}


def flatten_reminder(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Lift the joined invoice and ticket fields onto the reminder row.

    The explicit ``invoice_reference_number`` wins over the joined invoice;
    the ticket's customer name wins over the invoice's.
    """
    invoice = _embedded(row, "acumatica_invoices")
    ticket = _embedded(row, "collection_tickets")

    flat = {
        k: v
        for k, v in row.items()
        if k not in ("acumatica_invoices", "collection_tickets")
    }
    flat["invoice_reference"] = row.get("invoice_reference_number") or invoice.get(
        "reference_number"
    )
    flat["customer_name"] = ticket.get("customer_name") or invoice.get("customer_name")
    flat["ticket_number"] = ticket.get("ticket_number")
    return flat


def filter_reminders(
    reminders: Sequence[Reminder], name: str, now: Optional[dt.datetime] = None
) -> List[Reminder]:
    """
    Reminders matching a list filter, in their original order.

    Day boundaries are local midnight; ``week`` ends at midnight seven days
    after today. Every filter except ``all`` and ``completed``
    leaves out completed reminders.

    Raises:
        ValueError: If ``name`` is not one of REMINDER_FILTERS
    """
    if name not in REMINDER_FILTERS:
        raise ValueError(f"filter must be one of {', '.join(REMINDER_FILTERS)}")
    if name == "all":
        return list(reminders)
    if name == "completed":
        return [r for r in reminders if r.is_completed]

    today = (now or dt.datetime.now()).astimezone().replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    tomorrow = today + dt.timedelta(days=1)
    windows = {
        "pending": lambda when: True,
        "today": lambda when: today <= when < tomorrow,
        "tomorrow": lambda when: tomorrow <= when < tomorrow + dt.timedelta(days=1),
        "week": lambda when: today <= when <= today + dt.timedelta(days=7),
        "overdue": lambda when: when < today,
    }
    matches = windows[name]
    return [
        r
        for r in reminders
        if not r.is_completed and matches(r.reminder_date.astimezone())
    ]


class ReminderService:
    def __init__(
        self,
        client: SupabaseClient,
        functions: Optional[EdgeFunctionClient] = None,
    ):
        self.client = client
        self.functions = functions

    def list_for_user(self, user_id: str) -> List[Reminder]:
        """Reminders of ``user_id``, earliest first."""
        result = (
            self.client.table("invoice_reminders")
            .select(REMINDER_COLUMNS)
            .eq("user_id", user_id)
            .order("reminder_date")
            .execute()
        )
        rows = [flatten_reminder(row) for row in result.data or []]

        # Customer names for reminders that only carry an invoice reference
        missing = sorted(
            {
                row["invoice_reference"]
                for row in rows
                if row.get("invoice_reference") and not row.get("customer_name")
            }
        )
        if missing:
            invoices = self.client.select_in_batches(
                "acumatica_invoices",
                "reference_number, customer_name",
                "reference_number",
                missing,
            )
            names = {
                inv.get("reference_number"): inv.get("customer_name")
                for inv in invoices
            }
            for row in rows:
                if not row.get("customer_name"):
                    row["customer_name"] = names.get(row.get("invoice_reference"))

        return [Reminder(**row) for row in rows]

    def create(self, draft: ReminderDraft, user_id: str) -> Optional[Dict[str, Any]]:
        """Insert a reminder owned by ``user_id``. Time defaults to 09:00."""
        when = draft.reminder_datetime().astimezone(dt.timezone.utc)
        row: Dict[str, Any] = {
            "user_id": user_id,
            "reminder_date": when.isoformat(),
            "title": draft.title,
            "description": (draft.description or "").strip() or None,
            "priority": draft.priority,
            "reminder_type": draft.reminder_type,
            "send_email_notification": draft.send_email_notification,
            "status": draft.status,
        }
        if draft.invoice_id:
            row["invoice_id"] = draft.invoice_id
        if draft.invoice_reference_number:
            row["invoice_reference_number"] = draft.invoice_reference_number
        if draft.ticket_id:
            row["ticket_id"] = draft.ticket_id

        result = self.client.table("invoice_reminders").insert(row).execute()
        logger.info(f"Reminder created for {user_id}: {draft.title}")
        data = result.data
        return data[0] if isinstance(data, list) and data else data

    def complete(
        self, reminder_id: str, user_id: str, now: Optional[dt.datetime] = None
    ) -> None:
        stamp = (now or dt.datetime.now(dt.timezone.utc)).isoformat()
        (
            self.client.table("invoice_reminders")
            .update({"completed_at": stamp, "completed_by_user_id": user_id})
            .eq("id", reminder_id)
            .execute()
        )

    def uncomplete(self, reminder_id: str) -> None:
        (
            self.client.table("invoice_reminders")
            .update({"completed_at": None, "completed_by_user_id": None})
            .eq("id", reminder_id)
            .execute()
        )

    def delete(self, reminder_id: str) -> None:
        self.client.table("invoice_reminders").delete().eq("id", reminder_id).execute()

    def send_emails(self, recipients: Sequence[str]) -> Dict[str, int]:
        """
        Send due reminder emails to ``recipients`` now.

        Returns:
            ``total`` reminders processed and ``sent`` emails delivered
        """
        if self.functions is None:
            raise ValueError("An EdgeFunctionClient is required to send emails")
        if not recipients:
            raise ValueError("At least one recipient email is required")

        result = self.functions.invoke(
            "send-reminder-emails", {"recipient_emails": list(recipients)}
        )
        results = result.get("results") or []
        sent = sum(
            1 for r in results if isinstance(r, dict) and r.get("status") == "sent"
        )
        return {"total": int(result.get("total") or 0), "sent": sent}
