from __future__ import annotations

from datetime import datetime
from typing import TypeVar

from pydantic import BaseModel

from contas.constants import now as _now
from contas.models.bill import HistoryEntry

T = TypeVar("T", bound=BaseModel)


class HistoryEvent:
    """String constants for all history event tags."""

    CREATION = "Creation"
    AUTOMATIC_CREATION = "Automatic Creation"
    EDIT = "Edit"
    PAYMENT = "Payment"
    PAYMENT_UNDONE = "Payment Undone"
    POSTPONED = "Postponed"
    ATTACHMENT = "Attachment"
    RECURRENCE = "Recurrence"
    CATEGORY_RENAMED = "Category Renamed"
    COST_CENTER_RENAMED = "Cost Center Renamed"
    BANK_DETAILS = "Bank Details"
    BULK_UPDATE = "Bulk Update"
    COMPANY_UNLINKED = "Company Unlinked"
    PORTAL_UPDATE = "Portal Update"


def append_history(entity: T, event: str, details: str, now: datetime | None = None) -> T:
    """Return a copy of ``entity`` with one more history entry. The input is left untouched."""
    entry = HistoryEntry(timestamp=now or _now(), event=event, details=details)
    return entity.model_copy(update={"history": [*entity.history, entry]})
