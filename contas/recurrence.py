"""Generation of the missing occurrences of recurring bill series."""

from __future__ import annotations

import calendar
import logging
from datetime import date

from ulid import ULID

from contas.history import HistoryEvent, append_history
from contas.models.bill import Bill, BillType

logger = logging.getLogger(__name__)


def add_months(value: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


_PERIOD_MONTHS = {BillType.MONTHLY: 1, BillType.ANNUAL: 12}


def next_due_date(due_date: date, bill_type: BillType) -> date | None:
    months = _PERIOD_MONTHS.get(bill_type)
    if months is None:
        return None
    return add_months(due_date, months)


def build_successor(anchor: Bill, due_date: date, details: str) -> Bill:
    """Clone the template fields of ``anchor`` into a fresh, unpaid occurrence."""
    successor = anchor.model_copy(
        update={
            "id": str(ULID()),
            "due_date": due_date,
            "is_paid": False,
            "payment_date": None,
            "paid_amount": None,
            "original_due_date": None,
            "postponements": [],
            "attachments": [],
            "history": [],
        }
    )
    return append_history(successor, HistoryEvent.AUTOMATIC_CREATION, details)


def generate_due(bills: list[Bill], today: date) -> list[Bill]:
    """Return the occurrences of recurring series that are due before ``today`` and missing.

    Only new bills are returned; the caller appends them. Running it again
    with its own output appended yields nothing.
    """
    series: dict[str, list[Bill]] = {}
    for bill in bills:
        if bill.series_id and bill.is_recurring:
            series.setdefault(bill.series_id, []).append(bill)

    existing = {(b.series_id, b.due_date) for b in bills if b.series_id}
    generated: list[Bill] = []

    for series_id, members in series.items():
        anchor = max(members, key=lambda b: b.due_date)
        candidate = next_due_date(anchor.due_date, anchor.type)
        while candidate is not None and candidate < today:
            if (series_id, candidate) not in existing:
                bill = build_successor(
                    anchor,
                    candidate,
                    "Conta gerada automaticamente como parte da série recorrente.",
                )
                generated.append(bill)
                existing.add((series_id, candidate))
            candidate = next_due_date(candidate, anchor.type)

    if generated:
        logger.info("Recurring generation created %d bill(s)", len(generated))
    return generated
