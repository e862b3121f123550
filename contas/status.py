"""Display status of bills and the dashboard aggregates built on it."""

from __future__ import annotations

from collections import defaultdict
from datetime import date

from pydantic import BaseModel

from contas.matching import normalize_string
from contas.models.bill import Bill, BillStatus


class StatusTotals(BaseModel):
    count: int = 0
    total: int = 0  # centavos


def classify(bill: Bill, today: date) -> BillStatus:
    if bill.is_paid:
        return BillStatus.PAID
    if bill.postponements:
        return BillStatus.POSTPONED
    if bill.due_date < today:
        return BillStatus.OVERDUE
    return BillStatus.UPCOMING


def summarize(bills: list[Bill], today: date) -> dict[BillStatus, StatusTotals]:
    """Count and sum per status. Paid bills are summed by the amount actually paid."""
    summary = {status: StatusTotals() for status in BillStatus}
    for bill in bills:
        status = classify(bill, today)
        totals = summary[status]
        totals.count += 1
        totals.total += (bill.paid_amount or 0) if status == BillStatus.PAID else bill.amount
    return summary


def count_by_status(bills: list[Bill], today: date) -> dict[str, int]:
    counts = {"all": len(bills), **{status.value: 0 for status in BillStatus}}
    for bill in bills:
        counts[classify(bill, today).value] += 1
    return counts


def _matches_query(bill: Bill, query: str) -> bool:
    query = query.lower()
    return any(
        query in field.lower() for field in (bill.title, bill.beneficiary, bill.category, bill.cost_center)
    )


def _in_range(bill: Bill, start: date, end: date) -> bool:
    reference = bill.payment_date if bill.is_paid else bill.due_date
    if reference is None:
        return False
    return start <= reference <= end


def filter_bills(
    bills: list[Bill],
    today: date,
    query: str = "",
    start: date | None = None,
    end: date | None = None,
    status: BillStatus | None = None,
) -> list[Bill]:
    """Apply search, date range and status filters; result is sorted by due date.

    The date range only applies when both ends are given, and checks the
    payment date of paid bills and the due date of the others.
    """
    result = []
    for bill in bills:
        if query and not _matches_query(bill, query):
            continue
        if start is not None and end is not None and not _in_range(bill, start, end):
            continue
        if status is not None and classify(bill, today) != status:
            continue
        result.append(bill)
    result.sort(key=lambda b: b.due_date)
    return result


def bills_for_month(bills: list[Bill], year: int, month: int, search: str = "") -> dict[int, list[Bill]]:
    """Group the bills due in a calendar month by day, for the schedule view."""
    needle = normalize_string(search)
    by_day: dict[int, list[Bill]] = defaultdict(list)
    for bill in bills:
        if bill.due_date.year != year or bill.due_date.month != month:
            continue
        if needle and not any(
            needle in normalize_string(field)
            for field in (bill.title, bill.beneficiary, bill.category, bill.cost_center)
        ):
            continue
        by_day[bill.due_date.day].append(bill)
    return dict(by_day)
