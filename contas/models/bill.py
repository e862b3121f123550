from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel


class BillType(str, Enum):
    VARIABLE = "VARIAVEL"
    INSTALLMENT = "PARCELADA"
    MONTHLY = "MENSAL"
    ANNUAL = "ANUAL"


RECURRING_TYPES = frozenset({BillType.MONTHLY, BillType.ANNUAL})


class BillStatus(str, Enum):
    UPCOMING = "upcoming"
    OVERDUE = "overdue"
    PAID = "paid"
    POSTPONED = "postponed"


class HistoryEntry(BaseModel):
    timestamp: datetime
    event: str
    details: str


class PostponementRecord(BaseModel):
    postponed_at: datetime
    reason: str


class Attachment(BaseModel):
    name: str
    content_type: str = ""
    storage_key: str = ""
    size: int = 0


class Bill(BaseModel):
    id: str
    title: str
    description: str = ""
    beneficiary: str = ""
    amount: int  # centavos
    due_date: date
    category: str = ""
    cost_center: str = ""
    type: BillType = BillType.VARIABLE
    barcode: str = ""
    is_paid: bool = False
    payment_date: date | None = None
    paid_amount: int | None = None  # centavos
    installment_number: int | None = None
    total_installments: int | None = None
    is_recurring: bool | None = None
    series_id: str | None = None
    original_due_date: date | None = None
    postponements: list[PostponementRecord] = []
    attachments: list[Attachment] = []
    history: list[HistoryEntry] = []

    @property
    def payment_difference(self) -> int | None:
        """Interest (positive) or discount (negative) paid, in centavos."""
        if not self.is_paid or self.paid_amount is None:
            return None
        return self.paid_amount - self.amount

    @property
    def payment_difference_percent(self) -> float | None:
        diff = self.payment_difference
        if diff is None or self.amount == 0:
            return None
        return diff / self.amount * 100


ALLOWED_ATTACHMENT_TYPES = {"application/pdf", "image/jpeg", "image/png"}
MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # 10 MB
