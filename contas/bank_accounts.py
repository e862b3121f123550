"""Per-owner bank account list with at most one active account."""

from __future__ import annotations

from datetime import datetime

from ulid import ULID

from contas.constants import now as _now
from contas.models.bank_detail import BankDetail


def _created_key(detail: BankDetail) -> float:
    return detail.created_at.timestamp() if detail.created_at else 0.0


def validate_bank_detail(entry: BankDetail) -> None:
    if not entry.bank_name.strip() or not entry.agency.strip() or not entry.account.strip():
        raise ValueError("Banco, Agência e Conta são obrigatórios.")


def active_account(details: list[BankDetail]) -> BankDetail | None:
    return next((d for d in details if d.is_active), None)


def deactivate_all(details: list[BankDetail], now: datetime | None = None) -> list[BankDetail]:
    stamp = now or _now()
    return [d.model_copy(update={"is_active": False, "deactivated_at": stamp}) if d.is_active else d for d in details]


def add_or_update(details: list[BankDetail], entry: BankDetail, now: datetime | None = None) -> list[BankDetail]:
    """Edit ``entry`` in place when its id is known, otherwise insert it as the new active account."""
    if entry.id and any(d.id == entry.id for d in details):
        changes = entry.model_dump(include={"bank_name", "agency", "account", "pix_key_type", "pix_key"})
        return [d.model_copy(update=changes) if d.id == entry.id else d for d in details]

    stamp = now or _now()
    new_entry = entry.model_copy(
        update={
            "id": entry.id or str(ULID()),
            "is_active": True,
            "created_at": stamp,
            "deactivated_at": None,
        }
    )
    return [*deactivate_all(details, stamp), new_entry]


def remove(details: list[BankDetail], detail_id: str) -> list[BankDetail]:
    removed = next((d for d in details if d.id == detail_id), None)
    remaining = [d for d in details if d.id != detail_id]
    if removed is None or not removed.is_active or not remaining:
        return remaining

    # max() keeps the first of equal keys, so ties resolve to list order.
    newest = max(remaining, key=_created_key)
    return [d.model_copy(update={"is_active": True, "deactivated_at": None}) if d is newest else d for d in remaining]
