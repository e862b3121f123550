from __future__ import annotations

import logging
from datetime import date, timedelta
from enum import Enum

from pydantic import BaseModel
from ulid import ULID

from contas.constants import format_date, now, today
from contas.history import HistoryEvent, append_history
from contas.matching import is_fuzzy_match
from contas.models import format_brl
from contas.models.bill import (
    ALLOWED_ATTACHMENT_TYPES,
    MAX_ATTACHMENT_SIZE,
    RECURRING_TYPES,
    Attachment,
    Bill,
    BillType,
    PostponementRecord,
)
from contas.models.imports import BillDraft, BillFormData
from contas.recurrence import add_months, build_successor, generate_due, next_due_date
from contas.settings import settings
from contas.storage.base import StorageBackend
from contas.store import AppStore

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}

BULK_POSTPONE_REASON = "Postergado em massa."
DEFAULT_POSTPONE_REASON = "Nenhum motivo informado."

_EDITABLE_FIELDS = {
    "title": "Título",
    "description": "Descrição",
    "beneficiary": "Beneficiário",
    "amount": "Valor",
    "due_date": "Vencimento",
    "category": "Categoria",
    "cost_center": "Centro de Custo",
    "barcode": "Código de Barras",
}


def _attachment_storage_key(owner_id: str, attachment_id: str, content_type: str) -> str:
    ext = CONTENT_TYPE_EXTENSIONS.get(content_type, "")
    prefix = settings.storage_prefix
    if prefix:
        return f"{prefix}/{owner_id}/{attachment_id}{ext}"
    return f"{owner_id}/{attachment_id}{ext}"


def _validate_amount(amount: int) -> None:
    if amount <= 0:
        raise ValueError("O valor deve ser maior que zero.")


def _display(value: object) -> str:
    if isinstance(value, int):
        return format_brl(value)
    if isinstance(value, date):
        return format_date(value)
    return str(value or "")


def split_installments(total: int, count: int) -> list[int]:
    """Split centavos evenly; the remainder goes to the first installment."""
    base, remainder = divmod(total, count)
    return [base + remainder] + [base] * (count - 1)


class CreateStatus(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"


class MutationResult(BaseModel):
    bills: list[Bill] = []  # bills created or changed by the operation
    generated: list[Bill] = []  # recurring occurrences created afterwards


class CreateResult(MutationResult):
    status: CreateStatus = CreateStatus.CREATED
    duplicate_of: Bill | None = None


class PaymentResult(MutationResult):
    successor: Bill | None = None


class ToggleResult(MutationResult):
    changed: bool = True


class BillService:
    def __init__(self, store: AppStore, storage: StorageBackend | None = None) -> None:
        self.store = store
        self.storage = storage

    # ---- Queries ----

    def list_bills(self) -> list[Bill]:
        result = list(self.store.bills)
        logger.debug("Listed %d bills", len(result))
        return result

    def get_bill(self, bill_id: str) -> Bill | None:
        result = next((b for b in self.store.bills if b.id == bill_id), None)
        logger.debug("get_bill id=%s found=%s", bill_id, result is not None)
        return result

    def find_duplicate(self, title: str, beneficiary: str, due_date: date) -> Bill | None:
        return next(
            (
                b
                for b in self.store.bills
                if b.due_date == due_date
                and is_fuzzy_match(b.title, title)
                and is_fuzzy_match(b.beneficiary, beneficiary)
            ),
            None,
        )

    # ---- Internals ----

    def _require(self, bill_id: str) -> Bill:
        bill = self.get_bill(bill_id)
        if bill is None:
            logger.warning("Bill %s not found", bill_id)
            raise ValueError("Bill not found")
        return bill

    def _commit(self, bills: list[Bill]) -> list[Bill]:
        """Run the recurring sweep on the new collection, persist it and return what was generated."""
        generated = generate_due(bills, today())
        final = sorted([*bills, *generated], key=lambda b: b.due_date)
        self.store.commit_bills(final)
        if generated:
            logger.info("%d recurring bill(s) generated after mutation", len(generated))
        return generated

    def _replace(self, updated: dict[str, Bill]) -> list[Bill]:
        return [updated.get(b.id, b) for b in self.store.bills]

    def _store_file(self, owner_id: str, filename: str, data: bytes, content_type: str) -> Attachment:
        if self.storage is None:
            raise RuntimeError("Attachment storage not configured")
        key = _attachment_storage_key(owner_id, str(ULID()), content_type)
        self.storage.save(key, data, content_type=content_type)
        return Attachment(name=filename, content_type=content_type, storage_key=key, size=len(data))

    def _discard_files(self, removed: list[Bill], remaining: list[Bill]) -> None:
        if self.storage is None:
            return
        in_use = {a.storage_key for b in remaining for a in b.attachments}
        orphaned = {a.storage_key for b in removed for a in b.attachments} - in_use
        for key in orphaned:
            try:
                self.storage.delete(key)
            except Exception:
                logger.exception("Failed to delete attachment %s, skipping", key)

    # ---- Creation ----

    def build_bills(self, draft: BillDraft) -> list[Bill]:
        """Turn a draft into bills without committing them (installments are expanded)."""
        _validate_amount(draft.amount)
        base_id = str(ULID())
        recurring = draft.type in RECURRING_TYPES
        series_id = str(ULID()) if recurring and draft.is_recurring else None

        attachment = None
        if draft.file is not None:
            attachment = self._store_file(base_id, draft.file.name, draft.file.data, draft.file.content_type)

        def make(bill_id: str, due_date: date, amount: int, number: int | None, total: int | None) -> Bill:
            bill = Bill(
                id=bill_id,
                title=draft.title,
                description=draft.description,
                beneficiary=draft.beneficiary,
                amount=amount,
                due_date=due_date,
                category=draft.category,
                cost_center=draft.cost_center,
                type=draft.type,
                barcode=draft.barcode,
                installment_number=number,
                total_installments=total,
                is_recurring=draft.is_recurring if recurring else None,
                series_id=series_id,
                attachments=[attachment] if attachment else [],
            )
            bill = append_history(bill, HistoryEvent.CREATION, f"Conta criada com valor de {format_brl(amount)}.")
            if attachment:
                bill = append_history(bill, HistoryEvent.ATTACHMENT, f'Arquivo "{attachment.name}" anexado.')
            return bill

        if draft.type == BillType.INSTALLMENT and draft.installments > 0:
            count = draft.installments
            return [
                make(f"{base_id}-{i}", add_months(draft.due_date, i - 1), amount, i, count)
                for i, amount in enumerate(split_installments(draft.amount, count), start=1)
            ]
        return [make(base_id, draft.due_date, draft.amount, None, None)]

    def create_bill(self, form: BillFormData, allow_duplicate: bool = False) -> CreateResult:
        with self.store.transaction():
            if not allow_duplicate:
                duplicate = self.find_duplicate(form.title, form.beneficiary, form.due_date)
                if duplicate is not None:
                    logger.info("Duplicate bill detected: %s matches %s", form.title, duplicate.id)
                    return CreateResult(status=CreateStatus.DUPLICATE, duplicate_of=duplicate)

            bills = self.build_bills(form.to_draft())
            generated = self._commit([*self.store.bills, *bills])
        logger.info("Bill created: title=%s, count=%d, total=%d", form.title, len(bills), form.amount)
        return CreateResult(bills=bills, generated=generated)

    def save_built_bills(self, bills: list[Bill]) -> MutationResult:
        """Commit bills from ``build_bills`` after per-installment amount/date edits."""
        for bill in bills:
            _validate_amount(bill.amount)
        with self.store.transaction():
            generated = self._commit([*self.store.bills, *bills])
        logger.info("Saved %d prepared bill(s)", len(bills))
        return MutationResult(bills=bills, generated=generated)

    def create_from_drafts(self, drafts: list[BillDraft]) -> MutationResult:
        with self.store.transaction():
            bills = [bill for draft in drafts for bill in self.build_bills(draft)]
            generated = self._commit([*self.store.bills, *bills])
        logger.info("Created %d bill(s) from %d draft(s)", len(bills), len(drafts))
        return MutationResult(bills=bills, generated=generated)

    # ---- Edition ----

    def edit_bill(self, bill_id: str, form: BillFormData) -> MutationResult:
        _validate_amount(form.amount)
        with self.store.transaction():
            bill = self._require(bill_id)
            changes = {field: getattr(form, field) for field in _EDITABLE_FIELDS}
            described = [
                f'{label}: de "{_display(getattr(bill, field))}" para "{_display(changes[field])}".'
                for field, label in _EDITABLE_FIELDS.items()
                if getattr(bill, field) != changes[field]
            ]
            updated = append_history(
                bill.model_copy(update=changes),
                HistoryEvent.EDIT,
                " ".join(described) if described else "Nenhuma alteração de dados.",
            )
            generated = self._commit(self._replace({bill_id: updated}))
        logger.info("Bill updated: id=%s, changes=%d", bill_id, len(described))
        return MutationResult(bills=[updated], generated=generated)

    def attach_file(self, bill_id: str, filename: str, data: bytes, content_type: str) -> MutationResult:
        if content_type not in ALLOWED_ATTACHMENT_TYPES:
            raise ValueError(f"Unsupported file type: {content_type}")
        if len(data) > MAX_ATTACHMENT_SIZE:
            raise ValueError("File too large")
        if not data:
            raise ValueError("Empty file")

        with self.store.transaction():
            bill = self._require(bill_id)
            attachment = self._store_file(bill.id, filename, data, content_type)
            updated = append_history(
                bill.model_copy(update={"attachments": [*bill.attachments, attachment]}),
                HistoryEvent.ATTACHMENT,
                f'Arquivo "{filename}" anexado.',
            )
            generated = self._commit(self._replace({bill_id: updated}))
        logger.info("Attachment added: bill=%s file=%s", bill_id, filename)
        return MutationResult(bills=[updated], generated=generated)

    def get_attachment_url(self, attachment: Attachment) -> str:
        if self.storage is None or not attachment.storage_key:
            return ""
        return self.storage.get_url(attachment.storage_key)

    def toggle_recurring(self, bill_id: str) -> ToggleResult:
        with self.store.transaction():
            bill = self._require(bill_id)
            if bill.type not in RECURRING_TYPES:
                logger.info("Bill %s is %s, recurrence not applicable", bill_id, bill.type.value)
                return ToggleResult(bills=[bill], changed=False)
            enabled = not bill.is_recurring
            updated = append_history(
                bill.model_copy(update={"is_recurring": enabled}),
                HistoryEvent.RECURRENCE,
                f"Geração automática {'ativada' if enabled else 'desativada'}.",
            )
            generated = self._commit(self._replace({bill_id: updated}))
        logger.info("Bill %s recurrence %s", bill_id, "enabled" if enabled else "disabled")
        return ToggleResult(bills=[updated], generated=generated)

    # ---- Payment ----

    def _successor_for(self, bill: Bill) -> Bill | None:
        if not (bill.is_recurring and bill.series_id and bill.type in RECURRING_TYPES):
            return None
        next_date = next_due_date(bill.due_date, bill.type)
        if next_date is None:
            return None
        if any(b.series_id == bill.series_id and b.due_date == next_date for b in self.store.bills):
            return None
        return build_successor(
            bill,
            next_date,
            f"Conta gerada automaticamente após pagamento da fatura anterior de {format_date(bill.due_date)}.",
        )

    def pay_bill(self, bill_id: str, payment_date: date, paid_amount: int) -> PaymentResult:
        if paid_amount <= 0:
            raise ValueError("O valor pago deve ser maior que zero.")
        with self.store.transaction():
            bill = self._require(bill_id)
            successor = self._successor_for(bill)
            paid = append_history(
                bill.model_copy(update={"is_paid": True, "payment_date": payment_date, "paid_amount": paid_amount}),
                HistoryEvent.PAYMENT,
                f"Pagamento de {format_brl(paid_amount)} registrado em {format_date(payment_date)}.",
            )
            bills = self._replace({bill_id: paid})
            if successor is not None:
                bills.append(successor)
            generated = self._commit(bills)
        logger.info(
            "Bill paid: id=%s, amount=%d, paid=%d, successor=%s",
            bill_id,
            bill.amount,
            paid_amount,
            successor.id if successor else None,
        )
        return PaymentResult(bills=[paid], successor=successor, generated=generated)

    def pay_bills(self, bill_ids: list[str]) -> MutationResult:
        """Quick payment: each bill is paid today for exactly its amount."""
        if not bill_ids:
            return MutationResult()
        payment_date = today()
        with self.store.transaction():
            updated: dict[str, Bill] = {}
            successors: list[Bill] = []
            for bill_id in bill_ids:
                bill = self._require(bill_id)
                successor = self._successor_for(bill)
                if successor is not None and all(
                    (s.series_id, s.due_date) != (successor.series_id, successor.due_date) for s in successors
                ):
                    successors.append(successor)
                updated[bill_id] = append_history(
                    bill.model_copy(update={"is_paid": True, "payment_date": payment_date, "paid_amount": bill.amount}),
                    HistoryEvent.PAYMENT,
                    f"Pagamento rápido de {format_brl(bill.amount)}.",
                )
            generated = self._commit([*self._replace(updated), *successors])
        logger.info("Quick-paid %d bill(s), %d successor(s)", len(updated), len(successors))
        return MutationResult(bills=[*updated.values(), *successors], generated=generated)

    def unpay_bill(self, bill_id: str) -> MutationResult:
        with self.store.transaction():
            bill = self._require(bill_id)
            updated = append_history(
                bill.model_copy(update={"is_paid": False, "payment_date": None, "paid_amount": None}),
                HistoryEvent.PAYMENT_UNDONE,
                "Registro de pagamento removido.",
            )
            generated = self._commit(self._replace({bill_id: updated}))
        logger.info("Bill %s marked as unpaid", bill_id)
        return MutationResult(bills=[updated], generated=generated)

    # ---- Postponement ----

    @staticmethod
    def _postponed(bill: Bill, new_due_date: date, reason: str) -> Bill:
        postponed = bill.model_copy(
            update={
                "due_date": new_due_date,
                "postponements": [*bill.postponements, PostponementRecord(postponed_at=now(), reason=reason)],
                "original_due_date": bill.original_due_date or bill.due_date,
            }
        )
        return append_history(
            postponed,
            HistoryEvent.POSTPONED,
            f"Vencimento adiado para {format_date(new_due_date)}. Motivo: {reason}",
        )

    def postpone_bill(self, bill_id: str, new_due_date: date, reason: str = "") -> MutationResult:
        with self.store.transaction():
            bill = self._require(bill_id)
            if new_due_date <= bill.due_date:
                raise ValueError("A nova data de vencimento deve ser posterior à atual.")
            updated = self._postponed(bill, new_due_date, reason.strip() or DEFAULT_POSTPONE_REASON)
            generated = self._commit(self._replace({bill_id: updated}))
        logger.info("Bill %s postponed to %s", bill_id, new_due_date)
        return MutationResult(bills=[updated], generated=generated)

    def postpone_bills(self, bill_ids: list[str], days: int | None = None) -> MutationResult:
        if not bill_ids:
            return MutationResult()
        delta = timedelta(days=days if days is not None else settings.postpone_default_days)
        if delta.days <= 0:
            raise ValueError("O adiamento deve ser de pelo menos um dia.")
        with self.store.transaction():
            updated = {}
            for bill_id in bill_ids:
                bill = self._require(bill_id)
                updated[bill_id] = self._postponed(bill, bill.due_date + delta, BULK_POSTPONE_REASON)
            generated = self._commit(self._replace(updated))
        logger.info("Postponed %d bill(s) by %d day(s)", len(updated), delta.days)
        return MutationResult(bills=list(updated.values()), generated=generated)

    # ---- Deletion and sweep ----

    def delete_bills(self, bill_ids: list[str]) -> MutationResult:
        """Remove bills for good. The recurring sweep runs afterwards and may recreate
        an occurrence of a series whose latest bill was just deleted."""
        if not bill_ids:
            return MutationResult()
        ids = set(bill_ids)
        with self.store.transaction():
            removed = [b for b in self.store.bills if b.id in ids]
            remaining = [b for b in self.store.bills if b.id not in ids]
            generated = self._commit(remaining)
            self._discard_files(removed, self.store.bills)
        logger.info("Deleted %d bill(s)", len(removed))
        return MutationResult(bills=removed, generated=generated)

    def refresh(self) -> MutationResult:
        """Periodic sweep: run on load and whenever the app resumes."""
        with self.store.transaction():
            generated = generate_due(self.store.bills, today())
            if generated:
                self.store.commit_bills(sorted([*self.store.bills, *generated], key=lambda b: b.due_date))
        logger.debug("Refresh generated %d bill(s)", len(generated))
        return MutationResult(generated=generated)
