"""Turns uploaded bill documents into reviewable drafts, then into bills.

Files are parsed one at a time. A rate-limited request is retried with
exponential backoff; any terminal failure aborts the rest of the batch.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel
from ulid import ULID

from contas.matching import is_fuzzy_match
from contas.models import reais_to_centavos
from contas.models.bill import Bill, BillType
from contas.models.imports import ImportedBillData, ImportedBillReview, ImportFile, ImportStatus
from contas.parsing.base import DocumentParser, is_rate_limit_error
from contas.services.bill_service import BillService, MutationResult
from contas.settings import settings

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Importação cancelada."
QUOTA_EXCEEDED_MESSAGE = "Cota de uso da API excedida. Por favor, tente novamente mais tarde."
UNREADABLE_MESSAGE = "Não foi possível ler os dados do arquivo."

ReviewCallback = Callable[[ImportedBillReview], None]


class ParseState(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    RATE_LIMITED = "rate_limited"
    SUCCESS = "success"
    ERROR = "error"
    ABORTED = "aborted"


class ImportBatch(BaseModel):
    reviews: list[ImportedBillReview] = []
    state: ParseState = ParseState.IDLE
    current_index: int | None = None
    notifications: list[str] = []

    @property
    def aborted(self) -> bool:
        return self.state == ParseState.ABORTED

    @property
    def duplicates(self) -> list[ImportedBillReview]:
        return [r for r in self.reviews if r.is_duplicate]

    @property
    def successful(self) -> list[ImportedBillReview]:
        return [r for r in self.reviews if r.status == ImportStatus.SUCCESS]

    def update_review(self, review_id: str, **changes) -> ImportedBillReview:
        for index, review in enumerate(self.reviews):
            if review.id == review_id:
                self.reviews[index] = review.model_copy(update=changes)
                return self.reviews[index]
        raise ValueError("Import draft not found")

    def resolve_duplicates(self, keep: bool) -> list[ImportedBillReview]:
        """Batch-level answer to the duplicate warning: keep everything, or drop only the duplicates."""
        duplicates = self.duplicates
        if not keep and duplicates:
            self.reviews = [r for r in self.reviews if not r.is_duplicate]
            self.notifications.append(f"{len(duplicates)} duplicada(s) foram descartadas.")
            logger.info("Dropped %d duplicate draft(s)", len(duplicates))
        return self.reviews


class ImportPipeline:
    def __init__(
        self,
        parser: DocumentParser,
        sleep: Callable[[float], None] = time.sleep,
        request_delay: float | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self.parser = parser
        self.sleep = sleep
        self.request_delay = settings.import_request_delay if request_delay is None else request_delay
        self.max_attempts = settings.import_max_attempts if max_attempts is None else max_attempts

    def _update(
        self, batch: ImportBatch, index: int, on_update: ReviewCallback | None, **changes
    ) -> ImportedBillReview:
        review = batch.reviews[index].model_copy(update=changes)
        batch.reviews[index] = review
        if on_update is not None:
            on_update(review)
        return review

    def parse_files(
        self,
        files: list[ImportFile],
        saved_bills: list[Bill],
        on_update: ReviewCallback | None = None,
    ) -> ImportBatch:
        batch = ImportBatch(reviews=[ImportedBillReview(file=f, id=str(ULID())) for f in files])
        logger.info("Import started: %d file(s)", len(files))

        for index in range(len(batch.reviews)):
            if batch.aborted:
                self._update(batch, index, on_update, status=ImportStatus.ERROR, error_message=CANCELLED_MESSAGE)
                continue
            batch.current_index = index
            self._process(batch, index, saved_bills, on_update)

        if not batch.aborted:
            batch.state = ParseState.IDLE
        batch.current_index = None
        if batch.duplicates:
            batch.notifications.append(
                f"{len(batch.duplicates)} conta(s) importada(s) parecem ser duplicadas. Deseja salvá-las mesmo assim?"
            )
        logger.info(
            "Import finished: success=%d duplicates=%d aborted=%s",
            len(batch.successful),
            len(batch.duplicates),
            batch.aborted,
        )
        return batch

    def _process(
        self,
        batch: ImportBatch,
        index: int,
        saved_bills: list[Bill],
        on_update: ReviewCallback | None,
    ) -> None:
        review = batch.reviews[index]
        self.sleep(self.request_delay)
        attempt = 0

        while True:
            batch.state = ParseState.PARSING
            try:
                data = self.parser.parse(review.file.data, review.file.content_type)
            except Exception as exc:
                if not is_rate_limit_error(exc):
                    logger.warning("Failed to parse %s: %s", review.file.name, exc)
                    self._fail(
                        batch, index, on_update, UNREADABLE_MESSAGE, f"Erro ao processar arquivo: {UNREADABLE_MESSAGE}"
                    )
                    return
                attempt += 1
                if attempt >= self.max_attempts:
                    logger.warning("Rate limit persisted for %s after %d attempt(s)", review.file.name, attempt)
                    self._fail(
                        batch,
                        index,
                        on_update,
                        QUOTA_EXCEEDED_MESSAGE,
                        f"Falha ao chamar a API: {QUOTA_EXCEEDED_MESSAGE}",
                    )
                    return
                wait = 2**attempt
                batch.state = ParseState.RATE_LIMITED
                logger.info("Rate limited on %s, retrying in %ds (attempt %d)", review.file.name, wait, attempt)
                self._update(
                    batch,
                    index,
                    on_update,
                    status=ImportStatus.PARSING,
                    error_message=f"Limite de requisições atingido. Tentando novamente em {wait}s...",
                )
                self.sleep(wait)
                continue

            self._succeed(batch, index, data, saved_bills, on_update)
            return

    def _fail(
        self,
        batch: ImportBatch,
        index: int,
        on_update: ReviewCallback | None,
        message: str,
        notification: str,
    ) -> None:
        self._update(batch, index, on_update, status=ImportStatus.ERROR, error_message=message)
        batch.notifications.append(notification)
        batch.state = ParseState.ABORTED

    def _succeed(
        self,
        batch: ImportBatch,
        index: int,
        data: ImportedBillData,
        saved_bills: list[Bill],
        on_update: ReviewCallback | None,
    ) -> None:
        similar = [
            b
            for b in saved_bills
            if is_fuzzy_match(b.title, data.title) and is_fuzzy_match(b.beneficiary, data.beneficiary)
        ]
        latest = max(similar, key=lambda b: b.due_date) if similar else None

        duplicate_saved = any(b.due_date == data.due_date for b in similar)
        duplicate_batch = any(
            r.data is not None
            and r.data.due_date == data.due_date
            and is_fuzzy_match(r.data.title, data.title)
            and is_fuzzy_match(r.data.beneficiary, data.beneficiary)
            for r in batch.reviews[:index]
            if r.status == ImportStatus.SUCCESS
        )
        is_duplicate = duplicate_saved or duplicate_batch

        self._update(
            batch,
            index,
            on_update,
            status=ImportStatus.SUCCESS,
            data=data,
            category=latest.category if latest else "",
            cost_center=latest.cost_center if latest else "",
            type=latest.type if latest else BillType.VARIABLE,
            error_message=None,
            is_duplicate=is_duplicate,
            auto_filled=latest is not None,
        )
        batch.state = ParseState.SUCCESS

        if latest is not None:
            batch.notifications.append(f'Dados preenchidos para "{data.title}" com base em conta similar.')
        if is_duplicate:
            batch.notifications.append(f'Conta "{data.title}" parece ser uma duplicata.')
        logger.info(
            "Parsed %s: auto_filled=%s duplicate=%s",
            batch.reviews[index].file.name,
            latest is not None,
            is_duplicate,
        )


def validate_review(review: ImportedBillReview) -> list[str]:
    problems = []
    if not review.category:
        problems.append("categoria")
    if not review.cost_center:
        problems.append("centro de custo")
    if review.type == BillType.INSTALLMENT and review.installments < 2:
        problems.append("parcelas (mínimo 2)")
    if review.data is not None and reais_to_centavos(review.data.amount) <= 0:
        problems.append("valor maior que zero")
    return problems


class ImportService:
    def __init__(self, bill_service: BillService, pipeline: ImportPipeline) -> None:
        self.bill_service = bill_service
        self.pipeline = pipeline

    def parse_files(self, files: list[ImportFile], on_update: ReviewCallback | None = None) -> ImportBatch:
        return self.pipeline.parse_files(files, self.bill_service.list_bills(), on_update)

    def save(self, reviews: list[ImportedBillReview]) -> MutationResult:
        """Create bills from the successfully parsed drafts; failed drafts are ignored."""
        ready = [r for r in reviews if r.status == ImportStatus.SUCCESS and r.data is not None]
        invalid = {r.file.name: problems for r in ready if (problems := validate_review(r))}
        if invalid:
            details = "; ".join(f"{name}: {', '.join(problems)}" for name, problems in invalid.items())
            raise ValueError(f"Preencha os campos obrigatórios: {details}")
        if not ready:
            return MutationResult()
        result = self.bill_service.create_from_drafts([r.to_draft() for r in ready])
        logger.info("Imported %d draft(s) into %d bill(s)", len(ready), len(result.bills))
        return result
