from datetime import date
from unittest.mock import MagicMock

import pytest
from freezegun import freeze_time

from contas.models.bill import BillType
from contas.models.imports import ImportedBillData, ImportFile, ImportStatus
from contas.services.bill_service import BillService
from contas.services.import_service import (
    CANCELLED_MESSAGE,
    QUOTA_EXCEEDED_MESSAGE,
    UNREADABLE_MESSAGE,
    ImportPipeline,
    ImportService,
    ParseState,
    validate_review,
)


def _file(name: str = "conta.pdf") -> ImportFile:
    return ImportFile(name=name, content_type="application/pdf", data=b"%PDF")


def _data(**overrides) -> ImportedBillData:
    defaults = dict(title="Conta de Luz", beneficiary="CEMIG", amount=150.75, due_date=date(2024, 2, 10))
    defaults.update(overrides)
    return ImportedBillData(**defaults)


class TestImportPipeline:
    def setup_method(self):
        self.parser = MagicMock()
        self.sleep = MagicMock()
        self.pipeline = ImportPipeline(self.parser, sleep=self.sleep, request_delay=4.0, max_attempts=4)

    def _waits(self) -> list[float]:
        return [c.args[0] for c in self.sleep.call_args_list]

    def test_all_files_parsed_in_order(self):
        self.parser.parse.side_effect = [_data(title="A"), _data(title="B", beneficiary="Vivo")]

        batch = self.pipeline.parse_files([_file("a.pdf"), _file("b.pdf")], [])

        assert [r.status for r in batch.reviews] == [ImportStatus.SUCCESS, ImportStatus.SUCCESS]
        assert [r.data.title for r in batch.reviews] == ["A", "B"]
        assert self._waits() == [4.0, 4.0]
        assert batch.state == ParseState.IDLE

    def test_rate_limit_backoff_then_success(self):
        self.parser.parse.side_effect = [RuntimeError("429 RESOURCE_EXHAUSTED")] * 3 + [_data()]

        batch = self.pipeline.parse_files([_file()], [])

        assert batch.reviews[0].status == ImportStatus.SUCCESS
        assert batch.reviews[0].error_message is None
        assert self._waits() == [4.0, 2, 4, 8]

    def test_rate_limit_exhausted_aborts_batch(self):
        self.parser.parse.side_effect = RuntimeError("Quota exceeded")

        batch = self.pipeline.parse_files([_file("a.pdf"), _file("b.pdf"), _file("c.pdf")], [])

        assert self.parser.parse.call_count == 4
        assert self._waits() == [4.0, 2, 4, 8]
        assert batch.aborted
        assert batch.reviews[0].error_message == QUOTA_EXCEEDED_MESSAGE
        assert [r.error_message for r in batch.reviews[1:]] == [CANCELLED_MESSAGE, CANCELLED_MESSAGE]
        assert all(r.status == ImportStatus.ERROR for r in batch.reviews)

    def test_other_error_aborts_without_retry(self):
        self.parser.parse.side_effect = [_data(), ValueError("bad json"), _data()]

        batch = self.pipeline.parse_files([_file("a.pdf"), _file("b.pdf"), _file("c.pdf")], [])

        assert self.parser.parse.call_count == 2
        assert batch.reviews[0].status == ImportStatus.SUCCESS
        assert batch.reviews[1].error_message == UNREADABLE_MESSAGE
        assert batch.reviews[2].error_message == CANCELLED_MESSAGE
        assert batch.state == ParseState.ABORTED
        assert any(UNREADABLE_MESSAGE in n for n in batch.notifications)

    def test_progressive_updates(self):
        self.parser.parse.side_effect = [RuntimeError("429"), _data()]
        updates = []

        self.pipeline.parse_files([_file()], [], on_update=updates.append)

        assert [u.status for u in updates] == [ImportStatus.PARSING, ImportStatus.SUCCESS]
        assert "2s" in updates[0].error_message

    def test_auto_fill_from_latest_similar_bill(self, sample_bill):
        saved = [
            sample_bill(id="old", due_date=date(2023, 12, 10), category="Moradia", cost_center="Pessoal"),
            sample_bill(
                id="new",
                title="CEMIG Conta de Luz",
                due_date=date(2024, 1, 10),
                category="Casa",
                cost_center="Trabalho",
                type=BillType.MONTHLY,
            ),
        ]
        self.parser.parse.return_value = _data()

        batch = self.pipeline.parse_files([_file()], saved)

        review = batch.reviews[0]
        assert review.auto_filled is True
        assert (review.category, review.cost_center, review.type) == ("Casa", "Trabalho", BillType.MONTHLY)
        assert review.is_duplicate is False

    def test_duplicate_of_saved_bill(self, sample_bill):
        self.parser.parse.return_value = _data(due_date=date(2024, 1, 10))

        batch = self.pipeline.parse_files([_file()], [sample_bill()])

        assert batch.reviews[0].is_duplicate is True
        assert len(batch.duplicates) == 1

    def test_duplicate_within_batch(self):
        self.parser.parse.side_effect = [_data(), _data(title="Luz - Conta")]

        batch = self.pipeline.parse_files([_file("a.pdf"), _file("b.pdf")], [])

        assert [r.is_duplicate for r in batch.reviews] == [False, True]

    def test_resolve_duplicates(self):
        self.parser.parse.side_effect = [_data(), _data()]
        batch = self.pipeline.parse_files([_file("a.pdf"), _file("b.pdf")], [])

        batch.resolve_duplicates(keep=False)

        assert [r.file.name for r in batch.reviews] == ["a.pdf"]

    def test_resolve_duplicates_keep(self):
        self.parser.parse.side_effect = [_data(), _data()]
        batch = self.pipeline.parse_files([_file("a.pdf"), _file("b.pdf")], [])

        batch.resolve_duplicates(keep=True)

        assert len(batch.reviews) == 2

    def test_update_review(self):
        self.parser.parse.return_value = _data()
        batch = self.pipeline.parse_files([_file()], [])

        updated = batch.update_review(batch.reviews[0].id, category="Lazer")

        assert updated.category == "Lazer"
        assert batch.reviews[0].category == "Lazer"
        with pytest.raises(ValueError):
            batch.update_review("missing", category="x")


class TestValidateReview:
    def _review(self, **changes):
        pipeline = ImportPipeline(MagicMock(parse=MagicMock(return_value=_data())), sleep=MagicMock())
        review = pipeline.parse_files([_file()], []).reviews[0]
        return review.model_copy(update=changes)

    def test_missing_fields(self):
        assert validate_review(self._review()) == ["categoria", "centro de custo"]

    def test_installments_minimum(self):
        review = self._review(category="A", cost_center="B", type=BillType.INSTALLMENT, installments=1)
        assert validate_review(review) == ["parcelas (mínimo 2)"]

    def test_non_positive_amount(self):
        review = self._review(category="A", cost_center="B")
        review = review.model_copy(update={"data": review.data.model_copy(update={"amount": 0.0})})
        assert validate_review(review) == ["valor maior que zero"]

    def test_valid(self):
        assert validate_review(self._review(category="A", cost_center="B")) == []


@freeze_time("2024-01-05 12:00:00")
class TestImportService:
    def test_save_creates_bills_with_attachment(self, store):
        parser = MagicMock()
        parser.parse.side_effect = [_data(), ValueError("unreadable")]
        storage = MagicMock()
        bill_service = BillService(store, storage)
        service = ImportService(bill_service, ImportPipeline(parser, sleep=MagicMock()))

        batch = service.parse_files([_file("luz.pdf"), _file("x.pdf")])
        for review in batch.successful:
            batch.update_review(review.id, category="Moradia", cost_center="Pessoal")
        result = service.save(batch.reviews)

        assert len(result.bills) == 1
        bill = store.bills[0]
        assert bill.amount == 15075
        assert bill.description == "Importado do arquivo: luz.pdf"
        assert bill.attachments[0].name == "luz.pdf"
        storage.save.assert_called_once()

    def test_save_rejects_incomplete_drafts(self, store):
        parser = MagicMock()
        parser.parse.return_value = _data()
        service = ImportService(BillService(store), ImportPipeline(parser, sleep=MagicMock()))

        batch = service.parse_files([_file("luz.pdf")])
        with pytest.raises(ValueError, match="luz.pdf"):
            service.save(batch.reviews)
        assert store.bills == []

    def test_save_rejects_zero_amount_before_storing_files(self, store):
        parser = MagicMock()
        parser.parse.side_effect = [_data(), _data(title="Gratuita", amount=0.0)]
        storage = MagicMock()
        service = ImportService(BillService(store, storage), ImportPipeline(parser, sleep=MagicMock()))

        batch = service.parse_files([_file("luz.pdf"), _file("zero.pdf")])
        for review in batch.reviews:
            batch.update_review(review.id, category="Moradia", cost_center="Pessoal")
        with pytest.raises(ValueError, match="zero.pdf: valor maior que zero"):
            service.save(batch.reviews)

        assert store.bills == []
        storage.save.assert_not_called()

    def test_save_installments(self, store):
        parser = MagicMock()
        parser.parse.return_value = _data(amount=300.0)
        service = ImportService(BillService(store, MagicMock()), ImportPipeline(parser, sleep=MagicMock()))

        batch = service.parse_files([_file()])
        batch.update_review(
            batch.reviews[0].id, category="A", cost_center="B", type=BillType.INSTALLMENT, installments=3
        )
        service.save(batch.reviews)

        assert [b.amount for b in store.bills] == [10000, 10000, 10000]
