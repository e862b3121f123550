from unittest.mock import MagicMock

from contas.constants import DEFAULT_CATEGORIES
from contas.store import BILLS, CATEGORIES, AppStore


class TestAppStore:
    def test_empty_repository_uses_defaults(self, store):
        assert store.bills == []
        assert store.categories == DEFAULT_CATEGORIES

    def test_commit_persists_and_reloads(self, store, collection_repo, sample_bill):
        store.commit_bills([sample_bill()])
        store.commit_categories(["Moradia", "Pets"])

        reloaded = AppStore(collection_repo)
        reloaded.load()
        assert reloaded.bills == [sample_bill()]
        assert reloaded.categories == ["Moradia", "Pets"]

    def test_commit_does_not_share_list(self, store, sample_bill):
        bills = [sample_bill()]
        store.commit_bills(bills)
        bills.append(sample_bill(id="other"))
        assert len(store.bills) == 1

    def test_malformed_payload_degrades_to_empty(self, collection_repo):
        collection_repo.save(BILLS, '[{"id": "x"}]')
        collection_repo.save(CATEGORIES, "not json")

        store = AppStore(collection_repo)
        store.load()
        assert store.bills == []
        assert store.categories == DEFAULT_CATEGORIES

    def test_read_failure_degrades_to_empty(self):
        repo = MagicMock()
        repo.load.side_effect = RuntimeError("disk gone")
        store = AppStore(repo)
        store.load()
        assert store.bills == []

    def test_write_failure_keeps_memory_state(self, sample_bill):
        repo = MagicMock()
        repo.save.side_effect = RuntimeError("disk full")
        store = AppStore(repo)

        store.commit_bills([sample_bill()])

        assert store.bills == [sample_bill()]
        repo.save.assert_called_once()

    def test_transaction_is_reentrant(self, store, sample_bill):
        with store.transaction():
            with store.transaction():
                store.commit_bills([sample_bill()])
        assert len(store.bills) == 1
