import pytest

from contas.history import HistoryEvent
from contas.models.user import User, UserType
from contas.services.catalog_service import CatalogService


class TestCatalogService:
    def test_add_category(self, store):
        service = CatalogService(store)
        service.add_category("  Pets ")
        assert store.categories[-1] == "Pets"

    @pytest.mark.parametrize("name", ["", "   ", "moradia"])
    def test_add_rejects_blank_and_duplicates(self, store, name):
        with pytest.raises(ValueError):
            CatalogService(store).add_category(name)

    def test_delete_category(self, store):
        CatalogService(store).delete_category("Lazer")
        assert "Lazer" not in store.categories

    def test_rename_category_cascades_to_bills(self, store, sample_bill):
        store.commit_bills([sample_bill(id="a", category="Moradia"), sample_bill(id="b", category="Saúde")])

        touched = CatalogService(store).rename_category("Moradia", "Casa")

        assert touched == 1
        assert "Casa" in store.categories and "Moradia" not in store.categories
        a, b = store.bills
        assert a.category == "Casa"
        assert a.history[-1].event == HistoryEvent.CATEGORY_RENAMED
        assert b.history == []

    def test_rename_to_same_name_with_new_case(self, store):
        CatalogService(store).rename_category("Lazer", "lazer")
        assert "lazer" in store.categories

    def test_rename_unknown(self, store):
        with pytest.raises(ValueError):
            CatalogService(store).rename_category("Nope", "X")

    def test_rename_cost_center(self, store, sample_bill):
        store.commit_bills([sample_bill(cost_center="Pessoal")])

        CatalogService(store).rename_cost_center("Pessoal", "Família")

        assert store.bills[0].cost_center == "Família"
        assert store.bills[0].history[-1].event == HistoryEvent.COST_CENTER_RENAMED

    def test_add_and_delete_cost_center(self, store):
        service = CatalogService(store)
        service.add_cost_center("Obra")
        service.delete_cost_center("Pessoal")
        assert store.cost_centers == ["Trabalho", "Obra"]

    def test_rename_job_function_updates_users(self, store):
        store.commit_users(
            [User(id="u1", type=UserType.CLT, full_name="Ana", cpf="1", job_function="Designer")]
        )
        service = CatalogService(store)

        service.rename_job_function("Designer", "Product Designer")

        assert store.users[0].job_function == "Product Designer"
        assert store.users[0].history[-1].event == HistoryEvent.BULK_UPDATE

    def test_add_and_delete_job_function(self, store):
        service = CatalogService(store)
        service.add_job_function("Contador")
        service.delete_job_function("Designer")
        assert "Contador" in store.job_functions
        assert "Designer" not in store.job_functions
