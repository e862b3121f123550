from datetime import date
from unittest.mock import MagicMock, patch

from freezegun import freeze_time

from contas.cli.bill_menu import _format_amount_input
from contas.models.bill import Bill, BillType
from contas.services.bill_service import CreateResult, MutationResult, PaymentResult, ToggleResult


def _bill(**overrides) -> Bill:
    defaults = dict(id="b1", title="Conta de Luz", beneficiary="CEMIG", amount=10000, due_date=date(2024, 1, 10))
    defaults.update(overrides)
    return Bill(**defaults)


class TestFormatAmountInput:
    def test_basic(self):
        assert _format_amount_input(8550) == "85.50"

    def test_whole_number(self):
        assert _format_amount_input(10000) == "100.00"


@freeze_time("2024-01-05 12:00:00")
class TestListBillsMenu:
    @patch("contas.cli.bill_menu.questionary")
    def test_empty_list(self, mock_q):
        from contas.cli.bill_menu import list_bills_menu

        mock_service = MagicMock()
        mock_service.list_bills.return_value = []

        list_bills_menu(mock_service, MagicMock())
        mock_q.select.assert_not_called()

    @patch("contas.cli.bill_menu.questionary")
    def test_select_back(self, mock_q):
        from contas.cli.bill_menu import list_bills_menu

        mock_service = MagicMock()
        mock_service.list_bills.return_value = [_bill()]
        mock_q.select.return_value.ask.side_effect = ["Todas (1)", "Voltar"]
        mock_q.text.return_value.ask.return_value = ""

        list_bills_menu(mock_service, MagicMock())
        mock_service.get_bill.assert_not_called()

    @patch("contas.cli.bill_menu.questionary")
    def test_pay_from_detail(self, mock_q):
        from contas.cli.bill_menu import list_bills_menu

        bill = _bill()
        mock_service = MagicMock()
        mock_service.list_bills.return_value = [bill]
        mock_service.get_bill.return_value = bill
        mock_service.pay_bill.return_value = PaymentResult()
        mock_q.select.return_value.ask.side_effect = [
            "Todas (1)",
            "10/01/2024 - Conta de Luz (R$ 100,00)",
            "Registrar Pagamento",
            "Voltar",
        ]
        mock_q.text.return_value.ask.side_effect = ["", "05/01/2024", "110,00"]

        list_bills_menu(mock_service, MagicMock())

        mock_service.pay_bill.assert_called_once_with("b1", date(2024, 1, 5), 11000)

    @patch("contas.cli.bill_menu.questionary")
    def test_toggle_and_delete(self, mock_q):
        from contas.cli.bill_menu import list_bills_menu

        bill = _bill(type=BillType.MONTHLY, is_recurring=True, series_id="S1")
        mock_service = MagicMock()
        mock_service.list_bills.return_value = [bill]
        mock_service.get_bill.return_value = bill
        mock_q.select.return_value.ask.side_effect = [
            "Todas (1)",
            "10/01/2024 - Conta de Luz (R$ 100,00)",
            "Desativar Recorrência",
            "Excluir",
        ]
        mock_q.text.return_value.ask.return_value = ""
        mock_q.confirm.return_value.ask.return_value = True

        list_bills_menu(mock_service, MagicMock())

        mock_service.toggle_recurring.assert_called_once_with("b1")
        mock_service.delete_bills.assert_called_once_with(["b1"])

    @patch("contas.cli.bill_menu.questionary")
    def test_edit_prefills_and_saves(self, mock_q):
        from contas.cli.bill_menu import list_bills_menu

        bill = _bill(category="Moradia", cost_center="Pessoal")
        mock_service = MagicMock()
        mock_service.list_bills.return_value = [bill]
        mock_service.get_bill.return_value = bill
        mock_service.edit_bill.return_value = MutationResult()
        catalog = MagicMock()
        catalog.store.categories = ["Moradia", "Lazer"]
        catalog.store.cost_centers = ["Pessoal"]
        mock_q.select.return_value.ask.side_effect = [
            "Todas (1)",
            "10/01/2024 - Conta de Luz (R$ 100,00)",
            "Editar",
            "Moradia",
            "Pessoal",
            "Voltar",
        ]
        mock_q.text.return_value.ask.side_effect = ["", "Conta de Luz", "CEMIG", "", "120,00", "10/01/2024", ""]

        list_bills_menu(mock_service, catalog)

        bill_id, form = mock_service.edit_bill.call_args.args
        assert bill_id == "b1"
        assert form.amount == 12000
        assert form.category == "Moradia"
        assert mock_q.text.call_args_list[1].kwargs["default"] == "Conta de Luz"
        category_call = next(c for c in mock_q.select.call_args_list if c.args[0] == "Categoria:")
        assert category_call.kwargs["default"] == "Moradia"

    @patch("contas.cli.bill_menu.console")
    @patch("contas.cli.bill_menu.questionary")
    def test_toggle_reports_generated(self, mock_q, mock_console):
        from contas.cli.bill_menu import list_bills_menu

        bill = _bill(type=BillType.MONTHLY, is_recurring=False, series_id="S1")
        mock_service = MagicMock()
        mock_service.list_bills.return_value = [bill]
        mock_service.get_bill.return_value = bill
        mock_service.toggle_recurring.return_value = ToggleResult(
            generated=[_bill(id="g1", due_date=date(2024, 2, 10)), _bill(id="g2", due_date=date(2024, 3, 10))]
        )
        mock_q.select.return_value.ask.side_effect = [
            "Todas (1)",
            "10/01/2024 - Conta de Luz (R$ 100,00)",
            "Ativar Recorrência",
            "Voltar",
        ]
        mock_q.text.return_value.ask.return_value = ""

        list_bills_menu(mock_service, MagicMock())

        printed = [str(c.args[0]) for c in mock_console.print.call_args_list if c.args]
        assert any("2 conta(s) recorrente(s) gerada(s)" in line for line in printed)


class TestReportGenerated:
    @patch("contas.cli.bill_menu.console")
    def test_silent_when_nothing_generated(self, mock_console):
        from contas.cli.bill_menu import report_generated

        report_generated(0)
        mock_console.print.assert_not_called()

    @patch("contas.cli.bill_menu.console")
    def test_pay_reports_generated(self, mock_console):
        from contas.cli.bill_menu import _pay

        mock_service = MagicMock()
        mock_service.pay_bill.return_value = PaymentResult(generated=[_bill(id="g1")])
        with patch("contas.cli.bill_menu.questionary") as mock_q:
            mock_q.text.return_value.ask.side_effect = ["05/01/2024", "100,00"]
            _pay(_bill(), mock_service)

        printed = [str(c.args[0]) for c in mock_console.print.call_args_list if c.args]
        assert any("1 conta(s) recorrente(s) gerada(s)" in line for line in printed)


class TestCreateBillMenu:
    def _catalog(self):
        catalog = MagicMock()
        catalog.store.categories = ["Moradia"]
        catalog.store.cost_centers = ["Pessoal"]
        return catalog

    @patch("contas.cli.bill_menu.questionary")
    def test_cancel_without_title(self, mock_q):
        from contas.cli.bill_menu import create_bill_menu

        mock_service = MagicMock()
        mock_q.text.return_value.ask.return_value = ""

        create_bill_menu(mock_service, self._catalog())
        mock_service.create_bill.assert_not_called()

    @patch("contas.cli.bill_menu.questionary")
    def test_create_variable(self, mock_q):
        from contas.cli.bill_menu import create_bill_menu

        mock_service = MagicMock()
        mock_service.find_duplicate.return_value = None
        mock_service.create_bill.return_value = CreateResult()
        mock_q.text.return_value.ask.side_effect = ["Luz", "CEMIG", "", "150,75", "10/02/2024", ""]
        mock_q.select.return_value.ask.side_effect = ["Moradia", "Pessoal", "Variável"]

        create_bill_menu(mock_service, self._catalog())

        form = mock_service.create_bill.call_args.args[0]
        assert form.amount == 15075
        assert form.due_date == date(2024, 2, 10)
        assert form.type == BillType.VARIABLE

    @patch("contas.cli.bill_menu.questionary")
    def test_duplicate_declined(self, mock_q):
        from contas.cli.bill_menu import create_bill_menu

        mock_service = MagicMock()
        mock_service.find_duplicate.return_value = _bill()
        mock_q.text.return_value.ask.side_effect = ["Luz", "CEMIG", "", "100", "10/01/2024", ""]
        mock_q.select.return_value.ask.side_effect = ["Moradia", "Pessoal", "Variável"]
        mock_q.confirm.return_value.ask.return_value = False

        create_bill_menu(mock_service, self._catalog())
        mock_service.create_bill.assert_not_called()

    @patch("contas.cli.bill_menu.questionary")
    def test_installments_reviewed_then_saved(self, mock_q):
        from contas.cli.bill_menu import create_bill_menu

        mock_service = MagicMock()
        mock_service.find_duplicate.return_value = None
        built = [_bill(id="x-1", installment_number=1, total_installments=2)]
        mock_service.build_bills.return_value = built
        mock_q.text.return_value.ask.side_effect = ["TV", "Loja", "", "2000", "10/01/2024", "2", ""]
        mock_q.select.return_value.ask.side_effect = ["Moradia", "Pessoal", "Parcelada"]
        mock_q.confirm.return_value.ask.return_value = False

        create_bill_menu(mock_service, self._catalog())

        assert mock_service.build_bills.call_args.args[0].installments == 2
        mock_service.save_built_bills.assert_called_once_with(built)


class TestBulkActionsMenu:
    @patch("contas.cli.bill_menu.questionary")
    def test_quick_pay(self, mock_q):
        from contas.cli.bill_menu import bulk_actions_menu

        mock_service = MagicMock()
        mock_service.list_bills.return_value = [_bill(), _bill(id="paid", is_paid=True)]
        mock_service.pay_bills.return_value.bills = [_bill()]
        mock_q.checkbox.return_value.ask.return_value = ["10/01/2024 - Conta de Luz (R$ 100,00)"]
        mock_q.select.return_value.ask.return_value = "Pagamento Rápido"

        bulk_actions_menu(mock_service)
        mock_service.pay_bills.assert_called_once_with(["b1"])

    @patch("contas.cli.bill_menu.questionary")
    def test_postpone(self, mock_q):
        from contas.cli.bill_menu import bulk_actions_menu

        mock_service = MagicMock()
        mock_service.list_bills.return_value = [_bill()]
        mock_q.checkbox.return_value.ask.return_value = ["10/01/2024 - Conta de Luz (R$ 100,00)"]
        mock_q.select.return_value.ask.return_value = "Adiar Vencimento"
        mock_q.text.return_value.ask.return_value = "7"

        bulk_actions_menu(mock_service)
        mock_service.postpone_bills.assert_called_once_with(["b1"], days=7)


class TestScheduleMenu:
    @patch("contas.cli.bill_menu.questionary")
    def test_invalid_month(self, mock_q):
        from contas.cli.bill_menu import schedule_menu

        mock_service = MagicMock()
        mock_q.text.return_value.ask.return_value = "2024/13"

        schedule_menu(mock_service)
        mock_service.list_bills.assert_not_called()

    @patch("contas.cli.bill_menu.questionary")
    def test_lists_month(self, mock_q):
        from contas.cli.bill_menu import schedule_menu

        mock_service = MagicMock()
        mock_service.list_bills.return_value = [_bill()]
        mock_q.text.return_value.ask.side_effect = ["2024-01", ""]

        schedule_menu(mock_service)
        mock_service.list_bills.assert_called_once()
