from __future__ import annotations

from datetime import date
from pathlib import Path

import questionary
from rich.console import Console
from rich.table import Table

from contas.constants import STATUS_LABELS, TYPE_LABELS, format_date, parse_date, today
from contas.models import format_brl, parse_brl
from contas.models.bill import RECURRING_TYPES, Bill, BillStatus, BillType, HistoryEntry
from contas.models.imports import BillFormData
from contas.services.bill_service import BillService, CreateStatus
from contas.services.catalog_service import CatalogService
from contas.status import bills_for_month, classify, count_by_status, filter_bills, summarize

console = Console()

CONTENT_TYPES = {".pdf": "application/pdf", ".jpg": "image/jpeg", ".jpeg": "image/jpeg", ".png": "image/png"}

_STATUS_STYLES = {
    BillStatus.UPCOMING: "yellow",
    BillStatus.OVERDUE: "red",
    BillStatus.PAID: "green",
    BillStatus.POSTPONED: "blue",
}


def report_generated(count: int) -> None:
    if count:
        console.print(f"[cyan]{count} conta(s) recorrente(s) gerada(s) automaticamente.[/cyan]")


def _format_amount_input(centavos: int) -> str:
    """Format centavos for use as default input value: 8550 -> '85.50'"""
    return f"{centavos / 100:.2f}"


def _ask_amount(prompt: str, default: int | None = None) -> int | None:
    while True:
        val = questionary.text(prompt, default=_format_amount_input(default) if default else "").ask()
        if val is None:
            return None
        parsed = parse_brl(val)
        if parsed is not None and parsed > 0:
            return parsed
        console.print("[red]Valor inválido. Tente novamente.[/red]")


def _ask_date(prompt: str, default: date | None = None) -> date | None:
    while True:
        val = questionary.text(prompt, default=format_date(default)).ask()
        if val is None:
            return None
        parsed = parse_date(val)
        if parsed is not None:
            return parsed
        console.print("[red]Data inválida. Use DD/MM/AAAA.[/red]")


def _bill_label(bill: Bill) -> str:
    return f"{format_date(bill.due_date)} - {bill.title} ({format_brl(bill.amount)})"


def _show_dashboard(bills: list[Bill]) -> None:
    totals = summarize(bills, today())
    table = Table(title="Resumo")
    table.add_column("Situação")
    table.add_column("Contas", justify="right")
    table.add_column("Total", justify="right")
    for status, label in STATUS_LABELS.items():
        table.add_row(
            f"[{_STATUS_STYLES[status]}]{label}[/{_STATUS_STYLES[status]}]",
            str(totals[status].count),
            format_brl(totals[status].total),
        )
    console.print(table)


def _show_bills(bills: list[Bill], title: str = "Contas") -> None:
    current = today()
    table = Table(title=title)
    table.add_column("Vencimento")
    table.add_column("Título", style="bold")
    table.add_column("Beneficiário")
    table.add_column("Categoria")
    table.add_column("Tipo", justify="center")
    table.add_column("Valor", justify="right")
    table.add_column("Situação", justify="center")

    for bill in bills:
        status = classify(bill, current)
        title_text = bill.title
        if bill.installment_number:
            title_text += f" ({bill.installment_number}/{bill.total_installments})"
        table.add_row(
            format_date(bill.due_date),
            title_text,
            bill.beneficiary,
            bill.category,
            TYPE_LABELS[bill.type],
            format_brl(bill.amount),
            f"[{_STATUS_STYLES[status]}]{STATUS_LABELS[status]}[/{_STATUS_STYLES[status]}]",
        )
    console.print(table)


def _show_bill_detail(bill: Bill, bill_service: BillService) -> None:
    console.print()
    console.print(f"[bold cyan]{bill.title}[/bold cyan]")
    if bill.description:
        console.print(f"  {bill.description}")
    console.print(f"  Beneficiário: {bill.beneficiary}")
    console.print(f"  Valor: {format_brl(bill.amount)}")
    console.print(f"  Vencimento: {format_date(bill.due_date)}")
    if bill.original_due_date:
        console.print(f"  Vencimento original: {format_date(bill.original_due_date)}")
    console.print(f"  Categoria: {bill.category} | Centro de Custo: {bill.cost_center}")
    console.print(f"  Tipo: {TYPE_LABELS[bill.type]}")
    if bill.type in RECURRING_TYPES:
        console.print(f"  Geração automática: {'ativada' if bill.is_recurring else 'desativada'}")
    if bill.barcode:
        console.print(f"  Código de barras: {bill.barcode}")
    if bill.is_paid:
        console.print(f"  Pago em {format_date(bill.payment_date)}: {format_brl(bill.paid_amount or 0)}")
        diff = bill.payment_difference
        if diff:
            label = "Juros" if diff > 0 else "Desconto"
            console.print(f"  {label}: {format_brl(abs(diff))} ({abs(bill.payment_difference_percent or 0):.2f}%)")
    for attachment in bill.attachments:
        console.print(f"  Anexo: {attachment.name} -> {bill_service.get_attachment_url(attachment)}")


def show_history(history: list[HistoryEntry]) -> None:
    table = Table(title="Histórico")
    table.add_column("Data")
    table.add_column("Evento", style="bold")
    table.add_column("Detalhes")
    for entry in reversed(history):
        table.add_row(entry.timestamp.strftime("%d/%m/%Y %H:%M"), entry.event, entry.details)
    console.print(table)


def _pay(bill: Bill, bill_service: BillService) -> None:
    payment_date = _ask_date("Data do pagamento (DD/MM/AAAA):", default=today())
    if payment_date is None:
        return
    paid_amount = _ask_amount("Valor pago (ex: 110.00):", default=bill.amount)
    if paid_amount is None:
        return
    result = bill_service.pay_bill(bill.id, payment_date, paid_amount)
    console.print("[green]Pagamento registrado.[/green]")
    if result.successor is not None:
        console.print(f"[cyan]Próxima conta gerada para {format_date(result.successor.due_date)}.[/cyan]")
    report_generated(len(result.generated))


def _postpone(bill: Bill, bill_service: BillService) -> None:
    new_date = _ask_date("Novo vencimento (DD/MM/AAAA):")
    if new_date is None:
        return
    reason = questionary.text("Motivo (opcional):").ask() or ""
    try:
        result = bill_service.postpone_bill(bill.id, new_date, reason)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    console.print(f"[green]Vencimento adiado para {format_date(new_date)}.[/green]")
    report_generated(len(result.generated))


def _attach(bill: Bill, bill_service: BillService) -> None:
    path_str = questionary.path("Caminho do arquivo (PDF, JPG ou PNG):").ask()
    if not path_str:
        return
    path = Path(path_str).expanduser()
    content_type = CONTENT_TYPES.get(path.suffix.lower())
    if content_type is None or not path.is_file():
        console.print("[red]Arquivo inválido. Use PDF, JPG ou PNG.[/red]")
        return
    try:
        result = bill_service.attach_file(bill.id, path.name, path.read_bytes(), content_type)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    console.print("[green]Arquivo anexado.[/green]")
    report_generated(len(result.generated))


def _select_existing(prompt: str, choices: list[str], current: str = "") -> str:
    default = current if current in choices else None
    return questionary.select(prompt, choices=choices, default=default).ask() or ""


def _ask_bill_fields(catalog_service: CatalogService, bill: Bill | None = None) -> dict | None:
    """Prompt the fields shared by create and edit, pre-filled from ``bill`` when editing."""
    title = questionary.text("Título:", default=bill.title if bill else "").ask()
    if not title:
        console.print("[yellow]Operação cancelada.[/yellow]")
        return None
    beneficiary = questionary.text("Beneficiário:", default=bill.beneficiary if bill else "").ask() or ""
    description = questionary.text("Descrição (opcional):", default=bill.description if bill else "").ask() or ""
    amount = _ask_amount("Valor (ex: 2850.00):", default=bill.amount if bill else None)
    if amount is None:
        return None
    due_date = _ask_date("Vencimento (DD/MM/AAAA):", default=bill.due_date if bill else None)
    if due_date is None:
        return None
    store = catalog_service.store
    return {
        "title": title,
        "description": description,
        "beneficiary": beneficiary,
        "amount": amount,
        "due_date": due_date,
        "category": _select_existing("Categoria:", store.categories, bill.category if bill else ""),
        "cost_center": _select_existing("Centro de Custo:", store.cost_centers, bill.cost_center if bill else ""),
    }


def _edit(bill: Bill, bill_service: BillService, catalog_service: CatalogService) -> None:
    fields = _ask_bill_fields(catalog_service, bill)
    if fields is None:
        return
    barcode = questionary.text("Código de barras (opcional):", default=bill.barcode).ask() or ""
    form = BillFormData(
        **fields,
        type=bill.type,
        installments=bill.total_installments or 1,
        barcode=barcode,
        is_recurring=bool(bill.is_recurring),
    )
    try:
        result = bill_service.edit_bill(bill.id, form)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    console.print("[green]Conta atualizada.[/green]")
    report_generated(len(result.generated))


def _bill_detail_menu(bill_id: str, bill_service: BillService, catalog_service: CatalogService) -> None:
    while True:
        bill = bill_service.get_bill(bill_id)
        if bill is None:
            console.print("[red]Conta não encontrada.[/red]")
            return
        _show_bill_detail(bill, bill_service)

        choices = ["Desfazer Pagamento"] if bill.is_paid else ["Registrar Pagamento", "Adiar Vencimento"]
        if bill.type in RECURRING_TYPES:
            choices.append("Desativar Recorrência" if bill.is_recurring else "Ativar Recorrência")
        choices += ["Editar", "Anexar Arquivo", "Ver Histórico", "Excluir", "Voltar"]

        action = questionary.select("O que deseja fazer?", choices=choices).ask()
        if action is None or action == "Voltar":
            return
        if action == "Registrar Pagamento":
            _pay(bill, bill_service)
        elif action == "Desfazer Pagamento":
            result = bill_service.unpay_bill(bill.id)
            console.print("[green]Pagamento desfeito.[/green]")
            report_generated(len(result.generated))
        elif action == "Adiar Vencimento":
            _postpone(bill, bill_service)
        elif action in ("Ativar Recorrência", "Desativar Recorrência"):
            result = bill_service.toggle_recurring(bill.id)
            console.print("[green]Recorrência atualizada.[/green]")
            report_generated(len(result.generated))
        elif action == "Editar":
            _edit(bill, bill_service, catalog_service)
        elif action == "Anexar Arquivo":
            _attach(bill, bill_service)
        elif action == "Ver Histórico":
            show_history(bill.history)
        elif action == "Excluir":
            if questionary.confirm(f"Excluir '{bill.title}'?", default=False).ask():
                result = bill_service.delete_bills([bill.id])
                console.print("[green]Conta excluída.[/green]")
                report_generated(len(result.generated))
                return


def list_bills_menu(bill_service: BillService, catalog_service: CatalogService) -> None:
    bills = bill_service.list_bills()
    if not bills:
        console.print("[yellow]Nenhuma conta cadastrada.[/yellow]")
        return

    console.print()
    _show_dashboard(bills)

    counts = count_by_status(bills, today())
    status_choices = {f"Todas ({counts['all']})": None}
    for status, label in STATUS_LABELS.items():
        status_choices[f"{label} ({counts[status.value]})"] = status
    status_choice = questionary.select("Filtrar por situação:", choices=list(status_choices)).ask()
    if status_choice is None:
        return
    query = questionary.text("Buscar (opcional):").ask() or ""

    filtered = filter_bills(bills, today(), query=query, status=status_choices[status_choice])
    if not filtered:
        console.print("[yellow]Nenhuma conta encontrada.[/yellow]")
        return
    _show_bills(filtered)

    bill_choices = {_bill_label(b): b.id for b in filtered}
    choice = questionary.select("Selecione uma conta:", choices=[*bill_choices, "Voltar"]).ask()
    if choice is None or choice == "Voltar":
        return
    _bill_detail_menu(bill_choices[choice], bill_service, catalog_service)


def _review_installments(bills: list[Bill]) -> list[Bill]:
    while True:
        _show_bills(bills, title="Parcelas")
        if not questionary.confirm("Ajustar alguma parcela?", default=False).ask():
            return bills
        labels = {f"Parcela {b.installment_number}: {_bill_label(b)}": i for i, b in enumerate(bills)}
        choice = questionary.select("Parcela:", choices=list(labels)).ask()
        if choice is None:
            continue
        index = labels[choice]
        amount = _ask_amount("  Valor:", default=bills[index].amount)
        due_date = _ask_date("  Vencimento:", default=bills[index].due_date)
        if amount is not None and due_date is not None:
            bills[index] = bills[index].model_copy(update={"amount": amount, "due_date": due_date})


def create_bill_menu(bill_service: BillService, catalog_service: CatalogService) -> None:
    console.print()
    console.print("[bold]Nova Conta[/bold]", style="cyan")

    fields = _ask_bill_fields(catalog_service)
    if fields is None:
        return

    type_choices = {label: bill_type for bill_type, label in TYPE_LABELS.items()}
    bill_type = type_choices.get(questionary.select("Tipo:", choices=list(type_choices)).ask(), BillType.VARIABLE)

    installments = 1
    is_recurring = False
    if bill_type == BillType.INSTALLMENT:
        while True:
            val = questionary.text("Número de parcelas (mínimo 2):", default="2").ask() or ""
            if val.isdigit() and int(val) >= 2:
                installments = int(val)
                break
            console.print("[red]Informe pelo menos 2 parcelas.[/red]")
    elif bill_type in RECURRING_TYPES:
        is_recurring = bool(questionary.confirm("Gerar próximas contas automaticamente?", default=True).ask())

    barcode = questionary.text("Código de barras (opcional):").ask() or ""

    form = BillFormData(
        **fields,
        type=bill_type,
        installments=installments,
        barcode=barcode,
        is_recurring=is_recurring,
    )

    duplicate = bill_service.find_duplicate(form.title, form.beneficiary, form.due_date)
    if duplicate is not None:
        console.print(f"[yellow]Conta semelhante já existe: {_bill_label(duplicate)}[/yellow]")
        if not questionary.confirm("Salvar mesmo assim?", default=False).ask():
            console.print("[yellow]Operação cancelada.[/yellow]")
            return

    if bill_type == BillType.INSTALLMENT:
        bills = _review_installments(bill_service.build_bills(form.to_draft()))
        saved = bill_service.save_built_bills(bills)
        console.print(f"[green bold]{len(bills)} parcela(s) criada(s) com sucesso![/green bold]")
        report_generated(len(saved.generated))
        return

    result = bill_service.create_bill(form, allow_duplicate=True)
    if result.status == CreateStatus.CREATED:
        console.print("[green bold]Conta criada com sucesso![/green bold]")
        report_generated(len(result.generated))


def bulk_actions_menu(bill_service: BillService) -> None:
    unpaid = [b for b in bill_service.list_bills() if not b.is_paid]
    if not unpaid:
        console.print("[yellow]Nenhuma conta em aberto.[/yellow]")
        return

    bill_choices = {_bill_label(b): b.id for b in unpaid}
    selected = questionary.checkbox("Selecione as contas:", choices=list(bill_choices)).ask()
    if not selected:
        return
    ids = [bill_choices[label] for label in selected]

    action = questionary.select(
        f"{len(ids)} conta(s) selecionada(s):",
        choices=["Pagamento Rápido", "Adiar Vencimento", "Excluir", "Voltar"],
    ).ask()
    if action == "Pagamento Rápido":
        result = bill_service.pay_bills(ids)
        console.print(f"[green]{len(ids)} conta(s) paga(s).[/green]")
        if len(result.bills) > len(ids):
            console.print(f"[cyan]{len(result.bills) - len(ids)} próxima(s) conta(s) gerada(s).[/cyan]")
        report_generated(len(result.generated))
    elif action == "Adiar Vencimento":
        val = questionary.text("Adiar por quantos dias?", default="7").ask() or ""
        if not val.isdigit() or int(val) <= 0:
            console.print("[red]Número de dias inválido.[/red]")
            return
        result = bill_service.postpone_bills(ids, days=int(val))
        console.print(f"[green]{len(ids)} conta(s) adiada(s) em {val} dia(s).[/green]")
        report_generated(len(result.generated))
    elif action == "Excluir":
        if questionary.confirm(f"Excluir {len(ids)} conta(s)?", default=False).ask():
            result = bill_service.delete_bills(ids)
            console.print(f"[green]{len(ids)} conta(s) excluída(s).[/green]")
            report_generated(len(result.generated))


def schedule_menu(bill_service: BillService) -> None:
    current = today()
    month = questionary.text("Mês (AAAA-MM):", default=current.strftime("%Y-%m")).ask()
    if not month:
        return
    try:
        year, month_number = (int(part) for part in month.split("-"))
        date(year, month_number, 1)
    except ValueError:
        console.print("[red]Formato inválido. Use AAAA-MM (ex: 2025-03).[/red]")
        return
    search = questionary.text("Buscar (opcional):").ask() or ""

    by_day = bills_for_month(bill_service.list_bills(), year, month_number, search)
    if not by_day:
        console.print("[yellow]Nenhuma conta neste mês.[/yellow]")
        return
    for day in sorted(by_day):
        console.print(f"[bold]{day:02d}/{month_number:02d}/{year}[/bold]")
        for bill in by_day[day]:
            style = _STATUS_STYLES[classify(bill, current)]
            console.print(f"  [{style}]{bill.title}[/{style}] {format_brl(bill.amount)}")
