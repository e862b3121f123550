from __future__ import annotations

from pathlib import Path

import questionary
from rich.console import Console
from rich.table import Table

from contas.cli.bill_menu import CONTENT_TYPES
from contas.constants import TYPE_LABELS, format_date
from contas.models import format_brl, reais_to_centavos
from contas.models.bill import RECURRING_TYPES, BillType
from contas.models.imports import ImportedBillReview, ImportFile, ImportStatus
from contas.services.catalog_service import CatalogService
from contas.services.import_service import ImportBatch, ImportService

console = Console()


def _load_files(paths_text: str) -> list[ImportFile]:
    files = []
    for raw in paths_text.split(","):
        raw = raw.strip()
        if not raw:
            continue
        path = Path(raw).expanduser()
        content_type = CONTENT_TYPES.get(path.suffix.lower())
        if content_type is None or not path.is_file():
            console.print(f"[red]Arquivo ignorado: {raw}[/red]")
            continue
        files.append(ImportFile(name=path.name, content_type=content_type, data=path.read_bytes()))
    return files


def _print_progress(review: ImportedBillReview) -> None:
    if review.status == ImportStatus.SUCCESS and review.data is not None:
        flag = " [yellow](duplicada?)[/yellow]" if review.is_duplicate else ""
        console.print(f"  [green]✓[/green] {review.file.name}: {review.data.title}{flag}")
    elif review.status == ImportStatus.ERROR:
        console.print(f"  [red]✗[/red] {review.file.name}: {review.error_message}")
    elif review.error_message:
        console.print(f"  [yellow]…[/yellow] {review.file.name}: {review.error_message}")


def _show_reviews(reviews: list[ImportedBillReview]) -> None:
    table = Table(title="Contas Importadas")
    table.add_column("Arquivo", style="dim")
    table.add_column("Título", style="bold")
    table.add_column("Beneficiário")
    table.add_column("Vencimento")
    table.add_column("Valor", justify="right")
    table.add_column("Categoria")
    table.add_column("Centro de Custo")
    for review in reviews:
        if review.data is None:
            continue
        table.add_row(
            review.file.name,
            review.data.title,
            review.data.beneficiary,
            format_date(review.data.due_date),
            format_brl(reais_to_centavos(review.data.amount)),
            review.category or "-",
            review.cost_center or "-",
        )
    console.print(table)


def _complete_review(batch: ImportBatch, review: ImportedBillReview, catalog_service: CatalogService) -> None:
    if review.data is None:
        return
    console.print()
    auto = " [dim](preenchido automaticamente)[/dim]" if review.auto_filled else ""
    console.print(f"[bold]{review.data.title}[/bold] - {review.data.beneficiary}{auto}")

    categories = catalog_service.store.categories
    cost_centers = catalog_service.store.cost_centers
    category = questionary.select(
        "  Categoria:",
        choices=categories,
        default=review.category if review.category in categories else None,
    ).ask()
    cost_center = questionary.select(
        "  Centro de Custo:",
        choices=cost_centers,
        default=review.cost_center if review.cost_center in cost_centers else None,
    ).ask()
    type_choices = {label: bill_type for bill_type, label in TYPE_LABELS.items()}
    type_label = questionary.select("  Tipo:", choices=list(type_choices), default=TYPE_LABELS[review.type]).ask()
    bill_type = type_choices.get(type_label, BillType.VARIABLE)

    changes = {"category": category or "", "cost_center": cost_center or "", "type": bill_type}
    if bill_type == BillType.INSTALLMENT:
        val = questionary.text("  Número de parcelas (mínimo 2):", default=str(review.installments)).ask() or ""
        changes["installments"] = int(val) if val.isdigit() else review.installments
    elif bill_type in RECURRING_TYPES:
        changes["is_recurring"] = bool(questionary.confirm("  Gerar próximas automaticamente?", default=True).ask())
    batch.update_review(review.id, **changes)


def import_bills_menu(import_service: ImportService, catalog_service: CatalogService) -> None:
    console.print()
    console.print("[bold]Importar Documentos[/bold]", style="cyan")

    paths_text = questionary.text("Caminhos dos arquivos (separados por vírgula):").ask()
    if not paths_text:
        console.print("[yellow]Operação cancelada.[/yellow]")
        return
    files = _load_files(paths_text)
    if not files:
        console.print("[yellow]Nenhum arquivo válido.[/yellow]")
        return

    console.print(f"Processando {len(files)} arquivo(s)...")
    batch = import_service.parse_files(files, on_update=_print_progress)
    for message in batch.notifications:
        console.print(f"[dim]{message}[/dim]")

    if batch.duplicates:
        keep = questionary.confirm(
            f"{len(batch.duplicates)} conta(s) parecem duplicadas. Salvar mesmo assim?", default=False
        ).ask()
        batch.resolve_duplicates(keep=bool(keep))

    if not batch.successful:
        console.print("[yellow]Nenhuma conta para salvar.[/yellow]")
        return

    _show_reviews(batch.successful)
    for review in batch.successful:
        _complete_review(batch, review, catalog_service)

    if not questionary.confirm(f"Salvar {len(batch.successful)} conta(s)?", default=True).ask():
        console.print("[yellow]Importação descartada.[/yellow]")
        return
    try:
        result = import_service.save(batch.successful)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    console.print(f"[green bold]{len(result.bills)} conta(s) importada(s) com sucesso![/green bold]")
