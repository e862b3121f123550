import questionary
from rich.console import Console

from contas.cli.bill_menu import (
    bulk_actions_menu,
    create_bill_menu,
    list_bills_menu,
    report_generated,
    schedule_menu,
)
from contas.cli.catalog_menu import catalog_menu
from contas.cli.collaborator_menu import collaborator_menu
from contas.cli.import_menu import import_bills_menu
from contas.parsing.factory import get_document_parser
from contas.repositories.factory import get_collection_repository
from contas.services.admin_service import AdminService
from contas.services.bill_service import BillService
from contas.services.catalog_service import CatalogService
from contas.services.company_service import CompanyService
from contas.services.import_service import ImportPipeline, ImportService
from contas.services.user_service import UserService
from contas.storage.factory import get_storage
from contas.store import AppStore

console = Console()


def _build_services() -> tuple[BillService, CatalogService]:
    store = AppStore(get_collection_repository())
    store.load()
    return BillService(store, get_storage()), CatalogService(store)


def _build_import_service(bill_service: BillService) -> ImportService | None:
    try:
        parser = get_document_parser()
    except ValueError as e:
        console.print(f"[red]Importação indisponível: {e}[/red]")
        return None
    return ImportService(bill_service, ImportPipeline(parser))


def main_menu() -> None:
    bill_service, catalog_service = _build_services()
    import_service: ImportService | None = None

    console.print()
    console.print("[bold]Contas a Pagar[/bold]", style="cyan")
    console.print()
    report_generated(len(bill_service.refresh().generated))

    while True:
        choice = questionary.select(
            "Menu Principal",
            choices=[
                "Listar Contas",
                "Nova Conta",
                "Ações em Massa",
                "Agenda do Mês",
                "Importar Documentos",
                "Colaboradores e Empresas",
                "Categorias e Centros de Custo",
                "Sair",
            ],
        ).ask()

        if choice is None or choice == "Sair":
            console.print("[bold]Até logo![/bold]")
            break

        # Returning to the menu counts as resuming the app.
        report_generated(len(bill_service.refresh().generated))

        if choice == "Listar Contas":
            list_bills_menu(bill_service, catalog_service)
        elif choice == "Nova Conta":
            create_bill_menu(bill_service, catalog_service)
        elif choice == "Ações em Massa":
            bulk_actions_menu(bill_service)
        elif choice == "Agenda do Mês":
            schedule_menu(bill_service)
        elif choice == "Importar Documentos":
            import_service = import_service or _build_import_service(bill_service)
            if import_service is not None:
                import_bills_menu(import_service, catalog_service)
        elif choice == "Colaboradores e Empresas":
            store = catalog_service.store
            collaborator_menu(UserService(store), CompanyService(store), AdminService(store), catalog_service)
        elif choice == "Categorias e Centros de Custo":
            catalog_menu(catalog_service)
