import questionary
from rich.console import Console

from contas.services.catalog_service import CatalogService

console = Console()


def _edit_list(kind: str, names: list[str], add, rename, delete) -> None:
    console.print()
    console.print(f"[bold]{kind}[/bold]", style="cyan")
    for name in names:
        console.print(f"  • {name}")

    action = questionary.select("O que deseja fazer?", choices=["Adicionar", "Renomear", "Excluir", "Voltar"]).ask()
    if action is None or action == "Voltar":
        return
    try:
        if action == "Adicionar":
            name = questionary.text("Nome:").ask()
            if name:
                add(name)
                console.print(f"[green]'{name.strip()}' adicionado.[/green]")
        elif action == "Renomear":
            old = questionary.select("Qual?", choices=names).ask()
            new = questionary.text("Novo nome:", default=old or "").ask()
            if old and new:
                touched = rename(old, new)
                console.print(f"[green]Renomeado. {touched} registro(s) atualizado(s).[/green]")
        elif action == "Excluir":
            name = questionary.select("Qual?", choices=names).ask()
            if name and questionary.confirm(f"Excluir '{name}'?", default=False).ask():
                delete(name)
                console.print(f"[green]'{name}' excluído.[/green]")
    except ValueError as e:
        console.print(f"[red]{e}[/red]")


def catalog_menu(catalog_service: CatalogService) -> None:
    store = catalog_service.store
    choice = questionary.select(
        "Gerenciar:", choices=["Categorias", "Centros de Custo", "Funções", "Voltar"]
    ).ask()
    if choice == "Categorias":
        _edit_list(
            choice,
            store.categories,
            catalog_service.add_category,
            catalog_service.rename_category,
            catalog_service.delete_category,
        )
    elif choice == "Centros de Custo":
        _edit_list(
            choice,
            store.cost_centers,
            catalog_service.add_cost_center,
            catalog_service.rename_cost_center,
            catalog_service.delete_cost_center,
        )
    elif choice == "Funções":
        _edit_list(
            choice,
            store.job_functions,
            catalog_service.add_job_function,
            catalog_service.rename_job_function,
            catalog_service.delete_job_function,
        )
