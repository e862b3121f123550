from __future__ import annotations

from collections.abc import Callable

import questionary
from rich.console import Console
from rich.table import Table

from contas import bank_accounts
from contas.cli.bill_menu import show_history
from contas.constants import format_date, parse_date, today
from contas.models.bank_detail import BankDetail, PixKeyType
from contas.models.company import Company
from contas.models.user import Admin, User, UserType
from contas.services.admin_service import AdminService
from contas.services.catalog_service import CatalogService
from contas.services.company_service import CompanyService
from contas.services.user_service import UserService

console = Console()

USER_TYPE_LABELS = {UserType.PJ: "PJ", UserType.CLT: "CLT", UserType.PARTNER: "Parceiro"}


def _iso_label(value: str | None) -> str:
    """'2024-06-10' -> '10/06/2024'; blank stays blank."""
    parsed = parse_date(value or "")
    return format_date(parsed) if parsed else ""


def _ask_optional_date(prompt: str, default: str | None = None) -> str | None:
    """Ask for a date and return it as 'YYYY-MM-DD'. Blank input clears it; Ctrl-C returns the default."""
    while True:
        val = questionary.text(prompt, default=_iso_label(default)).ask()
        if val is None:
            return default
        if not val.strip():
            return None
        parsed = parse_date(val)
        if parsed is not None:
            return parsed.isoformat()
        console.print("[red]Data inválida. Use DD/MM/AAAA.[/red]")


def _ask_companies(company_service: CompanyService, selected: list[str]) -> list[str]:
    companies = company_service.list_companies()
    if not companies:
        return list(selected)
    choices = [questionary.Choice(c.name, value=c.id, checked=c.id in selected) for c in companies]
    answer = questionary.checkbox("Empresas vinculadas:", choices=choices).ask()
    return list(selected) if answer is None else answer


# ---- Bank accounts ----


def _show_bank_details(details: list[BankDetail]) -> None:
    table = Table(title="Contas Bancárias")
    table.add_column("Banco", style="bold")
    table.add_column("Agência")
    table.add_column("Conta")
    table.add_column("PIX")
    table.add_column("Situação", justify="center")
    for detail in details:
        pix = f"{detail.pix_key_type.value}: {detail.pix_key}" if detail.pix_key else "-"
        status = "[green]Ativa[/green]" if detail.is_active else "[dim]Inativa[/dim]"
        table.add_row(detail.bank_name, detail.agency, detail.account, pix, status)
    console.print(table)


def _ask_bank_detail() -> BankDetail | None:
    bank_name = questionary.text("Banco:").ask()
    if not bank_name:
        return None
    agency = questionary.text("Agência:").ask() or ""
    account = questionary.text("Conta:").ask() or ""
    pix_type = questionary.select("Tipo de chave PIX:", choices=[t.value for t in PixKeyType]).ask()
    pix_key = questionary.text("Chave PIX (opcional):").ask() or ""
    return BankDetail(
        bank_name=bank_name,
        agency=agency,
        account=account,
        pix_key_type=PixKeyType(pix_type or PixKeyType.RANDOM.value),
        pix_key=pix_key,
    )


def _bank_accounts_menu(
    load: Callable[[], list[BankDetail]],
    save: Callable[[BankDetail], object],
    remove: Callable[[str], object],
) -> None:
    while True:
        details = load()
        if details:
            _show_bank_details(details)
        else:
            console.print("[yellow]Nenhuma conta bancária cadastrada.[/yellow]")

        choices = ["Adicionar Conta", *(["Remover Conta"] if details else []), "Voltar"]
        action = questionary.select("Contas bancárias:", choices=choices).ask()
        if action is None or action == "Voltar":
            return
        try:
            if action == "Adicionar Conta":
                detail = _ask_bank_detail()
                if detail is None:
                    continue
                save(detail)
                console.print("[green]Conta bancária salva e definida como ativa.[/green]")
            elif action == "Remover Conta":
                labels = {f"{d.bank_name} ag. {d.agency} c/c {d.account}": d.id for d in details}
                choice = questionary.select("Qual conta?", choices=list(labels)).ask()
                if choice and questionary.confirm(f"Remover '{choice}'?", default=False).ask():
                    remove(labels[choice])
                    console.print("[green]Conta bancária removida.[/green]")
        except ValueError as e:
            console.print(f"[red]{e}[/red]")


# ---- Collaborators ----


def _show_users(users: list[User]) -> None:
    current = today().isoformat()
    table = Table(title="Colaboradores")
    table.add_column("Nome", style="bold")
    table.add_column("Tipo", justify="center")
    table.add_column("CPF")
    table.add_column("Início")
    table.add_column("Situação", justify="center")
    for user in users:
        inactive = bool(user.end_date) and user.end_date < current
        table.add_row(
            user.full_name,
            USER_TYPE_LABELS[user.type],
            user.cpf,
            _iso_label(user.start_date),
            "[dim]Inativo[/dim]" if inactive else "[green]Ativo[/green]",
        )
    console.print(table)


def _show_user_detail(user: User, company_service: CompanyService) -> None:
    console.print()
    console.print(f"[bold cyan]{user.full_name}[/bold cyan] ({USER_TYPE_LABELS[user.type]})")
    console.print(f"  CPF: {user.cpf}")
    if user.email:
        console.print(f"  E-mail: {user.email}")
    console.print(f"  Início: {_iso_label(user.start_date) or '-'} | Término: {_iso_label(user.end_date) or '-'}")
    if user.job_function:
        console.print(f"  Função: {user.job_function}")
    if user.company_name:
        console.print(f"  Razão social: {user.company_name} | CNPJ: {user.cnpj or '-'}")
    names = [c.name for c in company_service.list_companies() if c.id in user.company_ids]
    if names:
        console.print(f"  Empresas: {', '.join(names)}")
    active = bank_accounts.active_account(user.bank_details)
    if active is not None:
        console.print(f"  Conta ativa: {active.bank_name} ag. {active.agency} c/c {active.account}")


def _create_user(user_service: UserService, company_service: CompanyService, catalog_service: CatalogService) -> None:
    console.print()
    console.print("[bold]Novo Colaborador[/bold]", style="cyan")

    type_choices = {label: user_type for user_type, label in USER_TYPE_LABELS.items()}
    type_label = questionary.select("Tipo:", choices=list(type_choices)).ask()
    if type_label is None:
        return
    user_type = type_choices[type_label]

    full_name = questionary.text("Nome completo:").ask()
    if not full_name:
        console.print("[yellow]Operação cancelada.[/yellow]")
        return
    cpf = questionary.text("CPF:").ask() or ""
    if not cpf.strip():
        console.print("[red]O CPF é obrigatório.[/red]")
        return
    email = questionary.text("E-mail (opcional):").ask() or ""
    start_date = _ask_optional_date("Início (DD/MM/AAAA):", today().isoformat()) or ""

    extra: dict[str, str | None] = {}
    if user_type == UserType.CLT:
        extra["job_function"] = questionary.select("Função:", choices=catalog_service.store.job_functions).ask()
    else:
        extra["company_name"] = questionary.text("Razão social (opcional):").ask() or None
        extra["cnpj"] = questionary.text("CNPJ (opcional):").ask() or None

    user = User(
        type=user_type,
        full_name=full_name,
        cpf=cpf,
        email=email,
        start_date=start_date,
        company_ids=_ask_companies(company_service, []),
        **extra,
    )
    created = user_service.create_user(user)
    console.print(f"[green bold]Colaborador '{created.full_name}' criado com sucesso![/green bold]")


def _edit_user(user: User, user_service: UserService, company_service: CompanyService) -> None:
    full_name = questionary.text("Nome completo:", default=user.full_name).ask()
    if not full_name:
        console.print("[yellow]Operação cancelada.[/yellow]")
        return
    email = questionary.text("E-mail:", default=user.email).ask() or ""
    end_date = _ask_optional_date("Término (DD/MM/AAAA, vazio se ativo):", user.end_date)
    company_ids = _ask_companies(company_service, user.company_ids)

    updated = user_service.update_user(
        user.model_copy(
            update={"full_name": full_name, "email": email, "end_date": end_date, "company_ids": company_ids}
        )
    )
    console.print(f"[green]{updated.history[-1].details}[/green]")


def _user_detail_menu(user_id: str, user_service: UserService, company_service: CompanyService) -> None:
    while True:
        user = user_service.get_user(user_id)
        if user is None:
            console.print("[red]Colaborador não encontrado.[/red]")
            return
        _show_user_detail(user, company_service)

        action = questionary.select(
            "O que deseja fazer?",
            choices=[
                "Editar",
                "Contas Bancárias",
                "Ver Histórico",
                "Gerar Código de Compartilhamento",
                "Excluir",
                "Voltar",
            ],
        ).ask()
        if action is None or action == "Voltar":
            return
        if action == "Editar":
            _edit_user(user, user_service, company_service)
        elif action == "Contas Bancárias":
            _bank_accounts_menu(
                lambda: user_service.get_user(user_id).bank_details,
                lambda detail: user_service.save_bank_detail(user_id, detail),
                lambda detail_id: user_service.remove_bank_detail(user_id, detail_id),
            )
        elif action == "Ver Histórico":
            show_history(user.history)
        elif action == "Gerar Código de Compartilhamento":
            console.print(f"[cyan]{user_service.export_code(user)}[/cyan]")
        elif action == "Excluir":
            if questionary.confirm(f"Excluir '{user.full_name}'?", default=False).ask():
                user_service.delete_users([user.id])
                console.print("[green]Colaborador excluído.[/green]")
                return


def _users_menu(user_service: UserService, company_service: CompanyService, catalog_service: CatalogService) -> None:
    counts = user_service.count_by_type()
    type_choices: dict[str, UserType | None] = {f"Todos ({counts['all']})": None}
    for user_type, label in USER_TYPE_LABELS.items():
        type_choices[f"{label} ({counts[user_type.value]})"] = user_type
    type_choice = questionary.select("Filtrar por tipo:", choices=list(type_choices)).ask()
    if type_choice is None:
        return

    users = user_service.list_users(type_choices[type_choice])
    if users:
        _show_users(users)
    else:
        console.print("[yellow]Nenhum colaborador encontrado.[/yellow]")

    user_choices = {f"{u.full_name} ({u.cpf})": u.id for u in users}
    choice = questionary.select("Selecione:", choices=["Novo Colaborador", *user_choices, "Voltar"]).ask()
    if choice is None or choice == "Voltar":
        return
    if choice == "Novo Colaborador":
        _create_user(user_service, company_service, catalog_service)
    else:
        _user_detail_menu(user_choices[choice], user_service, company_service)


def _import_user(user_service: UserService) -> None:
    code = questionary.text("Cole o código do colaborador:").ask()
    if code is None:
        return
    try:
        user = user_service.import_from_code(code)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    console.print(f"[green bold]Colaborador '{user.full_name}' importado com sucesso![/green bold]")


# ---- Companies ----


def _create_company(company_service: CompanyService) -> None:
    name = questionary.text("Nome da empresa:").ask()
    if not name:
        console.print("[yellow]Operação cancelada.[/yellow]")
        return
    cnpj = questionary.text("CNPJ (opcional):").ask() or ""
    city = questionary.text("Cidade (opcional):").ask() or ""
    state = questionary.text("UF (opcional):").ask() or ""
    try:
        company = company_service.create_company(Company(name=name, cnpj=cnpj, city=city, state=state))
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return
    console.print(f"[green bold]Empresa '{company.name}' criada com sucesso![/green bold]")


def _companies_menu(company_service: CompanyService) -> None:
    companies = company_service.list_companies()
    if companies:
        table = Table(title="Empresas")
        table.add_column("Nome", style="bold")
        table.add_column("CNPJ")
        table.add_column("Cidade")
        table.add_column("Contas", justify="right")
        for company in companies:
            city = f"{company.city}/{company.state}" if company.state else company.city
            table.add_row(company.name, company.cnpj, city, str(len(company.bank_details)))
        console.print(table)
    else:
        console.print("[yellow]Nenhuma empresa cadastrada.[/yellow]")

    company_choices = {c.name: c.id for c in companies}
    choice = questionary.select("Selecione:", choices=["Nova Empresa", *company_choices, "Voltar"]).ask()
    if choice is None or choice == "Voltar":
        return
    if choice == "Nova Empresa":
        _create_company(company_service)
        return

    company_id = company_choices[choice]
    action = questionary.select(choice, choices=["Contas Bancárias", "Excluir", "Voltar"]).ask()
    if action == "Contas Bancárias":
        _bank_accounts_menu(
            lambda: company_service.get_company(company_id).bank_details,
            lambda detail: company_service.save_bank_detail(company_id, detail),
            lambda detail_id: company_service.remove_bank_detail(company_id, detail_id),
        )
    elif action == "Excluir":
        if questionary.confirm(f"Excluir '{choice}'?", default=False).ask():
            unlinked = company_service.delete_companies([company_id])
            console.print("[green]Empresa excluída.[/green]")
            for names in unlinked.values():
                console.print(f"[yellow]Vínculo removido de: {', '.join(names)}[/yellow]")


# ---- Administrators ----


def _admins_menu(admin_service: AdminService) -> None:
    admins = admin_service.list_admins()
    for admin in admins:
        console.print(f"  • {admin.full_name} {admin.email}")

    choices = ["Novo Administrador", *(["Excluir"] if admins else []), "Voltar"]
    action = questionary.select("Administradores:", choices=choices).ask()
    if action == "Novo Administrador":
        full_name = questionary.text("Nome completo:").ask()
        if not full_name:
            return
        email = questionary.text("E-mail (opcional):").ask() or ""
        admin_service.create_admin(Admin(full_name=full_name, email=email))
        console.print(f"[green]Administrador '{full_name}' criado.[/green]")
    elif action == "Excluir":
        labels = {a.full_name: a.id for a in admins}
        selected = questionary.checkbox("Excluir quais?", choices=list(labels)).ask()
        if selected:
            admin_service.delete_admins([labels[name] for name in selected])
            console.print(f"[green]{len(selected)} administrador(es) excluído(s).[/green]")


def collaborator_menu(
    user_service: UserService,
    company_service: CompanyService,
    admin_service: AdminService,
    catalog_service: CatalogService,
) -> None:
    while True:
        choice = questionary.select(
            "Colaboradores e Empresas",
            choices=["Colaboradores", "Importar Colaborador por Código", "Empresas", "Administradores", "Voltar"],
        ).ask()

        if choice is None or choice == "Voltar":
            break
        elif choice == "Colaboradores":
            _users_menu(user_service, company_service, catalog_service)
        elif choice == "Importar Colaborador por Código":
            _import_user(user_service)
        elif choice == "Empresas":
            _companies_menu(company_service)
        elif choice == "Administradores":
            _admins_menu(admin_service)
