from __future__ import annotations

import base64
import binascii
import logging

from pydantic import ValidationError
from ulid import ULID

from contas import bank_accounts
from contas.constants import today
from contas.history import HistoryEvent, append_history
from contas.models.bank_detail import BankDetail
from contas.models.user import User, UserType
from contas.store import AppStore

logger = logging.getLogger(__name__)

_TRACKED_FIELDS = {
    "full_name": "Nome",
    "cpf": "CPF",
    "birth_date": "Nascimento",
    "email": "E-mail",
    "start_date": "Início",
    "end_date": "Término",
    "company_name": "Razão social",
    "cnpj": "CNPJ",
    "pis": "PIS",
    "mother_name": "Nome da mãe",
    "father_name": "Nome do pai",
    "job_function": "Função",
}

# Fields the collaborator never sends through a share code.
_CODE_EXCLUDE = {"id", "portal_key", "history", "personal_attachments", "bank_details"}


def _is_inactive(user: User, today_str: str) -> bool:
    return bool(user.end_date) and user.end_date < today_str


def describe_changes(original: User, updated: User) -> list[str]:
    changes = [
        f'{label} de "{getattr(original, field) or ""}" para "{getattr(updated, field) or ""}"'
        for field, label in _TRACKED_FIELDS.items()
        if getattr(original, field) != getattr(updated, field)
    ]
    if original.phones != updated.phones:
        changes.append("Telefones foram alterados.")
    if sorted(original.company_ids) != sorted(updated.company_ids):
        changes.append("Vínculo com empresas foi alterado.")
    if original.company_address != updated.company_address:
        changes.append("Endereço da empresa foi alterado.")
    if original.home_address != updated.home_address:
        changes.append("Endereço residencial foi alterado.")
    return changes


class UserService:
    def __init__(self, store: AppStore) -> None:
        self.store = store

    def list_users(self, user_type: UserType | None = None) -> list[User]:
        result = [u for u in self.store.users if user_type is None or u.type == user_type]
        logger.debug("Listed %d users (type=%s)", len(result), user_type)
        return result

    def count_by_type(self) -> dict[str, int]:
        counts = {"all": len(self.store.users), **{t.value: 0 for t in UserType}}
        for user in self.store.users:
            counts[user.type.value] += 1
        return counts

    def get_user(self, user_id: str) -> User | None:
        return next((u for u in self.store.users if u.id == user_id), None)

    def get_by_portal_key(self, portal_key: str) -> User | None:
        result = next((u for u in self.store.users if portal_key and u.portal_key == portal_key), None)
        logger.debug("get_by_portal_key found=%s", result is not None)
        return result

    def _require(self, user_id: str) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise ValueError("User not found")
        return user

    def _replace(self, user: User) -> None:
        self.store.commit_users([user if u.id == user.id else u for u in self.store.users])

    def create_user(self, user: User, details: str | None = None) -> User:
        with self.store.transaction():
            created = user.model_copy(update={"id": str(ULID()), "portal_key": str(ULID()), "history": []})
            created = append_history(created, HistoryEvent.CREATION, details or f"Usuário {created.full_name} criado.")
            self.store.commit_users([*self.store.users, created])
        logger.info("User created: id=%s, type=%s", created.id, created.type.value)
        return created

    def update_user(self, user: User) -> User:
        """Save an edited user; moving the end date into the past deactivates its bank accounts."""
        today_str = today().isoformat()
        with self.store.transaction():
            original = self._require(user.id)
            updated = user.model_copy(update={"history": original.history, "portal_key": original.portal_key})
            changes = describe_changes(original, updated)
            details = "; ".join(changes) if changes else "Nenhuma alteração de dados detectada."

            if not _is_inactive(original, today_str) and _is_inactive(updated, today_str):
                active = [d for d in updated.bank_details if d.is_active]
                if active:
                    updated = updated.model_copy(
                        update={"bank_details": bank_accounts.deactivate_all(updated.bank_details)}
                    )
                    details += f" Status alterado para inativo, {len(active)} conta(s) bancária(s) desativada(s)."
                else:
                    details += " Status alterado para inativo."

            updated = append_history(updated, HistoryEvent.EDIT, details)
            self._replace(updated)
        logger.info("User updated: id=%s, changes=%d", updated.id, len(changes))
        return updated

    def update_from_portal(self, portal_key: str, data: User) -> User:
        with self.store.transaction():
            current = self.get_by_portal_key(portal_key)
            if current is None:
                raise ValueError("Portal key not found")
            updated = data.model_copy(
                update={
                    "id": current.id,
                    "portal_key": current.portal_key,
                    "history": current.history,
                    "type": current.type,
                }
            )
            changes = describe_changes(current, updated)
            updated = append_history(
                updated,
                HistoryEvent.PORTAL_UPDATE,
                "Dados atualizados pelo colaborador: " + ("; ".join(changes) if changes else "sem alterações."),
            )
            self._replace(updated)
        logger.info("User %s updated through portal", current.id)
        return updated

    @staticmethod
    def export_code(user: User) -> str:
        """Encode a collaborator's form data as a share code."""
        return base64.b64encode(user.model_dump_json(exclude=_CODE_EXCLUDE).encode()).decode()

    def import_from_code(self, code: str) -> User:
        code = code.strip()
        if not code:
            raise ValueError("Por favor, insira o código.")
        try:
            decoded = base64.b64decode(code, validate=True)
            user = User.model_validate_json(decoded)
        except (binascii.Error, ValidationError, ValueError) as exc:
            logger.warning("Invalid user import code: %s", exc)
            raise ValueError("Código inválido. Não foi possível importar o usuário.") from exc
        if not user.full_name or not user.cpf:
            raise ValueError("Código inválido ou dados incompletos.")
        return self.create_user(
            user.model_copy(update={"personal_attachments": [], "bank_details": []}),
            details="Usuário importado via código.",
        )

    def delete_users(self, user_ids: list[str]) -> None:
        ids = set(user_ids)
        with self.store.transaction():
            self.store.commit_users([u for u in self.store.users if u.id not in ids])
        logger.info("Deleted %d user(s)", len(ids))

    def save_bank_detail(self, user_id: str, detail: BankDetail) -> User:
        bank_accounts.validate_bank_detail(detail)
        with self.store.transaction():
            user = self._require(user_id)
            editing = bool(detail.id) and any(d.id == detail.id for d in user.bank_details)
            updated = append_history(
                user.model_copy(update={"bank_details": bank_accounts.add_or_update(user.bank_details, detail)}),
                HistoryEvent.BANK_DETAILS,
                f"Conta bancária {'atualizada' if editing else 'adicionada'}: {detail.bank_name} "
                f"ag. {detail.agency} c/c {detail.account}.",
            )
            self._replace(updated)
        logger.info("Bank detail saved for user %s (editing=%s)", user_id, editing)
        return updated

    def remove_bank_detail(self, user_id: str, detail_id: str) -> User:
        with self.store.transaction():
            user = self._require(user_id)
            removed = next((d for d in user.bank_details if d.id == detail_id), None)
            if removed is None:
                raise ValueError("Bank detail not found")
            updated = append_history(
                user.model_copy(update={"bank_details": bank_accounts.remove(user.bank_details, detail_id)}),
                HistoryEvent.BANK_DETAILS,
                f"Conta bancária removida: {removed.bank_name} ag. {removed.agency} c/c {removed.account}.",
            )
            self._replace(updated)
        logger.info("Bank detail %s removed from user %s", detail_id, user_id)
        return updated
