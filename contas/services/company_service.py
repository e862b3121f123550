from __future__ import annotations

import logging

from ulid import ULID

from contas import bank_accounts
from contas.history import HistoryEvent, append_history
from contas.models.bank_detail import BankDetail
from contas.models.company import Company
from contas.store import AppStore

logger = logging.getLogger(__name__)


class CompanyService:
    def __init__(self, store: AppStore) -> None:
        self.store = store

    def list_companies(self) -> list[Company]:
        return list(self.store.companies)

    def get_company(self, company_id: str) -> Company | None:
        result = next((c for c in self.store.companies if c.id == company_id), None)
        logger.debug("get_company id=%s found=%s", company_id, result is not None)
        return result

    def _require(self, company_id: str) -> Company:
        company = self.get_company(company_id)
        if company is None:
            raise ValueError("Company not found")
        return company

    def _replace(self, company: Company) -> None:
        self.store.commit_companies([company if c.id == company.id else c for c in self.store.companies])

    def create_company(self, company: Company) -> Company:
        if not company.name.strip():
            raise ValueError("O nome da empresa é obrigatório.")
        with self.store.transaction():
            created = company.model_copy(update={"id": str(ULID()), "key": str(ULID())})
            self.store.commit_companies([*self.store.companies, created])
        logger.info("Company created: id=%s, name=%s", created.id, created.name)
        return created

    def update_company(self, company: Company) -> Company:
        with self.store.transaction():
            current = self._require(company.id)
            updated = company.model_copy(update={"key": current.key})
            self._replace(updated)
        logger.info("Company updated: id=%s, name=%s", updated.id, updated.name)
        return updated

    def delete_companies(self, company_ids: list[str]) -> dict[str, list[str]]:
        """Delete companies and unlink their users. Returns the unlinked user names per company."""
        ids = set(company_ids)
        with self.store.transaction():
            linked: dict[str, list[str]] = {}
            for company in self.store.companies:
                if company.id in ids:
                    names = [u.full_name for u in self.store.users if company.id in u.company_ids]
                    if names:
                        linked[company.name] = names

            users = []
            for user in self.store.users:
                remaining = [cid for cid in user.company_ids if cid not in ids]
                if len(remaining) != len(user.company_ids):
                    user = append_history(
                        user.model_copy(update={"company_ids": remaining}),
                        HistoryEvent.COMPANY_UNLINKED,
                        "Vínculo com empresa removido devido à exclusão da empresa.",
                    )
                users.append(user)
            self.store.commit_users(users)
            self.store.commit_companies([c for c in self.store.companies if c.id not in ids])
        logger.info("Deleted %d company(ies), unlinked users from %d", len(ids), len(linked))
        return linked

    def save_bank_detail(self, company_id: str, detail: BankDetail) -> Company:
        bank_accounts.validate_bank_detail(detail)
        with self.store.transaction():
            company = self._require(company_id)
            updated = company.model_copy(
                update={"bank_details": bank_accounts.add_or_update(company.bank_details, detail)}
            )
            self._replace(updated)
        logger.info("Bank detail saved for company %s", company_id)
        return updated

    def remove_bank_detail(self, company_id: str, detail_id: str) -> Company:
        with self.store.transaction():
            company = self._require(company_id)
            updated = company.model_copy(
                update={"bank_details": bank_accounts.remove(company.bank_details, detail_id)}
            )
            self._replace(updated)
        logger.info("Bank detail %s removed from company %s", detail_id, company_id)
        return updated
