from __future__ import annotations

import logging

from ulid import ULID

from contas.models.user import Admin
from contas.store import AppStore

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, store: AppStore) -> None:
        self.store = store

    def list_admins(self) -> list[Admin]:
        return list(self.store.admins)

    def create_admin(self, admin: Admin) -> Admin:
        if not admin.full_name.strip():
            raise ValueError("O nome é obrigatório.")
        with self.store.transaction():
            created = admin.model_copy(update={"id": str(ULID())})
            self.store.commit_admins([*self.store.admins, created])
        logger.info("Admin created: id=%s", created.id)
        return created

    def update_admin(self, admin: Admin) -> Admin:
        with self.store.transaction():
            if not any(a.id == admin.id for a in self.store.admins):
                raise ValueError("Admin not found")
            self.store.commit_admins([admin if a.id == admin.id else a for a in self.store.admins])
        logger.info("Admin updated: id=%s", admin.id)
        return admin

    def delete_admins(self, admin_ids: list[str]) -> None:
        ids = set(admin_ids)
        with self.store.transaction():
            self.store.commit_admins([a for a in self.store.admins if a.id not in ids])
        logger.info("Deleted %d admin(s)", len(ids))
