"""Editable name lists (categories, cost centers, job functions).

Renaming an entry rewrites every bill or user that references it, with a
history entry on each touched record.
"""

from __future__ import annotations

import logging

from contas.history import HistoryEvent, append_history
from contas.store import AppStore

logger = logging.getLogger(__name__)


def _validated(names: list[str], name: str, ignore: str | None = None) -> str:
    name = name.strip()
    if not name:
        raise ValueError("O nome não pode ficar em branco.")
    if any(n.lower() == name.lower() and n != ignore for n in names):
        raise ValueError(f'"{name}" já existe.')
    return name


class CatalogService:
    def __init__(self, store: AppStore) -> None:
        self.store = store

    # Categories

    def add_category(self, name: str) -> list[str]:
        with self.store.transaction():
            name = _validated(self.store.categories, name)
            self.store.commit_categories([*self.store.categories, name])
        logger.info("Category added: %s", name)
        return self.store.categories

    def delete_category(self, name: str) -> list[str]:
        with self.store.transaction():
            self.store.commit_categories([c for c in self.store.categories if c != name])
        logger.info("Category deleted: %s", name)
        return self.store.categories

    def rename_category(self, old: str, new: str) -> int:
        """Rename a category and update every bill using it. Returns the number of bills touched."""
        with self.store.transaction():
            if old not in self.store.categories:
                raise ValueError("Category not found")
            new = _validated(self.store.categories, new, ignore=old)
            touched = 0
            bills = []
            for bill in self.store.bills:
                if bill.category == old:
                    bill = append_history(
                        bill.model_copy(update={"category": new}),
                        HistoryEvent.CATEGORY_RENAMED,
                        f'Categoria renomeada de "{old}" para "{new}".',
                    )
                    touched += 1
                bills.append(bill)
            self.store.commit_categories([new if c == old else c for c in self.store.categories])
            if touched:
                self.store.commit_bills(bills)
        logger.info("Category renamed: %s -> %s (%d bills)", old, new, touched)
        return touched

    # Cost centers

    def add_cost_center(self, name: str) -> list[str]:
        with self.store.transaction():
            name = _validated(self.store.cost_centers, name)
            self.store.commit_cost_centers([*self.store.cost_centers, name])
        logger.info("Cost center added: %s", name)
        return self.store.cost_centers

    def delete_cost_center(self, name: str) -> list[str]:
        with self.store.transaction():
            self.store.commit_cost_centers([c for c in self.store.cost_centers if c != name])
        logger.info("Cost center deleted: %s", name)
        return self.store.cost_centers

    def rename_cost_center(self, old: str, new: str) -> int:
        with self.store.transaction():
            if old not in self.store.cost_centers:
                raise ValueError("Cost center not found")
            new = _validated(self.store.cost_centers, new, ignore=old)
            touched = 0
            bills = []
            for bill in self.store.bills:
                if bill.cost_center == old:
                    bill = append_history(
                        bill.model_copy(update={"cost_center": new}),
                        HistoryEvent.COST_CENTER_RENAMED,
                        f'Centro de custo renomeado de "{old}" para "{new}".',
                    )
                    touched += 1
                bills.append(bill)
            self.store.commit_cost_centers([new if c == old else c for c in self.store.cost_centers])
            if touched:
                self.store.commit_bills(bills)
        logger.info("Cost center renamed: %s -> %s (%d bills)", old, new, touched)
        return touched

    # Job functions

    def add_job_function(self, name: str) -> list[str]:
        with self.store.transaction():
            name = _validated(self.store.job_functions, name)
            self.store.commit_job_functions([*self.store.job_functions, name])
        logger.info("Job function added: %s", name)
        return self.store.job_functions

    def delete_job_function(self, name: str) -> list[str]:
        with self.store.transaction():
            self.store.commit_job_functions([f for f in self.store.job_functions if f != name])
        logger.info("Job function deleted: %s", name)
        return self.store.job_functions

    def rename_job_function(self, old: str, new: str) -> int:
        """Rename a job function and update every user holding it."""
        with self.store.transaction():
            if old not in self.store.job_functions:
                raise ValueError("Job function not found")
            new = _validated(self.store.job_functions, new, ignore=old)
            touched = 0
            users = []
            for user in self.store.users:
                if user.job_function == old:
                    user = append_history(
                        user.model_copy(update={"job_function": new}),
                        HistoryEvent.BULK_UPDATE,
                        f'Função renomeada de "{old}" para "{new}".',
                    )
                    touched += 1
                users.append(user)
            self.store.commit_job_functions([new if f == old else f for f in self.store.job_functions])
            if touched:
                self.store.commit_users(users)
        logger.info("Job function renamed: %s -> %s (%d users)", old, new, touched)
        return touched
