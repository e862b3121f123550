"""Single-owner in-memory store for every persisted collection.

Services read the current collections, compute a new one with pure functions
and hand it back through ``commit_*``; the whole collection is persisted
verbatim. Commits are serialized by one lock, and callers that read and then
commit hold ``transaction()`` so the pair is atomic.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from pydantic import TypeAdapter, ValidationError

from contas.constants import DEFAULT_CATEGORIES, DEFAULT_COST_CENTERS, DEFAULT_JOB_FUNCTIONS
from contas.models.bill import Bill
from contas.models.company import Company
from contas.models.user import Admin, User
from contas.repositories.base import CollectionRepository

logger = logging.getLogger(__name__)

BILLS = "bills"
COMPANIES = "companies"
USERS = "users"
ADMINS = "admins"
CATEGORIES = "categories"
COST_CENTERS = "cost_centers"
JOB_FUNCTIONS = "job_functions"

_BILLS = TypeAdapter(list[Bill])
_COMPANIES = TypeAdapter(list[Company])
_USERS = TypeAdapter(list[User])
_ADMINS = TypeAdapter(list[Admin])
_NAMES = TypeAdapter(list[str])


class AppStore:
    def __init__(self, repo: CollectionRepository) -> None:
        self.repo = repo
        self._lock = threading.RLock()
        self.bills: list[Bill] = []
        self.companies: list[Company] = []
        self.users: list[User] = []
        self.admins: list[Admin] = []
        self.categories: list[str] = list(DEFAULT_CATEGORIES)
        self.cost_centers: list[str] = list(DEFAULT_COST_CENTERS)
        self.job_functions: list[str] = list(DEFAULT_JOB_FUNCTIONS)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def load(self) -> None:
        with self._lock:
            self.bills = self._load(BILLS, _BILLS, [])
            self.companies = self._load(COMPANIES, _COMPANIES, [])
            self.users = self._load(USERS, _USERS, [])
            self.admins = self._load(ADMINS, _ADMINS, [])
            self.categories = self._load(CATEGORIES, _NAMES, list(DEFAULT_CATEGORIES))
            self.cost_centers = self._load(COST_CENTERS, _NAMES, list(DEFAULT_COST_CENTERS))
            self.job_functions = self._load(JOB_FUNCTIONS, _NAMES, list(DEFAULT_JOB_FUNCTIONS))
        logger.info(
            "Store loaded: bills=%d companies=%d users=%d admins=%d",
            len(self.bills),
            len(self.companies),
            len(self.users),
            len(self.admins),
        )

    def _load(self, name: str, adapter: TypeAdapter, default: Any) -> Any:
        try:
            payload = self.repo.load(name)
        except Exception:
            logger.exception("Failed to read %s from storage, starting empty", name)
            return default
        if payload is None:
            return default
        try:
            return adapter.validate_json(payload)
        except ValidationError:
            logger.exception("Malformed stored %s, starting empty", name)
            return default

    def _persist(self, name: str, adapter: TypeAdapter, value: Any) -> None:
        # The in-memory collection stays the source of truth if the write fails.
        try:
            self.repo.save(name, adapter.dump_json(value).decode())
        except Exception:
            logger.exception("Failed to persist %s", name)

    def commit_bills(self, bills: list[Bill]) -> None:
        with self._lock:
            self.bills = list(bills)
            self._persist(BILLS, _BILLS, self.bills)

    def commit_companies(self, companies: list[Company]) -> None:
        with self._lock:
            self.companies = list(companies)
            self._persist(COMPANIES, _COMPANIES, self.companies)

    def commit_users(self, users: list[User]) -> None:
        with self._lock:
            self.users = list(users)
            self._persist(USERS, _USERS, self.users)

    def commit_admins(self, admins: list[Admin]) -> None:
        with self._lock:
            self.admins = list(admins)
            self._persist(ADMINS, _ADMINS, self.admins)

    def commit_categories(self, categories: list[str]) -> None:
        with self._lock:
            self.categories = list(categories)
            self._persist(CATEGORIES, _NAMES, self.categories)

    def commit_cost_centers(self, cost_centers: list[str]) -> None:
        with self._lock:
            self.cost_centers = list(cost_centers)
            self._persist(COST_CENTERS, _NAMES, self.cost_centers)

    def commit_job_functions(self, job_functions: list[str]) -> None:
        with self._lock:
            self.job_functions = list(job_functions)
            self._persist(JOB_FUNCTIONS, _NAMES, self.job_functions)
