"""Root conftest: in-memory SQLite schema, store and sample bill fixtures."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import Connection, create_engine, text
from sqlalchemy.engine import Engine

from contas.models.bill import Bill, BillType
from contas.repositories.sqlalchemy import SQLAlchemyCollectionRepository
from contas.store import AppStore

# Matches Alembic head: 3f9a1c2b7d40 (create collections)
SCHEMA_DDL = """
CREATE TABLE collections (
    name VARCHAR(50) PRIMARY KEY,
    payload TEXT NOT NULL,
    updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""


@pytest.fixture()
def db_engine() -> Engine:
    return create_engine("sqlite:///:memory:")


@pytest.fixture()
def db_connection(db_engine: Engine) -> Connection:
    conn = db_engine.connect()
    for statement in SCHEMA_DDL.strip().split(";"):
        stmt = statement.strip()
        if stmt:
            conn.execute(text(stmt))
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture()
def collection_repo(db_connection: Connection) -> SQLAlchemyCollectionRepository:
    return SQLAlchemyCollectionRepository(db_connection)


@pytest.fixture()
def store(collection_repo: SQLAlchemyCollectionRepository) -> AppStore:
    app_store = AppStore(collection_repo)
    app_store.load()
    return app_store


def _sample_bill(**overrides) -> Bill:
    defaults = dict(
        id="bill-1",
        title="Conta de Luz",
        beneficiary="CEMIG",
        amount=10000,
        due_date=date(2024, 1, 10),
        category="Moradia",
        cost_center="Pessoal",
        type=BillType.VARIABLE,
    )
    defaults.update(overrides)
    return Bill(**defaults)


def _recurring_bill(**overrides) -> Bill:
    defaults = dict(
        id="rec-1",
        title="Internet",
        beneficiary="Vivo",
        amount=10000,
        due_date=date(2024, 1, 1),
        type=BillType.MONTHLY,
        is_recurring=True,
        series_id="S1",
    )
    defaults.update(overrides)
    return _sample_bill(**defaults)


@pytest.fixture()
def sample_bill():
    return _sample_bill


@pytest.fixture()
def recurring_bill():
    return _recurring_bill
