from __future__ import annotations

from datetime import datetime

from sqlalchemy import Connection, text

from contas.constants import SP_TZ
from contas.repositories.base import CollectionRepository


def _now() -> datetime:
    return datetime.now(SP_TZ)


class SQLAlchemyCollectionRepository(CollectionRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def load(self, name: str) -> str | None:
        row = (
            self.conn.execute(
                text("SELECT payload FROM collections WHERE name = :name"),
                {"name": name},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return row["payload"]

    def save(self, name: str, payload: str) -> None:
        params = {"name": name, "payload": payload, "updated_at": _now()}
        result = self.conn.execute(
            text("UPDATE collections SET payload = :payload, updated_at = :updated_at WHERE name = :name"),
            params,
        )
        if result.rowcount == 0:
            self.conn.execute(
                text("INSERT INTO collections (name, payload, updated_at) VALUES (:name, :payload, :updated_at)"),
                params,
            )
        self.conn.commit()

    def list_names(self) -> list[str]:
        rows = self.conn.execute(text("SELECT name FROM collections ORDER BY name")).fetchall()
        return [row[0] for row in rows]
