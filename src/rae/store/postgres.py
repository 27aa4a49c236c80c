"""Key-value store backed by a Postgres table."""

from __future__ import annotations

from typing import Optional

from rae.config import Settings
from rae.db.client import db_cursor


CREATE_TABLE_SQL = (
    "create table if not exists kv_store ("
    "key text primary key, value text not null, updated_at timestamptz not null default now())"
)


class PostgresStore:
    """One row per cache; each call opens a short-lived connection."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self._ready = False

    def _ensure_table(self) -> None:
        if self._ready:
            return
        with db_cursor(self.settings) as cursor:
            cursor.execute(CREATE_TABLE_SQL)
        self._ready = True

    def get(self, key: str) -> Optional[str]:
        self._ensure_table()
        with db_cursor(self.settings) as cursor:
            cursor.execute("select value from kv_store where key = %s", (key,))
            row = cursor.fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self._ensure_table()
        with db_cursor(self.settings) as cursor:
            cursor.execute(
                "insert into kv_store (key, value) values (%s, %s) "
                "on conflict (key) do update set value = excluded.value, updated_at = now()",
                (key, value),
            )
