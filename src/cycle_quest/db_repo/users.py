from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Protocol

from cycle_quest.models import UserContext


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...


def _row_to_user(row: sqlite3.Row) -> UserContext:
    return UserContext(
        user_id=str(row["user_id"]),
        email=str(row["email"] or ""),
        plan=str(row["plan"] or "free"),
        tz=row["tz"] or None,
    )


class UserMixin:
    def upsert_user(
        self: DbProtocol,
        user_id: str,
        email: str,
        plan: str,
        seen_at: datetime,
        tz: str | None = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users(user_id, email, plan, tz, last_seen_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    email=excluded.email,
                    plan=excluded.plan,
                    tz=excluded.tz,
                    last_seen_at=excluded.last_seen_at
                """,
                (user_id, email, plan, tz, seen_at.isoformat()),
            )

    def get_user(self: DbProtocol, user_id: str) -> UserContext | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE user_id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row else None

    def list_users(self: DbProtocol) -> list[UserContext]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY user_id").fetchall()
        return [_row_to_user(r) for r in rows]
