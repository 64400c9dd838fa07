from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime
from typing import Any, Protocol

from cycle_quest.db_converters import cycle_from_row, derived_profit
from cycle_quest.models import Cycle
from cycle_quest.store import StoreError


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...


def _row_dict(row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    data["tags"] = data.pop("tags_json", None)
    return data


class CycleMixin:
    def add_cycle(
        self: DbProtocol,
        user_id: str,
        day: date,
        deposit: float,
        withdrawal: float,
        chest: float,
        created_at: datetime,
        platform: str = "",
        tags: list[str] | tuple[str, ...] = (),
        notes: str = "",
    ) -> Cycle:
        profit = derived_profit(deposit, withdrawal, chest)
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO cycles(user_id, date, deposit, withdrawal, chest, profit, platform, tags_json, notes, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    day.isoformat(),
                    deposit,
                    withdrawal,
                    chest,
                    profit,
                    platform,
                    json.dumps(list(tags)),
                    notes,
                    created_at.isoformat(),
                ),
            )
            row = conn.execute("SELECT * FROM cycles WHERE id = ?", (cur.lastrowid,)).fetchone()
        assert row is not None
        return cycle_from_row(_row_dict(row))

    def soft_delete_cycle(self: DbProtocol, user_id: str, cycle_id: str, deleted_at: datetime) -> bool:
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE cycles SET deleted_at = ? WHERE user_id = ? AND id = ? AND deleted_at IS NULL",
                (deleted_at.isoformat(), user_id, cycle_id),
            )
        return cur.rowcount > 0

    def list_cycles(
        self: DbProtocol,
        user_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Cycle]:
        conditions = ["user_id = ?", "deleted_at IS NULL"]
        params: list[Any] = [user_id]
        if start is not None:
            conditions.append("date >= ?")
            params.append(start.isoformat())
        if end is not None:
            conditions.append("date < ?")
            params.append(end.isoformat())

        query = f"SELECT * FROM cycles WHERE {' AND '.join(conditions)} ORDER BY created_at, id"
        try:
            with self._connect() as conn:
                rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"cycle read failed for user {user_id}") from exc
        return [cycle_from_row(_row_dict(r)) for r in rows]
