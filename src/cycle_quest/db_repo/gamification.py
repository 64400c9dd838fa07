from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Protocol

from cycle_quest.db_converters import (
    hydrate_quests,
    profile_from_dict,
    profile_to_dict,
    quest_to_row,
    unlocks_from_rows,
)
from cycle_quest.models import GamificationState
from cycle_quest.store import StoreError


class DbProtocol(Protocol):
    def _connect(self) -> sqlite3.Connection: ...


class GamificationMixin:
    def load_state(self: DbProtocol, user_id: str) -> GamificationState:
        try:
            with self._connect() as conn:
                profile_row = conn.execute(
                    "SELECT profile_json FROM gamification_profiles WHERE user_id = ?",
                    (user_id,),
                ).fetchone()
                quest_rows = conn.execute(
                    "SELECT * FROM quests WHERE user_id = ? ORDER BY generated_at, rowid",
                    (user_id,),
                ).fetchall()
                unlock_rows = conn.execute(
                    "SELECT achievement_id, unlocked_at FROM achievement_unlocks WHERE user_id = ?",
                    (user_id,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"gamification load failed for user {user_id}") from exc

        profile_data = None
        if profile_row:
            try:
                profile_data = json.loads(str(profile_row["profile_json"]))
            except json.JSONDecodeError:
                profile_data = None

        return GamificationState(
            profile=profile_from_dict(profile_data),
            quests=hydrate_quests(dict(r) for r in quest_rows),
            unlocks=unlocks_from_rows(dict(r) for r in unlock_rows),
        )

    def save_state(self: DbProtocol, user_id: str, state: GamificationState) -> None:
        now = datetime.now(tz=timezone.utc).isoformat()
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO gamification_profiles(user_id, profile_json, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(user_id) DO UPDATE SET
                        profile_json=excluded.profile_json,
                        updated_at=excluded.updated_at
                    """,
                    (user_id, json.dumps(profile_to_dict(state.profile)), now),
                )
                for quest in state.quests:
                    row = quest_to_row(quest)
                    conn.execute(
                        """
                        INSERT INTO quests(
                            user_id, template_id, generated_at, frequency, expires_at,
                            progress, target, is_completed, updated_at
                        )
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(user_id, template_id, generated_at) DO UPDATE SET
                            expires_at=excluded.expires_at,
                            progress=excluded.progress,
                            target=excluded.target,
                            is_completed=excluded.is_completed,
                            updated_at=excluded.updated_at
                        """,
                        (
                            user_id,
                            row["template_id"],
                            row["generated_at"],
                            row["frequency"],
                            row["expires_at"],
                            row["progress"],
                            row["target"],
                            1 if row["is_completed"] else 0,
                            now,
                        ),
                    )
                for ach_id, unlocked_at in state.unlocks.items():
                    # Unlocks are permanent; an existing row keeps its original timestamp.
                    conn.execute(
                        """
                        INSERT OR IGNORE INTO achievement_unlocks(user_id, achievement_id, unlocked_at)
                        VALUES (?, ?, ?)
                        """,
                        (user_id, ach_id, unlocked_at.isoformat()),
                    )
        except sqlite3.Error as exc:
            raise StoreError(f"gamification save failed for user {user_id}") from exc

    def wipe_gamification(self: DbProtocol, user_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM gamification_profiles WHERE user_id = ?", (user_id,))
            conn.execute("DELETE FROM quests WHERE user_id = ?", (user_id,))
            conn.execute("DELETE FROM achievement_unlocks WHERE user_id = ?", (user_id,))
