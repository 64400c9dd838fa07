from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path


class BaseDatabase:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
                """
            )
            current = {row["version"] for row in conn.execute("SELECT version FROM schema_migrations")}

            migrations: dict[int, str] = {
                1: """
                    CREATE TABLE users (
                        user_id TEXT PRIMARY KEY,
                        email TEXT NOT NULL DEFAULT '',
                        plan TEXT NOT NULL DEFAULT 'free',
                        tz TEXT,
                        last_seen_at TEXT NOT NULL
                    );

                    CREATE TABLE cycles (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        user_id TEXT NOT NULL,
                        date TEXT NOT NULL,
                        deposit REAL NOT NULL DEFAULT 0,
                        withdrawal REAL NOT NULL DEFAULT 0,
                        chest REAL NOT NULL DEFAULT 0,
                        profit REAL,
                        platform TEXT NOT NULL DEFAULT '',
                        tags_json TEXT NOT NULL DEFAULT '[]',
                        notes TEXT NOT NULL DEFAULT '',
                        created_at TEXT NOT NULL,
                        deleted_at TEXT
                    );

                    CREATE INDEX idx_cycles_user_date ON cycles(user_id, date);
                    CREATE INDEX idx_cycles_user_deleted ON cycles(user_id, deleted_at);
                """,
                2: """
                    CREATE TABLE gamification_profiles (
                        user_id TEXT PRIMARY KEY,
                        profile_json TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    );

                    CREATE TABLE quests (
                        user_id TEXT NOT NULL,
                        template_id TEXT NOT NULL,
                        generated_at TEXT NOT NULL,
                        frequency TEXT NOT NULL,
                        expires_at TEXT NOT NULL,
                        progress REAL NOT NULL DEFAULT 0,
                        target REAL NOT NULL DEFAULT 0,
                        is_completed INTEGER NOT NULL DEFAULT 0,
                        updated_at TEXT NOT NULL,
                        PRIMARY KEY(user_id, template_id, generated_at)
                    );

                    CREATE TABLE achievement_unlocks (
                        user_id TEXT NOT NULL,
                        achievement_id TEXT NOT NULL,
                        unlocked_at TEXT NOT NULL,
                        PRIMARY KEY(user_id, achievement_id)
                    );
                """,
            }

            for version in sorted(migrations):
                if version in current:
                    continue
                conn.executescript(migrations[version])
                conn.execute(
                    "INSERT INTO schema_migrations(version, applied_at) VALUES (?, ?)",
                    (version, datetime.now().isoformat()),
                )
