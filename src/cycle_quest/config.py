from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from cycle_quest.time_utils import DEFAULT_TZ, resolve_tz
from cycle_quest.tuning import load_engine_tuning

STORE_BACKENDS = ("sqlite", "rest")


@dataclass(frozen=True)
class Settings:
    database_path: Path
    tz: str
    store_backend: str
    rest_url: str | None
    rest_api_key: str | None
    rest_timeout_seconds: float
    tuning_path: Path
    admin_panel_token: str | None
    admin_host: str
    admin_port: int
    log_level: str
    engine_tuning: dict[str, int] = field(default_factory=dict)


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        raw = line.strip()
        if not raw or raw.startswith("#") or "=" not in raw:
            continue
        key, value = raw.split("=", maxsplit=1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def load_settings(env_file: Path = Path(".env")) -> Settings:
    _load_env_file(env_file)

    backend = os.getenv("STORE_BACKEND", "sqlite").strip().lower()
    if backend not in STORE_BACKENDS:
        raise RuntimeError(f"STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, got {backend!r}")
    rest_url = os.getenv("REST_URL") or None
    if backend == "rest" and not rest_url:
        raise RuntimeError("REST_URL is required when STORE_BACKEND=rest")

    tuning_path = Path(os.getenv("GAMIFICATION_TUNING", "./gamification.yaml"))
    return Settings(
        database_path=Path(os.getenv("DATABASE_PATH", "./data/app.db")),
        tz=resolve_tz(os.getenv("TZ"), DEFAULT_TZ),
        store_backend=backend,
        rest_url=rest_url,
        rest_api_key=os.getenv("REST_API_KEY") or None,
        rest_timeout_seconds=_parse_float(os.getenv("REST_TIMEOUT_SECONDS"), 15.0),
        tuning_path=tuning_path,
        admin_panel_token=os.getenv("ADMIN_PANEL_TOKEN") or None,
        admin_host=os.getenv("ADMIN_HOST", "127.0.0.1"),
        admin_port=_parse_int(os.getenv("ADMIN_PORT"), 8080),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        engine_tuning=load_engine_tuning(tuning_path),
    )
