from __future__ import annotations

from pathlib import Path

import pytest

from cycle_quest.config import load_settings
from cycle_quest.tuning import DEFAULT_ENGINE_TUNING, effective_tuning, load_engine_tuning, quest_count

ENV_KEYS = (
    "DATABASE_PATH",
    "TZ",
    "STORE_BACKEND",
    "REST_URL",
    "REST_API_KEY",
    "REST_TIMEOUT_SECONDS",
    "GAMIFICATION_TUNING",
    "ADMIN_PANEL_TOKEN",
    "ADMIN_HOST",
    "ADMIN_PORT",
    "LOG_LEVEL",
)


def _clear_env(monkeypatch, cwd: Path) -> None:
    monkeypatch.chdir(cwd)
    # setenv first so teardown also removes values loaded from a .env file
    for key in ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_missing_tuning_file_uses_defaults(tmp_path: Path) -> None:
    assert load_engine_tuning(tmp_path / "missing.yaml") == DEFAULT_ENGINE_TUNING


def test_tuning_file_overrides_known_keys(tmp_path: Path) -> None:
    path = tmp_path / "gamification.yaml"
    path.write_text("engine:\n  quest_count_daily: 5\n  night_from_hour: 'x'\n  unknown_key: 3\n")
    cfg = load_engine_tuning(path)
    assert cfg["quest_count_daily"] == 5
    assert cfg["night_from_hour"] == DEFAULT_ENGINE_TUNING["night_from_hour"]
    assert "unknown_key" not in cfg


def test_flat_tuning_file(tmp_path: Path) -> None:
    path = tmp_path / "gamification.yaml"
    path.write_text("quest_count_monthly: 1\n")
    assert quest_count("monthly", load_engine_tuning(path)) == 1


def test_effective_tuning_merges_over_defaults() -> None:
    cfg = effective_tuning({"severe_loss_threshold": -50})
    assert cfg["severe_loss_threshold"] == -50
    assert cfg["quest_count_daily"] == 3
    assert quest_count("yearly") == 0


def test_settings_defaults(tmp_path: Path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    settings = load_settings(env_file=tmp_path / ".env")
    assert settings.database_path == Path("./data/app.db")
    assert settings.tz == "America/Sao_Paulo"
    assert settings.store_backend == "sqlite"
    assert settings.admin_port == 8080
    assert settings.rest_timeout_seconds == 15.0
    assert settings.engine_tuning == DEFAULT_ENGINE_TUNING


def test_settings_from_env_file(tmp_path: Path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    (tmp_path / ".env").write_text(
        "# comment\n"
        "STORE_BACKEND=rest\n"
        "REST_URL='https://api.example.test'\n"
        "ADMIN_PORT=not-a-number\n"
        "LOG_LEVEL=debug\n"
    )
    monkeypatch.setenv("ADMIN_HOST", "0.0.0.0")
    settings = load_settings(env_file=tmp_path / ".env")
    assert settings.store_backend == "rest"
    assert settings.rest_url == "https://api.example.test"
    assert settings.admin_port == 8080
    assert settings.admin_host == "0.0.0.0"
    assert settings.log_level == "DEBUG"


def test_rest_backend_requires_url(tmp_path: Path, monkeypatch) -> None:
    _clear_env(monkeypatch, tmp_path)
    monkeypatch.setenv("STORE_BACKEND", "rest")
    with pytest.raises(RuntimeError):
        load_settings(env_file=tmp_path / ".env")
