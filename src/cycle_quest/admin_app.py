from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from cycle_quest.config import load_settings
from cycle_quest.db import Database
from cycle_quest.db_converters import profile_to_dict
from cycle_quest.gamification import level_progress
from cycle_quest.logging_setup import setup_logging
from cycle_quest.messages import achievement_display
from cycle_quest.models import ActiveQuest, Cycle, UserContext
from cycle_quest.service import GamificationService, RefreshOutcome, service_from_settings
from cycle_quest.store import StoreError
from cycle_quest.time_utils import is_known_tz, now_local


def _require_auth(request: Request, token: str | None) -> None:
    if not token:
        return
    header = request.headers.get("x-admin-token")
    query = request.query_params.get("token")
    if header == token or query == token:
        return
    raise HTTPException(status_code=401, detail="Unauthorized")


class RefreshRequest(BaseModel):
    email: str | None = None
    plan: str | None = Field(default=None, pattern="^(free|pro)$")
    tz: str | None = None

    @field_validator("tz")
    @classmethod
    def check_zone(cls, value: str | None) -> str | None:
        if value is not None and not is_known_tz(value):
            raise ValueError(f"unknown time zone: {value}")
        return value


class CycleCreateRequest(BaseModel):
    day: date
    deposit: float = 0
    withdrawal: float = 0
    chest: float = 0
    platform: str = ""
    tags: list[str] = Field(default_factory=list)
    notes: str = ""


def _quest_payload(quest: ActiveQuest) -> dict[str, Any]:
    return {
        "id": quest.id,
        "title": quest.title,
        "frequency": quest.frequency,
        "metric": quest.metric,
        "target": quest.target,
        "reward_xp": quest.reward_xp,
        "current_value": quest.current_value,
        "is_completed": quest.is_completed,
        "generated_at": quest.generated_at.isoformat(),
        "expires_at": quest.expires_at.isoformat(),
    }


def _cycle_payload(cycle: Cycle) -> dict[str, Any]:
    data = asdict(cycle)
    data["date"] = cycle.date.isoformat()
    data["tags"] = list(cycle.tags)
    data["created_at"] = cycle.created_at.isoformat() if cycle.created_at else None
    data["deleted_at"] = cycle.deleted_at.isoformat() if cycle.deleted_at else None
    return data


def _outcome_payload(user: UserContext, outcome: RefreshOutcome) -> dict[str, Any]:
    progress = level_progress(outcome.profile.total_xp)
    return {
        "user_id": user.user_id,
        "profile": profile_to_dict(outcome.profile),
        "level": asdict(progress),
        "quests": [_quest_payload(q) for q in outcome.quests],
        "achievements": [asdict(achievement_display(a)) for a in outcome.achievements],
    }


def build_admin_app(service: GamificationService, db: Database, admin_token: str | None) -> FastAPI:
    app = FastAPI(title="Cycle Quest Admin", version="1.0.0")

    def _user_or_404(user_id: str) -> UserContext:
        user = db.get_user(user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True}

    @app.get("/users")
    async def api_users(request: Request) -> dict[str, Any]:
        _require_auth(request, admin_token)
        return {"users": [asdict(u) for u in db.list_users()]}

    @app.get("/users/{user_id}/gamification")
    async def api_gamification(user_id: str, request: Request) -> dict[str, Any]:
        _require_auth(request, admin_token)
        user = _user_or_404(user_id)
        try:
            outcome = service.snapshot(user)
        except StoreError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return _outcome_payload(user, outcome)

    @app.post("/users/{user_id}/refresh")
    async def api_refresh(user_id: str, request: Request, payload: RefreshRequest | None = None) -> dict[str, Any]:
        _require_auth(request, admin_token)
        known = db.get_user(user_id)
        if payload is not None or known is None:
            body = payload or RefreshRequest()
            db.upsert_user(
                user_id,
                email=body.email if body.email is not None else (known.email if known else ""),
                plan=body.plan or (known.plan if known else "free"),
                seen_at=datetime.now().astimezone(),
                tz=body.tz or (known.tz if known else None),
            )
        user = _user_or_404(user_id)
        outcome = service.refresh(user)
        data = _outcome_payload(user, outcome)
        data.update(
            {
                "new_unlocks": [a.id for a in outcome.new_unlocks],
                "completed_quests": [q.id for q in outcome.completed_quests],
                "xp_gained": outcome.xp_gained,
                "level_up": outcome.level_up,
                "notifications": outcome.notifications,
                "persisted": outcome.persisted,
            }
        )
        return data

    @app.get("/users/{user_id}/cycles")
    async def api_cycles(user_id: str, request: Request) -> dict[str, Any]:
        _require_auth(request, admin_token)
        _user_or_404(user_id)
        return {"cycles": [_cycle_payload(c) for c in db.list_cycles(user_id)]}

    @app.post("/users/{user_id}/cycles")
    async def api_add_cycle(user_id: str, request: Request, payload: CycleCreateRequest) -> dict[str, Any]:
        _require_auth(request, admin_token)
        user = _user_or_404(user_id)
        cycle = db.add_cycle(
            user_id,
            payload.day,
            deposit=payload.deposit,
            withdrawal=payload.withdrawal,
            chest=payload.chest,
            created_at=now_local(user.tz or service.tz),
            platform=payload.platform,
            tags=payload.tags,
            notes=payload.notes,
        )
        return {"ok": True, "cycle": _cycle_payload(cycle)}

    @app.delete("/users/{user_id}/cycles/{cycle_id}")
    async def api_delete_cycle(user_id: str, cycle_id: str, request: Request) -> dict[str, Any]:
        _require_auth(request, admin_token)
        _user_or_404(user_id)
        if not db.soft_delete_cycle(user_id, cycle_id, datetime.now().astimezone()):
            raise HTTPException(status_code=404, detail="Cycle not found")
        return {"ok": True}

    @app.post("/users/{user_id}/wipe")
    async def api_wipe(user_id: str, request: Request) -> dict[str, Any]:
        _require_auth(request, admin_token)
        _user_or_404(user_id)
        db.wipe_gamification(user_id)
        return {"ok": True}

    return app


def run_admin() -> None:
    setup_logging()
    settings = load_settings()
    db = Database(settings.database_path)
    service = service_from_settings(settings, db)
    app = build_admin_app(service, db, settings.admin_panel_token)
    uvicorn.run(app, host=settings.admin_host, port=settings.admin_port)
