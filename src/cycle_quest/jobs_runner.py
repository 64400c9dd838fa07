from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from cycle_quest.config import Settings
from cycle_quest.db import Database
from cycle_quest.service import GamificationService, service_from_settings
from cycle_quest.store import UserDirectory
from cycle_quest.time_utils import now_local

logger = logging.getLogger(__name__)

JOB_NAMES = ("refresh_all",)


@dataclass(frozen=True)
class RefreshSummary:
    users: int
    persisted: int
    failed: int
    unlocks: int
    level_ups: int


def refresh_all(users_dir: UserDirectory, service: GamificationService, now: datetime | None = None) -> RefreshSummary:
    users = users_dir.list_users()
    persisted = failed = unlocks = level_ups = 0
    for user in users:
        try:
            outcome = service.refresh(user, now=now)
        except Exception:
            logger.exception("refresh failed user_id=%s", user.user_id)
            failed += 1
            continue
        if outcome.persisted:
            persisted += 1
        else:
            failed += 1
        unlocks += len(outcome.new_unlocks)
        level_ups += int(outcome.level_up)
        for note in outcome.notifications:
            logger.info("user_id=%s %s", user.user_id, note)
    return RefreshSummary(
        users=len(users),
        persisted=persisted,
        failed=failed,
        unlocks=unlocks,
        level_ups=level_ups,
    )


def run_job(job_name: str, db: Database, settings: Settings) -> None:
    if job_name == "refresh_all":
        service = service_from_settings(settings, db)
        summary = refresh_all(db, service, now=now_local(settings.tz))
        logger.info(
            "refresh_all completed: users=%s persisted=%s failed=%s unlocks=%s level_ups=%s",
            summary.users,
            summary.persisted,
            summary.failed,
            summary.unlocks,
            summary.level_ups,
        )
    else:
        raise SystemExit(f"Unknown job '{job_name}'. Expected one of: {', '.join(JOB_NAMES)}")
