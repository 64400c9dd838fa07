from __future__ import annotations

import logging
import threading
import weakref
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from cycle_quest.achievements import evaluate_achievements
from cycle_quest.config import Settings
from cycle_quest.db import Database
from cycle_quest.db_converters import (
    achievements_with_unlocks,
    active_cycles,
    unlocks_from_achievements,
)
from cycle_quest.gamification import build_profile, get_title, total_experience
from cycle_quest.messages import achievement_unlocked_message, level_up_message, quest_completed_message
from cycle_quest.models import (
    FREQUENCIES,
    Achievement,
    ActiveQuest,
    Cycle,
    GamificationProfile,
    GamificationState,
    UserContext,
)
from cycle_quest.quests import current_quests, evaluate_quests, generate_quests
from cycle_quest.rest_store import RestStore
from cycle_quest.store import CycleReader, GamificationStore, StoreError
from cycle_quest.time_utils import DEFAULT_TZ, now_local, resolve_tz, to_local

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshOutcome:
    state: GamificationState
    quests: list[ActiveQuest]
    achievements: list[Achievement]
    new_unlocks: list[Achievement] = field(default_factory=list)
    completed_quests: list[ActiveQuest] = field(default_factory=list)
    xp_gained: int = 0
    level_up: bool = False
    notifications: list[str] = field(default_factory=list)
    persisted: bool = True

    @property
    def profile(self) -> GamificationProfile:
        return self.state.profile


def _quest_key(quest: ActiveQuest) -> tuple[str, date]:
    return quest.id, quest.generated_at


def merge_quests(history: tuple[ActiveQuest, ...], updated: list[ActiveQuest]) -> tuple[ActiveQuest, ...]:
    """Replace stored quests by their re-evaluated versions, keeping the rest as history."""
    fresh = {_quest_key(q): q for q in updated}
    merged = [fresh.pop(_quest_key(q), q) for q in history]
    merged.extend(q for q in updated if _quest_key(q) in fresh)
    return tuple(merged)


class GamificationService:
    def __init__(
        self,
        store: GamificationStore,
        reader: CycleReader,
        tuning: dict[str, int] | None = None,
        tz: str = DEFAULT_TZ,
    ) -> None:
        self.store = store
        self.reader = reader
        self.tuning = tuning
        self.tz = tz
        # Entries vanish once no pass holds the lock.
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    def _tz_name(self, user: UserContext) -> str:
        return resolve_tz(user.tz, fallback=self.tz)

    def _now(self, user: UserContext, now: datetime | None) -> datetime:
        tz_name = self._tz_name(user)
        if now is None:
            return now_local(tz_name)
        return to_local(now, tz_name)

    def snapshot(self, user: UserContext, now: datetime | None = None) -> RefreshOutcome:
        """Stored state as-is, without evaluating anything."""
        today = self._now(user, now).date()
        state = self.store.load_state(user.user_id)
        return RefreshOutcome(
            state=state,
            quests=current_quests(state.quests, today),
            achievements=achievements_with_unlocks(state.unlocks),
        )

    def refresh(self, user: UserContext, now: datetime | None = None) -> RefreshOutcome:
        """Run one evaluation pass for ``user`` and persist the result when it changed.

        Passes for the same user are serialized; different users run concurrently.
        """
        local_user = replace(user, tz=self._tz_name(user))
        with self._user_lock(user.user_id):
            return self._refresh_locked(local_user, self._now(local_user, now))

    def _refresh_locked(self, user: UserContext, now: datetime) -> RefreshOutcome:
        today = now.date()
        can_save = True

        try:
            previous = self.store.load_state(user.user_id)
        except StoreError:
            logger.exception("gamification load failed user_id=%s; evaluating from defaults", user.user_id)
            previous = GamificationState()
            can_save = False

        cycles: list[Cycle]
        try:
            cycles = active_cycles(self.reader.list_cycles(user.user_id))
        except StoreError:
            logger.exception("cycle read failed user_id=%s; evaluating with no history", user.user_id)
            cycles = []
            can_save = False

        window_quests: list[ActiveQuest] = []
        for frequency in FREQUENCIES:
            window_quests.extend(
                generate_quests(user, frequency, previous.quests, today=today, tuning=self.tuning)
            )

        quest_eval = evaluate_quests(window_quests, cycles, user, today=today, tuning=self.tuning)
        ach_eval = evaluate_achievements(
            achievements_with_unlocks(previous.unlocks),
            cycles,
            now=now,
            tuning=self.tuning,
            tz_name=user.tz,
        )

        all_quests = merge_quests(previous.quests, quest_eval.quests)
        # Stored totals never shrink, so levels never go down.
        total_xp = max(total_experience(all_quests, ach_eval.achievements), previous.profile.total_xp)
        profile = build_profile(previous.profile, total_xp, cycles, today)
        state = GamificationState(
            profile=profile,
            quests=all_quests,
            unlocks=unlocks_from_achievements(ach_eval.achievements),
        )

        was_completed = {_quest_key(q) for q in window_quests if q.is_completed}
        completed = [q for q in quest_eval.quests if q.is_completed and _quest_key(q) not in was_completed]
        level_up = profile.level > previous.profile.level

        notifications = [achievement_unlocked_message(a) for a in ach_eval.new_unlocks]
        notifications.extend(quest_completed_message(q) for q in completed)
        if level_up:
            notifications.append(level_up_message(profile.level, get_title(profile.level)))

        persisted = can_save
        if can_save and state != previous:
            try:
                self.store.save_state(user.user_id, state)
            except StoreError:
                logger.exception("gamification save failed user_id=%s; will retry next pass", user.user_id)
                persisted = False
            else:
                logger.info(
                    "saved gamification user_id=%s level=%s xp=%s unlocks=%s completed=%s",
                    user.user_id,
                    profile.level,
                    profile.total_xp,
                    len(ach_eval.new_unlocks),
                    len(completed),
                )

        return RefreshOutcome(
            state=state,
            quests=quest_eval.quests,
            achievements=ach_eval.achievements,
            new_unlocks=ach_eval.new_unlocks,
            completed_quests=completed,
            xp_gained=quest_eval.xp_gained + sum(a.reward_xp for a in ach_eval.new_unlocks),
            level_up=level_up,
            notifications=notifications,
            persisted=persisted,
        )


def service_from_settings(settings: Settings, db: Database) -> GamificationService:
    """Wire the configured backend. The sqlite database always serves as the user registry."""
    if settings.store_backend == "rest":
        rest = RestStore(
            base_url=settings.rest_url or "",
            api_key=settings.rest_api_key,
            timeout=settings.rest_timeout_seconds,
        )
        return GamificationService(rest, rest, tuning=settings.engine_tuning, tz=settings.tz)
    return GamificationService(db, db, tuning=settings.engine_tuning, tz=settings.tz)
