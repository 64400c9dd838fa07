from __future__ import annotations

from datetime import date
from typing import Protocol

from cycle_quest.models import Cycle, GamificationState, UserContext


class StoreError(Exception):
    """Raised by persistence adapters when a read or write cannot be completed."""


class CycleReader(Protocol):
    def list_cycles(self, user_id: str, start: date | None = None, end: date | None = None) -> list[Cycle]: ...


class GamificationStore(Protocol):
    def load_state(self, user_id: str) -> GamificationState: ...
    def save_state(self, user_id: str, state: GamificationState) -> None: ...


class UserDirectory(Protocol):
    def get_user(self, user_id: str) -> UserContext | None: ...
    def list_users(self) -> list[UserContext]: ...
