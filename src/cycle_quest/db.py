from __future__ import annotations

from cycle_quest.db_repo import BaseDatabase, CycleMixin, GamificationMixin, UserMixin


class Database(
    UserMixin,
    CycleMixin,
    GamificationMixin,
    BaseDatabase,
):
    pass
