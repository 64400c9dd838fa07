from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

FREQUENCIES = ("daily", "weekly", "monthly")
DIFFICULTIES = ("easy", "medium", "hard", "pro")
QUEST_METRICS = ("profit", "volume", "streak", "consistency", "discipline", "tags", "time")

DEFAULT_TITLE = "Rookie"


@dataclass(frozen=True)
class Cycle:
    id: str
    date: date
    deposit: float
    withdrawal: float
    chest: float
    profit: float
    platform: str = ""
    tags: tuple[str, ...] = ()
    notes: str = ""
    created_at: datetime | None = None
    deleted_at: datetime | None = None


@dataclass(frozen=True)
class UserContext:
    user_id: str
    email: str = ""
    plan: str = "free"
    tz: str | None = None

    @property
    def is_pro(self) -> bool:
        return self.plan == "pro"

    @property
    def seed_identifier(self) -> str:
        return self.email or self.user_id


@dataclass(frozen=True)
class QuestTemplate:
    id: str
    title: str
    description: str
    frequency: str
    difficulty: str
    metric: str
    target: float
    reward_xp: int
    icon: str
    is_pro: bool = False
    variant: str | None = None
    min_days: int = 0


@dataclass(frozen=True)
class ActiveQuest:
    template: QuestTemplate
    generated_at: date
    expires_at: date
    current_value: float = 0
    is_completed: bool = False

    @property
    def id(self) -> str:
        return self.template.id

    @property
    def frequency(self) -> str:
        return self.template.frequency

    @property
    def metric(self) -> str:
        return self.template.metric

    @property
    def target(self) -> float:
        return self.template.target

    @property
    def reward_xp(self) -> int:
        return self.template.reward_xp

    @property
    def title(self) -> str:
        return self.template.title


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    icon: str
    color: str
    reward_xp: int
    metric: str
    target: float | None = None
    is_secret: bool = False
    is_unlocked: bool = False
    unlocked_at: datetime | None = None
    progress: float = 0.0
    current_value: float = 0.0


@dataclass(frozen=True)
class GamificationProfile:
    level: int = 1
    current_xp: int = 0
    next_level_xp: int = 100
    total_xp: int = 0
    streak_days: int = 0
    last_active_date: date | None = None
    titles: tuple[str, ...] = (DEFAULT_TITLE,)
    equipped_title: str = DEFAULT_TITLE


@dataclass(frozen=True)
class GamificationState:
    profile: GamificationProfile = field(default_factory=GamificationProfile)
    quests: tuple[ActiveQuest, ...] = ()
    unlocks: dict[str, datetime] = field(default_factory=dict)
