from __future__ import annotations

from dataclasses import dataclass

from cycle_quest.gamification import LevelProgress
from cycle_quest.models import Achievement, ActiveQuest

SECRET_TITLE = "???"
SECRET_DESCRIPTION = "Secret achievement. Keep playing to reveal it."
SECRET_ICON = "lock"


@dataclass(frozen=True)
class AchievementDisplay:
    id: str
    title: str
    description: str
    icon: str
    color: str
    is_unlocked: bool
    progress: float


def _bar(percent: float, width: int = 20) -> str:
    ratio = max(0.0, min(1.0, percent / 100))
    filled = int(round(ratio * width))
    return "█" * filled + "░" * (width - filled)


def achievement_unlocked_message(achievement: Achievement) -> str:
    return f"🏆 Achievement unlocked: {achievement.title} (+{achievement.reward_xp} XP)"


def quest_completed_message(quest: ActiveQuest) -> str:
    return f"✅ {quest.frequency.capitalize()} quest complete: {quest.title} (+{quest.reward_xp} XP)"


def level_up_message(level: int, title: str) -> str:
    return f"⬆️ Level up! You reached Level {level} — {title}"


def achievement_display(achievement: Achievement) -> AchievementDisplay:
    """Secret achievements stay masked until unlocked."""
    if achievement.is_secret and not achievement.is_unlocked:
        return AchievementDisplay(
            id=achievement.id,
            title=SECRET_TITLE,
            description=SECRET_DESCRIPTION,
            icon=SECRET_ICON,
            color=achievement.color,
            is_unlocked=False,
            progress=0.0,
        )
    return AchievementDisplay(
        id=achievement.id,
        title=achievement.title,
        description=achievement.description,
        icon=achievement.icon,
        color=achievement.color,
        is_unlocked=achievement.is_unlocked,
        progress=achievement.progress,
    )


def level_summary(progress: LevelProgress, total_xp: int) -> str:
    return "\n".join(
        [
            f"⚡ Level {progress.level} — {progress.title}",
            f"📊 XP: {total_xp:,} / {progress.next_level_xp:,} ({progress.remaining_to_next:,} to Level {progress.level + 1})",
            f"{_bar(progress.progress_percent)} {progress.progress_percent:.1f}%",
        ]
    )
