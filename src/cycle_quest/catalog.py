from __future__ import annotations

from cycle_quest.models import Achievement, QuestTemplate

DAILY_QUESTS: tuple[QuestTemplate, ...] = (
    QuestTemplate("d_start", "Warm-up", "Log at least 1 cycle.", "daily", "easy", "volume", 1, 50, "sword"),
    QuestTemplate("d_vol_5", "Hands On", "Complete 5 cycles today.", "daily", "medium", "volume", 5, 100, "zap"),
    QuestTemplate("d_vol_10", "Hard Work", "Log 10 cycles today.", "daily", "hard", "volume", 10, 200, "fire"),
    QuestTemplate("d_green", "Green Day", "Finish the day in profit.", "daily", "medium", "profit", 1, 150, "target"),
    QuestTemplate("d_profit_100", "Centurion", "Profit 100 today.", "daily", "medium", "profit", 100, 120, "banknote"),
    QuestTemplate("d_profit_500", "Goal Hit", "Reach 500 profit today.", "daily", "hard", "profit", 500, 300, "star"),
    QuestTemplate(
        "d_no_tilt", "Zero Tilt", "No single loss worse than 100 today.",
        "daily", "medium", "discipline", 1, 150, "shield", variant="no_tilt",
    ),
    QuestTemplate("d_tags", "Organized", "Tag 3 cycles.", "daily", "easy", "tags", 3, 80, "star"),
    QuestTemplate(
        "d_morning", "Morning Trader", "Log 2 cycles before noon.",
        "daily", "easy", "time", 2, 70, "clock", variant="morning",
    ),
    QuestTemplate(
        "d_night", "Night Shift", "Log 2 cycles after 8 PM.",
        "daily", "easy", "time", 2, 70, "clock", variant="night",
    ),
    QuestTemplate("d_streak_3", "Hat-Trick", "3 wins in a row today.", "daily", "hard", "streak", 3, 250, "zap"),
    QuestTemplate(
        "d_pro_sniper", "Elite Sniper (PRO)", "5 cycles today without a single loss.",
        "daily", "pro", "streak", 5, 500, "target", is_pro=True,
    ),
    QuestTemplate(
        "d_pro_grind", "Pro Grinder (PRO)", "20 cycles in a single day.",
        "daily", "pro", "volume", 20, 400, "sword", is_pro=True,
    ),
)

WEEKLY_QUESTS: tuple[QuestTemplate, ...] = (
    QuestTemplate(
        "w_active_4", "Showing Up", "Trade on 4 different days this week.",
        "weekly", "medium", "consistency", 4, 400, "clock",
    ),
    QuestTemplate(
        "w_profit_1k", "Weekly Salary", "Accumulate 1,000 profit this week.",
        "weekly", "hard", "profit", 1000, 600, "banknote",
    ),
    QuestTemplate("w_vol_50", "High Volume", "50 cycles this week.", "weekly", "hard", "volume", 50, 500, "fire"),
    QuestTemplate("w_tags_master", "Analyst", "Tag 20 cycles.", "weekly", "medium", "tags", 20, 300, "star"),
    QuestTemplate(
        "w_no_red_day", "Unbeaten Week", "No negative day this week (min 3 days).",
        "weekly", "hard", "discipline", 1, 1000, "shield", variant="no_red_day", min_days=3,
    ),
    QuestTemplate(
        "w_pro_whale", "Whale (PRO)", "5,000 profit this week.",
        "weekly", "pro", "profit", 5000, 2000, "star", is_pro=True,
    ),
)

MONTHLY_QUESTS: tuple[QuestTemplate, ...] = (
    QuestTemplate(
        "m_marathon", "Marathoner", "15 trading days this month.",
        "monthly", "medium", "consistency", 15, 1500, "clock",
    ),
    QuestTemplate(
        "m_volume_200", "Elite Operator", "200 cycles this month.",
        "monthly", "hard", "volume", 200, 2000, "sword",
    ),
    QuestTemplate(
        "m_profit_goal", "Hit the Goal", "Close the month in profit.",
        "monthly", "hard", "profit", 1, 2500, "target",
    ),
    QuestTemplate(
        "m_pro_legend", "Living Legend (PRO)", "A month without negative days (min 15 days).",
        "monthly", "pro", "discipline", 1, 5000, "star", is_pro=True, variant="no_red_day", min_days=15,
    ),
)

ALL_QUEST_TEMPLATES: tuple[QuestTemplate, ...] = DAILY_QUESTS + WEEKLY_QUESTS + MONTHLY_QUESTS

TEMPLATES_BY_ID: dict[str, QuestTemplate] = {t.id: t for t in ALL_QUEST_TEMPLATES}


ACHIEVEMENTS: tuple[Achievement, ...] = (
    # basics
    Achievement("ach_start", "First Step", "Log your first cycle.", "target", "primary", 50, "first_cycle"),
    Achievement("ach_win", "First Green", "Book your first profit.", "zap", "profit", 100, "first_win"),
    # volume
    Achievement("ach_vol_10", "Beginner", "10 cycles logged.", "rocket", "primary", 100, "volume", 10),
    Achievement("ach_vol_50", "Veteran", "50 cycles logged.", "rocket", "primary", 300, "volume", 50),
    Achievement("ach_vol_100", "Centurion", "100 cycles logged.", "rocket", "gold", 500, "volume", 100),
    Achievement("ach_vol_500", "Click Master", "500 cycles logged.", "crown", "purple", 1000, "volume", 500),
    Achievement("ach_vol_1000", "Legend", "1000 cycles logged.", "rocket", "purple", 5000, "volume", 1000),
    # profit
    Achievement("ach_prof_1k", "First K", "Total profit of 1,000.", "banknote", "profit", 200, "profit", 1000),
    Achievement("ach_prof_10k", "High Roller", "Total profit of 10,000.", "gem", "gold", 1000, "profit", 10000),
    Achievement("ach_prof_50k", "Whale", "Total profit of 50,000.", "crown", "purple", 2500, "profit", 50000),
    # day streaks
    Achievement("ach_str_3", "In the Flow", "Trade 3 days in a row.", "zap", "primary", 150, "day_streak", 3),
    Achievement("ach_str_7", "Consistent", "Trade 7 days in a row.", "zap", "gold", 400, "day_streak", 7),
    Achievement("ach_str_30", "Iron Discipline", "Trade 30 days in a row.", "zap", "purple", 2000, "day_streak", 30),
    # specifics
    Achievement("ach_sniper", "Laser Sight", "10 cycles in a row without a loss.", "target", "gold", 500, "win_streak", 10),
    Achievement("ach_chest", "Chest Hunter", "5,000 earned from bonuses alone.", "star", "primary", 600, "chest", 5000),
    # secrets
    Achievement(
        "sec_comeback", "The Phoenix", "Recover from a 500 daily drawdown.",
        "ghost", "gold", 1000, "comeback", is_secret=True,
    ),
    Achievement(
        "sec_insomniac", "Vampire", "Trade 5 nights in a row between midnight and 4 AM.",
        "ghost", "purple", 800, "night_owl", is_secret=True,
    ),
    Achievement(
        "sec_perfect", "Hand of God", "A perfect week: 7 profitable days (min 50 cycles).",
        "crown", "purple", 5000, "perfect_week", is_secret=True,
    ),
)

ACHIEVEMENTS_BY_ID: dict[str, Achievement] = {a.id: a for a in ACHIEVEMENTS}


def templates_for(frequency: str) -> list[QuestTemplate]:
    return [t for t in ALL_QUEST_TEMPLATES if t.frequency == frequency]
