from __future__ import annotations

from cycle_quest.catalog import ACHIEVEMENTS, ALL_QUEST_TEMPLATES, TEMPLATES_BY_ID, templates_for
from cycle_quest.models import DIFFICULTIES, FREQUENCIES, QUEST_METRICS


def test_template_ids_are_unique() -> None:
    assert len(TEMPLATES_BY_ID) == len(ALL_QUEST_TEMPLATES)
    assert len({a.id for a in ACHIEVEMENTS}) == len(ACHIEVEMENTS)


def test_templates_use_known_vocabulary() -> None:
    for template in ALL_QUEST_TEMPLATES:
        assert template.frequency in FREQUENCIES
        assert template.difficulty in DIFFICULTIES
        assert template.metric in QUEST_METRICS
        assert template.target > 0
        assert template.reward_xp > 0
        assert template.is_pro == (template.difficulty == "pro")


def test_every_frequency_has_free_templates() -> None:
    for frequency in FREQUENCIES:
        pool = templates_for(frequency)
        assert [t for t in pool if not t.is_pro]


def test_secret_achievements_have_no_threshold() -> None:
    for achievement in ACHIEVEMENTS:
        if achievement.is_secret:
            assert achievement.target is None
        assert achievement.reward_xp > 0
