from datetime import datetime, timedelta

import pytest

from quizbox.application.achievements_service import AchievementsService
from quizbox.domain.achievements import Achievement
from quizbox.domain.cards import CardEntity
from quizbox.domain.snapshots import AchievementSnapshot

T0 = datetime(2025, 3, 1, 12, 0, 0)


@pytest.fixture
def achievements(achievement_store):
    service = AchievementsService(achievement_store)
    service.load()
    return service


def test_unlock_only_once(achievements):
    assert achievements.unlock(Achievement.FIRST_CORRECT_ANSWER, T0)
    assert not achievements.unlock(Achievement.FIRST_CORRECT_ANSWER, T0 + timedelta(days=1))
    assert achievements.unlocked_at(Achievement.FIRST_CORRECT_ANSWER) == T0


def test_unlocks_are_persisted(achievements, achievement_store):
    achievements.unlock(Achievement.FIRST_THEME_CREATED, T0)
    reloaded = AchievementsService(achievement_store)
    reloaded.load()
    assert reloaded.unlocked() == {Achievement.FIRST_THEME_CREATED: T0}


def test_evaluate_answer_rules(achievements):
    card = CardEntity(theme="T", title="q", box=2)
    assert achievements.evaluate_answer(False, card, 0, T0) == [Achievement.FIRST_LEITNER_REVIEW]
    assert achievements.evaluate_answer(True, card, 1, T0) == [Achievement.FIRST_CORRECT_ANSWER]

    card.box = 6
    unlocked = achievements.evaluate_answer(True, card, 10, T0)
    assert set(unlocked) == {Achievement.TEN_CORRECT_IN_A_ROW, Achievement.LEITNER_LEVEL6_ACHIEVED}


def test_evaluate_content_rules(achievements):
    assert achievements.evaluate_content(0, 0, T0) == []
    assert achievements.evaluate_content(1, 9, T0) == [Achievement.FIRST_THEME_CREATED]
    assert achievements.evaluate_content(2, 10, T0) == [Achievement.TEN_QUESTIONS_CREATED]


def test_merge_earliest_unlock_wins(achievements):
    achievements.unlock(Achievement.FIRST_CORRECT_ANSWER, T0)
    achievements.unlock(Achievement.FIRST_THEME_CREATED, T0)

    incoming = AchievementSnapshot(
        unlocked={
            Achievement.FIRST_CORRECT_ANSWER: T0 - timedelta(days=3),
            Achievement.FIRST_THEME_CREATED: T0 + timedelta(days=3),
            Achievement.FIRST_LEITNER_REVIEW: T0,
        }
    )
    assert achievements.merge(incoming) == 1
    assert achievements.unlocked_at(Achievement.FIRST_CORRECT_ANSWER) == T0 - timedelta(days=3)
    assert achievements.unlocked_at(Achievement.FIRST_THEME_CREATED) == T0
    assert achievements.is_unlocked(Achievement.FIRST_LEITNER_REVIEW)

    assert achievements.merge(incoming) == 0
