from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from quizbox.application.leitner_service import LeitnerSystem, choose_card
from quizbox.application.scheduler import LeitnerScheduler
from quizbox.domain.cards import CardEntity, CardKey, Difficulty, LeitnerMergePolicy
from quizbox.domain.errors import InvalidInputError

NOW = datetime(2025, 3, 10, 9, 0, 0)


@pytest.fixture
def content():
    repo = MagicMock()
    repo.question_exists.side_effect = lambda theme, title: (theme, title) != ("Old", "gone")
    return repo


@pytest.fixture
def leitner(card_store, content):
    system = LeitnerSystem(card_store, LeitnerScheduler(clock=lambda: NOW), content=content)
    system.load()
    return system


def card(theme="Bio", title="Cell", **kwargs):
    return CardEntity(theme=theme, title=title, **kwargs)


class TestChooseCard:
    def test_prefer_existing_and_incoming(self):
        local, other = card(box=3), card(box=5)
        assert choose_card(local, other, LeitnerMergePolicy.PREFER_EXISTING) is local
        assert choose_card(local, other, LeitnerMergePolicy.PREFER_INCOMING) is other

    def test_higher_level_wins(self):
        local, other = card(box=3), card(box=5)
        assert choose_card(local, other, LeitnerMergePolicy.PREFER_HIGHER_LEVEL) is other
        assert choose_card(other, local, LeitnerMergePolicy.PREFER_HIGHER_LEVEL) is other

    def test_higher_level_tie_breaks_on_total_correct(self):
        local = card(box=4, total_attempts=5, total_correct=2)
        other = card(box=4, total_attempts=5, total_correct=4)
        assert choose_card(local, other, LeitnerMergePolicy.PREFER_HIGHER_LEVEL) is other

    def test_higher_level_full_tie_keeps_existing(self):
        local, other = card(box=4), card(box=4)
        assert choose_card(local, other, LeitnerMergePolicy.PREFER_HIGHER_LEVEL) is local

    def test_newer_review_wins_and_missing_timestamp_loses(self):
        older = card(last_reviewed=NOW - timedelta(days=2))
        newer = card(last_reviewed=NOW)
        never = card()
        assert choose_card(older, newer, LeitnerMergePolicy.PREFER_NEWER) is newer
        assert choose_card(newer, older, LeitnerMergePolicy.PREFER_NEWER) is newer
        assert choose_card(never, older, LeitnerMergePolicy.PREFER_NEWER) is older
        assert choose_card(older, never, LeitnerMergePolicy.PREFER_NEWER) is older
        assert choose_card(newer, card(last_reviewed=NOW), LeitnerMergePolicy.PREFER_NEWER) is newer


def test_process_result_creates_and_persists(leitner, card_store):
    result = leitner.process_result("Math", "2+2", True, 900)
    assert result.box == 1
    assert leitner.total_reviews == 1

    reloaded = card_store.load()
    assert reloaded.cards[result.key] == result
    assert reloaded.total_reviews == 1


def test_due_cards_sorted_by_priority(leitner):
    today = date(2025, 3, 10)
    leitner.cards[CardKey("T", "fresh")] = card("T", "fresh", box=1, next_review_date=today)
    leitner.cards[CardKey("T", "late")] = card("T", "late", box=4, next_review_date=today - timedelta(days=20))
    leitner.cards[CardKey("T", "later")] = card("T", "later", box=2, next_review_date=today + timedelta(days=1))
    leitner.cards[CardKey("U", "other")] = card("U", "other", box=3, next_review_date=today)

    due = leitner.due_cards(today)
    assert [c.title for c in due] == ["late", "fresh", "other"]
    assert [c.title for c in leitner.due_cards(today, theme="U")] == ["other"]
    assert leitner.due_count(today) == 3


def test_level_distribution_and_due_by_level(leitner):
    today = date(2025, 3, 10)
    for i, box in enumerate([1, 1, 3, 6]):
        c = card("T", f"q{i}", box=box, next_review_date=today)
        leitner.cards[c.key] = c
    leitner.cards[CardKey("T", "future")] = card(
        "T", "future", box=3, next_review_date=today + timedelta(days=3)
    )

    assert leitner.level_distribution() == {1: 2, 2: 0, 3: 2, 4: 0, 5: 0, 6: 1}
    assert leitner.due_count_by_level(today) == {1: 2, 2: 0, 3: 1, 4: 0, 5: 0, 6: 1}
    assert len(leitner.cards_for_theme("T")) == 5


def test_merge_cards_counts_added_and_updated(leitner):
    leitner.cards[CardKey("Bio", "Cell")] = card(box=3)
    incoming = [card(box=5), card("Bio", "DNA", box=2)]

    added, updated = leitner.merge_cards(incoming, LeitnerMergePolicy.PREFER_HIGHER_LEVEL)
    assert (added, updated) == (1, 1)
    assert leitner.get_card("Bio", "Cell").box == 5

    # Replaying the same import changes nothing
    assert leitner.merge_cards(incoming, LeitnerMergePolicy.PREFER_HIGHER_LEVEL) == (0, 0)


def test_merge_cards_prefer_existing_keeps_local(leitner):
    leitner.cards[CardKey("Bio", "Cell")] = card(box=3)
    assert leitner.merge_cards([card(box=5)], LeitnerMergePolicy.PREFER_EXISTING) == (0, 0)
    assert leitner.get_card("Bio", "Cell").box == 3


def test_merge_cards_skips_orphans(leitner):
    added, _ = leitner.merge_cards([card("Old", "gone", box=6)])
    assert added == 0
    assert leitner.get_card("Old", "gone") is None


def test_merged_cards_are_copies(leitner):
    incoming = card(box=2)
    leitner.merge_cards([incoming])
    incoming.box = 6
    assert leitner.get_card("Bio", "Cell").box == 2


def test_prune_orphans(leitner):
    leitner.cards[CardKey("Old", "gone")] = card("Old", "gone")
    leitner.cards[CardKey("Bio", "Cell")] = card()
    assert leitner.prune_orphans() == 1
    assert list(leitner.cards) == [CardKey("Bio", "Cell")]


def test_remove_card_and_theme(leitner):
    leitner.cards[CardKey("Bio", "Cell")] = card()
    leitner.cards[CardKey("Bio", "DNA")] = card("Bio", "DNA")
    leitner.cards[CardKey("Math", "2+2")] = card("Math", "2+2")

    assert leitner.remove_card("Math", "2+2")
    assert not leitner.remove_card("Math", "2+2")
    assert leitner.remove_theme("Bio") == 2
    assert leitner.cards == {}


def test_set_difficulty_unknown_card_raises(leitner):
    with pytest.raises(InvalidInputError):
        leitner.set_difficulty("Math", "nope", Difficulty.HARD)


def test_mastered_count_and_reset(leitner, card_store):
    leitner.cards[CardKey("T", "a")] = card("T", "a", box=6, consecutive_correct=2)
    leitner.cards[CardKey("T", "b")] = card("T", "b", box=6)
    assert leitner.mastered_count() == 1

    leitner.reset()
    assert leitner.cards == {}
    assert card_store.load().cards == {}
