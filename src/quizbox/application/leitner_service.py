"""
Leitner System — Application layer owner of the card map.

Runs answers through the LeitnerScheduler, answers due-card and per-level
queries, and reconciles imported cards under a LeitnerMergePolicy.
Every mutation is followed by a persist through the card SnapshotStore.
"""

import copy
import logging
from collections.abc import Iterable
from datetime import date, datetime

from quizbox.domain.cards import CardEntity, CardKey, Difficulty, LeitnerMergePolicy
from quizbox.domain.constants import MAX_BOX, MIN_BOX
from quizbox.domain.errors import InvalidInputError
from quizbox.domain.ports import ContentRepository, SnapshotStore
from quizbox.domain.snapshots import BackupHandle, CardSnapshot

from .scheduler import LeitnerScheduler

logger = logging.getLogger(__name__)


def choose_card(
    existing: CardEntity, incoming: CardEntity, policy: LeitnerMergePolicy
) -> CardEntity:
    """
    Resolve a conflict between a local and an imported card.

    Returns whichever of the two should be kept. Full ties keep *existing*.
    """
    policy = LeitnerMergePolicy(policy)
    if policy == LeitnerMergePolicy.PREFER_EXISTING:
        return existing
    if policy == LeitnerMergePolicy.PREFER_INCOMING:
        return incoming
    if policy == LeitnerMergePolicy.PREFER_HIGHER_LEVEL:
        if incoming.box != existing.box:
            return incoming if incoming.box > existing.box else existing
        if incoming.total_correct > existing.total_correct:
            return incoming
        return existing

    # PREFER_NEWER: a missing timestamp always loses
    if incoming.last_reviewed is None:
        return existing
    if existing.last_reviewed is None:
        return incoming
    return incoming if incoming.last_reviewed > existing.last_reviewed else existing


class LeitnerSystem:
    """
    Owns every CardEntity, keyed by (theme, title).

    The content repository is optional; without one, orphan checks are
    skipped and every incoming card is accepted.
    """

    def __init__(
        self,
        store: SnapshotStore[CardSnapshot],
        scheduler: LeitnerScheduler | None = None,
        content: ContentRepository | None = None,
    ):
        self.store = store
        self.scheduler = scheduler or LeitnerScheduler()
        self.content = content
        self._state = CardSnapshot()

    def load(self) -> None:
        self._state = self.store.load()
        logger.debug(f"[leitner] Loaded {len(self._state.cards)} cards")

    @property
    def cards(self) -> dict[CardKey, CardEntity]:
        return self._state.cards

    @property
    def total_reviews(self) -> int:
        return self._state.total_reviews

    def get_card(self, theme: str, title: str) -> CardEntity | None:
        return self._state.cards.get(CardKey(theme, title))

    def process_result(
        self,
        theme: str,
        title: str,
        is_correct: bool,
        response_time_ms: float = 0.0,
        now: datetime | None = None,
    ) -> CardEntity:
        """Apply one answer, creating the card on first sight, then persist."""
        key = CardKey(theme, title)
        card = self.scheduler.apply(
            self._state.cards.get(key),
            is_correct,
            response_time_ms,
            theme=theme,
            title=title,
            now=now,
        )
        self._state.cards[key] = card
        self._state.total_reviews += 1
        logger.debug(
            f"[leitner] {key} -> box {card.box}, next review {card.next_review_date.isoformat()}"
        )
        self.persist()
        return card

    def set_difficulty(self, theme: str, title: str, difficulty: Difficulty) -> CardEntity:
        card = self.get_card(theme, title)
        if card is None:
            raise InvalidInputError(f"No card for {theme}:{title}")
        self.scheduler.set_difficulty(card, difficulty)
        self.persist()
        return card

    # ---------- Queries ----------

    def cards_for_theme(self, theme: str) -> list[CardEntity]:
        return [c for c in self._state.cards.values() if c.theme == theme]

    def due_cards(self, today: date | None = None, theme: str | None = None) -> list[CardEntity]:
        """Due cards, highest priority first."""
        today = today or self.scheduler.clock().date()
        due = [
            c
            for c in self._state.cards.values()
            if c.is_due(today) and (theme is None or c.theme == theme)
        ]
        due.sort(key=lambda c: (-c.priority(today), c.theme, c.title))
        return due

    def due_count(self, today: date | None = None, theme: str | None = None) -> int:
        return len(self.due_cards(today, theme))

    def level_distribution(self, theme: str | None = None) -> dict[int, int]:
        counts = dict.fromkeys(range(MIN_BOX, MAX_BOX + 1), 0)
        for card in self._state.cards.values():
            if theme is None or card.theme == theme:
                counts[card.box] += 1
        return counts

    def due_count_by_level(self, today: date | None = None) -> dict[int, int]:
        counts = dict.fromkeys(range(MIN_BOX, MAX_BOX + 1), 0)
        for card in self.due_cards(today):
            counts[card.box] += 1
        return counts

    def mastered_count(self) -> int:
        return sum(1 for c in self._state.cards.values() if self.scheduler.is_mastered(c))

    # ---------- Maintenance ----------

    def merge_cards(
        self,
        incoming: Iterable[CardEntity],
        policy: LeitnerMergePolicy = LeitnerMergePolicy.PREFER_HIGHER_LEVEL,
    ) -> tuple[int, int]:
        """
        Merge imported cards into the local map.

        Returns:
            (added, updated). A card counts as updated only when the incoming
            version wins and differs from the local one.
        """
        added = updated = 0
        for card in incoming:
            if self.content is not None and not self.content.question_exists(
                card.theme, card.title
            ):
                logger.debug(f"[leitner] Skipping orphan incoming card {card.key}")
                continue

            existing = self._state.cards.get(card.key)
            if existing is None:
                self._state.cards[card.key] = copy.deepcopy(card)
                added += 1
                continue

            winner = choose_card(existing, card, policy)
            if winner is not existing and winner != existing:
                self._state.cards[card.key] = copy.deepcopy(winner)
                updated += 1

        if added or updated:
            self.persist()
        return added, updated

    def remove_card(self, theme: str, title: str) -> bool:
        removed = self._state.cards.pop(CardKey(theme, title), None) is not None
        if removed:
            self.persist()
        return removed

    def remove_theme(self, theme: str) -> int:
        keys = [key for key, card in self._state.cards.items() if card.theme == theme]
        for key in keys:
            del self._state.cards[key]
        if keys:
            self.persist()
        return len(keys)

    def prune_orphans(self) -> int:
        """Drop cards whose question no longer exists in the content repository."""
        if self.content is None:
            return 0
        orphans = [
            key
            for key, card in self._state.cards.items()
            if not self.content.question_exists(card.theme, card.title)
        ]
        for key in orphans:
            del self._state.cards[key]
        if orphans:
            logger.info(f"[leitner] Pruned {len(orphans)} orphan cards")
            self.persist()
        return len(orphans)

    def reset(self) -> None:
        self._state = CardSnapshot()
        self.persist()

    # ---------- Persistence ----------

    def snapshot(self) -> CardSnapshot:
        return copy.deepcopy(self._state)

    def persist(self) -> bool:
        return self.store.persist(self._state)

    def backup(self, label: str) -> BackupHandle | None:
        return self.store.backup(label)
