"""Achievements Service — unlock rules and the unlocked set with timestamps."""

import copy
import logging
from datetime import datetime

from quizbox.domain.achievements import Achievement
from quizbox.domain.cards import CardEntity
from quizbox.domain.constants import (
    MAX_BOX,
    QUESTION_COUNT_ACHIEVEMENT,
    STREAK_ACHIEVEMENT_LENGTH,
)
from quizbox.domain.ports import SnapshotStore
from quizbox.domain.snapshots import AchievementSnapshot, BackupHandle

logger = logging.getLogger(__name__)


class AchievementsService:
    def __init__(self, store: SnapshotStore[AchievementSnapshot]):
        self.store = store
        self._state = AchievementSnapshot()

    def load(self) -> None:
        self._state = self.store.load()

    def is_unlocked(self, achievement: Achievement) -> bool:
        return achievement in self._state.unlocked

    def unlocked_at(self, achievement: Achievement) -> datetime | None:
        return self._state.unlocked.get(achievement)

    def unlocked(self) -> dict[Achievement, datetime]:
        return dict(self._state.unlocked)

    def unlock(self, achievement: Achievement, when: datetime | None = None) -> bool:
        """Unlock *achievement*. Returns False if it was already unlocked."""
        if achievement in self._state.unlocked:
            return False
        self._state.unlocked[achievement] = when or datetime.now()
        logger.info(f"[achievements] Unlocked {achievement.value}")
        self.persist()
        return True

    def evaluate_answer(
        self,
        is_correct: bool,
        card: CardEntity,
        streak: int,
        now: datetime | None = None,
    ) -> list[Achievement]:
        """Apply the answer-driven rules. Returns the newly unlocked achievements."""
        candidates = [Achievement.FIRST_LEITNER_REVIEW]
        if is_correct:
            candidates.append(Achievement.FIRST_CORRECT_ANSWER)
        if streak >= STREAK_ACHIEVEMENT_LENGTH:
            candidates.append(Achievement.TEN_CORRECT_IN_A_ROW)
        if card.box == MAX_BOX:
            candidates.append(Achievement.LEITNER_LEVEL6_ACHIEVED)
        return [a for a in candidates if self.unlock(a, now)]

    def evaluate_content(
        self, theme_count: int, question_count: int, now: datetime | None = None
    ) -> list[Achievement]:
        """Apply the content-driven rules. Returns the newly unlocked achievements."""
        candidates = []
        if theme_count >= 1:
            candidates.append(Achievement.FIRST_THEME_CREATED)
        if question_count >= QUESTION_COUNT_ACHIEVEMENT:
            candidates.append(Achievement.TEN_QUESTIONS_CREATED)
        return [a for a in candidates if self.unlock(a, now)]

    def merge(self, incoming: AchievementSnapshot) -> int:
        """
        Union with imported achievements; the earlier unlock time wins.

        Returns:
            Number of achievements that were not unlocked locally before.
        """
        added = 0
        changed = False
        for achievement, when in incoming.unlocked.items():
            local = self._state.unlocked.get(achievement)
            if local is None:
                self._state.unlocked[achievement] = when
                added += 1
                changed = True
            elif when < local:
                self._state.unlocked[achievement] = when
                changed = True
        if changed:
            self.persist()
        return added

    def reset(self) -> None:
        self._state = AchievementSnapshot()
        self.persist()

    def snapshot(self) -> AchievementSnapshot:
        return copy.deepcopy(self._state)

    def persist(self) -> bool:
        return self.store.persist(self._state)

    def backup(self, label: str) -> BackupHandle | None:
        return self.store.backup(label)
