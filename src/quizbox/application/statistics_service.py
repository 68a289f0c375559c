"""
Statistics Service — Application layer owner of learning statistics.

Keeps per-question and per-theme counters plus the log of individual quiz
results, and merges imported statistics with result de-duplication.
"""

import copy
import logging
from datetime import datetime

from quizbox.domain.cards import CardKey
from quizbox.domain.ports import SnapshotStore
from quizbox.domain.snapshots import BackupHandle, StatisticsSnapshot
from quizbox.domain.statistics import QuestionStatistics, QuizResult, ThemeStatistics

logger = logging.getLogger(__name__)


def _latest(a: datetime | None, b: datetime | None) -> datetime | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


class StatisticsService:
    def __init__(self, store: SnapshotStore[StatisticsSnapshot]):
        self.store = store
        self._state = StatisticsSnapshot()

    def load(self) -> None:
        self._state = self.store.load()
        logger.debug(f"[stats] Loaded {len(self._state.results)} quiz results")

    # ---------- Recording ----------

    def record_result(self, result: QuizResult, level: int | None = None) -> QuestionStatistics:
        """
        Add one answer to the result log and update its counters.

        Args:
            result: The answered question.
            level: Leitner box of the card after the answer, if known.
        """
        key = CardKey(result.theme, result.question_title)
        stats = self._state.question_stats.get(key)
        if stats is None:
            stats = QuestionStatistics(theme=result.theme, question_title=result.question_title)
            self._state.question_stats[key] = stats

        stats.total_attempts += 1
        if result.is_correct:
            stats.correct_attempts += 1
            stats.consecutive_correct += 1
            stats.consecutive_wrong = 0
        else:
            stats.consecutive_wrong += 1
            stats.consecutive_correct = 0
        stats.last_attempt = _latest(stats.last_attempt, result.timestamp)
        if level is not None:
            stats.level = level

        theme = self._theme_entry(result.theme)
        theme.total_attempts += 1
        if result.is_correct:
            theme.correct_attempts += 1
        theme.last_played = _latest(theme.last_played, result.timestamp)
        theme.total_questions = sum(
            1 for k in self._state.question_stats if k.theme == result.theme
        )

        self._state.results.append(result)
        self.persist()
        return stats

    def _theme_entry(self, name: str) -> ThemeStatistics:
        entry = self._state.theme_stats.get(name)
        if entry is None:
            entry = ThemeStatistics(theme=name)
            self._state.theme_stats[name] = entry
        return entry

    # ---------- Queries ----------

    def question_stats(self, theme: str, title: str) -> QuestionStatistics | None:
        return self._state.question_stats.get(CardKey(theme, title))

    def theme_stats(self, theme: str) -> ThemeStatistics | None:
        return self._state.theme_stats.get(theme)

    def all_theme_stats(self) -> list[ThemeStatistics]:
        return list(self._state.theme_stats.values())

    def results(self, theme: str | None = None) -> list[QuizResult]:
        if theme is None:
            return list(self._state.results)
        return [r for r in self._state.results if r.theme == theme]

    def total_attempts(self) -> int:
        return sum(t.total_attempts for t in self._state.theme_stats.values())

    def overall_success_rate(self) -> float:
        attempts = self.total_attempts()
        if attempts == 0:
            return 0.0
        return sum(t.correct_attempts for t in self._state.theme_stats.values()) / attempts

    def current_streak(self) -> int:
        """Correct answers in a row at the end of the result log."""
        streak = 0
        for result in reversed(self._state.results):
            if not result.is_correct:
                break
            streak += 1
        return streak

    # ---------- Merge ----------

    def merge_data(self, incoming: StatisticsSnapshot) -> tuple[int, int, int]:
        """
        Merge imported statistics into the local ones.

        Counters are summed; streaks, levels and last-seen timestamps take
        the maximum. Results already present (same theme, title and
        timestamp) are not added again.

        Returns:
            (question entries merged, theme entries merged, results added)
        """
        for key, other in incoming.question_stats.items():
            local = self._state.question_stats.get(key)
            if local is None:
                self._state.question_stats[key] = copy.deepcopy(other)
                continue
            local.total_attempts += other.total_attempts
            local.correct_attempts += other.correct_attempts
            local.consecutive_correct = max(local.consecutive_correct, other.consecutive_correct)
            local.consecutive_wrong = max(local.consecutive_wrong, other.consecutive_wrong)
            local.last_attempt = _latest(local.last_attempt, other.last_attempt)
            local.level = max(local.level, other.level)

        for name, other in incoming.theme_stats.items():
            local = self._state.theme_stats.get(name)
            if local is None:
                self._state.theme_stats[name] = copy.deepcopy(other)
                continue
            local.total_attempts += other.total_attempts
            local.correct_attempts += other.correct_attempts
            local.total_questions = max(local.total_questions, other.total_questions)
            local.last_played = _latest(local.last_played, other.last_played)

        seen = {r.dedupe_key for r in self._state.results}
        added = 0
        for result in incoming.results:
            if result.dedupe_key in seen:
                continue
            seen.add(result.dedupe_key)
            self._state.results.append(result)
            added += 1
        if added:
            self._state.results.sort(key=lambda r: r.timestamp)

        merged = (len(incoming.question_stats), len(incoming.theme_stats), added)
        if any(merged):
            self.persist()
        return merged

    def reset(self) -> None:
        self._state = StatisticsSnapshot()
        self.persist()

    # ---------- Persistence ----------

    def snapshot(self) -> StatisticsSnapshot:
        return copy.deepcopy(self._state)

    def persist(self) -> bool:
        return self.store.persist(self._state)

    def backup(self, label: str) -> BackupHandle | None:
        return self.store.backup(label)
