"""
Leitner scheduler: the spaced-repetition rules for a single card.

This is a pure computation module with no I/O. Given a card, an answer
outcome and a clock it returns the card with its box, streaks, counters and
next review date updated. There is no randomness, so the same inputs always
produce the same schedule.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from quizbox.domain.cards import CardEntity, Difficulty
from quizbox.domain.constants import BOX_INTERVALS, MAX_BOX, MIN_BOX, PROMOTION_THRESHOLDS
from quizbox.domain.errors import InvalidInputError


class LeitnerScheduler:
    """
    Six-box Leitner scheduler with difficulty-tuned promotion.

    Stateless apart from its tuning tables and clock.
    """

    def __init__(
        self,
        intervals: dict[int, tuple[int, int]] | None = None,
        promotion_thresholds: dict[str, int] | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.intervals = intervals or BOX_INTERVALS
        self.promotion_thresholds = promotion_thresholds or PROMOTION_THRESHOLDS
        self.clock = clock

    def apply(
        self,
        card: CardEntity | None,
        is_correct: bool,
        response_time_ms: float = 0.0,
        *,
        theme: str | None = None,
        title: str | None = None,
        now: datetime | None = None,
    ) -> CardEntity:
        """
        Record one answer on *card* and reschedule it.

        Args:
            card: The card to update, or None for a first-seen question.
            is_correct: Whether the answer was right.
            response_time_ms: Time taken to answer; negative values count as 0.
            theme: Theme of a first-seen question (required when card is None).
            title: Title of a first-seen question (required when card is None).
            now: Review time; defaults to the scheduler clock.

        Returns:
            The same card object, mutated (or the newly created card).
        """
        now = now or self.clock()
        if card is None:
            if not theme or not title:
                raise InvalidInputError("A new card needs a theme and a title")
            card = CardEntity(theme=theme, title=title, created_at=now)

        card.box = _clamp_box(card.box)
        response_time_ms = max(0.0, float(response_time_ms))

        card.total_attempts += 1
        card.average_response_time_ms += (
            response_time_ms - card.average_response_time_ms
        ) / card.total_attempts

        if is_correct:
            card.total_correct += 1
            card.consecutive_correct += 1
            card.consecutive_wrong = 0
            if card.box < MAX_BOX and card.consecutive_correct >= self.promotion_threshold(
                card.difficulty
            ):
                card.box += 1
                # The streak restarts for the next box
                card.consecutive_correct = 0
        else:
            card.consecutive_wrong += 1
            card.consecutive_correct = 0
            card.box = max(MIN_BOX, card.box - 1)

        card.last_reviewed = now
        card.next_review_date = now.date() + timedelta(
            days=self.interval_days(card.box, card.difficulty)
        )
        return card

    def interval_days(self, box: int, difficulty: Difficulty) -> int:
        """
        Days until the next review for a card in *box*.

        HARD picks the lower bound of the box's range (more frequent review),
        EASY the upper bound, NORMAL the floored midpoint.
        """
        low, high = self.intervals[_clamp_box(box)]
        if difficulty == Difficulty.HARD:
            return low
        if difficulty == Difficulty.EASY:
            return high
        return (low + high) // 2

    def promotion_threshold(self, difficulty: Difficulty) -> int:
        return self.promotion_thresholds[Difficulty(difficulty).value]

    def is_mastered(self, card: CardEntity) -> bool:
        return card.box == MAX_BOX and card.consecutive_correct >= self.promotion_threshold(
            card.difficulty
        )

    def set_difficulty(self, card: CardEntity, difficulty: Difficulty) -> CardEntity:
        """Change a card's difficulty and reschedule it from its last review."""
        card.difficulty = Difficulty(difficulty)
        if card.last_reviewed is not None:
            card.next_review_date = card.last_reviewed.date() + timedelta(
                days=self.interval_days(card.box, card.difficulty)
            )
        return card


def _clamp_box(box: int) -> int:
    try:
        box = int(box)
    except (TypeError, ValueError):
        return MIN_BOX
    return max(MIN_BOX, min(MAX_BOX, box))
