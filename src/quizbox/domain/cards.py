"""
Domain models for Leitner cards.

These are pure data structures with no I/O. The scheduling rules that
mutate them live in quizbox.application.scheduler.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import NamedTuple

from .constants import DIFFICULTY_PRIORITY_WEIGHT, MAX_BOX, OVERDUE_DAY_WEIGHT
from .errors import InvalidInputError


class Difficulty(str, Enum):
    """Per-card difficulty. Tunes promotion speed and interval placement."""

    EASY = "EASY"
    NORMAL = "NORMAL"
    HARD = "HARD"

    @property
    def rank(self) -> int:
        return list(Difficulty).index(self)


class LeitnerMergePolicy(str, Enum):
    """Conflict rule for a card present both locally and in an import."""

    PREFER_EXISTING = "PREFER_EXISTING"
    PREFER_INCOMING = "PREFER_INCOMING"
    PREFER_HIGHER_LEVEL = "PREFER_HIGHER_LEVEL"
    PREFER_NEWER = "PREFER_NEWER"


class CardKey(NamedTuple):
    """Identity of a card: (theme name, question title), case-sensitive."""

    theme: str
    title: str

    def __str__(self) -> str:
        return f"{self.theme}:{self.title}"


@dataclass
class CardEntity:
    """
    Scheduling state for one quiz question.

    Attributes:
        theme: Owning theme name.
        title: Question title within the theme.
        box: Leitner box, 1 (new/weak) to 6 (long intervals).
        difficulty: Promotion speed and interval placement.
        consecutive_correct: Current correct streak (reset on promotion).
        consecutive_wrong: Current wrong streak.
        total_attempts: All answers ever recorded.
        total_correct: Correct answers ever recorded.
        average_response_time_ms: Running mean of answer times.
        last_reviewed: Time of the last answer, None for a fresh card.
        next_review_date: First day the card is due again.
        created_at: When the card was first created.
    """

    theme: str
    title: str
    box: int = 1
    difficulty: Difficulty = Difficulty.NORMAL
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    total_attempts: int = 0
    total_correct: int = 0
    average_response_time_ms: float = 0.0
    last_reviewed: datetime | None = None
    next_review_date: date = field(default_factory=date.today)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not self.theme or not self.title:
            raise InvalidInputError("A card needs a non-empty theme and title")

    @property
    def key(self) -> CardKey:
        return CardKey(self.theme, self.title)

    @property
    def level(self) -> int:
        return self.box

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.total_correct / self.total_attempts

    def is_due(self, today: date | None = None) -> bool:
        return (today or date.today()) >= self.next_review_date

    def priority(self, today: date | None = None) -> float:
        """Sort weight for due queues; higher means study sooner."""
        today = today or date.today()
        value = float(MAX_BOX + 1 - self.box)

        days_overdue = (today - self.next_review_date).days
        if days_overdue > 0:
            value += days_overdue * OVERDUE_DAY_WEIGHT

        value += self.difficulty.rank * DIFFICULTY_PRIORITY_WEIGHT
        return value
