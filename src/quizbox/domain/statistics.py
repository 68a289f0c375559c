"""
Domain models for learning statistics.

These are pure data structures with no I/O.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class QuizResult:
    """
    One answered question.

    Attributes:
        theme: Theme of the question.
        question_title: Title of the question.
        is_correct: Whether the answer was right.
        answer_time_ms: Time spent answering.
        user_answer: Answer text the learner picked.
        correct_answer: Expected answer text.
        timestamp: When the answer was given.
    """

    theme: str
    question_title: str
    is_correct: bool
    answer_time_ms: int = 0
    user_answer: str = ""
    correct_answer: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def dedupe_key(self) -> tuple[str, str, datetime]:
        return (self.theme, self.question_title, self.timestamp)


@dataclass
class QuestionStatistics:
    """Counters for one question."""

    theme: str
    question_title: str
    total_attempts: int = 0
    correct_attempts: int = 0
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    last_attempt: datetime | None = None
    level: int = 1

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.correct_attempts / self.total_attempts


@dataclass
class ThemeStatistics:
    """Counters for one theme."""

    theme: str
    total_questions: int = 0
    total_attempts: int = 0
    correct_attempts: int = 0
    last_played: datetime | None = None

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.correct_attempts / self.total_attempts
