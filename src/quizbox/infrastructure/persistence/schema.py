"""
Pydantic records for the current (version 2) snapshot schema.

Field names mirror the domain dataclasses so records can be built with
``model_validate(obj, from_attributes=True)``. Validators repair values
that would break a domain invariant instead of rejecting the whole file.
"""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from quizbox.domain.cards import Difficulty
from quizbox.domain.constants import MAX_BOX, MIN_BOX


def _to_local_naive(v: datetime | None) -> datetime | None:
    """Offset-carrying timestamps become naive local time, like every locally produced one."""
    if v is None or v.tzinfo is None:
        return v
    return v.astimezone().replace(tzinfo=None)


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SnapshotEnvelope(_Record):
    format: str
    version: int
    created_at: datetime | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    naive_created_at = field_validator("created_at")(_to_local_naive)


# ---------- Leitner cards ----------


class CardRecord(_Record):
    theme: str = Field(min_length=1)
    title: str = Field(min_length=1)
    box: int = MIN_BOX
    difficulty: Difficulty = Difficulty.NORMAL
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    total_attempts: int = 0
    total_correct: int = 0
    average_response_time_ms: float = 0.0
    last_reviewed: datetime | None = None
    next_review_date: date = Field(default_factory=date.today)
    created_at: datetime = Field(default_factory=datetime.now)

    naive_times = field_validator("last_reviewed", "created_at")(_to_local_naive)

    @field_validator("box")
    @classmethod
    def clamp_box(cls, v: int) -> int:
        return max(MIN_BOX, min(MAX_BOX, v))

    @field_validator(
        "consecutive_correct",
        "consecutive_wrong",
        "total_attempts",
        "total_correct",
        "average_response_time_ms",
    )
    @classmethod
    def non_negative(cls, v):
        return max(0, v)

    @model_validator(mode="after")
    def cap_total_correct(self) -> "CardRecord":
        if self.total_correct > self.total_attempts:
            self.total_correct = self.total_attempts
        return self


class CardSnapshotPayload(_Record):
    total_reviews: int = 0
    cards: list[CardRecord] = Field(default_factory=list)


# ---------- Questions / themes ----------


class QuestionRecord(_Record):
    title: str = Field(min_length=1)
    text: str = ""
    answers: list[str] = Field(default_factory=list)
    correct: list[bool] = Field(default_factory=list)
    explanation: str = ""
    created_at: datetime = Field(default_factory=datetime.now)

    naive_created_at = field_validator("created_at")(_to_local_naive)


class ThemeRecord(_Record):
    name: str = Field(min_length=1)
    description: str = ""
    questions: list[QuestionRecord] = Field(default_factory=list)


class ContentSnapshotPayload(_Record):
    themes: list[ThemeRecord] = Field(default_factory=list)


# ---------- Statistics ----------


class QuestionStatsRecord(_Record):
    theme: str = Field(min_length=1)
    question_title: str = Field(min_length=1)
    total_attempts: int = 0
    correct_attempts: int = 0
    consecutive_correct: int = 0
    consecutive_wrong: int = 0
    last_attempt: datetime | None = None
    level: int = MIN_BOX

    naive_last_attempt = field_validator("last_attempt")(_to_local_naive)

    @field_validator("level")
    @classmethod
    def clamp_level(cls, v: int) -> int:
        return max(MIN_BOX, min(MAX_BOX, v))


class ThemeStatsRecord(_Record):
    theme: str = Field(min_length=1)
    total_questions: int = 0
    total_attempts: int = 0
    correct_attempts: int = 0
    last_played: datetime | None = None

    naive_last_played = field_validator("last_played")(_to_local_naive)


class QuizResultRecord(_Record):
    theme: str
    question_title: str
    is_correct: bool = False
    answer_time_ms: int = 0
    user_answer: str = ""
    correct_answer: str = ""
    timestamp: datetime

    naive_timestamp = field_validator("timestamp")(_to_local_naive)


class StatisticsSnapshotPayload(_Record):
    question_stats: list[QuestionStatsRecord] = Field(default_factory=list)
    theme_stats: list[ThemeStatsRecord] = Field(default_factory=list)
    results: list[QuizResultRecord] = Field(default_factory=list)


# ---------- Achievements ----------


class AchievementSnapshotPayload(_Record):
    # Keyed by achievement name; unknown names are dropped by the codec.
    unlocked: dict[str, datetime] = Field(default_factory=dict)

    @field_validator("unlocked")
    @classmethod
    def naive_unlock_times(cls, v: dict[str, datetime]) -> dict[str, datetime]:
        return {name: _to_local_naive(when) for name, when in v.items()}
