"""
Point-in-time aggregates written to and read from snapshot files.

A snapshot is owned by the store while it is being written; the store
deep-copies it first, so later mutation of the live service state cannot
leak into a write in progress.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from .achievements import Achievement
from .cards import CardEntity, CardKey
from .content import Theme
from .statistics import QuestionStatistics, QuizResult, ThemeStatistics


@dataclass
class CardSnapshot:
    cards: dict[CardKey, CardEntity] = field(default_factory=dict)
    total_reviews: int = 0
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class ContentSnapshot:
    themes: dict[str, Theme] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class StatisticsSnapshot:
    question_stats: dict[CardKey, QuestionStatistics] = field(default_factory=dict)
    theme_stats: dict[str, ThemeStatistics] = field(default_factory=dict)
    results: list[QuizResult] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass
class AchievementSnapshot:
    unlocked: dict[Achievement, datetime] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class BackupHandle:
    """Location of a backup copy and the file it was taken from."""

    path: Path
    source: Path
    created_at: datetime
