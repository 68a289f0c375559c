"""Centralized constants for the quizbox domain.

Scheduler tuning and snapshot schema numbers live here so every layer
imports from a single source of truth.
"""

# ---------- Leitner boxes ----------
MIN_BOX = 1
MAX_BOX = 6

# Review interval range in days per box (inclusive bounds).
BOX_INTERVALS: dict[int, tuple[int, int]] = {
    1: (1, 1),
    2: (2, 3),
    3: (5, 6),
    4: (10, 12),
    5: (20, 25),
    6: (40, 60),
}

# Consecutive correct answers needed to leave a box, keyed by difficulty name.
PROMOTION_THRESHOLDS: dict[str, int] = {
    "EASY": 1,
    "NORMAL": 2,
    "HARD": 3,
}

# ---------- Due-queue priority ----------
OVERDUE_DAY_WEIGHT = 0.5
DIFFICULTY_PRIORITY_WEIGHT = 0.3

# ---------- Achievements ----------
STREAK_ACHIEVEMENT_LENGTH = 10
QUESTION_COUNT_ACHIEVEMENT = 10

# ---------- Snapshot schema ----------
SCHEMA_VERSION = 2
LEGACY_SCHEMA_VERSION = 1
