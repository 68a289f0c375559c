"""
Named migrations between snapshot schema versions.

Version 1 is the legacy unversioned record: a bare JSON object with
camelCase keys, cards keyed by "theme:title", four difficulty grades,
answer times in seconds and statistics timestamps in epoch milliseconds.
Each migration extracts what it can field by field and leaves defaults for
the rest; pydantic validation of the upgraded payload does the final check.
"""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from quizbox.domain.constants import SCHEMA_VERSION
from quizbox.domain.errors import CorruptDataError

logger = logging.getLogger(__name__)

Payload = dict[str, Any]

CARDS_FORMAT = "quizbox.leitner"
CONTENT_FORMAT = "quizbox.questions"
STATISTICS_FORMAT = "quizbox.statistics"
ACHIEVEMENTS_FORMAT = "quizbox.achievements"

_LEGACY_DIFFICULTY = {
    "EASY": "EASY",
    "MEDIUM": "NORMAL",
    "NORMAL": "NORMAL",
    "HARD": "HARD",
    "VERY_HARD": "HARD",
}


def _pick(record: dict[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        value = record.get(name)
        if value is not None:
            return value
    return default


def _from_epoch_ms(value: Any) -> str | None:
    """Convert an epoch-millisecond timestamp to ISO text; ISO text passes through."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return None
    try:
        return datetime.fromtimestamp(value / 1000).isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def _as_mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def migrate_cards_v1_to_v2(payload: Payload) -> Payload:
    cards: list[dict[str, Any]] = []
    for key, raw in _as_mapping(payload.get("cards")).items():
        if not isinstance(raw, dict):
            continue
        theme, _, title = str(key).partition(":")
        theme = _pick(raw, "theme", default=theme)
        title = _pick(raw, "questionTitle", "title", default=title)
        if not theme or not title:
            logger.debug(f"[migrate] Dropping legacy card without identity: {key!r}")
            continue

        seconds = _pick(raw, "averageResponseTime", default=0.0)
        avg_ms = _pick(raw, "averageResponseTimeMs")
        if avg_ms is None and isinstance(seconds, (int, float)):
            avg_ms = float(seconds) * 1000.0

        cards.append(
            {
                "theme": theme,
                "title": title,
                "box": _pick(raw, "box", "level", default=1),
                "difficulty": _LEGACY_DIFFICULTY.get(
                    str(_pick(raw, "difficulty", default="NORMAL")).upper(), "NORMAL"
                ),
                "consecutive_correct": _pick(raw, "consecutiveCorrect", default=0),
                "consecutive_wrong": _pick(raw, "consecutiveWrong", default=0),
                "total_attempts": _pick(raw, "totalAttempts", default=0),
                "total_correct": _pick(raw, "totalCorrect", default=0),
                "average_response_time_ms": avg_ms or 0.0,
                "last_reviewed": _pick(raw, "lastReviewed"),
                "next_review_date": _pick(raw, "nextReviewDate"),
                "created_at": _pick(raw, "createdAt"),
            }
        )
    # Drop None values so record defaults apply
    cards = [{k: v for k, v in c.items() if v is not None} for c in cards]
    return {"total_reviews": _pick(payload, "totalReviews", default=0), "cards": cards}


def migrate_questions_v1_to_v2(payload: Payload) -> Payload:
    descriptions = _as_mapping(payload.get("themeDescriptions"))
    by_theme = _as_mapping(payload.get("questionsByTheme"))

    themes: list[dict[str, Any]] = []
    for name in dict.fromkeys([*by_theme.keys(), *descriptions.keys()]):
        questions = []
        for raw in _as_list(by_theme.get(name)):
            if not isinstance(raw, dict):
                continue
            question = {
                "title": _pick(raw, "title"),
                "text": _pick(raw, "questionText", "text", default=""),
                "answers": _pick(raw, "answers", default=[]),
                "correct": _pick(raw, "correctFlags", "correct", default=[]),
                "explanation": _pick(raw, "explanation", default=""),
                "created_at": _pick(raw, "createdAt"),
            }
            if not question["title"]:
                continue
            questions.append({k: v for k, v in question.items() if v is not None})
        themes.append(
            {
                "name": name,
                "description": descriptions.get(name) or "",
                "questions": questions,
            }
        )
    return {"themes": themes}


def migrate_statistics_v1_to_v2(payload: Payload) -> Payload:
    results = []
    theme_by_title: dict[str, str] = {}
    for raw in _as_list(payload.get("allResults")):
        if not isinstance(raw, dict):
            continue
        theme = _pick(raw, "theme", default="")
        title = _pick(raw, "questionTitle", default="")
        timestamp = _from_epoch_ms(_pick(raw, "timestamp"))
        if timestamp is None:
            continue
        if theme and title:
            theme_by_title.setdefault(title, theme)
        results.append(
            {
                "theme": theme,
                "question_title": title,
                "is_correct": bool(_pick(raw, "isCorrect", default=False)),
                "answer_time_ms": _pick(raw, "answerTimeMs", default=0),
                "user_answer": _pick(raw, "userAnswer", default=""),
                "correct_answer": _pick(raw, "correctAnswer", default=""),
                "timestamp": timestamp,
            }
        )

    # Legacy question counters were keyed by title only; recover the theme
    # from the result log where possible.
    question_stats = []
    for key, raw in _as_mapping(payload.get("questionStats")).items():
        if not isinstance(raw, dict):
            continue
        title = _pick(raw, "questionTitle", default=key)
        theme = _pick(raw, "theme", default=theme_by_title.get(title))
        if not theme:
            logger.debug(f"[migrate] No theme for legacy question stats {title!r}; dropped")
            continue
        entry = {
            "theme": theme,
            "question_title": title,
            "total_attempts": _pick(raw, "totalAttempts", default=0),
            "correct_attempts": _pick(raw, "correctAttempts", default=0),
            "consecutive_correct": _pick(raw, "consecutiveCorrect", default=0),
            "consecutive_wrong": _pick(raw, "consecutiveWrong", default=0),
            "last_attempt": _from_epoch_ms(_pick(raw, "lastAttempt")),
            "level": _pick(raw, "karteikartenLevel", "level", default=1),
        }
        question_stats.append({k: v for k, v in entry.items() if v is not None})

    theme_stats = []
    for key, raw in _as_mapping(payload.get("themeStats")).items():
        if not isinstance(raw, dict):
            continue
        entry = {
            "theme": _pick(raw, "themeName", default=key),
            "total_questions": _pick(raw, "totalQuestions", default=0),
            "total_attempts": _pick(raw, "totalAttempts", default=0),
            "correct_attempts": _pick(raw, "correctAttempts", default=0),
            "last_played": _from_epoch_ms(_pick(raw, "lastPlayed")),
        }
        theme_stats.append({k: v for k, v in entry.items() if v is not None})

    return {"question_stats": question_stats, "theme_stats": theme_stats, "results": results}


def migrate_achievements_v1_to_v2(payload: Payload) -> Payload:
    unlocked = {}
    for name, when in _as_mapping(payload.get("unlocked")).items():
        converted = _from_epoch_ms(when)
        if converted is not None:
            unlocked[str(name).upper()] = converted
    return {"unlocked": unlocked}


MIGRATIONS: dict[tuple[str, int], Callable[[Payload], Payload]] = {
    (CARDS_FORMAT, 1): migrate_cards_v1_to_v2,
    (CONTENT_FORMAT, 1): migrate_questions_v1_to_v2,
    (STATISTICS_FORMAT, 1): migrate_statistics_v1_to_v2,
    (ACHIEVEMENTS_FORMAT, 1): migrate_achievements_v1_to_v2,
}


def upgrade(kind: str, version: int, payload: Payload) -> Payload:
    """Apply migrations until *payload* matches the current schema version."""
    if version > SCHEMA_VERSION:
        raise CorruptDataError(
            f"{kind} snapshot has version {version}, newer than supported {SCHEMA_VERSION}"
        )
    while version < SCHEMA_VERSION:
        step = MIGRATIONS.get((kind, version))
        if step is None:
            raise CorruptDataError(f"No migration for {kind} snapshot version {version}")
        logger.info(f"[migrate] Upgrading {kind} snapshot v{version} -> v{version + 1}")
        try:
            payload = step(payload)
        except (TypeError, AttributeError, ValueError) as e:
            raise CorruptDataError(f"Cannot upgrade {kind} snapshot v{version}: {e}") from e
        version += 1
    return payload
