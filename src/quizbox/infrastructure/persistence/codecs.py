"""
Codecs between domain snapshots and the versioned JSON envelope.

Every snapshot file looks like::

    {"format": "quizbox.leitner", "version": 2,
     "created_at": "2025-01-01T10:00:00", "payload": {...}}

A bare JSON object without "format"/"version" is treated as a legacy
version 1 record and upgraded through quizbox.infrastructure.persistence.migrations.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from quizbox.domain.achievements import Achievement
from quizbox.domain.cards import CardEntity, CardKey
from quizbox.domain.constants import LEGACY_SCHEMA_VERSION, SCHEMA_VERSION
from quizbox.domain.content import Question, Theme
from quizbox.domain.errors import CorruptDataError, ParseError
from quizbox.domain.snapshots import (
    AchievementSnapshot,
    CardSnapshot,
    ContentSnapshot,
    StatisticsSnapshot,
)
from quizbox.domain.statistics import QuestionStatistics, QuizResult, ThemeStatistics

from .migrations import (
    ACHIEVEMENTS_FORMAT,
    CARDS_FORMAT,
    CONTENT_FORMAT,
    STATISTICS_FORMAT,
    upgrade,
)
from .schema import (
    AchievementSnapshotPayload,
    CardRecord,
    CardSnapshotPayload,
    ContentSnapshotPayload,
    QuestionRecord,
    QuestionStatsRecord,
    QuizResultRecord,
    SnapshotEnvelope,
    StatisticsSnapshotPayload,
    ThemeRecord,
    ThemeStatsRecord,
)

S = TypeVar("S")


class SnapshotCodec(ABC, Generic[S]):
    """Encodes one snapshot kind to bytes and back."""

    kind: str

    @abstractmethod
    def empty(self) -> S:
        pass

    @abstractmethod
    def to_payload(self, snapshot: S) -> dict[str, Any]:
        pass

    @abstractmethod
    def from_payload(self, payload: dict[str, Any]) -> S:
        """Build a snapshot from a payload already upgraded to the current version."""
        pass

    def encode(self, snapshot: S) -> bytes:
        envelope = SnapshotEnvelope(
            format=self.kind,
            version=SCHEMA_VERSION,
            created_at=getattr(snapshot, "created_at", None),
            payload=self.to_payload(snapshot),
        )
        return json.dumps(envelope.model_dump(mode="json"), ensure_ascii=False, indent=2).encode(
            "utf-8"
        )

    def decode(self, data: bytes) -> S:
        try:
            raw = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(f"{self.kind}: not valid JSON ({e})") from e

        version, payload, created_at = self._unwrap(raw)
        payload = upgrade(self.kind, version, payload)

        try:
            snapshot = self.from_payload(payload)
        except (ValidationError, ValueError, TypeError) as e:
            raise CorruptDataError(f"{self.kind}: payload does not match schema ({e})") from e

        if created_at is not None:
            snapshot.created_at = created_at  # type: ignore[attr-defined]
        return snapshot

    def _unwrap(self, raw: Any) -> tuple[int, dict[str, Any], datetime | None]:
        if not isinstance(raw, dict):
            raise CorruptDataError(f"{self.kind}: expected a JSON object, got {type(raw).__name__}")

        if "format" not in raw or "version" not in raw:
            return LEGACY_SCHEMA_VERSION, raw, None

        try:
            envelope = SnapshotEnvelope.model_validate(raw)
        except ValidationError as e:
            raise CorruptDataError(f"{self.kind}: malformed envelope ({e})") from e
        if envelope.format != self.kind:
            raise CorruptDataError(f"Expected a {self.kind} snapshot, found {envelope.format}")
        return envelope.version, envelope.payload, envelope.created_at


class CardSnapshotCodec(SnapshotCodec[CardSnapshot]):
    kind = CARDS_FORMAT

    def empty(self) -> CardSnapshot:
        return CardSnapshot()

    def to_payload(self, snapshot: CardSnapshot) -> dict[str, Any]:
        return CardSnapshotPayload(
            total_reviews=snapshot.total_reviews,
            cards=[
                CardRecord.model_validate(card, from_attributes=True)
                for card in snapshot.cards.values()
            ],
        ).model_dump(mode="json")

    def from_payload(self, payload: dict[str, Any]) -> CardSnapshot:
        parsed = CardSnapshotPayload.model_validate(payload)
        cards: dict[CardKey, CardEntity] = {}
        for record in parsed.cards:
            card = CardEntity(**record.model_dump())
            cards[card.key] = card
        return CardSnapshot(cards=cards, total_reviews=max(0, parsed.total_reviews))


class ContentSnapshotCodec(SnapshotCodec[ContentSnapshot]):
    kind = CONTENT_FORMAT

    def empty(self) -> ContentSnapshot:
        return ContentSnapshot()

    def to_payload(self, snapshot: ContentSnapshot) -> dict[str, Any]:
        return ContentSnapshotPayload(
            themes=[
                ThemeRecord(
                    name=theme.name,
                    description=theme.description,
                    questions=[
                        QuestionRecord.model_validate(q, from_attributes=True)
                        for q in theme.questions
                    ],
                )
                for theme in snapshot.themes.values()
            ]
        ).model_dump(mode="json")

    def from_payload(self, payload: dict[str, Any]) -> ContentSnapshot:
        parsed = ContentSnapshotPayload.model_validate(payload)
        themes: dict[str, Theme] = {}
        for record in parsed.themes:
            theme = themes.setdefault(record.name, Theme(name=record.name))
            theme.description = record.description or theme.description
            for q in record.questions:
                question = Question(theme=record.name, **q.model_dump())
                existing = theme.find(question.title)
                if existing is not None:
                    theme.questions[theme.questions.index(existing)] = question
                else:
                    theme.questions.append(question)
        return ContentSnapshot(themes=themes)


class StatisticsSnapshotCodec(SnapshotCodec[StatisticsSnapshot]):
    kind = STATISTICS_FORMAT

    def empty(self) -> StatisticsSnapshot:
        return StatisticsSnapshot()

    def to_payload(self, snapshot: StatisticsSnapshot) -> dict[str, Any]:
        return StatisticsSnapshotPayload(
            question_stats=[
                QuestionStatsRecord.model_validate(s, from_attributes=True)
                for s in snapshot.question_stats.values()
            ],
            theme_stats=[
                ThemeStatsRecord.model_validate(s, from_attributes=True)
                for s in snapshot.theme_stats.values()
            ],
            results=[
                QuizResultRecord.model_validate(r, from_attributes=True)
                for r in snapshot.results
            ],
        ).model_dump(mode="json")

    def from_payload(self, payload: dict[str, Any]) -> StatisticsSnapshot:
        parsed = StatisticsSnapshotPayload.model_validate(payload)
        question_stats = {}
        for record in parsed.question_stats:
            stats = QuestionStatistics(**record.model_dump())
            question_stats[CardKey(stats.theme, stats.question_title)] = stats
        theme_stats = {}
        for record in parsed.theme_stats:
            theme_stats[record.theme] = ThemeStatistics(**record.model_dump())
        results = [QuizResult(**record.model_dump()) for record in parsed.results]
        return StatisticsSnapshot(
            question_stats=question_stats, theme_stats=theme_stats, results=results
        )


class AchievementSnapshotCodec(SnapshotCodec[AchievementSnapshot]):
    kind = ACHIEVEMENTS_FORMAT

    def empty(self) -> AchievementSnapshot:
        return AchievementSnapshot()

    def to_payload(self, snapshot: AchievementSnapshot) -> dict[str, Any]:
        return AchievementSnapshotPayload(
            unlocked={a.value: when for a, when in snapshot.unlocked.items()}
        ).model_dump(mode="json")

    def from_payload(self, payload: dict[str, Any]) -> AchievementSnapshot:
        parsed = AchievementSnapshotPayload.model_validate(payload)
        known = {a.value: a for a in Achievement}
        return AchievementSnapshot(
            unlocked={known[name]: when for name, when in parsed.unlocked.items() if name in known}
        )
