"""
Study Service — business-layer entry point for answering questions.

One answer touches three services: the Leitner card is rescheduled, the
result is logged in the statistics and the achievement rules run.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime

from quizbox.domain.achievements import Achievement
from quizbox.domain.cards import CardEntity
from quizbox.domain.content import Question
from quizbox.domain.errors import InvalidInputError
from quizbox.domain.statistics import QuizResult

from .achievements_service import AchievementsService
from .content_service import ContentService
from .leitner_service import LeitnerSystem
from .statistics_service import StatisticsService

logger = logging.getLogger(__name__)


@dataclass
class AnswerOutcome:
    card: CardEntity
    result: QuizResult
    previous_box: int | None
    unlocked: list[Achievement] = field(default_factory=list)

    @property
    def promoted(self) -> bool:
        return self.previous_box is not None and self.card.box > self.previous_box


class StudyService:
    def __init__(
        self,
        content: ContentService,
        leitner: LeitnerSystem,
        statistics: StatisticsService,
        achievements: AchievementsService,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.content = content
        self.leitner = leitner
        self.statistics = statistics
        self.achievements = achievements
        self.clock = clock

    def record_answer(
        self,
        theme: str,
        title: str,
        is_correct: bool,
        response_time_ms: float = 0.0,
        user_answer: str = "",
        now: datetime | None = None,
    ) -> AnswerOutcome:
        """
        Record one answer to an existing question.

        Raises:
            InvalidInputError: The question does not exist.
        """
        question = self.content.get_question(theme, title)
        if question is None:
            raise InvalidInputError(f"Unknown question {theme}:{title}")

        now = now or self.clock()
        existing = self.leitner.get_card(theme, title)
        previous_box = existing.box if existing is not None else None

        card = self.leitner.process_result(theme, title, is_correct, response_time_ms, now=now)
        result = QuizResult(
            theme=theme,
            question_title=title,
            is_correct=is_correct,
            answer_time_ms=int(max(0.0, response_time_ms)),
            user_answer=user_answer,
            correct_answer=", ".join(question.correct_answers),
            timestamp=now,
        )
        self.statistics.record_result(result, level=card.box)
        unlocked = self.achievements.evaluate_answer(
            is_correct, card, self.statistics.current_streak(), now
        )

        logger.info(
            f"[study] {theme}:{title} {'correct' if is_correct else 'wrong'}, "
            f"box {previous_box or card.box} -> {card.box}"
        )
        return AnswerOutcome(card=card, result=result, previous_box=previous_box, unlocked=unlocked)

    def next_questions(
        self,
        theme: str | None = None,
        limit: int | None = None,
        today: date | None = None,
    ) -> list[Question]:
        """
        Questions to study next: due cards by priority, then unseen questions.
        """
        picked: list[Question] = []
        for card in self.leitner.due_cards(today, theme):
            question = self.content.get_question(card.theme, card.title)
            if question is not None:
                picked.append(question)

        for question in self.content.questions(theme):
            if self.leitner.get_card(question.theme, question.title) is None:
                picked.append(question)

        return picked[:limit] if limit is not None else picked
