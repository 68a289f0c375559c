from datetime import datetime, timedelta

import pytest

from quizbox.application.statistics_service import StatisticsService
from quizbox.domain.cards import CardKey
from quizbox.domain.snapshots import StatisticsSnapshot
from quizbox.domain.statistics import QuestionStatistics, QuizResult, ThemeStatistics

T0 = datetime(2025, 3, 1, 12, 0, 0)


def result(title="2+2", is_correct=True, minutes=0, theme="Math"):
    return QuizResult(
        theme=theme,
        question_title=title,
        is_correct=is_correct,
        answer_time_ms=1000,
        timestamp=T0 + timedelta(minutes=minutes),
    )


@pytest.fixture
def statistics(statistics_store):
    service = StatisticsService(statistics_store)
    service.load()
    return service


def test_record_result_updates_question_and_theme(statistics):
    statistics.record_result(result(is_correct=True, minutes=0), level=1)
    statistics.record_result(result(is_correct=False, minutes=1), level=1)
    statistics.record_result(result(title="3+3", is_correct=True, minutes=2), level=2)

    q = statistics.question_stats("Math", "2+2")
    assert (q.total_attempts, q.correct_attempts) == (2, 1)
    assert (q.consecutive_correct, q.consecutive_wrong) == (0, 1)
    assert q.last_attempt == T0 + timedelta(minutes=1)

    t = statistics.theme_stats("Math")
    assert t.total_attempts == 3
    assert t.correct_attempts == 2
    assert t.total_questions == 2
    assert t.last_played == T0 + timedelta(minutes=2)
    assert statistics.overall_success_rate() == pytest.approx(2 / 3)


def test_current_streak(statistics):
    for i, ok in enumerate([True, False, True, True, True]):
        statistics.record_result(result(is_correct=ok, minutes=i))
    assert statistics.current_streak() == 3


def test_results_survive_reload(statistics, statistics_store):
    statistics.record_result(result())
    reloaded = StatisticsService(statistics_store)
    reloaded.load()
    assert reloaded.results() == [result()]
    assert reloaded.question_stats("Math", "2+2").total_attempts == 1


class TestMergeData:
    def test_counters_sum_and_maxima(self, statistics):
        statistics.record_result(result(is_correct=True, minutes=0), level=2)

        incoming = StatisticsSnapshot(
            question_stats={
                CardKey("Math", "2+2"): QuestionStatistics(
                    theme="Math",
                    question_title="2+2",
                    total_attempts=4,
                    correct_attempts=3,
                    consecutive_correct=3,
                    last_attempt=T0 + timedelta(days=1),
                    level=4,
                )
            },
            theme_stats={
                "Math": ThemeStatistics(theme="Math", total_questions=5, total_attempts=4, correct_attempts=3),
                "Bio": ThemeStatistics(theme="Bio", total_attempts=1),
            },
            results=[result(minutes=10), result(minutes=0)],
        )

        merged = statistics.merge_data(incoming)
        assert merged == (1, 2, 1)

        q = statistics.question_stats("Math", "2+2")
        assert (q.total_attempts, q.correct_attempts) == (5, 4)
        assert q.consecutive_correct == 3
        assert q.level == 4
        assert q.last_attempt == T0 + timedelta(days=1)

        assert statistics.theme_stats("Math").total_attempts == 5
        assert statistics.theme_stats("Math").total_questions == 5
        assert statistics.theme_stats("Bio").total_attempts == 1

    def test_results_are_deduplicated(self, statistics):
        incoming = StatisticsSnapshot(results=[result(minutes=1), result(minutes=2)])
        assert statistics.merge_data(incoming)[2] == 2
        assert statistics.merge_data(incoming)[2] == 0
        assert len(statistics.results()) == 2

    def test_merged_results_are_time_ordered(self, statistics):
        statistics.record_result(result(minutes=5))
        statistics.merge_data(StatisticsSnapshot(results=[result(minutes=1)]))
        assert [r.timestamp for r in statistics.results()] == [
            T0 + timedelta(minutes=1),
            T0 + timedelta(minutes=5),
        ]
