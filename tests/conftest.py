from datetime import datetime

import pytest

from quizbox.application.config import resolve_config
from quizbox.application.factory import build_app_context
from quizbox.domain.content import Question
from quizbox.infrastructure.persistence import (
    AchievementSnapshotCodec,
    CardSnapshotCodec,
    ContentSnapshotCodec,
    FileSnapshotStore,
    StatisticsSnapshotCodec,
)

FIXED_NOW = datetime(2025, 3, 10, 9, 0, 0)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep user config files and QUIZBOX_* variables out of every test."""
    import os

    for name in list(os.environ):
        if name.startswith("QUIZBOX_"):
            monkeypatch.delenv(name)
    monkeypatch.setattr(
        "quizbox.application.config.CONFIG_FILES", [tmp_path / "quizbox-test.toml"]
    )


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock(now):
    return lambda: now


@pytest.fixture
def data_dir(tmp_path):
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture
def card_store(data_dir):
    return FileSnapshotStore(data_dir / "leitner_system.dat", CardSnapshotCodec())


@pytest.fixture
def content_store(data_dir):
    return FileSnapshotStore(data_dir / "quiz_questions.dat", ContentSnapshotCodec())


@pytest.fixture
def statistics_store(data_dir):
    return FileSnapshotStore(data_dir / "quiz_statistics.dat", StatisticsSnapshotCodec())


@pytest.fixture
def achievement_store(data_dir):
    return FileSnapshotStore(data_dir / "achievements.dat", AchievementSnapshotCodec())


@pytest.fixture
def app_ctx(data_dir, clock):
    return build_app_context(resolve_config({"data_dir": data_dir}), clock=clock)


def make_question(theme="Math", title="2+2", answers=("3", "4"), correct=(False, True)):
    return Question(
        theme=theme,
        title=title,
        text=f"What is {title}?",
        answers=list(answers),
        correct=list(correct),
    )


@pytest.fixture
def question_factory():
    return make_question
