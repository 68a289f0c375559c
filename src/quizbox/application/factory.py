"""
Application Factory
Wires the stores and services for one data directory into an AppContext.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from quizbox.application.achievements_service import AchievementsService
from quizbox.application.config import AppConfig
from quizbox.application.content_service import ContentService
from quizbox.application.leitner_service import LeitnerSystem
from quizbox.application.merge_service import MergeEngine
from quizbox.application.scheduler import LeitnerScheduler
from quizbox.application.statistics_service import StatisticsService
from quizbox.application.study_service import StudyService
from quizbox.consts import ACHIEVEMENTS_FILE, LEITNER_FILE, QUESTIONS_FILE, STATISTICS_FILE
from quizbox.domain.content import ChangeKind, ContentChange
from quizbox.domain.errors import InvalidInputError
from quizbox.domain.merge import MergeReport
from quizbox.domain.snapshots import BackupHandle
from quizbox.infrastructure.persistence import (
    AchievementSnapshotCodec,
    CardSnapshotCodec,
    ContentSnapshotCodec,
    FileSnapshotStore,
    StatisticsSnapshotCodec,
)

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    config: AppConfig
    content: ContentService
    leitner: LeitnerSystem
    statistics: StatisticsService
    achievements: AchievementsService
    study: StudyService
    merge_engine: MergeEngine

    def on_content_change(self, change: ContentChange) -> None:
        """Keep cards and achievements in step with content edits."""
        if change.kind == ChangeKind.QUESTION_DELETED and change.title:
            self.leitner.remove_card(change.theme, change.title)
        elif change.kind == ChangeKind.THEME_DELETED:
            self.leitner.remove_theme(change.theme)
        elif change.created:
            self.achievements.evaluate_content(
                len(self.content.all_themes()),
                self.content.question_count(),
                self.study.clock(),
            )


def build_app_context(
    config: AppConfig, clock: Callable[[], datetime] = datetime.now
) -> AppContext:
    """
    Build and load every service for ``config.data_dir``.

    Runs the startup merge when ``merge_on_startup`` is set.
    """
    data_dir = config.data_dir
    backup_dir = config.backup_dir or data_dir / "backups"

    content = ContentService(
        FileSnapshotStore(data_dir / QUESTIONS_FILE, ContentSnapshotCodec(), backup_dir)
    )
    statistics = StatisticsService(
        FileSnapshotStore(data_dir / STATISTICS_FILE, StatisticsSnapshotCodec(), backup_dir)
    )
    leitner = LeitnerSystem(
        FileSnapshotStore(data_dir / LEITNER_FILE, CardSnapshotCodec(), backup_dir),
        scheduler=LeitnerScheduler(clock=clock),
        content=content,
    )
    achievements = AchievementsService(
        FileSnapshotStore(data_dir / ACHIEVEMENTS_FILE, AchievementSnapshotCodec(), backup_dir)
    )

    for service in (content, statistics, leitner, achievements):
        service.load()

    ctx = AppContext(
        config=config,
        content=content,
        leitner=leitner,
        statistics=statistics,
        achievements=achievements,
        study=StudyService(content, leitner, statistics, achievements, clock=clock),
        merge_engine=MergeEngine(content, statistics, leitner, achievements),
    )
    content.subscribe(ctx.on_content_change)

    if config.merge_on_startup:
        run_startup_merge(ctx)
    return ctx


def run_startup_merge(ctx: AppContext) -> MergeReport | None:
    """Merge ``config.merge_dir`` if configured. Never fails startup."""
    merge_dir = ctx.config.merge_dir
    if merge_dir is None:
        logger.warning("[startup] merge_on_startup is set but merge_dir is not configured")
        return None
    try:
        return ctx.merge_engine.merge_from_directory(
            merge_dir,
            leitner_policy=ctx.config.merge_policy,
            backup_before=ctx.config.backup_before_merge,
        )
    except InvalidInputError as e:
        logger.warning(f"[startup] Skipping startup merge: {e}")
        return None


def backup_all(ctx: AppContext, label: str = "manual") -> list[BackupHandle]:
    handles = []
    for service in (ctx.content, ctx.statistics, ctx.leitner, ctx.achievements):
        handle = service.backup(label)
        if handle is not None:
            handles.append(handle)
    return handles
