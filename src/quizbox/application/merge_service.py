"""
Merge Engine — offline reconciliation of an imported data directory.

Reads the four optional snapshot files of another installation and merges
each category into the local services. Categories are isolated: a file
that cannot be read is skipped and recorded in the report, and the rest
of the merge continues. Questions are merged before Leitner cards so that
imported cards find their questions.
"""

import logging
from pathlib import Path

from quizbox.consts import ACHIEVEMENTS_FILE, LEITNER_FILE, QUESTIONS_FILE, STATISTICS_FILE
from quizbox.domain.cards import LeitnerMergePolicy
from quizbox.domain.errors import InvalidInputError, ParseError, StorageIOError
from quizbox.domain.merge import MergeReport
from quizbox.domain.ports import SnapshotStore
from quizbox.domain.snapshots import ContentSnapshot

from .achievements_service import AchievementsService
from .content_service import ContentService
from .leitner_service import LeitnerSystem
from .statistics_service import StatisticsService

logger = logging.getLogger(__name__)

PRE_MERGE_LABEL = "pre_merge"


class MergeEngine:
    def __init__(
        self,
        content: ContentService,
        statistics: StatisticsService,
        leitner: LeitnerSystem,
        achievements: AchievementsService,
    ):
        self.content = content
        self.statistics = statistics
        self.leitner = leitner
        self.achievements = achievements

    def merge_from_directory(
        self,
        path: Path,
        leitner_policy: LeitnerMergePolicy = LeitnerMergePolicy.PREFER_HIGHER_LEVEL,
        backup_before: bool = False,
    ) -> MergeReport:
        """
        Merge every recognized snapshot file found in *path*.

        Args:
            path: Directory holding any of quiz_questions.dat,
                quiz_statistics.dat, leitner_system.dat, achievements.dat.
            leitner_policy: Conflict rule for cards present on both sides.
            backup_before: Back up the local files before changing them.

        Raises:
            InvalidInputError: *path* is not an existing directory.
        """
        path = Path(path)
        if not path.is_dir():
            raise InvalidInputError(f"Merge source is not a directory: {path}")

        logger.info(f"[merge] Merging {path} (cards: {LeitnerMergePolicy(leitner_policy).value})")
        if backup_before:
            for service in (self.content, self.statistics, self.leitner, self.achievements):
                service.backup(PRE_MERGE_LABEL)

        report = MergeReport()

        content = self._read(path / QUESTIONS_FILE, self.content.store, "questions", report)
        if content is not None:
            self._apply("questions", report, self._merge_content, content, report)

        stats = self._read(path / STATISTICS_FILE, self.statistics.store, "statistics", report)
        if stats is not None:
            merged = self._apply("statistics", report, self.statistics.merge_data, stats)
            if merged is not None:
                (
                    report.stats_questions_merged,
                    report.stats_themes_merged,
                    report.stats_results_added,
                ) = merged

        cards = self._read(path / LEITNER_FILE, self.leitner.store, "leitner", report)
        if cards is not None:
            merged = self._apply(
                "leitner", report, self.leitner.merge_cards, cards.cards.values(), leitner_policy
            )
            if merged is not None:
                report.cards_added, report.cards_updated = merged

        achievements = self._read(
            path / ACHIEVEMENTS_FILE, self.achievements.store, "achievements", report
        )
        if achievements is not None:
            added = self._apply("achievements", report, self.achievements.merge, achievements)
            if added is not None:
                report.achievements_added = added

        logger.info(f"[merge] Done: {report}")
        return report

    def _read(self, file: Path, store: SnapshotStore, category: str, report: MergeReport):
        if not file.exists():
            logger.debug(f"[merge] No {file.name}, skipping {category}")
            return None
        try:
            return store.read(file)
        except (ParseError, StorageIOError) as e:
            logger.warning(f"[merge] Skipping {category}: {e}")
            report.skipped.append(category)
            return None

    def _apply(self, category: str, report: MergeReport, merge, *args):
        try:
            return merge(*args)
        except (TypeError, ValueError, AttributeError) as e:
            logger.error(f"[merge] Failed to merge {category}: {e}")
            report.skipped.append(category)
            return None

    def _merge_content(self, incoming: ContentSnapshot, report: MergeReport) -> None:
        with self.content.batch():
            for theme in incoming.themes.values():
                if self.content.get_theme(theme.name) is None:
                    report.themes_added += 1
                else:
                    report.themes_updated += 1
                self.content.save_theme(theme.name, theme.description)

                for question in theme.questions:
                    # Existence is checked before writing so the counters are exact
                    if self.content.question_exists(question.theme, question.title):
                        report.questions_updated += 1
                    else:
                        report.questions_added += 1
                    self.content.save_question(question)
