"""
File-backed persistence for quizbox snapshots.
"""

from .codecs import (
    AchievementSnapshotCodec,
    CardSnapshotCodec,
    ContentSnapshotCodec,
    StatisticsSnapshotCodec,
)
from .snapshot_store import FileSnapshotStore

__all__ = [
    "AchievementSnapshotCodec",
    "CardSnapshotCodec",
    "ContentSnapshotCodec",
    "FileSnapshotStore",
    "StatisticsSnapshotCodec",
]
