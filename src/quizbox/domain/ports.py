"""
Ports (interfaces) for content access and snapshot persistence.

Application services depend on these abstractions, not on the file-backed
implementations in quizbox.infrastructure.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Generic, TypeVar

from .snapshots import BackupHandle

S = TypeVar("S")


class ContentRepository(ABC):
    """
    Read-only view of question/theme identity.

    The scheduler host and the merge engine use it to check that a card's
    question still exists. They never mutate content through it.
    """

    @abstractmethod
    def all_themes(self) -> list[str]:
        pass

    @abstractmethod
    def question_titles(self, theme: str) -> list[str]:
        pass

    @abstractmethod
    def question_exists(self, theme: str, title: str) -> bool:
        pass


class SnapshotStore(ABC, Generic[S]):
    """
    Durable storage for one domain's snapshot.

    Implementations:
        - FileSnapshotStore: versioned JSON file with write-tmp-then-rename.
    """

    @abstractmethod
    def persist(self, snapshot: S) -> bool:
        """
        Atomically replace the durable snapshot.

        Returns:
            True on success. On failure the previous durable state is left
            untouched and False is returned.
        """
        pass

    @abstractmethod
    def load(self) -> S:
        """
        Load the durable snapshot.

        Returns an empty snapshot when the file is missing or unreadable;
        never raises for bad file contents.
        """
        pass

    @abstractmethod
    def backup(self, label: str) -> BackupHandle | None:
        """Copy the durable file aside. Returns None if nothing was copied."""
        pass

    @abstractmethod
    def read(self, path: Path) -> S:
        """
        Strictly decode a snapshot file of this store's kind from *path*.

        Raises:
            ParseError: The file is not a readable snapshot of this kind.
            StorageIOError: The file could not be opened.
        """
        pass
