"""
File Snapshot Store — Infrastructure adapter for versioned snapshot files.

Implements SnapshotStore with a JSON envelope and an atomic
write-tmp-then-rename protocol. Unreadable files never block startup:
they are logged, removed and replaced by an empty snapshot.
"""

import copy
import logging
from datetime import datetime
from pathlib import Path
from typing import TypeVar

from quizbox.domain.errors import ParseError, StorageIOError
from quizbox.domain.ports import SnapshotStore
from quizbox.domain.snapshots import BackupHandle

from .atomic import atomic_write_bytes, copy_file
from .codecs import SnapshotCodec

logger = logging.getLogger(__name__)

S = TypeVar("S")


class FileSnapshotStore(SnapshotStore[S]):
    def __init__(self, path: Path, codec: SnapshotCodec[S], backup_dir: Path | None = None):
        self.path = Path(path)
        self.codec = codec
        self.backup_dir = backup_dir

    def __repr__(self) -> str:
        return f"FileSnapshotStore({self.codec.kind} @ {self.path})"

    def persist(self, snapshot: S) -> bool:
        frozen = copy.deepcopy(snapshot)
        data = self.codec.encode(frozen)
        try:
            atomic_write_bytes(self.path, data)
        except StorageIOError as e:
            logger.error(f"[store] Persist failed, keeping previous {self.path.name}: {e}")
            return False
        logger.debug(f"[store] Persisted {self.codec.kind} ({len(data)} bytes) to {self.path}")
        return True

    def load(self) -> S:
        if not self.path.exists():
            logger.debug(f"[store] No {self.path.name} yet, starting empty")
            return self.codec.empty()

        try:
            snapshot = self.read(self.path)
        except (ParseError, StorageIOError) as e:
            logger.warning(f"[store] Unreadable {self.path.name}, starting empty: {e}")
            self._discard()
            return self.codec.empty()

        logger.debug(f"[store] Loaded {self.codec.kind} from {self.path}")
        return snapshot

    def read(self, path: Path) -> S:
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise StorageIOError(f"Failed to read {path}: {e}") from e
        return self.codec.decode(data)

    def backup(self, label: str) -> BackupHandle | None:
        if not self.path.exists():
            logger.info(f"[store] Nothing to back up for {self.path.name}")
            return None

        now = datetime.now()
        stamp = now.strftime("%Y%m%d-%H%M%S-%f")
        target_dir = self.backup_dir or self.path.parent
        dest = target_dir / f"{label}_{self.path.stem}_{stamp}.bak"
        try:
            copy_file(self.path, dest)
        except StorageIOError as e:
            logger.warning(f"[store] Backup of {self.path.name} failed: {e}")
            return None

        logger.info(f"[store] Backed up {self.path.name} to {dest}")
        return BackupHandle(path=dest, source=self.path, created_at=now)

    def _discard(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"[store] Unable to remove unreadable {self.path}: {e}")
