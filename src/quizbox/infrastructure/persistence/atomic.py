"""Write-tmp-then-rename helpers. The rename is the only visibility boundary."""

import os
import shutil
import tempfile
from pathlib import Path

from quizbox.domain.errors import StorageIOError


def atomic_write_bytes(target: Path, data: bytes) -> None:
    """
    Replace *target* with *data* so readers see either the old or the new file.

    The temporary file lives in the target's directory so the final
    os.replace never crosses a filesystem boundary.

    Raises:
        StorageIOError: Writing or replacing failed. The temporary file is
            removed and *target* is left as it was.
    """
    tmp_path: Path | None = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
        )
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, target)
    except OSError as e:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise StorageIOError(f"Failed to write {target}: {e}") from e


def copy_file(source: Path, dest: Path) -> None:
    """Copy *source* to *dest*, creating parent directories as needed."""
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)
    except OSError as e:
        raise StorageIOError(f"Failed to copy {source} -> {dest}: {e}") from e
