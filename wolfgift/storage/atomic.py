"""
Atomic Write Operations
=======================

Snapshots are written as:
1. Write to temporary file {name}.tmp
2. Flush and fsync
3. Rename over the final path

A crash leaves either the previous snapshot or the complete new one.
"""

import os
from pathlib import Path

from wolfgift.core.logging import get_logger

logger = get_logger("wolfgift.storage.atomic")


def _fsync_dir(directory: Path) -> None:
    try:
        fd = os.open(str(directory), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def atomic_write(
    path: Path | str,
    content: str | bytes,
    encoding: str = "utf-8",
    sync: bool = True,
) -> bool:
    """
    Write content to file atomically.

    Args:
        path: Target file path
        content: Content to write (string or bytes)
        encoding: Encoding for string content
        sync: Whether to fsync the file and its directory

    Returns:
        True if successful
    """
    path = Path(path)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    data = content.encode(encoding) if isinstance(content, str) else content

    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(os.fspath(tmp_path), "wb") as f:
            f.write(data)
            if sync:
                f.flush()
                os.fsync(f.fileno())

        tmp_path.replace(path)
        if sync:
            _fsync_dir(path.parent)
        return True

    except OSError as e:
        logger.error("atomic_write_failed", path=str(path), error=str(e))
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass
        return False


__all__ = ["atomic_write"]
