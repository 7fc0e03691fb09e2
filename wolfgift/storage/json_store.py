"""
JSON Store with Atomic Writes
=============================

The persisted-state sink behind accounts, balances, stats and catalog
snapshots. Each snapshot is one ``<name>.json`` file under ``base_dir``.
"""

import json
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from wolfgift.core.logging import get_logger

from .atomic import atomic_write

logger = get_logger("wolfgift.storage.json_store")


@runtime_checkable
class StateSink(Protocol):
    """Blob store contract the engine depends on."""

    def load(self, name: str, default: Any = None) -> Any:
        """Return the last saved snapshot, or ``default``."""

    def save(self, name: str, data: Any) -> bool:
        """Persist a snapshot, replacing the previous one."""


class JSONStore:
    """
    Thread-safe JSON snapshot storage with atomic writes.

    Example:
        >>> store = JSONStore(base_dir="data")
        >>> store.save("balances", {"users": {}, "totalGems": 0})
        >>> store.load("balances")
        {'users': {}, 'totalGems': 0}
    """

    def __init__(self, base_dir: Path | str = "data") -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        self._locks: dict[str, threading.Lock] = {}
        self._global_lock = threading.Lock()

    def _get_lock(self, name: str) -> threading.Lock:
        with self._global_lock:
            if name not in self._locks:
                self._locks[name] = threading.Lock()
            return self._locks[name]

    def path_for(self, name: str) -> Path:
        return self.base_dir / f"{name}.json"

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def save(self, name: str, data: Any) -> bool:
        """
        Save data to a JSON file atomically.

        Args:
            name: Snapshot name (without extension)
            data: JSON-serializable data

        Returns:
            True if successful
        """
        with self._get_lock(name):
            content = json.dumps(data, ensure_ascii=False, indent=2, default=str)
            return atomic_write(self.path_for(name), content)

    def load(self, name: str, default: Any = None) -> Any:
        """
        Load data from a JSON file.

        A missing or unreadable file yields ``default``; a corrupt file is
        logged so the operator can restore it.
        """
        path = self.path_for(name)

        if not path.exists():
            return default

        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("snapshot_load_failed", name=name, path=str(path), error=str(e))
            return default


__all__ = ["StateSink", "JSONStore"]
