"""Key-value stores backing the persisted upload counter."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger("dashsync.store")


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryKeyValueStore:
    """Process-local store, used in tests and when persistence is disabled."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = str(value)


class JsonFileKeyValueStore:
    """Text values persisted in a single JSON object on disk.

    Every ``set`` rewrites the file; reads are served from the cached copy
    loaded at construction.
    """

    def __init__(self, storage_path: Path):
        self.storage_path = storage_path
        self._values: dict[str, str] = {}
        self._load()

    def _load(self):
        """Load values from JSON storage."""
        if not self.storage_path.exists():
            return

        try:
            content = self.storage_path.read_text()
            if not content.strip():
                return
            data = json.loads(content)
            if not isinstance(data, dict):
                logger.error(f"Ignoring malformed store file {self.storage_path}")
                return
            self._values = {str(k): str(v) for k, v in data.items()}
        except Exception as e:
            logger.error(f"Failed to load store file: {e}")

    def _save(self):
        """Save values to JSON storage."""
        self.storage_path.parent.mkdir(parents=True, exist_ok=True)
        self.storage_path.write_text(json.dumps(self._values, indent=2))

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = str(value)
        self._save()
