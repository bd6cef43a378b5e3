"""JSON-file preference store.

Preferences are kept in a single JSON object on disk. Every write rewrites
the whole file so a reader never observes a partial update.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class JsonPreferenceStore:
    """PreferenceStore backed by a JSON file."""

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Path to the preferences file (created on first write)
        """
        self.path = path

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable preferences file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed preferences file %s", self.path)
            return {}
        return data

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(tmp_path, self.path)

    def get_string(self, key: str, default: str = "") -> str:
        value = self._load().get(key, default)
        return value if isinstance(value, str) else default

    def set_string(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._load().get(key, default)
        return value if isinstance(value, bool) else default

    def set_bool(self, key: str, value: bool) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def has_key(self, key: str) -> bool:
        return key in self._load()

    def delete_key(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)
