"""
Client-side storage

Key/value storage for state that must outlive a single cart manager,
plus the guest cart identifier kept in it.
"""

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class MemoryStorage:
    """In-process key/value storage"""

    def __init__(self):
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """
    Key/value storage backed by a JSON file.

    The file is re-read on every access so several processes sharing
    the same path see each other's writes.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unreadable storage file: {self.path}")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


class GuestCartStore:
    """Persisted identifier of the current guest cart"""

    def __init__(self, storage: MemoryStorage | FileStorage, key: str = "cart_id"):
        self.storage = storage
        self.key = key

    def get_cart_id(self) -> Optional[str]:
        value = self.storage.get_item(self.key)
        return value or None

    def set_cart_id(self, cart_id: str) -> None:
        self.storage.set_item(self.key, str(cart_id))
        logger.debug(f"Persisted guest cart id under '{self.key}'")

    def clear(self) -> None:
        self.storage.remove_item(self.key)
        logger.debug(f"Cleared guest cart id under '{self.key}'")
