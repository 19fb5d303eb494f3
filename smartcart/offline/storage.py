"""JSON-based offline storage for shopping lists, categories and retailers."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from smartcart.config import config

logger = logging.getLogger(__name__)


@dataclass
class OfflineShoppingList:
    id: int
    items: list[dict[str, Any]] = field(default_factory=list)
    last_sync: int = 0  # epoch milliseconds
    is_offline: bool = False

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> OfflineShoppingList:
        return cls(
            id=int(payload["id"]),
            items=list(payload.get("items", [])),
            last_sync=int(payload.get("lastSync", 0)),
            is_offline=bool(payload.get("isOffline", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "items": self.items,
            "lastSync": self.last_sync,
            "isOffline": self.is_offline,
        }


def _empty_store() -> dict[str, Any]:
    return {"shoppingLists": [], "userProfile": None, "retailers": [], "categories": {}}


class OfflineStorage:
    """A single JSON document on disk; every write replaces it (last write wins)."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else config.offline_store_path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return _empty_store()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read offline store {self.path}: {e}")
            return _empty_store()
        if not isinstance(data, dict):
            logger.error(f"Offline store {self.path} is not an object, ignoring it")
            return _empty_store()
        store = _empty_store()
        for key, value in data.items():
            if value is None and store.get(key) is not None:
                continue
            store[key] = value
        return store

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def save_shopping_list(
        self, list_id: int, items: list[dict[str, Any]], is_offline: bool = False
    ) -> OfflineShoppingList:
        data = self._load()
        entry = OfflineShoppingList(
            id=list_id,
            items=items,
            last_sync=int(time.time() * 1000),
            is_offline=is_offline,
        )
        lists = data["shoppingLists"]
        for i, existing in enumerate(lists):
            if existing.get("id") == list_id:
                lists[i] = entry.to_dict()
                break
        else:
            lists.append(entry.to_dict())
        self._save(data)
        logger.debug(f"Cached shopping list {list_id} ({len(items)} items)")
        return entry

    def get_shopping_list(self, list_id: int) -> Optional[OfflineShoppingList]:
        for entry in self._load()["shoppingLists"]:
            if entry.get("id") == list_id:
                return OfflineShoppingList.from_dict(entry)
        return None

    def save_categories(self, categories: dict[str, str]) -> None:
        """Merge ``categories`` (lower-cased product name -> category) into the store."""
        data = self._load()
        data["categories"] = {**data["categories"], **categories}
        self._save(data)

    def get_category(self, product_name: str) -> Optional[str]:
        return self._load()["categories"].get(product_name.lower()) or None

    def save_retailers(self, retailers: list[dict[str, Any]]) -> None:
        data = self._load()
        data["retailers"] = retailers
        self._save(data)

    def get_retailers(self) -> list[dict[str, Any]]:
        return self._load()["retailers"]

    def save_user_profile(self, profile: Optional[dict[str, Any]]) -> None:
        data = self._load()
        data["userProfile"] = profile
        self._save(data)

    def get_user_profile(self) -> Optional[dict[str, Any]]:
        return self._load()["userProfile"]

    def clear(self) -> None:
        """Remove all offline data."""
        if self.path.exists():
            self.path.unlink()
        logger.warning("Offline data cleared")
