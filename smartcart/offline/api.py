"""Offline-aware wrapper around the SmartCart client."""

from __future__ import annotations

import logging
from typing import Any, Optional

from smartcart.categorization.rules import basic_categorization
from smartcart.data.api_client import SmartCartClient
from smartcart.data.models import Category
from smartcart.errors import ApiError, ConnectionLostError, OfflineDataUnavailableError
from smartcart.offline.storage import OfflineStorage

logger = logging.getLogger(__name__)


class OfflineApiClient:
    """Reads fall back to the local store; writes land locally first.

    Every call tries the backend unless offline mode is forced, so a client
    that lost its connection picks the backend up again on the next call.
    :meth:`is_online` reports the outcome of the most recent request.
    """

    def __init__(
        self,
        api_client: SmartCartClient,
        storage: Optional[OfflineStorage] = None,
    ) -> None:
        self.api_client = api_client
        self.storage = storage or OfflineStorage()

    def is_online(self) -> bool:
        return self.api_client.online

    def _forced_offline(self) -> bool:
        return self.api_client.offline_mode

    async def fetch_shopping_list(self, list_id: int) -> dict[str, Any]:
        """Fetch a list from the backend, caching it; use the cache when that fails.

        Raises:
            OfflineDataUnavailableError: offline (or failing) with nothing cached.
        """
        if self._forced_offline():
            return self._get_offline_shopping_list(list_id)
        try:
            data = await self.api_client.api_request("GET", f"/api/shopping-lists/{list_id}")
        except (ApiError, ConnectionLostError) as e:
            logger.info(f"Network failed, falling back to offline data for list {list_id}: {e}")
            return self._get_offline_shopping_list(list_id)
        data = data or {}
        self.storage.save_shopping_list(list_id, data.get("items") or [])
        return data

    def _get_offline_shopping_list(self, list_id: int) -> dict[str, Any]:
        cached = self.storage.get_shopping_list(list_id)
        if cached is None:
            raise OfflineDataUnavailableError()
        return {
            "id": list_id,
            "items": cached.items,
            "isOffline": True,
            "lastSync": cached.last_sync,
        }

    async def categorize_product(self, product_name: str) -> str:
        cached = self.storage.get_category(product_name)
        if cached:
            return cached

        if self._forced_offline():
            return basic_categorization(product_name)

        try:
            results = await self.api_client.batch_categorize([{"productName": product_name}])
        except (ApiError, ConnectionLostError) as e:
            logger.warning(f"Categorization request failed for {product_name!r}: {e}")
            return Category.UNCATEGORIZED.value

        category = _category_name(results[0]) if results else None
        category = category or Category.UNCATEGORIZED.value
        self.storage.save_categories({product_name.lower(): category})
        return category

    async def update_shopping_list_item(
        self, list_id: int, item_id: int, updates: dict[str, Any]
    ) -> None:
        """Apply ``updates`` to the cached item now, then sync unless forced offline.

        A failed sync is logged, not raised; the local copy keeps the change
        and is marked offline.
        """
        cached = self.storage.get_shopping_list(list_id)
        if cached is not None:
            for i, item in enumerate(cached.items):
                if item.get("id") == item_id:
                    cached.items[i] = {**item, **updates}
                    self.storage.save_shopping_list(
                        list_id, cached.items, is_offline=self._forced_offline()
                    )
                    break
            else:
                cached = None

        if self._forced_offline():
            return
        try:
            await self.api_client.update_shopping_list_item(item_id, updates)
        except (ApiError, ConnectionLostError) as e:
            logger.warning(f"Failed to sync item {item_id} update, local copy kept: {e}")
            if cached is not None:
                self.storage.save_shopping_list(list_id, cached.items, is_offline=True)


def _category_name(result: Any) -> Optional[str]:
    """The backend answers either ``{"category": "X"}`` or ``{"category": {"category": "X"}}``."""
    if not isinstance(result, dict):
        return None
    category = result.get("category")
    if isinstance(category, dict):
        category = category.get("category")
    return category or None
