"""Offline storage and the offline-aware API client."""

from smartcart.offline.api import OfflineApiClient
from smartcart.offline.storage import OfflineShoppingList, OfflineStorage

__all__ = ["OfflineApiClient", "OfflineShoppingList", "OfflineStorage"]
