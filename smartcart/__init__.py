"""SmartCart shopping-assistant client."""

__all__ = [
    "Config",
    "config",
    "SmartCartClient",
    "BatchClient",
    "OfflineApiClient",
    "OfflineStorage",
    "CategorizationService",
]

from .categorization import CategorizationService
from .config import Config, config
from .data import BatchClient, SmartCartClient
from .offline import OfflineApiClient, OfflineStorage
