"""Data layer - API client, batching and models."""

from smartcart.data.api_client import SmartCartClient
from smartcart.data.batch import BatchClient, BatchRequest, BatchResponse, fetch_dashboard
from smartcart.data.models import (
    Category,
    DealType,
    Recommendation,
    Retailer,
    RetailerAccount,
    ShoppingList,
    ShoppingListItem,
    StoreDeal,
    UnitType,
    User,
    WeeklyCircular,
)

__all__ = [
    "SmartCartClient",
    "BatchClient",
    "BatchRequest",
    "BatchResponse",
    "fetch_dashboard",
    "Category",
    "DealType",
    "Recommendation",
    "Retailer",
    "RetailerAccount",
    "ShoppingList",
    "ShoppingListItem",
    "StoreDeal",
    "UnitType",
    "User",
    "WeeklyCircular",
]
