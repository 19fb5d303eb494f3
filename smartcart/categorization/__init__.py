"""Product categorization: local rules and the cached server categorizer."""

from smartcart.categorization.rules import (
    QuickCategory,
    basic_categorization,
    detect_optimal_unit,
    detect_unit_from_item_name,
    generate_quantity_suggestions,
    generate_retail_name_suggestions,
    get_quick_category,
)
from smartcart.categorization.service import (
    CacheStats,
    Categorization,
    CategorizationService,
    QuickResult,
)

__all__ = [
    "QuickCategory",
    "basic_categorization",
    "detect_optimal_unit",
    "detect_unit_from_item_name",
    "generate_quantity_suggestions",
    "generate_retail_name_suggestions",
    "get_quick_category",
    "CacheStats",
    "Categorization",
    "CategorizationService",
    "QuickResult",
]
