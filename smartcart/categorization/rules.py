"""Quick product-name heuristics: category, unit and quantity suggestions.

All of these are ordered rule lists where the first match wins and a
default applies otherwise. They run locally, so they work offline.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from smartcart.data.models import Category


@dataclass(frozen=True)
class QuickCategory:
    category: str
    icon: str
    confidence: float


_QUICK_PATTERNS: list[tuple[re.Pattern[str], Category]] = [
    (re.compile(r"\b(banana|apple|orange|grape|strawberr|tomato|onion|carrot|potato)\w*", re.I), Category.PRODUCE),
    (re.compile(r"\b(milk|cheese|yogurt|egg)\w*", re.I), Category.DAIRY_EGGS),
    (re.compile(r"\b(beef|chicken|pork|turkey|fish|meat)\w*", re.I), Category.MEAT_SEAFOOD),
    (re.compile(r"\b(bread|loaf|roll|bagel)\w*", re.I), Category.BAKERY),
    (re.compile(r"\b(frozen|ice cream)\w*", re.I), Category.FROZEN_FOODS),
    (re.compile(r"\b(shampoo|soap|toothpaste)\w*", re.I), Category.PERSONAL_CARE),
    (re.compile(r"\b(cleaner|detergent|towel)\w*", re.I), Category.HOUSEHOLD),
]


def get_quick_category(product_name: str) -> QuickCategory:
    """Instant category guess for UI feedback while typing."""
    name = product_name.lower()
    for pattern, category in _QUICK_PATTERNS:
        if pattern.search(name):
            return QuickCategory(category.value, category.icon, 0.8)
    return QuickCategory(Category.PANTRY.value, Category.PANTRY.icon, 0.3)


_WEIGHT_ITEMS = re.compile(
    r"\b(banana|apple|orange|grape|potato|onion|carrot|tomato|beef|chicken|pork|fish|meat)\w*", re.I
)
_CONTAINER_LIQUIDS = re.compile(r"\b(milk|oil|vinegar)\w*", re.I)
_CANNED_DRINKS = re.compile(
    r"\b(sparkling\s*water|carbonated\s*water|seltzer|soda|cola|juice|sports\s*drink|energy\s*drink)\w*",
    re.I,
)
_WATER = re.compile(r"\b(water|bottled\s*water)\w*", re.I)
_FIZZY = re.compile(r"\b(sparkling|carbonated|seltzer)\w*", re.I)
_PACKAGED = re.compile(r"\b(chip|cracker|cookie|cereal|pasta|rice)\w*", re.I)
_CANNED = re.compile(r"\b(can|sauce|soup|bean)\w*", re.I)
_BOTTLED = re.compile(r"\b(bottle|jar|ketchup|mustard|dressing)\w*", re.I)
_BUNCHED = re.compile(r"\b(banana|herb|green onion|asparagus)\w*", re.I)


def detect_optimal_unit(product_name: str, current_unit: Optional[str] = None) -> str:
    """Suggest how an item is usually bought (by weight, can, package...)."""
    name = product_name.lower()

    if _WEIGHT_ITEMS.search(name):
        return "LB"
    # gallons and bottles are bought by the container
    if _CONTAINER_LIQUIDS.search(name):
        return "COUNT"
    if _CANNED_DRINKS.search(name):
        return "CAN"
    if _WATER.search(name) and not _FIZZY.search(name):
        return "COUNT"
    if _PACKAGED.search(name):
        return "PKG"
    if _CANNED.search(name):
        return "CAN"
    if _BOTTLED.search(name):
        return "BOTTLE"
    if _BUNCHED.search(name):
        return "BUNCH"
    return current_unit or "COUNT"


def _has(name: str, *needles: str) -> bool:
    return any(needle in name for needle in needles)


def detect_unit_from_item_name(item_name: str) -> str:
    """Unit guess from plain substrings of the item name."""
    name = item_name.lower()

    if _has(name, "dozen", "12 pack", "eggs"):
        return "DOZEN"
    if "gallon" in name or ("milk" in name and not _has(name, "almond", "coconut")):
        return "GALLON"
    if _has(name, "loaf", "bread"):
        return "LOAF"
    if _has(name, "bunch", "bananas", "spinach"):
        return "BUNCH"
    if _has(name, "bag", "chips", "rice", "flour"):
        return "BAG"

    # Beverages prefer bottle over gallon
    if _has(name, "sparkling water", "seltzer", "carbonated water"):
        return "BOTTLE"
    if "water" in name and _has(name, "bottle", "pack"):
        return "BOTTLE"
    if _has(name, "soda", "cola", "pepsi", "coke"):
        return "BOTTLE"
    if "juice" in name and "gallon" not in name:
        return "BOTTLE"
    if _has(name, "beer", "wine", "bottle"):
        return "BOTTLE"

    if _has(name, "jar", "peanut butter", "jam"):
        return "JAR"
    if _has(name, "can", "soup", "beans", "tuna"):
        return "CAN"
    if _has(name, "box", "cereal", "pasta"):
        return "BOX"
    if _has(name, "pack", "gum", "batteries"):
        return "PACK"
    if _has(name, "roll", "toilet paper", "paper towel"):
        return "ROLL"

    if _has(
        name, "lb", "pound", "meat", "chicken", "beef", "fish", "salmon", "turkey", "cheese", "deli"
    ):
        return "LB"
    if _has(
        name, "apple", "orange", "lemon", "lime", "onion", "potato", "avocado", "bell pepper"
    ):
        return "COUNT"
    if _has(name, "tomato", "carrot", "grape", "strawberry", "blueberry"):
        return "LB"

    return "COUNT"


def generate_quantity_suggestions(product_name: str, category: str) -> list[float]:
    """Typical quantities to offer for an item, in its usual unit."""
    name = product_name.lower()

    if category == Category.DAIRY_EGGS.value:
        if "egg" in name:
            return [6, 12, 18, 24]
        if "milk" in name:
            return [1]
        if "yogurt" in name:
            return [1, 4, 6, 8]

    if category == Category.PRODUCE.value:
        if "banana" in name:
            return [1, 2, 3, 5]
        if "apple" in name:
            return [2, 3, 5]
        return [1, 2, 3]

    if category == Category.MEAT_SEAFOOD.value:
        return [0.5, 1, 1.5, 2, 3]

    if category == Category.BAKERY.value:
        return [1, 2]

    return [1, 2, 3, 4, 5, 6]


RETAILER_HOUSE_BRANDS: dict[str, list[str]] = {
    "walmart": ["Great Value", "Marketside", "Equate"],
    "target": ["Good & Gather", "Market Pantry", "Simply Balanced"],
    "kroger": ["Kroger Brand", "Simple Truth", "Private Selection"],
    "safeway": ["Signature SELECT", "O Organics", "Lucerne"],
}


def generate_retail_name_suggestions(product_name: str, retailer: Optional[str] = None) -> list[str]:
    """Names the product may be listed under on a retailer's shelf."""
    clean = product_name.strip()
    suggestions = [clean, f"Organic {clean}", f"Premium {clean}", f"Fresh {clean}"]
    if retailer:
        for prefix in RETAILER_HOUSE_BRANDS.get(retailer.lower(), []):
            suggestions.append(f"{prefix} {clean}")
    suggestions.append(f"Store Brand {clean}")
    return list(dict.fromkeys(suggestions))


def basic_categorization(product_name: str) -> str:
    """Minimal keyword fallback used when the categorizer API is unreachable."""
    name = product_name.lower()
    if _has(name, "milk", "cheese", "yogurt", "egg"):
        return Category.DAIRY_EGGS.value
    if _has(name, "apple", "banana", "tomato", "pepper"):
        return Category.PRODUCE.value
    if _has(name, "chicken", "beef", "fish", "turkey"):
        return Category.MEAT_SEAFOOD.value
    return Category.UNCATEGORIZED.value
