"""Product categorization: server-side categorizer with a local TTL cache.

The server returns, per product, a category block (category, aisle,
section, confidence) and a quantity normalization block (suggested
quantity/unit and the reason for the conversion). Results are cached in
memory by normalized product name.

:meth:`CategorizationService.get_quick_category` is the local scorer used
for instant feedback. It works in three stages:

1. A household-paper guard, so "paper towel" never lands in Produce.
2. Specific overrides (brand snacks, bell peppers, seeds) that win outright.
3. Scored pattern groups: each group counts how many of its patterns
   match; the highest count wins, ties go to the higher base confidence.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from smartcart.config import config
from smartcart.data.api_client import SmartCartClient
from smartcart.data.models import Category
from smartcart.errors import ApiError, ConnectionLostError

logger = logging.getLogger(__name__)


@dataclass
class Categorization:
    """Server categorization of one product."""

    category: str
    confidence: float
    aisle: str = ""
    section: str = ""
    suggested_quantity: Optional[float] = None
    suggested_unit: Optional[str] = None
    conversion_reason: Optional[str] = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Categorization:
        """Accepts ``{"category": {...}}`` or the flat ``{"category": "X"}`` shape."""
        category = payload.get("category") if isinstance(payload, dict) else None
        if isinstance(category, str) and category:
            category = {"category": category}
        elif not isinstance(category, dict):
            category = {}
        normalized = payload.get("normalized") if isinstance(payload, dict) else None
        if not isinstance(normalized, dict):
            normalized = {}
        return cls(
            category=category.get("category", Category.UNCATEGORIZED.value),
            confidence=float(category.get("confidence", 0) or 0),
            aisle=category.get("aisle", ""),
            section=category.get("section", ""),
            suggested_quantity=normalized.get("suggestedQuantity"),
            suggested_unit=normalized.get("suggestedUnit"),
            conversion_reason=normalized.get("conversionReason"),
        )


@dataclass
class QuickResult:
    category: str
    confidence: float
    suggested_quantity: Optional[float] = None
    suggested_unit: Optional[str] = None


@dataclass
class CacheStats:
    size: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


@dataclass
class _CacheEntry:
    result: Categorization
    timestamp: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now >= self.timestamp + self.ttl


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.I)


HOUSEHOLD_PAPER = _rx(r"\b(toilet\s*paper|paper\s*towel|tissue|napkin)\b")

SPECIFIC_MATCHES: list[tuple[re.Pattern[str], Category, float]] = [
    # Brand snacks
    (_rx(r"\b(oreos?|oreo)\b"), Category.PANTRY, 0.98),
    (_rx(r"\b(chips\s*ahoy|chipsahoy)\b"), Category.PANTRY, 0.98),
    (_rx(r"\b(nutter\s*butter|nutterbutter)\b"), Category.PANTRY, 0.98),
    (_rx(r"\b(famous\s*amos|famousamos)\b"), Category.PANTRY, 0.98),
    (_rx(r"\b(pepperidge\s*farm|pepperidgefarm)\b"), Category.PANTRY, 0.98),
    # Produce
    (_rx(r"\b(avocados?)\b"), Category.PRODUCE, 0.98),
    (
        _rx(r"\b(red\s*bell\s*peppers?|green\s*bell\s*peppers?|yellow\s*bell\s*peppers?|bell\s*peppers?)\b"),
        Category.PRODUCE,
        0.98,
    ),
    # Pantry staples
    (_rx(r"\b(quinoa)\b"), Category.PANTRY, 0.98),
    (_rx(r"\b(pine\s*nuts?)\b"), Category.PANTRY, 0.98),
    (_rx(r"\b(chia\s*seeds?|flax\s*seeds?|hemp\s*seeds?)\b"), Category.PANTRY, 0.95),
]

CATEGORY_PATTERNS: list[tuple[Category, float, list[re.Pattern[str]]]] = [
    (
        Category.PRODUCE,
        0.9,
        [
            _rx(r"\b(apple|banana|orange|grape|strawberr|blueberr|raspberr|blackberr|cranberr|peach|pear|plum|cherry|kiwi|mango|pineapple|watermelon|cantaloupe|honeydew|papaya|avocado|lemon|lime|grapefruit)\w*"),
            _rx(r"\b(tomato|onion|carrot|potato|sweet\s*potato|lettuce|spinach|kale|arugula|broccoli|cauliflower|cabbage|bell\s*pepper|jalape[ñn]o|pepper|cucumber|zucchini|squash|eggplant|asparagus|celery|corn|mushroom|garlic|ginger|scallion|green\s*onion|shallot|leek)\w*"),
            _rx(r"\b(basil|cilantro|parsley|dill|mint|rosemary|thyme|oregano|sage|chive)\w*"),
            _rx(r"\b(fresh|organic|local|seasonal|ripe|bunch|head)\s+(fruit|vegetable|herb|green)\w*"),
            _rx(r"\b(red\s*bell\s*peppers?|green\s*bell\s*peppers?|yellow\s*bell\s*peppers?|avocados?)\b"),
            _rx(r"\b(bag\s+of|bunch\s+of|head\s+of|lb\s+of|pound\s+of).*(apple|banana|carrot|potato|lettuce|spinach|onion)\w*"),
        ],
    ),
    (
        Category.DAIRY_EGGS,
        0.9,
        [
            _rx(r"\b(milk|whole\s*milk|skim\s*milk|2%\s*milk|1%\s*milk|low\s*fat\s*milk|fat\s*free\s*milk|chocolate\s*milk|almond\s*milk|soy\s*milk|oat\s*milk|coconut\s*milk|rice\s*milk|lactose\s*free\s*milk)\w*"),
            _rx(r"\b(cheese|cheddar|mozzarella|swiss|american|provolone|gouda|brie|camembert|feta|goat\s*cheese|cream\s*cheese|cottage\s*cheese|ricotta|parmesan|romano|blue\s*cheese|string\s*cheese)\w*"),
            _rx(r"\b(yogurt|greek\s*yogurt|butter|margarine|sour\s*cream|heavy\s*cream|whipping\s*cream|half\s*and\s*half|buttermilk)\w*"),
            _rx(r"\b(egg|eggs|dozen\s*egg|large\s*egg|extra\s*large\s*egg|organic\s*egg|free\s*range\s*egg|cage\s*free\s*egg|brown\s*egg|white\s*egg)\w*"),
        ],
    ),
    (
        Category.MEAT_SEAFOOD,
        0.9,
        [
            _rx(r"\b(beef|ground\s*beef|steak|ribeye|sirloin|filet|tenderloin|chuck|brisket|roast|hamburger\s*meat)\w*"),
            _rx(r"\b(chicken|turkey|duck|goose|cornish\s*hen|chicken\s*breast|chicken\s*thigh|chicken\s*wing|ground\s*chicken|ground\s*turkey|rotisserie\s*chicken)\w*"),
            _rx(r"\b(pork|ham|bacon|sausage|pork\s*chop|pork\s*loin|pork\s*shoulder|ground\s*pork|breakfast\s*sausage|italian\s*sausage)\w*"),
            _rx(r"\b(fish|salmon|tuna|cod|halibut|tilapia|mahi\s*mahi|shrimp|crab|lobster|scallop|oyster|clam|mussel|catfish|trout|bass|snapper)\w*"),
            _rx(r"\b(deli\s*meat|lunch\s*meat|sliced\s*turkey|sliced\s*ham|salami|pepperoni|prosciutto|pastrami|roast\s*beef)\w*"),
            _rx(r"\b(fresh|frozen|organic|grass\s*fed|free\s*range|wild\s*caught|farm\s*raised|lean|boneless|bone\s*in)\s+(meat|beef|chicken|pork|fish|salmon|turkey)\w*"),
        ],
    ),
    (
        Category.BAKERY,
        0.9,
        [
            _rx(r"\b(bread|loaf|white\s*bread|wheat\s*bread|whole\s*grain\s*bread|sourdough|rye\s*bread|pumpernickel|bagel|english\s*muffin|pita|naan|tortilla|wrap)\w*"),
            _rx(r"\b(muffin|cupcake|cake|cookie|brownie|pastry|croissant|danish|donut|doughnut|pie|tart)\w*"),
            _rx(r"\b(dinner\s*roll|hamburger\s*bun|hot\s*dog\s*bun|sandwich\s*roll|pretzel|baguette|ciabatta)\w*"),
        ],
    ),
    (
        Category.FROZEN_FOODS,
        0.9,
        [
            _rx(r"\b(frozen|ice\s*cream|popsicle|frozen\s*pizza|frozen\s*dinner|frozen\s*entree|tv\s*dinner|lean\s*cuisine|stouffer|hot\s*pocket)\w*"),
            _rx(r"\b(frozen\s*vegetable|frozen\s*fruit|frozen\s*berry|frozen\s*pea|frozen\s*corn|frozen\s*broccoli)\w*"),
            _rx(r"\b(frozen\s*chicken|frozen\s*fish|frozen\s*shrimp|frozen\s*beef)\w*"),
            _rx(r"\b(sherbet|sorbet|frozen\s*yogurt|gelato|ice\s*cream\s*sandwich|ice\s*cream\s*bar)\w*"),
        ],
    ),
    (
        Category.PERSONAL_CARE,
        0.8,
        [
            _rx(r"\b(shampoo|conditioner|hair\s*gel|hair\s*spray|hair\s*oil|dry\s*shampoo|hair\s*mask)\w*"),
            _rx(r"\b(body\s*wash|soap|bar\s*soap|hand\s*soap|body\s*lotion|moisturizer|body\s*cream|sunscreen|deodorant|antiperspirant)\w*"),
            _rx(r"\b(toothpaste|toothbrush|mouthwash|dental\s*floss|teeth\s*whitening)\w*"),
            _rx(r"\b(face\s*wash|cleanser|toner|serum|face\s*cream|eye\s*cream|lip\s*balm|chapstick)\w*"),
            _rx(r"\b(pad|tampon|feminine\s*wash|feminine\s*care)\w*"),
            _rx(r"\b(shaving\s*cream|razor|aftershave|beard\s*oil|men)\w*"),
        ],
    ),
    (
        Category.HOUSEHOLD,
        0.8,
        [
            _rx(r"\b(cleaner|all\s*purpose\s*cleaner|glass\s*cleaner|bathroom\s*cleaner|kitchen\s*cleaner|floor\s*cleaner|disinfectant|bleach|ammonia)\w*"),
            _rx(r"\b(detergent|laundry\s*detergent|fabric\s*softener|dryer\s*sheet|stain\s*remover|bleach)\w*"),
            _rx(r"\b(paper\s*towel|toilet\s*paper|tissue|napkin|paper\s*plate|paper\s*cup|aluminum\s*foil|plastic\s*wrap|parchment\s*paper)\w*"),
            _rx(r"\b(trash\s*bag|garbage\s*bag|storage\s*bag|ziplock|tupperware|food\s*storage)\w*"),
            _rx(r"\b(dish\s*soap|dishwasher\s*detergent|sponge|scrubber|dish\s*towel)\w*"),
        ],
    ),
    (
        Category.PANTRY,
        0.7,
        [
            _rx(r"\b(rice|pasta|noodle|quinoa|bulgur|couscous|barley|oat|cereal|granola|oatmeal|grain|whole\s*grain)\w*"),
            _rx(r"\b(can|canned|tomato\s*sauce|marinara|pasta\s*sauce|soup|broth|stock|canned\s*bean|canned\s*corn|canned\s*tomato)\w*"),
            _rx(r"\b(flour|sugar|brown\s*sugar|powdered\s*sugar|baking\s*powder|baking\s*soda|vanilla|salt|pepper|spice|seasoning)\w*"),
            _rx(r"\b(oil|olive\s*oil|vegetable\s*oil|canola\s*oil|coconut\s*oil|vinegar|balsamic)\w*"),
            _rx(r"\b(ketchup|mustard|mayonnaise|mayo|barbecue\s*sauce|soy\s*sauce|hot\s*sauce|salad\s*dressing|peanut\s*butter|jelly|jam)\w*"),
            _rx(r"\b(chip|cracker|pretzel|nut|almond|peanut|cashew|walnut|granola\s*bar|protein\s*bar)\w*"),
            _rx(r"\b(quinoa|chia\s*seed|flax\s*seed|hemp\s*seed|ancient\s*grain)\w*"),
            _rx(r"\b(coffee|tea|soda|juice|water|sports\s*drink|energy\s*drink|sparkling\s*water|carbonated\s*water|seltzer|mineral\s*water|flavored\s*water)\w*"),
        ],
    ),
]

# Substring -> unit; the first hit wins, so multi-word entries come before
# their single-word components where it matters.
UNIT_PATTERNS: list[tuple[str, str]] = [
    # Weight-based
    ("banana", "LB"),
    ("apple", "LB"),
    ("orange", "LB"),
    ("grape", "LB"),
    ("potato", "LB"),
    ("onion", "LB"),
    ("carrot", "LB"),
    ("meat", "LB"),
    ("chicken", "LB"),
    ("beef", "LB"),
    ("salmon", "LB"),
    ("fish", "LB"),
    # Count-based
    ("avocado", "COUNT"),
    ("pepper", "COUNT"),
    ("cucumber", "COUNT"),
    ("tomato", "COUNT"),
    # Container-based
    ("milk", "GALLON"),
    ("juice", "BOTTLE"),
    ("water", "BOTTLE"),
    ("yogurt", "CONTAINER"),
    ("cheese", "PACK"),
    ("egg", "DOZEN"),
    # Package-based
    ("bread", "LOAF"),
    ("cereal", "BOX"),
    ("pasta", "BOX"),
    ("rice", "BAG"),
    ("coffee", "BAG"),
    ("tea", "BOX"),
    # Household
    ("paper towel", "ROLL"),
    ("toilet paper", "ROLL"),
    ("soap", "BOTTLE"),
    ("shampoo", "BOTTLE"),
    ("detergent", "BOTTLE"),
]

UNIT_WORDS: list[tuple[re.Pattern[str], str]] = [
    (_rx(r"\b(lb|pound|lbs)\b"), "LB"),
    (_rx(r"\b(gallon|gal)\b"), "GALLON"),
    (_rx(r"\b(dozen|doz)\b"), "DOZEN"),
    (_rx(r"\b(bottle|btl)\b"), "BOTTLE"),
    (_rx(r"\b(box|pkg|package)\b"), "BOX"),
    (_rx(r"\b(bag|sack)\b"), "BAG"),
    (_rx(r"\b(roll|rolls)\b"), "ROLL"),
    (_rx(r"\b(pack|packs)\b"), "PACK"),
    (_rx(r"\b(jar|jars)\b"), "JAR"),
    (_rx(r"\b(can|cans)\b"), "CAN"),
]

# Typical multipack size caps for household paper goods
PAPER_PACK_LIMITS = {"paper towel": 6, "toilet paper": 12}


def normalize_name(product_name: str) -> str:
    return product_name.lower().strip()


class CategorizationService:
    def __init__(
        self,
        api_client: Optional[SmartCartClient] = None,
        ttl_seconds: Optional[float] = None,
        max_size: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.api_client = api_client
        self.ttl_seconds = (
            config.category_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        )
        self.max_size = config.category_cache_max_size if max_size is None else max_size
        self._clock = clock
        self._cache: dict[str, _CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def _cached(self, product_name: str) -> Optional[Categorization]:
        entry = self._cache.get(normalize_name(product_name))
        if entry is not None and not entry.expired(self._clock()):
            self._hits += 1
            return entry.result
        self._misses += 1
        return None

    def _store(self, product_name: str, result: Categorization) -> None:
        self._cache[normalize_name(product_name)] = _CacheEntry(
            result=result, timestamp=self._clock(), ttl=self.ttl_seconds
        )
        if len(self._cache) > self.max_size:
            self.clean_cache()

    def clean_cache(self) -> None:
        """Drop expired entries, then the oldest ones beyond ``max_size``."""
        now = self._clock()
        for key in [k for k, e in self._cache.items() if e.expired(now)]:
            del self._cache[key]

        overflow = len(self._cache) - self.max_size
        if overflow > 0:
            oldest = sorted(self._cache.items(), key=lambda kv: kv[1].timestamp)[:overflow]
            for key, _ in oldest:
                del self._cache[key]
            logger.debug(f"Evicted {overflow} categorization cache entries")

    async def categorize_product(
        self, product_name: str, quantity: float = 1, unit: str = "COUNT"
    ) -> Optional[Categorization]:
        """Categorize one product; None when the server is unavailable."""
        cached = self._cached(product_name)
        if cached is not None:
            return cached
        if self.api_client is None:
            return None

        try:
            results = await self.api_client.batch_categorize(
                [{"productName": product_name, "quantity": quantity, "unit": unit}]
            )
        except (ApiError, ConnectionLostError) as e:
            logger.warning(f"AI categorization failed for {product_name!r}: {e}")
            return None
        if not results:
            return None

        result = Categorization.from_api(results[0])
        self._store(product_name, result)
        return result

    async def categorize_products(
        self, items: list[dict[str, Any]]
    ) -> list[Optional[Categorization]]:
        """Categorize many products with at most one API call.

        ``items`` are ``{"productName", "quantity"?, "unit"?}`` dicts. The
        result is aligned with ``items``; entries the server did not answer
        stay None.
        """
        results: list[Optional[Categorization]] = [None] * len(items)
        uncached: list[dict[str, Any]] = []
        index_map: list[int] = []

        for index, item in enumerate(items):
            cached = self._cached(item["productName"])
            if cached is not None:
                results[index] = cached
            else:
                uncached.append(item)
                index_map.append(index)

        if not uncached or self.api_client is None:
            return results

        try:
            api_results = await self.api_client.batch_categorize(uncached)
        except (ApiError, ConnectionLostError) as e:
            logger.warning(f"Batch AI categorization failed: {e}")
            return results

        for position, payload in enumerate(api_results[: len(uncached)]):
            result = Categorization.from_api(payload)
            results[index_map[position]] = result
            self._store(uncached[position]["productName"], result)
        return results

    async def submit_feedback(
        self,
        product_name: str,
        original_category: str,
        corrected_category: str,
        confidence: float = 1.0,
    ) -> bool:
        """Report a user correction; the product is evicted so the next lookup refetches."""
        if self.api_client is None:
            return False
        try:
            response = await self.api_client.submit_categorization_feedback(
                product_name, original_category, corrected_category, confidence
            )
        except (ApiError, ConnectionLostError) as e:
            logger.warning(f"Failed to submit categorization feedback: {e}")
            return False

        message = response.get("message") if isinstance(response, dict) else None
        logger.info(f"Categorization feedback submitted for {product_name!r}: {message}")
        self._cache.pop(normalize_name(product_name), None)
        return True

    def get_quick_category(
        self,
        product_name: str,
        quantity: Optional[float] = None,
        unit: Optional[str] = None,
    ) -> QuickResult:
        name = normalize_name(product_name)

        if HOUSEHOLD_PAPER.search(name):
            return QuickResult(Category.HOUSEHOLD.value, 0.95, quantity, unit)

        for pattern, category, confidence in SPECIFIC_MATCHES:
            if pattern.search(name):
                logger.debug(f"Specific pattern match: {name!r} -> {category.value}")
                return QuickResult(category.value, confidence, quantity, unit)

        best_category = Category.GENERIC.value
        best_confidence = 0.2
        best_score = 0

        for category, confidence, patterns in CATEGORY_PATTERNS:
            score = sum(1 for pattern in patterns if pattern.search(name))
            if score == 0:
                continue
            adjusted = confidence + (0.1 if score > 1 else 0)
            if score > best_score or (score == best_score and adjusted > best_confidence):
                best_score = score
                best_category = category.value
                best_confidence = min(0.95, adjusted)

        suggested_quantity, suggested_unit = self.detect_count_optimization(
            best_category, name, quantity, unit
        )
        return QuickResult(
            best_category,
            best_confidence,
            suggested_quantity if suggested_quantity is not None else quantity,
            suggested_unit or unit,
        )

    @staticmethod
    def detect_count_optimization(
        category: str,
        name: str,
        quantity: Optional[float] = None,
        unit: Optional[str] = None,
    ) -> tuple[Optional[float], Optional[str]]:
        """Better (quantity, unit) for an item, given its category and name."""
        suggested_quantity = quantity
        suggested_unit = unit

        for needle, unit_suggestion in UNIT_PATTERNS:
            if needle in name:
                suggested_unit = unit_suggestion
                break

        if not suggested_unit or suggested_unit == unit:
            for pattern, unit_word in UNIT_WORDS:
                if pattern.search(name):
                    suggested_unit = unit_word
                    break

        if category == Category.HOUSEHOLD.value:
            for needle, limit in PAPER_PACK_LIMITS.items():
                if needle in name:
                    suggested_unit = "COUNT"
                    suggested_quantity = max(1, min(quantity or 1, limit))
                    break

        return suggested_quantity, suggested_unit

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> CacheStats:
        return CacheStats(size=len(self._cache), hits=self._hits, misses=self._misses)
