"""Data models for SmartCart.

These mirror the backend's JSON records. The backend speaks camelCase, the
models use snake_case; ``from_dict``/``to_dict`` translate between the two.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, Optional


class DealType(Enum):
    """How a store deal is applied at checkout."""

    FIXED_PRICE = "fixed_price"
    SPEND_THRESHOLD_PERCENTAGE = "spend_threshold_percentage"
    SPEND_THRESHOLD_FIXED = "spend_threshold_fixed"
    BUY_X_GET_Y = "buy_x_get_y"


class UnitType(Enum):
    """Units a shopping list item can be counted in."""

    COUNT = "COUNT"
    LB = "LB"
    GALLON = "GALLON"
    DOZEN = "DOZEN"
    LOAF = "LOAF"
    BUNCH = "BUNCH"
    BAG = "BAG"
    BOTTLE = "BOTTLE"
    CAN = "CAN"
    JAR = "JAR"
    BOX = "BOX"
    PACK = "PACK"
    ROLL = "ROLL"
    PKG = "PKG"
    CONTAINER = "CONTAINER"


class Category(Enum):
    """Store categories used by the categorizers."""

    PRODUCE = "Produce"
    DAIRY_EGGS = "Dairy & Eggs"
    MEAT_SEAFOOD = "Meat & Seafood"
    BAKERY = "Bakery"
    FROZEN_FOODS = "Frozen Foods"
    PANTRY = "Pantry & Canned Goods"
    BEVERAGES = "Beverages"
    PERSONAL_CARE = "Personal Care"
    HOUSEHOLD = "Household Items"
    HEALTH_WELLNESS = "Health & Wellness"
    GENERIC = "Generic"
    UNCATEGORIZED = "Uncategorized"

    @property
    def icon(self) -> str:
        """Emoji representation."""
        icons = {
            "Produce": "🍎",
            "Dairy & Eggs": "🥛",
            "Meat & Seafood": "🥩",
            "Bakery": "🍞",
            "Frozen Foods": "❄️",
            "Pantry & Canned Goods": "🥫",
            "Beverages": "🥤",
            "Personal Care": "🧼",
            "Household Items": "🏠",
            "Health & Wellness": "💊",
        }
        return icons.get(self.value, "🛒")


_CAMEL_RE = re.compile(r"_([a-z])")
_SNAKE_RE = re.compile(r"(?<!^)(?=[A-Z])")


def to_camel(name: str) -> str:
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), name)


def to_snake(name: str) -> str:
    return _SNAKE_RE.sub("_", name).lower()


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "" or isinstance(value, date):
        return value or None
    text = str(value)
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return date.fromisoformat(text[:10])


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "" or isinstance(value, datetime):
        return value or None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class Record:
    """Mixin giving dataclasses camelCase JSON conversion.

    Subclasses declare ``_nested`` (field -> record class, parsed from a dict
    or a list of dicts), ``_dates`` and ``_datetimes`` for fields that need
    conversion. Unknown keys in the payload are ignored.
    """

    _nested: ClassVar[dict[str, type]] = {}
    _dates: ClassVar[tuple[str, ...]] = ()
    _datetimes: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def from_dict(cls, payload: dict[str, Any]):
        known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        kwargs: dict[str, Any] = {}
        for key, value in payload.items():
            name = to_snake(key)
            if name not in known:
                continue
            if value is not None and name in cls._nested:
                record_cls = cls._nested[name]
                if isinstance(value, list):
                    value = [record_cls.from_dict(v) for v in value]
                else:
                    value = record_cls.from_dict(value)
            elif name in cls._dates:
                value = _parse_date(value)
            elif name in cls._datetimes:
                value = _parse_datetime(value)
            kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            result[to_camel(f.name)] = _serialize(value)
        return result


def _serialize(value: Any) -> Any:
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


@dataclass
class User(Record):
    """A SmartCart user and their shopping preferences."""

    id: int
    username: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    role: Optional[str] = None
    is_admin: Optional[bool] = None
    household_type: Optional[str] = None
    household_size: Optional[int] = None
    prefer_name_brand: Optional[bool] = None
    prefer_organic: Optional[bool] = None
    buy_in_bulk: Optional[bool] = None
    prioritize_cost_savings: Optional[bool] = None
    shopping_radius: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username


@dataclass
class Retailer(Record):
    id: int
    name: str
    logo_color: str = ""
    api_endpoint: Optional[str] = None


@dataclass
class RetailerAccount(Record):
    """A user's linked account at a specific retailer."""

    id: int
    user_id: int
    retailer_id: int
    is_connected: bool = False
    retailer: Optional[Retailer] = None
    account_username: Optional[str] = None

    _nested: ClassVar[dict[str, type]] = {"retailer": Retailer}


@dataclass
class Product(Record):
    id: int
    name: str
    category: str = Category.UNCATEGORIZED.value
    subcategory: Optional[str] = None
    default_unit: Optional[str] = None
    restock_frequency: Optional[str] = None
    is_name_brand: bool = False
    is_organic: bool = False


@dataclass
class PurchaseItem(Record):
    id: int
    purchase_id: int
    product_name: str
    quantity: float = 1
    unit_price: float = 0.0
    total_price: float = 0.0
    product_id: Optional[int] = None
    product: Optional[Product] = None

    _nested: ClassVar[dict[str, type]] = {"product": Product}


@dataclass
class Purchase(Record):
    """A past purchase, usually created from a scanned receipt."""

    id: int
    user_id: int
    purchase_date: Optional[date] = None
    total_amount: float = 0.0
    retailer_id: Optional[int] = None
    retailer: Optional[Retailer] = None
    receipt_image_url: Optional[str] = None
    receipt_data: Optional[dict[str, Any]] = None
    items: list[PurchaseItem] = field(default_factory=list)

    _nested: ClassVar[dict[str, type]] = {"retailer": Retailer, "items": PurchaseItem}
    _dates: ClassVar[tuple[str, ...]] = ("purchase_date",)


@dataclass
class ShoppingListItem(Record):
    """One line of a shopping list.

    ``suggested_price`` is in cents, as the backend stores it.
    """

    id: int
    shopping_list_id: int
    product_name: str
    quantity: float = 1
    unit: Optional[str] = None
    is_completed: bool = False
    product_id: Optional[int] = None
    product: Optional[Product] = None
    suggested_retailer_id: Optional[int] = None
    suggested_retailer: Optional[Retailer] = None
    suggested_price: Optional[int] = None
    due_date: Optional[date] = None
    category: Optional[str] = None
    notes: Optional[str] = None

    _nested: ClassVar[dict[str, type]] = {
        "product": Product,
        "suggested_retailer": Retailer,
    }
    _dates: ClassVar[tuple[str, ...]] = ("due_date",)


@dataclass
class ShoppingList(Record):
    id: int
    user_id: int
    name: str
    is_default: bool = False
    items: list[ShoppingListItem] = field(default_factory=list)

    _nested: ClassVar[dict[str, type]] = {"items": ShoppingListItem}

    @property
    def pending_items(self) -> list[ShoppingListItem]:
        return [i for i in self.items if not i.is_completed]

    @property
    def completed_items(self) -> list[ShoppingListItem]:
        return [i for i in self.items if i.is_completed]


@dataclass
class StoreDeal(Record):
    """A sale at a retailer. Prices are in dollars."""

    id: int
    retailer_id: int
    product_name: str
    regular_price: float
    sale_price: float
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    retailer: Optional[Retailer] = None
    category: Optional[str] = None
    deal_source: Optional[str] = None
    circular_id: Optional[int] = None
    image_url: Optional[str] = None
    featured: Optional[bool] = None
    deal_type: Optional[DealType] = None
    spend_threshold: Optional[float] = None
    discount_percentage: Optional[float] = None
    max_discount_amount: Optional[float] = None

    _nested: ClassVar[dict[str, type]] = {"retailer": Retailer}
    _dates: ClassVar[tuple[str, ...]] = ("start_date", "end_date")

    def __post_init__(self) -> None:
        if isinstance(self.deal_type, str):
            self.deal_type = DealType(self.deal_type)

    @property
    def savings(self) -> float:
        """Dollars saved against the regular price."""
        return max(self.regular_price - self.sale_price, 0.0)

    @property
    def discount_percent(self) -> float:
        if self.regular_price <= 0:
            return 0.0
        return (self.savings / self.regular_price) * 100

    def is_active(self, on: Optional[date] = None) -> bool:
        today = on or date.today()
        if self.start_date and today < self.start_date:
            return False
        if self.end_date and today > self.end_date:
            return False
        return True


@dataclass
class WeeklyCircular(Record):
    """A retailer's weekly sales flyer."""

    id: int
    retailer_id: int
    title: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True
    retailer: Optional[Retailer] = None
    image_url: Optional[str] = None
    description: Optional[str] = None
    pdf_url: Optional[str] = None
    created_at: Optional[datetime] = None

    _nested: ClassVar[dict[str, type]] = {"retailer": Retailer}
    _dates: ClassVar[tuple[str, ...]] = ("start_date", "end_date")
    _datetimes: ClassVar[tuple[str, ...]] = ("created_at",)

    def is_current(self, on: Optional[date] = None) -> bool:
        today = on or date.today()
        if not self.is_active:
            return False
        if self.start_date and today < self.start_date:
            return False
        return not (self.end_date and today > self.end_date)


@dataclass
class Recommendation(Record):
    """A backend-generated purchase suggestion."""

    id: int
    user_id: int
    product_name: str
    recommended_date: Optional[date] = None
    product_id: Optional[int] = None
    product: Optional[Product] = None
    days_until_purchase: Optional[int] = None
    suggested_retailer_id: Optional[int] = None
    suggested_retailer: Optional[Retailer] = None
    suggested_price: Optional[float] = None
    savings: Optional[float] = None
    reason: Optional[str] = None

    _nested: ClassVar[dict[str, type]] = {
        "product": Product,
        "suggested_retailer": Retailer,
    }
    _dates: ClassVar[tuple[str, ...]] = ("recommended_date",)


@dataclass
class PurchasePattern(Record):
    """How often, and where, a product is usually bought."""

    product_name: str
    frequency: str = ""
    typical_retailer: str = ""
    typical_price: float = 0.0


@dataclass
class MonthlySpending(Record):
    month: str
    current_year: float
    previous_year: float


@dataclass
class DealsSummary(Record):
    retailer_id: int
    retailer_name: str
    logo_color: str = ""
    deals_count: int = 0
    valid_until: Optional[date] = None

    _dates: ClassVar[tuple[str, ...]] = ("valid_until",)
