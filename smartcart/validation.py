"""Input schemas for payloads sent to the SmartCart backend."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
    model_validator,
)

from smartcart.data.models import to_camel

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif")


class CamelModel(BaseModel):
    """Schema whose payload uses the backend's camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LoginRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: Optional[str] = None


class ProfileUpdate(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: Optional[str] = None
    profile_picture: Optional[HttpUrl] = None


class ShoppingListItemInput(BaseModel):
    """A new shopping list line, before the backend assigns it an id."""

    product_name: str = Field(min_length=1)
    quantity: float = Field(default=1, ge=1)
    unit: Optional[str] = None
    category: Optional[str] = None
    priority: Literal["low", "medium", "high"] = "medium"
    notes: Optional[str] = None
    shopping_list_id: Optional[int] = None
    suggested_retailer_id: Optional[int] = None
    suggested_price: Optional[int] = Field(default=None, ge=0)

    @field_validator("product_name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Item name is required")
        return value

    @field_validator("unit")
    @classmethod
    def upper_unit(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class PriceRange(BaseModel):
    min: float = Field(ge=0)
    max: float = Field(ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "PriceRange":
        if self.min > self.max:
            raise ValueError("min must not exceed max")
        return self


class SearchFilters(BaseModel):
    category: Optional[str] = None
    price_range: Optional[PriceRange] = None
    retailer: Optional[str] = None


class SearchQuery(BaseModel):
    query: str = Field(min_length=1)
    filters: Optional[SearchFilters] = None


class VoiceInput(CamelModel):
    transcript: str = Field(min_length=1)
    confidence: float = Field(ge=0, le=1)
    language: str = "en-US"


class PrivacyPreferences(CamelModel):
    share_analytics: bool
    allow_targeted_ads: bool
    share_location_data: bool
    share_purchase_history: bool


class NotificationPreferences(CamelModel):
    email_notifications: bool
    push_notifications: bool
    sms_notifications: bool


class ReceiptImage(BaseModel):
    """An image file about to be uploaded (receipt or circular)."""

    content: bytes
    content_type: str = "image/jpeg"

    @field_validator("content")
    @classmethod
    def check_size(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError("Image is empty")
        if len(value) > MAX_UPLOAD_BYTES:
            raise ValueError(f"Image exceeds {MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit")
        return value

    @field_validator("content_type")
    @classmethod
    def check_type(cls, value: str) -> str:
        if value not in ALLOWED_IMAGE_TYPES:
            raise ValueError(f"Unsupported image type {value}")
        return value


def format_validation_error(exc: ValidationError) -> list[str]:
    """Flatten a pydantic error into ``"field: message"`` lines."""
    lines = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "input"
        lines.append(f"{location}: {err.get('msg', 'invalid value')}")
    return lines
