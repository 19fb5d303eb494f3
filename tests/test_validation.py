"""Tests for the input schemas."""

import pytest
from pydantic import ValidationError

from smartcart.validation import (
    LoginRequest,
    PriceRange,
    PrivacyPreferences,
    ProfileUpdate,
    ReceiptImage,
    RegisterRequest,
    SearchQuery,
    ShoppingListItemInput,
    VoiceInput,
    format_validation_error,
)


def test_item_input_normalizes_name_and_unit():
    item = ShoppingListItemInput(product_name="  Bananas ", unit="lb", quantity=3)

    assert item.product_name == "Bananas"
    assert item.unit == "LB"
    assert item.priority == "medium"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"product_name": "   "},
        {"product_name": "Milk", "quantity": 0},
        {"product_name": "Milk", "priority": "urgent"},
        {"product_name": "Milk", "suggested_price": -1},
    ],
)
def test_item_input_rejects_bad_values(kwargs):
    with pytest.raises(ValidationError):
        ShoppingListItemInput(**kwargs)


def test_login_requires_six_character_password():
    assert LoginRequest(username="sam", password="secret").username == "sam"
    with pytest.raises(ValidationError):
        LoginRequest(username="sam", password="short")


def test_register_validates_email():
    with pytest.raises(ValidationError):
        RegisterRequest(email="not-an-email", password="secret1", first_name="A", last_name="B")


def test_price_range_order():
    assert PriceRange(min=1, max=5).max == 5
    with pytest.raises(ValidationError):
        PriceRange(min=10, max=5)


def test_search_query_nested_filters():
    query = SearchQuery(query="coffee", filters={"price_range": {"min": 0, "max": 12}})

    assert query.filters.price_range.max == 12


def test_voice_confidence_bounds():
    with pytest.raises(ValidationError):
        VoiceInput(transcript="add milk", confidence=1.5)


def test_receipt_image_limits():
    assert ReceiptImage(content=b"x", content_type="image/png").content_type == "image/png"
    with pytest.raises(ValidationError):
        ReceiptImage(content=b"")
    with pytest.raises(ValidationError):
        ReceiptImage(content=b"x" * (5 * 1024 * 1024 + 1))
    with pytest.raises(ValidationError):
        ReceiptImage(content=b"x", content_type="application/pdf")


def test_format_validation_error_lines():
    with pytest.raises(ValidationError) as excinfo:
        ShoppingListItemInput(product_name="Milk", quantity=0)

    lines = format_validation_error(excinfo.value)

    assert len(lines) == 1
    assert lines[0].startswith("quantity: ")


def test_backend_payloads_use_camel_case_keys():
    form = RegisterRequest(
        email="sam@example.com", password="secret1", first_name="Sam", last_name="Lee"
    )
    assert form.payload() == {
        "email": "sam@example.com",
        "password": "secret1",
        "firstName": "Sam",
        "lastName": "Lee",
    }
    assert PrivacyPreferences(
        shareAnalytics=True,
        allowTargetedAds=False,
        shareLocationData=False,
        sharePurchaseHistory=False,
    ).share_analytics


def test_profile_update_checks_picture_url():
    update = ProfileUpdate(first_name="Sam", last_name="Lee", profile_picture="https://cdn.test/me.png")
    assert update.payload()["profilePicture"] == "https://cdn.test/me.png"
    with pytest.raises(ValidationError):
        ProfileUpdate(first_name="Sam", last_name="Lee", profile_picture="not a url")
