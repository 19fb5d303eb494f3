"""SmartCart REST API client."""

from __future__ import annotations

import asyncio
import base64
import logging
import re
from typing import Any, Literal, Optional

import httpx

from smartcart.config import config
from smartcart.data.models import (
    DealsSummary,
    MonthlySpending,
    PurchasePattern,
    Recommendation,
    Retailer,
    RetailerAccount,
    ShoppingList,
    ShoppingListItem,
    StoreDeal,
    User,
    WeeklyCircular,
)
from smartcart.errors import ApiError, ConnectionLostError, UnauthorizedError
from smartcart.validation import (
    LoginRequest,
    NotificationPreferences,
    PrivacyPreferences,
    ProfileUpdate,
    ReceiptImage,
    RegisterRequest,
    SearchQuery,
    ShoppingListItemInput,
    VoiceInput,
)

logger = logging.getLogger(__name__)

USER_AGENT = "SmartCart-Client/1.0"

ListStrategy = Literal["best-value", "balanced", "single-store"]


class SmartCartClient:
    """Async client for the SmartCart backend.

    Every call goes through :meth:`api_request`, which maps HTTP failures
    onto the :mod:`smartcart.errors` hierarchy and tracks whether the
    backend is currently reachable (:attr:`online`).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        max_network_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        retry_max_delay: Optional[float] = None,
        offline_mode: Optional[bool] = None,
    ) -> None:
        self.base_url = (base_url or config.api_base_url).rstrip("/")
        self.token = config.api_token if token is None else token
        self.timeout = timeout if timeout is not None else config.request_timeout_seconds
        self.max_network_retries = (
            config.max_network_retries if max_network_retries is None else max_network_retries
        )
        self.retry_base_delay = (
            config.retry_base_delay_seconds if retry_base_delay is None else retry_base_delay
        )
        self.retry_max_delay = (
            config.retry_max_delay_seconds if retry_max_delay is None else retry_max_delay
        )
        self.offline_mode = config.offline_mode if offline_mode is None else offline_mode
        self._client = http_client
        self._owns_client = http_client is None
        self._reachable = True

    @property
    def online(self) -> bool:
        """False when forced offline or after the last request lost its connection."""
        return not self.offline_mode and self._reachable

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"User-Agent": USER_AGENT}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> SmartCartClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _should_retry(self, failure_count: int, error: Exception) -> bool:
        """Decide whether a failed GET is tried again.

        ``failure_count`` is the number of failures before this one.
        """
        if isinstance(error, UnauthorizedError):
            return False
        if isinstance(error, ConnectionLostError):
            return failure_count < self.max_network_retries
        return failure_count < 1

    def retry_delay(self, attempt_index: int) -> float:
        return min(self.retry_base_delay * 2**attempt_index, self.retry_max_delay)

    async def _send(
        self,
        method: str,
        path: str,
        data: Any = None,
        params: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
    ) -> Any:
        client = self._get_client()
        kwargs: dict[str, Any] = {}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if files is not None:
            kwargs["files"] = files
            if data:
                kwargs["data"] = data
        elif data is not None:
            kwargs["json"] = data
        bearer = f"Bearer {self.token}"
        if self.token and client.headers.get("Authorization") != bearer:
            kwargs["headers"] = {"Authorization": bearer}

        try:
            response = await client.request(method, self._url(path), **kwargs)
        except httpx.TransportError as e:
            self._reachable = False
            logger.warning(f"Network error on {method} {path}: {e}")
            raise ConnectionLostError() from e

        self._reachable = True
        if response.status_code == 401:
            raise UnauthorizedError(401, response.text or response.reason_phrase)
        if response.status_code >= 400:
            raise ApiError(response.status_code, response.text or response.reason_phrase)
        if not response.content:
            return None
        return response.json()

    async def api_request(
        self,
        method: str,
        path: str,
        data: Any = None,
        params: Optional[dict[str, Any]] = None,
        files: Optional[dict[str, Any]] = None,
        retry: Optional[bool] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        GET requests are retried according to :meth:`_should_retry` with an
        exponential delay; other methods are sent exactly once unless
        ``retry=True`` marks them as reads (the batch endpoint).

        Raises:
            UnauthorizedError: on HTTP 401.
            ApiError: on any other non-2xx status.
            ConnectionLostError: when the backend cannot be reached.
        """
        method = method.upper()
        failure_count = 0
        while True:
            try:
                return await self._send(method, path, data=data, params=params, files=files)
            except (ApiError, ConnectionLostError) as e:
                retryable = method == "GET" if retry is None else retry
                if not retryable or not self._should_retry(failure_count, e):
                    raise
                delay = self.retry_delay(failure_count)
                failure_count += 1
                logger.info(
                    f"Retrying {method} {path} in {delay:.1f}s "
                    f"(attempt {failure_count + 1}): {e}"
                )
                await asyncio.sleep(delay)

    async def get_json(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        on_401: Literal["return_none", "raise"] = "return_none",
    ) -> Any:
        """GET helper; with ``on_401="return_none"`` an unauthenticated call yields None."""
        try:
            return await self.api_request("GET", path, params=params)
        except UnauthorizedError:
            if on_401 == "return_none":
                return None
            raise

    # Shopping lists

    async def get_shopping_lists(self) -> list[ShoppingList]:
        payload = await self.get_json("/api/shopping-lists", on_401="raise")
        return [ShoppingList.from_dict(p) for p in payload or []]

    async def get_shopping_list(self, list_id: int) -> ShoppingList:
        payload = await self.get_json(f"/api/shopping-lists/{list_id}", on_401="raise")
        return ShoppingList.from_dict(payload)

    async def create_shopping_list(self, name: str, is_default: bool = False) -> ShoppingList:
        payload = await self.api_request(
            "POST", "/api/shopping-lists", {"name": name, "isDefault": is_default}
        )
        return ShoppingList.from_dict(payload)

    async def add_shopping_list_item(
        self,
        product_name: str,
        quantity: float = 1,
        unit: Optional[str] = "COUNT",
        shopping_list_id: Optional[int] = None,
        **extra: Any,
    ) -> ShoppingListItem:
        """Validate and add an item; without a list id the backend uses the default list."""
        item = ShoppingListItemInput(
            product_name=product_name,
            quantity=quantity,
            unit=unit,
            shopping_list_id=shopping_list_id,
            **extra,
        )
        body = {
            "productName": item.product_name,
            "quantity": item.quantity,
            "unit": item.unit,
            "shoppingListId": item.shopping_list_id,
            "category": item.category,
            "notes": item.notes,
            "suggestedRetailerId": item.suggested_retailer_id,
            "suggestedPrice": item.suggested_price,
        }
        payload = await self.api_request(
            "POST",
            "/api/shopping-list/items",
            {k: v for k, v in body.items() if v is not None},
        )
        return ShoppingListItem.from_dict(payload)

    async def update_shopping_list_item(self, item_id: int, updates: dict[str, Any]) -> Any:
        return await self.api_request("PATCH", f"/api/shopping-list/items/{item_id}", updates)

    async def delete_shopping_list_item(self, item_id: int) -> None:
        await self.api_request("DELETE", f"/api/shopping-list/items/{item_id}")

    async def get_list_suggestions(self, list_id: Optional[int] = None) -> list[dict[str, Any]]:
        path = (
            f"/api/shopping-lists/{list_id}/suggestions"
            if list_id is not None
            else "/api/shopping-lists/suggestions"
        )
        return await self.get_json(path) or []

    async def generate_shopping_list(self, strategy: ListStrategy = "best-value") -> Any:
        """Ask the backend to optimise the default list for a shopping strategy."""
        if strategy not in ("best-value", "balanced", "single-store"):
            raise ValueError(f"Unknown strategy {strategy!r}")
        return await self.api_request("POST", f"/api/shopping-lists/{strategy}", {})

    # Deals and circulars

    async def get_deals(
        self,
        retailer_id: Optional[int] = None,
        category: Optional[str] = None,
    ) -> list[StoreDeal]:
        payload = await self.get_json(
            "/api/deals", params={"retailerId": retailer_id, "category": category}
        )
        return [StoreDeal.from_dict(p) for p in payload or []]

    async def search_deals(
        self,
        query: str,
        category: Optional[str] = None,
        retailer: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ) -> list[StoreDeal]:
        """Current deals whose name or category contains ``query``, narrowed by the filters."""
        filters: dict[str, Any] = {"category": category, "retailer": retailer}
        if min_price is not None or max_price is not None:
            filters["price_range"] = {
                "min": min_price or 0,
                "max": max_price if max_price is not None else float("inf"),
            }
        search = SearchQuery(query=query, filters=filters)
        deals = await self.get_deals(category=category)
        return [deal for deal in deals if _matches_search(deal, search)]

    async def get_deals_summary(self) -> list[DealsSummary]:
        payload = await self.get_json("/api/deals/summary")
        return [DealsSummary.from_dict(p) for p in payload or []]

    async def get_circulars(self) -> list[WeeklyCircular]:
        payload = await self.get_json("/api/circulars")
        return [WeeklyCircular.from_dict(p) for p in payload or []]

    async def get_circular_deals(self, circular_id: int) -> list[StoreDeal]:
        payload = await self.get_json(f"/api/circulars/{circular_id}/deals")
        return [StoreDeal.from_dict(p) for p in payload or []]

    async def upload_circular(
        self,
        retailer_id: int,
        content: Optional[bytes] = None,
        filename: str = "circular.pdf",
        content_type: str = "application/pdf",
        url: Optional[str] = None,
    ) -> Any:
        """Upload a circular as a file (image/PDF) or by URL for server-side parsing."""
        if content is None and not url:
            raise ValueError("Either content or url is required")
        form = {"retailerId": str(retailer_id)}
        if url:
            form["url"] = url
        files = {"file": (filename, content, content_type)} if content is not None else {}
        return await self.api_request("POST", "/api/circulars/upload", data=form, files=files)

    async def add_deal_to_list(self, deal: StoreDeal) -> ShoppingListItem:
        """Add a deal's product to the default list; the sale price is stored in cents."""
        return await self.add_shopping_list_item(
            deal.product_name,
            quantity=1,
            unit="COUNT",
            suggested_retailer_id=deal.retailer_id,
            suggested_price=round(deal.sale_price * 100),
        )

    # Recommendations and insights

    async def get_recommendations(self) -> list[Recommendation]:
        payload = await self.get_json("/api/recommendations")
        return [Recommendation.from_dict(p) for p in payload or []]

    async def get_monthly_savings(self) -> float:
        payload = await self.get_json("/api/insights/monthly-savings")
        if isinstance(payload, dict):
            return float(payload.get("savings", payload.get("monthlySavings", 0)) or 0)
        return float(payload or 0)

    async def get_contextual_insights(self) -> dict[str, Any]:
        return await self.get_json("/api/insights/contextual") or {}

    # Retailers

    async def get_retailers(self) -> list[Retailer]:
        payload = await self.get_json("/api/retailers")
        return [Retailer.from_dict(p) for p in payload or []]

    async def get_retailer_accounts(self) -> list[RetailerAccount]:
        payload = await self.get_json("/api/user/retailer-accounts", on_401="raise")
        return [RetailerAccount.from_dict(p) for p in payload or []]

    async def link_retailer_account(
        self,
        retailer_id: int,
        account_username: Optional[str] = None,
        **extra: Any,
    ) -> RetailerAccount:
        body: dict[str, Any] = {"retailerId": retailer_id, "isConnected": True, **extra}
        if account_username:
            body["accountUsername"] = account_username
        payload = await self.api_request("POST", "/api/user/retailer-accounts", body)
        return RetailerAccount.from_dict(payload)

    async def unlink_retailer_account(self, account_id: int) -> None:
        await self.api_request("DELETE", f"/api/user/retailer-accounts/{account_id}")

    # Receipts

    async def extract_receipt(self, image: bytes, content_type: str = "image/jpeg") -> Any:
        """Send a receipt photo for server-side OCR; returns the extracted data."""
        checked = ReceiptImage(content=image, content_type=content_type)
        encoded = base64.b64encode(checked.content).decode("ascii")
        return await self.api_request("POST", "/api/receipts/extract", {"image": encoded})

    async def save_receipt(self, image: bytes, receipt_data: Any) -> Any:
        encoded = base64.b64encode(image).decode("ascii")
        return await self.api_request(
            "POST",
            "/api/receipts",
            {"receiptImage": encoded, "receiptData": receipt_data},
        )

    # User

    async def get_profile(self) -> Optional[User]:
        payload = await self.get_json("/api/user/profile")
        return User.from_dict(payload) if payload else None

    async def update_profile(
        self,
        first_name: str,
        last_name: str,
        phone_number: Optional[str] = None,
        profile_picture: Optional[str] = None,
    ) -> User:
        update = ProfileUpdate(
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
            profile_picture=profile_picture,
        )
        payload = await self.api_request("PATCH", "/api/user/profile", update.payload())
        return User.from_dict(payload)

    async def get_privacy_preferences(self) -> Optional[PrivacyPreferences]:
        payload = await self.get_json("/api/user/privacy-preferences")
        return PrivacyPreferences.model_validate(payload) if payload else None

    async def update_privacy_preferences(
        self, preferences: PrivacyPreferences | dict[str, bool]
    ) -> Any:
        checked = PrivacyPreferences.model_validate(preferences)
        return await self.api_request(
            "PATCH", "/api/user/privacy-preferences", checked.payload()
        )

    async def get_notification_preferences(self) -> Optional[NotificationPreferences]:
        payload = await self.get_json("/api/user/notification-preferences")
        return NotificationPreferences.model_validate(payload) if payload else None

    async def update_notification_preferences(
        self, preferences: NotificationPreferences | dict[str, bool]
    ) -> Any:
        checked = NotificationPreferences.model_validate(preferences)
        return await self.api_request(
            "PATCH", "/api/user/notification-preferences", checked.payload()
        )

    # Auth

    async def login(self, username: str, password: str) -> User:
        """Log in and send the returned token on every later request."""
        credentials = LoginRequest(username=username, password=password)
        payload = await self.api_request("POST", "/api/auth/login", credentials.payload())
        if not isinstance(payload, dict) or not payload.get("token") or not payload.get("user"):
            raise ApiError(200, "Invalid login response")
        self.token = payload["token"]
        logger.info(f"Logged in as {username}")
        return User.from_dict(payload["user"])

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone_number: Optional[str] = None,
    ) -> Optional[User]:
        form = RegisterRequest(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
        )
        body = form.payload()
        body["username"] = re.sub(r"\s+", "", f"{first_name} {last_name}").lower()
        payload = await self.api_request("POST", "/api/auth/register", body)
        if not isinstance(payload, dict):
            return None
        if payload.get("token"):
            self.token = payload["token"]
        user = payload.get("user")
        return User.from_dict(user) if user else None

    # Voice assistant

    async def voice_conversation(
        self,
        transcript: str,
        context: Optional[list[str]] = None,
        confidence: float = 1.0,
        language: str = "en-US",
    ) -> Optional[str]:
        """Send a spoken request with the last few exchanges; returns the reply text."""
        voice = VoiceInput(transcript=transcript, confidence=confidence, language=language)
        history = list(context or [])[-4:] + [voice.transcript]
        payload = await self.api_request(
            "POST",
            "/api/voice/conversation",
            {"message": voice.transcript, "context": history},
        )
        return payload.get("response") if isinstance(payload, dict) else None

    # Planning

    async def get_shopping_route(
        self, retailer_ids: list[int], user_location: dict[str, float]
    ) -> Any:
        if not retailer_ids:
            raise ValueError("At least one retailer is required")
        return await self.api_request(
            "POST",
            "/api/shopping-route",
            {"retailerIds": list(retailer_ids), "userLocation": user_location},
        )

    async def get_top_items(self) -> list[PurchasePattern]:
        payload = await self.get_json("/api/insights/top-items")
        return [PurchasePattern.from_dict(p) for p in payload or []]

    async def get_monthly_spending(self) -> list[MonthlySpending]:
        payload = await self.get_json("/api/insights/monthly-spending")
        return [MonthlySpending.from_dict(p) for p in payload or []]

    async def analyze_purchase_patterns(
        self, purchase_history: list[dict[str, Any]]
    ) -> list[PurchasePattern]:
        payload = await self.api_request(
            "POST", "/api/analyze/patterns", {"purchaseHistory": purchase_history}
        )
        if isinstance(payload, dict):
            payload = payload.get("patterns")
        return [PurchasePattern.from_dict(p) for p in payload or []]

    # Product categorization

    async def batch_categorize(self, products: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """POST ``{"products": [...]}`` to the server-side categorizer."""
        return await self.api_request(
            "POST", "/api/products/batch-categorize", {"products": products}
        ) or []

    async def submit_categorization_feedback(
        self,
        product_name: str,
        original_category: str,
        corrected_category: str,
        confidence: float = 1.0,
    ) -> Any:
        return await self.api_request(
            "POST",
            "/api/products/categorization-feedback",
            {
                "productName": product_name,
                "originalCategory": original_category,
                "correctedCategory": corrected_category,
                "confidence": confidence,
            },
        )


def _matches_search(deal: StoreDeal, search: SearchQuery) -> bool:
    needle = search.query.strip().lower()
    haystack = f"{deal.product_name} {deal.category or ''}".lower()
    if needle not in haystack:
        return False

    filters = search.filters
    if filters is None:
        return True
    if filters.category and (deal.category or "").lower() != filters.category.lower():
        return False
    if filters.retailer:
        retailer_name = deal.retailer.name if deal.retailer else ""
        if retailer_name.lower() != filters.retailer.lower():
            return False
    price_range = filters.price_range
    if price_range and not price_range.min <= deal.sale_price <= price_range.max:
        return False
    return True
