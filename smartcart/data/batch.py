"""Batched API calls: many named requests in one POST to /api/batch."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Optional

from smartcart.config import config
from smartcart.data.api_client import SmartCartClient
from smartcart.data.models import Recommendation, RetailerAccount, ShoppingList, User
from smartcart.errors import ApiError, BatchError

logger = logging.getLogger(__name__)

Priority = Literal["high", "medium", "low"]


@dataclass
class BatchRequest:
    """One sub-request inside a batch, addressed by ``id`` in the response."""

    id: str
    endpoint: str
    method: str = "GET"
    params: Optional[dict[str, Any]] = None
    body: Any = None
    priority: Priority = "medium"

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "endpoint": self.endpoint,
            "method": self.method,
            "priority": self.priority,
        }
        if self.params:
            payload["params"] = self.params
        if self.body is not None:
            payload["body"] = self.body
        return payload


@dataclass
class BatchResponse:
    id: str
    status: int
    data: Any = None
    error: Optional[str] = None
    timing: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status < 400

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> BatchResponse:
        return cls(
            id=str(payload["id"]),
            status=int(payload.get("status", 500)),
            data=payload.get("data"),
            error=payload.get("error"),
            timing=float(payload.get("timing", 0) or 0),
        )


class BatchClient:
    """Sends batches and keeps each result fresh for ``stale_seconds``."""

    def __init__(
        self,
        api_client: SmartCartClient,
        stale_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.api_client = api_client
        self.stale_seconds = config.batch_stale_seconds if stale_seconds is None else stale_seconds
        self._clock = clock
        self._cache: dict[str, tuple[float, list[BatchResponse]]] = {}

    @staticmethod
    def cache_key(requests: Iterable[BatchRequest]) -> str:
        return ",".join(r.id for r in requests)

    async def execute(
        self,
        requests: list[BatchRequest],
        enabled: bool = True,
        force_refresh: bool = False,
    ) -> list[BatchResponse]:
        """Run ``requests`` as a single batch.

        Returns an empty list without touching the network when disabled or
        when there is nothing to send.

        Raises:
            BatchError: if the batch endpoint itself fails.
        """
        if not enabled or not requests:
            return []

        key = self.cache_key(requests)
        now = self._clock()
        cached = self._cache.get(key)
        if not force_refresh and cached and now - cached[0] < self.stale_seconds:
            logger.debug(f"Batch cache hit for {key}")
            return cached[1]

        try:
            payload = await self.api_client.api_request(
                "POST",
                "/api/batch",
                {"requests": [r.to_dict() for r in requests]},
                retry=True,
            )
        except ApiError as e:
            raise BatchError(e.status) from e

        responses = [BatchResponse.from_dict(r) for r in (payload or {}).get("responses", [])]
        failed = [r.id for r in responses if not r.ok]
        if failed:
            logger.warning(f"Batch sub-requests failed: {', '.join(failed)}")
        self._cache[key] = (now, responses)
        return responses

    def invalidate(self, ids: Optional[Iterable[str]] = None) -> None:
        """Drop cached batches; with ``ids``, only batches containing any of them."""
        if ids is None:
            self._cache.clear()
            return
        wanted = set(ids)
        for key in list(self._cache):
            if wanted & set(key.split(",")):
                del self._cache[key]


def demultiplex(responses: Iterable[BatchResponse]) -> dict[str, Any]:
    """Map response id to data, keeping only successful, non-empty entries."""
    result: dict[str, Any] = {}
    for response in responses:
        if response.ok and response.data:
            result[response.id] = response.data
    return result


DASHBOARD_REQUESTS = [
    BatchRequest(id="shopping-lists", endpoint="/api/shopping-lists", priority="high"),
    BatchRequest(id="recommendations", endpoint="/api/recommendations", priority="high"),
    BatchRequest(id="user-profile", endpoint="/api/user/profile", priority="medium"),
    BatchRequest(
        id="retailer-accounts", endpoint="/api/user/retailer-accounts", priority="medium"
    ),
    BatchRequest(
        id="monthly-savings", endpoint="/api/insights/monthly-savings", priority="low"
    ),
    BatchRequest(
        id="contextual-insights", endpoint="/api/insights/contextual", priority="low"
    ),
]


@dataclass
class DashboardData:
    """Everything the dashboard shows, with empty defaults for failed parts."""

    shopping_lists: list[ShoppingList] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    user_profile: Optional[User] = None
    retailer_accounts: list[RetailerAccount] = field(default_factory=list)
    monthly_savings: float = 0
    contextual_insights: dict[str, Any] = field(default_factory=dict)
    responses: list[BatchResponse] = field(default_factory=list)

    @classmethod
    def from_responses(cls, responses: list[BatchResponse]) -> DashboardData:
        data = demultiplex(responses)
        profile = data.get("user-profile")
        savings = data.get("monthly-savings", 0)
        if isinstance(savings, dict):
            savings = savings.get("savings", savings.get("monthlySavings", 0))
        return cls(
            shopping_lists=[ShoppingList.from_dict(p) for p in data.get("shopping-lists", [])],
            recommendations=[
                Recommendation.from_dict(p) for p in data.get("recommendations", [])
            ],
            user_profile=User.from_dict(profile) if profile else None,
            retailer_accounts=[
                RetailerAccount.from_dict(p) for p in data.get("retailer-accounts", [])
            ],
            monthly_savings=savings or 0,
            contextual_insights=data.get("contextual-insights", {}),
            responses=responses,
        )


async def fetch_dashboard(batch_client: BatchClient, force_refresh: bool = False) -> DashboardData:
    responses = await batch_client.execute(DASHBOARD_REQUESTS, force_refresh=force_refresh)
    return DashboardData.from_responses(responses)
