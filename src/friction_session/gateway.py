"""
HTTP gateway to the Friction Log backend.

Thin async wrapper over ``httpx.AsyncClient``. Every call either returns a
validated model or raises a ``GatewayError`` subclass; nothing here keeps
state beyond the HTTP client itself.
"""

import logging
from typing import Any, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from .models import (
    AggregateScore,
    Category,
    CategoryBreakdown,
    FrictionItem,
    FrictionItemCreate,
    FrictionItemUpdate,
    GlobalLimit,
    MostAnnoyingItem,
    Status,
    TrendDataPoint,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_ITEM_LIST = TypeAdapter(List[FrictionItem])
_TREND_LIST = TypeAdapter(List[TrendDataPoint])
_RANKED_LIST = TypeAdapter(List[MostAnnoyingItem])


class GatewayError(Exception):
    """Base exception for backend gateway failures."""


class GatewayConnectionError(GatewayError):
    """The backend could not be reached."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Network error: {cause}")


class GatewayStatusError(GatewayError):
    """The backend answered with a non-success status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP Error {status_code}: {message or 'Unknown error'}")


class GatewayDecodeError(GatewayError):
    """The backend answered with a body that does not match the contract."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Failed to decode response: {cause}")


class FrictionGateway:
    """
    Async client for the Friction Log REST API.

    Usage::

        async with FrictionGateway("http://localhost:8000") as gateway:
            items = await gateway.list_items(status=Status.NOT_FIXED)
    """

    ITEMS_PATH = "/api/friction-items"
    ANALYTICS_PATH = "/api/analytics"

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the gateway.

        Args:
            base_url: Backend root URL
            timeout: Per-request timeout in seconds
            client: Pre-built client (tests mount an ASGI app this way)
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "FrictionGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health_check(self) -> bool:
        """Return True if the backend reports itself healthy."""
        body = await self._request("GET", "/health")
        return isinstance(body, dict) and body.get("status") == "ok"

    # ------------------------------------------------------------------
    # Friction items
    # ------------------------------------------------------------------

    async def list_items(
        self,
        status: Optional[Status] = None,
        category: Optional[Category] = None,
    ) -> List[FrictionItem]:
        params = {}
        if status is not None:
            params["status"] = Status(status).value
        if category is not None:
            params["category"] = Category(category).value
        body = await self._request("GET", self.ITEMS_PATH, params=params or None)
        return _validate_with(_ITEM_LIST, body)

    async def get_item(self, item_id: int) -> FrictionItem:
        body = await self._request("GET", f"{self.ITEMS_PATH}/{item_id}")
        return _validate(FrictionItem, body)

    async def create_item(self, item: FrictionItemCreate) -> FrictionItem:
        body = await self._request(
            "POST", self.ITEMS_PATH, json=item.model_dump(mode="json")
        )
        return _validate(FrictionItem, body)

    async def update_item(
        self, item_id: int, update: FrictionItemUpdate
    ) -> FrictionItem:
        body = await self._request(
            "PUT", f"{self.ITEMS_PATH}/{item_id}", json=update.to_payload()
        )
        return _validate(FrictionItem, body)

    async def delete_item(self, item_id: int) -> None:
        await self._request(
            "DELETE", f"{self.ITEMS_PATH}/{item_id}", expect_body=False
        )

    async def increment_encounter(self, item_id: int) -> FrictionItem:
        body = await self._request("POST", f"{self.ITEMS_PATH}/{item_id}/encounter")
        return _validate(FrictionItem, body)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def get_current_score(self) -> AggregateScore:
        body = await self._request("GET", f"{self.ANALYTICS_PATH}/score")
        return _validate(AggregateScore, body)

    async def get_trend(self, days: int = 30) -> List[TrendDataPoint]:
        body = await self._request(
            "GET", f"{self.ANALYTICS_PATH}/trend", params={"days": days}
        )
        return _validate_with(_TREND_LIST, body)

    async def get_category_breakdown(self) -> CategoryBreakdown:
        body = await self._request("GET", f"{self.ANALYTICS_PATH}/by-category")
        return _validate(CategoryBreakdown, body)

    async def get_most_annoying(self, limit: int = 5) -> List[MostAnnoyingItem]:
        body = await self._request(
            "GET", f"{self.ANALYTICS_PATH}/most-annoying", params={"limit": limit}
        )
        return _validate_with(_RANKED_LIST, body)

    async def get_global_limit(self) -> GlobalLimit:
        body = await self._request("GET", f"{self.ANALYTICS_PATH}/global-limit")
        return _validate(GlobalLimit, body)

    async def set_global_limit(self, limit: Optional[int]) -> GlobalLimit:
        """Set the global daily limit, or clear it with ``None``."""
        body = await self._request(
            "PUT", f"{self.ANALYTICS_PATH}/global-limit", json={"limit": limit}
        )
        # Some backends acknowledge with an empty body
        if body is None:
            return GlobalLimit(global_limit=limit)
        return _validate(GlobalLimit, body)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        expect_body: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body (or None if empty)."""
        logger.debug(f"[GATEWAY] {method} {path} params={params}")

        try:
            response = await self._client.request(
                method, path, params=params, json=json
            )
        except httpx.HTTPError as e:
            logger.warning(f"[GATEWAY] {method} {path} failed: {e!r}")
            raise GatewayConnectionError(e) from e

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                f"[GATEWAY] {method} {path} returned {response.status_code}: {message}"
            )
            raise GatewayStatusError(response.status_code, message)

        if not expect_body or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise GatewayDecodeError(e) from e


def _validate(model: Type[ModelT], body: Any) -> ModelT:
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise GatewayDecodeError(e) from e


def _validate_with(adapter: TypeAdapter, body: Any) -> Any:
    try:
        return adapter.validate_python(body)
    except ValidationError as e:
        raise GatewayDecodeError(e) from e


def _error_message(response: httpx.Response) -> Optional[str]:
    """Pull a readable message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None

    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message")
        if isinstance(detail, str):
            return detail
        if detail is not None:
            return str(detail)
    return response.text or None
