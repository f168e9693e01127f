"""
Friction Session Controller.

Sequences every user-facing operation against the backend gateway, the
local item cache, and the threshold notifier. Local state changes only
after the backend confirms them; a failed call leaves the cache exactly as
it was and surfaces a message in ``error_message``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from pydantic import ValidationError

from .alert_queue import AlertQueue
from .config import Settings, get_settings
from .gateway import FrictionGateway, GatewayError
from .item_cache import ItemCache
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
from .notifications import ThresholdNotifier

logger = logging.getLogger(__name__)


class FrictionSessionController:
    """
    Orchestrates one user's friction session.

    Every mutating operation returns True on success and False on failure.
    Observable state (``items``, ``current_score``, ``error_message`` ...)
    is meant to be read by the presentation layer after each call.
    """

    def __init__(
        self,
        gateway: FrictionGateway,
        notifier: Optional[ThresholdNotifier] = None,
        alert_queue: Optional[AlertQueue] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the controller.

        Args:
            gateway: Backend gateway
            notifier: Threshold notifier (defaults to one publishing to alert_queue)
            alert_queue: Alert delivery queue
            settings: Session settings (defaults from environment)
        """
        self.settings = settings or get_settings()
        self.gateway = gateway
        self.alert_queue = alert_queue or AlertQueue(
            max_history=self.settings.alert_history_size
        )
        self.notifier = notifier or ThresholdNotifier(sink=self.alert_queue.publish)
        self.cache = ItemCache()

        self.current_score: Optional[AggregateScore] = None
        self.trend: List[TrendDataPoint] = []
        self.category_breakdown: Optional[CategoryBreakdown] = None
        self.most_annoying: List[MostAnnoyingItem] = []
        self.global_limit: Optional[int] = None
        self.error_message: Optional[str] = None
        self.success_message: Optional[str] = None

        self._in_flight = 0

    @property
    def items(self) -> List[FrictionItem]:
        return self.cache.snapshot()

    @property
    def is_loading(self) -> bool:
        """True while any operation is awaiting the backend."""
        return self._in_flight > 0

    def clear_messages(self) -> None:
        self.error_message = None
        self.success_message = None

    # ------------------------------------------------------------------
    # Friction items
    # ------------------------------------------------------------------

    async def load_items(
        self,
        status: Optional[Status] = None,
        category: Optional[Category] = None,
    ) -> bool:
        """Reload the cache from the backend, optionally filtered."""
        self.error_message = None
        ticket = self.cache.begin_load()

        async with self._busy():
            try:
                items = await self.gateway.list_items(status=status, category=category)
            except GatewayError as e:
                return self._fail("load items", e)

        applied = self.cache.apply_load(ticket, items)
        if applied:
            logger.info(f"[SESSION] Loaded {len(items)} items (load #{ticket})")
        return True

    async def create_item(
        self,
        title: str,
        annoyance_level: int,
        category: Category,
        description: Optional[str] = None,
        encounter_limit: Optional[int] = None,
    ) -> bool:
        """Create an item and put the backend's copy at the top of the list."""
        self.clear_messages()
        try:
            request = FrictionItemCreate(
                title=title,
                description=description,
                annoyance_level=annoyance_level,
                category=category,
                encounter_limit=encounter_limit,
            )
        except ValidationError as e:
            return self._reject("create item", e)

        async with self._busy():
            try:
                item = await self.gateway.create_item(request)
            except GatewayError as e:
                return self._fail("create item", e)

            self.cache.insert_front(item)
            self.success_message = "Friction item added successfully!"
            logger.info(f"[SESSION] Created item {item.id}: {item.title}")

            await self.load_score()

        return True

    async def update_item(self, item_id: int, **fields) -> bool:
        """
        Send exactly the given fields to the backend and cache the result.

        Accepted fields: title, description, annoyance_level, category,
        status, encounter_limit. Passing ``None`` explicitly clears a
        nullable field; omitted fields are left unchanged.
        """
        self.error_message = None
        try:
            update = FrictionItemUpdate(**fields)
        except ValidationError as e:
            return self._reject("update item", e)

        async with self._busy():
            try:
                item = await self.gateway.update_item(item_id, update)
            except GatewayError as e:
                return self._fail("update item", e)

            self.cache.replace(item)
            self.success_message = "Item updated successfully!"
            logger.info(f"[SESSION] Updated item {item_id}: {sorted(update.to_payload())}")

            await self.load_score()

        return True

    async def delete_item(self, item_id: int) -> bool:
        """Delete an item; the cache only drops it once the backend agrees."""
        self.error_message = None

        async with self._busy():
            try:
                await self.gateway.delete_item(item_id)
            except GatewayError as e:
                return self._fail("delete item", e)

            self.cache.remove(item_id)
            self.success_message = "Item deleted successfully!"
            logger.info(f"[SESSION] Deleted item {item_id}")

            await self.load_score()

        return True

    async def increment_encounter(self, item_id: int) -> bool:
        """
        Record one encounter with an active item.

        After the backend confirms, refreshes the score and the
        most-annoying list, then checks the item's own limit followed by
        the global thresholds.
        """
        self.error_message = None

        cached = self.cache.get(item_id)
        if cached is not None and not cached.is_active:
            self.error_message = (
                f"Failed to record encounter: \"{cached.title}\" is already fixed"
            )
            return False

        async with self._busy():
            try:
                item = await self.gateway.increment_encounter(item_id)
            except GatewayError as e:
                return self._fail("record encounter", e)

            self.cache.replace(item)
            logger.info(
                f"[SESSION] Encounter on item {item_id}: "
                f"{item.encounter_count}/{item.encounter_limit or '-'}"
            )

            score_loaded = await self._refresh_score()
            await self.load_most_annoying()

            self.notifier.check_item(item)
            if score_loaded:
                self.notifier.check_score(self.current_score)

        return True

    # ------------------------------------------------------------------
    # Global limit
    # ------------------------------------------------------------------

    async def set_global_limit(self, limit: Optional[int]) -> bool:
        """Set the global daily limit, or clear it with ``None``."""
        self.error_message = None
        try:
            GlobalLimit(global_limit=limit)
        except ValidationError as e:
            return self._reject("set daily limit", e)

        async with self._busy():
            try:
                ack = await self.gateway.set_global_limit(limit)
            except GatewayError as e:
                return self._fail("set daily limit", e)

            self.global_limit = ack.global_limit
            self.success_message = (
                f"Daily limit set to {limit}" if limit is not None else "Daily limit cleared"
            )

            await self.load_score()

        return True

    async def load_global_limit(self) -> bool:
        try:
            self.global_limit = (await self.gateway.get_global_limit()).global_limit
        except GatewayError as e:
            return self._fail("load daily limit", e)
        return True

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def load_score(self) -> bool:
        """Refresh the aggregate score and check the global thresholds."""
        if not await self._refresh_score():
            return False
        self.notifier.check_score(self.current_score)
        return True

    async def load_trend(self, days: Optional[int] = None) -> bool:
        try:
            self.trend = await self.gateway.get_trend(days or self.settings.trend_days)
        except GatewayError as e:
            return self._fail("load trend data", e)
        return True

    async def load_category_breakdown(self) -> bool:
        try:
            self.category_breakdown = await self.gateway.get_category_breakdown()
        except GatewayError as e:
            return self._fail("load category breakdown", e)
        return True

    async def load_most_annoying(self, limit: Optional[int] = None) -> bool:
        try:
            self.most_annoying = await self.gateway.get_most_annoying(
                limit or self.settings.most_annoying_limit
            )
        except GatewayError as e:
            return self._fail("load most annoying items", e)
        return True

    async def load_all_analytics(self, trend_days: Optional[int] = None) -> bool:
        """Refresh score, trend, category breakdown and ranking."""
        self.error_message = None
        async with self._busy():
            results = [
                await self.load_score(),
                await self.load_trend(trend_days),
                await self.load_category_breakdown(),
                await self.load_most_annoying(),
            ]
        return all(results)

    async def check_backend_health(self) -> bool:
        try:
            healthy = await self.gateway.health_check()
        except GatewayError as e:
            logger.warning(f"[SESSION] Health check failed: {e}")
            healthy = False

        if not healthy:
            self.error_message = (
                "Backend is not responding. Please ensure the server is "
                f"running at {self.gateway.base_url}"
            )
        return healthy

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _refresh_score(self) -> bool:
        try:
            self.current_score = await self.gateway.get_current_score()
        except GatewayError as e:
            return self._fail("load score", e)
        self.global_limit = self.current_score.global_limit
        return True

    @asynccontextmanager
    async def _busy(self) -> AsyncIterator[None]:
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1

    def _fail(self, action: str, error: GatewayError) -> bool:
        self.error_message = f"Failed to {action}: {error}"
        logger.warning(f"[SESSION] {self.error_message}")
        return False

    def _reject(self, action: str, error: ValidationError) -> bool:
        """Refuse a request that never reached the backend."""
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in error.errors()
        )
        self.error_message = f"Failed to {action}: {problems}"
        logger.info(f"[SESSION] {self.error_message}")
        return False
