"""
Tests for the backend gateway client.

Happy paths run against the in-process fake backend; transport and decode
failures use ``httpx.MockTransport``.

Usage:
    pytest tests/test_gateway.py -v
"""
import httpx
import pytest

from friction_session.gateway import (
    GatewayConnectionError,
    GatewayDecodeError,
    GatewayError,
    GatewayStatusError,
)
from friction_session.models import (
    Category,
    FrictionItemCreate,
    FrictionItemUpdate,
    Status,
)

from fake_backend import canned_gateway, offline_gateway


def new_item(title="Slow WiFi", level=4, category=Category.DIGITAL, **extra):
    return FrictionItemCreate(title=title, annoyance_level=level, category=category, **extra)


class TestItemEndpoints:
    """CRUD calls round-trip through the fake backend."""

    @pytest.mark.asyncio
    async def test_health_check(self, gateway):
        assert await gateway.health_check() is True

    @pytest.mark.asyncio
    async def test_create_and_get(self, gateway):
        created = await gateway.create_item(new_item(encounter_limit=5))
        fetched = await gateway.get_item(created.id)

        assert created.title == "Slow WiFi"
        assert created.status is Status.NOT_FIXED
        assert created.encounter_count == 0
        assert fetched == created

    @pytest.mark.asyncio
    async def test_list_with_filters(self, gateway, backend):
        backend.seed(title="Squeaky door", annoyance_level=2, category="home")
        backend.seed(title="Flaky VPN", annoyance_level=5, category="work", status="fixed")
        backend.seed(title="Slow WiFi", annoyance_level=4, category="digital")

        everything = await gateway.list_items()
        fixed = await gateway.list_items(status=Status.FIXED)
        home = await gateway.list_items(category=Category.HOME)

        assert [i.title for i in everything] == ["Slow WiFi", "Flaky VPN", "Squeaky door"]
        assert [i.title for i in fixed] == ["Flaky VPN"]
        assert [i.title for i in home] == ["Squeaky door"]
        assert ("GET", "/api/friction-items") in backend.requests

    @pytest.mark.asyncio
    async def test_update_sends_only_given_fields(self, gateway, backend):
        created = await gateway.create_item(new_item())

        updated = await gateway.update_item(
            created.id, FrictionItemUpdate(status=Status.IN_PROGRESS)
        )

        assert backend.update_payloads == [{"status": "in_progress"}]
        assert updated.status is Status.IN_PROGRESS
        assert updated.title == created.title

    @pytest.mark.asyncio
    async def test_update_explicit_none_clears_field(self, gateway, backend):
        created = await gateway.create_item(new_item(description="every morning", encounter_limit=3))

        updated = await gateway.update_item(
            created.id, FrictionItemUpdate(description=None, encounter_limit=None)
        )

        assert backend.update_payloads == [{"description": None, "encounter_limit": None}]
        assert updated.description is None
        assert updated.encounter_limit is None

    @pytest.mark.asyncio
    async def test_delete(self, gateway, backend):
        created = await gateway.create_item(new_item())

        assert await gateway.delete_item(created.id) is None
        assert backend.items == {}

    @pytest.mark.asyncio
    async def test_increment_encounter(self, gateway):
        created = await gateway.create_item(new_item(encounter_limit=2))

        first = await gateway.increment_encounter(created.id)
        second = await gateway.increment_encounter(created.id)

        assert first.encounter_count == 1
        assert first.is_limit_exceeded is False
        assert second.encounter_count == 2
        assert second.is_limit_exceeded is True
        assert second.last_encounter_date is not None


class TestAnalyticsEndpoints:
    """Analytics reads decode into their models."""

    @pytest.mark.asyncio
    async def test_score_without_limit(self, gateway, backend):
        backend.seed(title="Slow WiFi", annoyance_level=4, category="digital", encounter_count=3)

        score = await gateway.get_current_score()

        assert score.current_score == 12
        assert score.active_count == 1
        assert score.total_encounters_today == 3
        assert score.global_limit is None
        assert score.has_limit is False

    @pytest.mark.asyncio
    async def test_set_and_clear_global_limit(self, gateway, backend):
        backend.seed(title="Slow WiFi", annoyance_level=4, category="digital", encounter_count=5)

        ack = await gateway.set_global_limit(40)
        score = await gateway.get_current_score()

        assert ack.global_limit == 40
        assert (await gateway.get_global_limit()).global_limit == 40
        assert score.limit_percentage == 50

        cleared = await gateway.set_global_limit(None)
        assert cleared.global_limit is None
        assert (await gateway.get_current_score()).has_limit is False

    @pytest.mark.asyncio
    async def test_trend(self, gateway):
        points = await gateway.get_trend(days=7)

        assert len(points) == 7
        assert points == sorted(points, key=lambda p: p.date)

    @pytest.mark.asyncio
    async def test_category_breakdown(self, gateway, backend):
        backend.seed(title="Squeaky door", annoyance_level=2, category="home", encounter_count=2)
        backend.seed(title="Slow WiFi", annoyance_level=4, category="digital", encounter_count=1)

        breakdown = await gateway.get_category_breakdown()

        assert breakdown.score_for(Category.HOME) == 4
        assert breakdown.digital == 4
        assert breakdown.total == 8

    @pytest.mark.asyncio
    async def test_most_annoying(self, gateway, backend):
        backend.seed(title="Squeaky door", annoyance_level=2, category="home", encounter_count=1)
        backend.seed(title="Slow WiFi", annoyance_level=4, category="digital", encounter_count=3)
        backend.seed(title="Loud neighbour", annoyance_level=5, category="home", encounter_count=1)

        ranked = await gateway.get_most_annoying(limit=2)

        assert [(r.title, r.impact) for r in ranked] == [("Slow WiFi", 12), ("Loud neighbour", 5)]


class TestGatewayErrors:
    """Each failure class maps onto its own exception."""

    @pytest.mark.asyncio
    async def test_status_error_carries_code_and_detail(self, gateway):
        with pytest.raises(GatewayStatusError) as exc_info:
            await gateway.get_item(404)

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Friction item 404 not found"
        assert str(exc_info.value) == "HTTP Error 404: Friction item 404 not found"

    @pytest.mark.asyncio
    async def test_injected_server_error(self, gateway, backend):
        backend.fail("GET", "/api/analytics/score", status_code=503, detail="Maintenance")

        with pytest.raises(GatewayStatusError) as exc_info:
            await gateway.get_current_score()

        assert exc_info.value.status_code == 503
        assert "Maintenance" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_encounter_on_fixed_item_is_rejected(self, gateway, backend):
        fixed = backend.seed(title="Flaky VPN", annoyance_level=5, category="work", status="fixed")

        with pytest.raises(GatewayStatusError) as exc_info:
            await gateway.increment_encounter(fixed["id"])

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_connection_error(self):
        gateway = offline_gateway(httpx.ConnectError("Connection refused"))

        with pytest.raises(GatewayConnectionError) as exc_info:
            await gateway.list_items()

        assert isinstance(exc_info.value, GatewayError)
        assert "Network error" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_timeout_is_connection_error(self):
        gateway = offline_gateway(httpx.ReadTimeout("timed out"))

        with pytest.raises(GatewayConnectionError):
            await gateway.get_current_score()

    @pytest.mark.asyncio
    async def test_invalid_json_is_decode_error(self):
        gateway = canned_gateway(200, b"<html>not json</html>")

        with pytest.raises(GatewayDecodeError) as exc_info:
            await gateway.get_current_score()

        assert "Failed to decode response" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_wrong_shape_is_decode_error(self):
        gateway = canned_gateway(200, b'{"unexpected": true}')

        with pytest.raises(GatewayDecodeError):
            await gateway.get_current_score()

    @pytest.mark.asyncio
    async def test_list_of_wrong_shape_is_decode_error(self):
        gateway = canned_gateway(200, b'[{"id": "abc"}]')

        with pytest.raises(GatewayDecodeError):
            await gateway.list_items()

    @pytest.mark.asyncio
    async def test_plain_text_error_body(self):
        gateway = canned_gateway(500, b"upstream exploded")

        with pytest.raises(GatewayStatusError) as exc_info:
            await gateway.delete_item(1)

        assert exc_info.value.message == "upstream exploded"

    @pytest.mark.asyncio
    async def test_unhealthy_status_body(self):
        gateway = canned_gateway(200, b'{"status": "degraded"}')

        assert await gateway.health_check() is False
