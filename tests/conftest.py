"""
Pytest fixtures for Friction Session tests.
"""
import sys
from datetime import date
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

# Ensure src/ is on sys.path so tests can import friction_session without installing.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from friction_session.alert_queue import AlertQueue
from friction_session.config import Settings
from friction_session.controller import FrictionSessionController
from friction_session.gateway import FrictionGateway
from friction_session.notifications import ThresholdNotifier

from fake_backend import FakeFrictionBackend

BASE_URL = "http://testserver"
TODAY = date(2025, 3, 14)


class FakeClock:
    """Settable stand-in for ``date.today``."""

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Settings with defaults only, ignoring any local .env."""
    return Settings(_env_file=None)


@pytest.fixture
def backend():
    return FakeFrictionBackend(today=TODAY)


@pytest_asyncio.fixture
async def gateway(backend):
    """Gateway wired to the fake backend over ASGI."""
    client = httpx.AsyncClient(
        transport=httpx.ASGITransport(app=backend.app),
        base_url=BASE_URL,
    )
    yield FrictionGateway(base_url=BASE_URL, client=client)
    await client.aclose()


@pytest.fixture
def alert_queue():
    return AlertQueue()


@pytest.fixture
def controller(gateway, clock, alert_queue, settings):
    notifier = ThresholdNotifier(sink=alert_queue.publish, clock=clock)
    return FrictionSessionController(
        gateway,
        notifier=notifier,
        alert_queue=alert_queue,
        settings=settings,
    )

