"""Shared pytest fixtures for tournament-registrations-api tests."""
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

# Settings are read at import time: configure the test environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tournoi.services.core.cache import TTLCache  # noqa: E402
from tournoi.services.core.kv_store import MemoryKeyValueStore  # noqa: E402

START_TIME = 1_760_000_000.0  # epoch seconds, October 2025


class FakeClock:
    """Manually advanced clock, callable like ``time.time``."""

    def __init__(self, start: float = START_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FailingStore(MemoryKeyValueStore):
    """Key-value store whose every operation fails."""

    async def get(self, key):
        raise ConnectionError("store down")

    async def set(self, key, value):
        raise ConnectionError("store down")

    async def delete(self, key):
        raise ConnectionError("store down")


def mock_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """httpx client whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def make_item(
    item_id: int,
    name: str,
    order_id: Optional[int] = 42,
    email: Optional[str] = "marie.dupont@example.com",
    first_name: str = "Marie",
    last_name: str = "Dupont",
    date: str = "2026-03-01T10:00:00+01:00",
    custom_fields: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """HelloAsso items-endpoint record, as JSON."""
    item: Dict[str, Any] = {
        "id": item_id,
        "name": name,
        "amount": 800,
        "type": "Registration",
        "state": "Processed",
        "payer": {"firstName": first_name, "lastName": last_name, "email": email},
        "order": {"id": order_id, "date": date, "formSlug": "tournoi-2026"},
    }
    if custom_fields is not None:
        item["customFields"] = custom_fields
    return item


def info_item(item_id: int, license_number: str = "12-3456", club: str = "", points: str = "", **kwargs):
    """The mandatory information item carrying the custom fields."""
    fields = [{"name": "N° licence", "type": "TextInput", "answer": license_number}]
    if club:
        fields.append({"name": "Club", "type": "TextInput", "answer": club})
    if points:
        fields.append({"name": "Points officiels", "type": "Number", "answer": points})
    return make_item(item_id, "Obligatoire - Informations complémentaires", custom_fields=fields, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def cache(store, clock) -> TTLCache:
    """Shared cache over an in-memory store, driven by the fake clock."""
    return TTLCache(store, clock=clock)


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture(scope="function")
def test_client():
    """
    FastAPI TestClient with the registration service replaced by a mock.

    The client is created without a context manager, so the lifespan (and
    its upstream clients) never runs. Tests configure ``client.service``.

    Usage:
        def test_endpoint(test_client):
            test_client.service.get_players.return_value = ...
            response = test_client.get("/api/players")
    """
    from unittest.mock import AsyncMock

    from fastapi.testclient import TestClient
    from tournoi.api.dependencies import get_registration_service
    from tournoi.main import app

    service = AsyncMock()
    app.dependency_overrides[get_registration_service] = lambda: service

    client = TestClient(app, raise_server_exceptions=False)
    client.service = service
    yield client

    app.dependency_overrides.clear()
