"""Unit tests for the HelloAsso API client.

Test Strategy:
1. Pagination: pageIndex first, continuationToken after, stop rules, 50-page cap
2. 401 rule: one forced token renewal, then UNAUTHORIZED
3. Items are parsed into RawItem models
"""
import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
from conftest import info_item, make_item, mock_http_client

from tournoi.core.errors import ApiError, ErrorKind
from tournoi.services.helloasso.client import MAX_PAGES, HelloAssoClient
from tournoi.services.helloasso.token_manager import TokenManager

ITEMS_PATH = "/v5/organizations/club-tt/forms/Event/tournoi-2026/items"


class FakeHelloAsso:
    """Serves the token endpoint and a scripted sequence of API responses."""

    def __init__(self, pages=None, statuses=None):
        self.pages = list(pages or [])
        self.statuses = list(statuses or [])
        self.api_requests = []
        self.token_requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth2/token":
            self.token_requests += 1
            return httpx.Response(200, json={
                "access_token": f"tok-{self.token_requests}",
                "expires_in": 1800,
            })

        self.api_requests.append(request)
        status = self.statuses.pop(0) if self.statuses else 200
        if status != 200:
            return httpx.Response(status, text="error")
        return httpx.Response(200, json=self.pages.pop(0))


def _page(data, token=None):
    pagination = {"pageSize": 100}
    if token:
        pagination["continuationToken"] = token
    return {"data": data, "pagination": pagination}


def _client(fake, cache, sleeper, organization_slug="club-tt", form_slug="tournoi-2026"):
    http = mock_http_client(fake)
    tokens = TokenManager("id", "secret", http, cache, sleep=sleeper)
    return HelloAssoClient(tokens, http, organization_slug, form_slug, sleep=sleeper)


class TestPagination:
    """fetch_all() cursor handling."""

    @pytest.mark.asyncio
    async def test_follows_continuation_token_until_empty_page(self, cache, sleeper):
        fake = FakeHelloAsso(pages=[
            _page([{"id": 1}, {"id": 2}], token="c1"),
            _page([{"id": 3}], token="c2"),
            _page([], token="c3"),
        ])
        client = _client(fake, cache, sleeper)

        records = await client.fetch_all("/things")

        assert [r["id"] for r in records] == [1, 2, 3]
        params = [r.url.params for r in fake.api_requests]
        assert params[0]["pageIndex"] == "1"
        assert "continuationToken" not in params[0]
        assert params[1]["continuationToken"] == "c1"
        assert params[2]["continuationToken"] == "c2"
        assert all(p["pageSize"] == "100" for p in params)

    @pytest.mark.asyncio
    async def test_stops_without_continuation_token(self, cache, sleeper):
        fake = FakeHelloAsso(pages=[_page([{"id": 1}])])
        client = _client(fake, cache, sleeper)

        assert len(await client.fetch_all("/things")) == 1
        assert len(fake.api_requests) == 1

    @pytest.mark.asyncio
    async def test_page_cap_returns_partial_results(self, cache, sleeper):
        """An endless cursor stops at the cap without raising."""
        fake = FakeHelloAsso(pages=[_page([{"id": n}], token=f"c{n}") for n in range(MAX_PAGES + 5)])
        client = _client(fake, cache, sleeper)

        records = await client.fetch_all("/things")

        assert len(records) == MAX_PAGES == 50
        assert len(fake.api_requests) == MAX_PAGES

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self, cache, sleeper):
        fake = FakeHelloAsso(pages=[_page([])])
        client = _client(fake, cache, sleeper)

        await client.fetch_all("/things")

        assert fake.api_requests[0].headers["Authorization"] == "Bearer tok-1"

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, cache, sleeper):
        fake = FakeHelloAsso(pages=[_page([{"id": 1}])], statuses=[500])
        client = _client(fake, cache, sleeper)

        assert len(await client.fetch_all("/things")) == 1
        assert sleeper.delays == [1.0]


class TestUnauthorizedRule:
    """Token renewal on 401."""

    @pytest.mark.asyncio
    async def test_single_401_renews_token_and_replays(self, cache, sleeper):
        fake = FakeHelloAsso(pages=[_page([{"id": 7}])], statuses=[401])
        client = _client(fake, cache, sleeper)

        records = await client.fetch_all("/things")

        assert records == [{"id": 7}]
        assert fake.token_requests == 2
        assert fake.api_requests[1].headers["Authorization"] == "Bearer tok-2"

    @pytest.mark.asyncio
    async def test_second_401_is_final(self, cache, sleeper):
        fake = FakeHelloAsso(statuses=[401, 401])
        client = _client(fake, cache, sleeper)

        with pytest.raises(ApiError) as exc_info:
            await client.fetch_all("/things")

        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED
        assert len(fake.api_requests) == 2
        assert fake.token_requests == 2
        assert sleeper.delays == []


class TestFormResources:
    """Items and orders endpoints."""

    @pytest.mark.asyncio
    async def test_get_items_parses_custom_fields(self, cache, sleeper):
        raw = info_item(11, license_number="12-3456", date="2026-03-01T10:00:00.1234567+01:00")
        fake = FakeHelloAsso(pages=[_page([make_item(10, "Tableau 1"), raw])])
        client = _client(fake, cache, sleeper)

        items = await client.get_items()

        request = fake.api_requests[0]
        assert request.url.path == ITEMS_PATH
        assert request.url.params["withDetails"] == "true"
        assert [item.id for item in items] == [10, 11]
        assert items[1].custom_fields[0].answer == "12-3456"
        assert items[1].order.id == 42
        assert items[1].order.date.microsecond == 123456
        assert items[0].payer.email == "marie.dupont@example.com"

    @pytest.mark.asyncio
    async def test_malformed_items_are_skipped(self, cache, sleeper):
        fake = FakeHelloAsso(pages=[_page([{"name": "no id"}, make_item(10, "Tableau 1")])])
        client = _client(fake, cache, sleeper)

        items = await client.get_items()

        assert [item.id for item in items] == [10]

    @pytest.mark.asyncio
    async def test_get_orders(self, cache, sleeper):
        fake = FakeHelloAsso(pages=[_page([{"id": 42, "date": "2026-03-01T10:00:00+01:00", "items": []}])])
        client = _client(fake, cache, sleeper)

        orders = await client.get_orders()

        assert fake.api_requests[0].url.path.endswith("/forms/Event/tournoi-2026/orders")
        assert orders[0].id == 42

    @pytest.mark.asyncio
    async def test_missing_slugs(self, cache, sleeper):
        fake = FakeHelloAsso()
        client = _client(fake, cache, sleeper, form_slug="")

        with pytest.raises(ApiError) as exc_info:
            await client.get_items()

        assert exc_info.value.kind is ErrorKind.BAD_REQUEST
        assert fake.api_requests == []
