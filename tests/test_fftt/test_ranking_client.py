"""Unit tests for the FFTT Smartping ranking client.

Test Strategy:
1. Request signing (timestamp format, md5 vector)
2. Lookup: parsing, caching, NOT_FOUND sentinel (no second network call)
3. Batch lookups: dedupe, chunking, per-license failure -> None
"""
import hashlib
import sys
from datetime import datetime
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
from conftest import mock_http_client

from tournoi.core.errors import ApiError, ErrorKind
from tournoi.models.fftt import FFTTJoueur
from tournoi.services.core.cache import CacheKeys
from tournoi.services.fftt.client import BATCH_SIZE, NOT_FOUND, RankingClient, to_ranking
from tournoi.services.fftt.signing import generate_timestamp, sign, signed_params

FIXED_NOW = datetime(2026, 3, 1, 9, 5, 7)


def _joueur(licence: str, point: str = "812") -> dict:
    return {
        "licence": licence,
        "nom": "DUPONT",
        "prenom": "Marie",
        "club": "TT CLUB DE TEST",
        "nclub": "08950001",
        "sexe": "F",
        "cat": "S",
        "point": point,
    }


class FakeSmartping:
    """Answers xml_joueur.php from a licence -> response table."""

    def __init__(self, players=None, statuses=None):
        self.players = players or {}
        self.statuses = statuses or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        licence = request.url.params["licence"]
        if licence in self.statuses:
            return httpx.Response(self.statuses[licence], text="error")
        if licence in self.players:
            return httpx.Response(200, json={"liste": [self.players[licence]]})
        return httpx.Response(200, json={"liste": []})


def _client(fake, cache, sleeper, serial="SW001", password="secret"):
    return RankingClient(
        serial=serial,
        password=password,
        http_client=mock_http_client(fake),
        cache=cache,
        now=lambda: FIXED_NOW,
        sleep=sleeper,
    )


class TestSigning:
    """Smartping request signature."""

    def test_timestamp_format(self):
        assert generate_timestamp(FIXED_NOW) == "20260301090507"

    def test_md5_vector(self):
        assert sign("a", "b", "c") == "900150983cd24fb0d6963f7d28e17f72"

    def test_signed_params(self):
        params = signed_params("SW001", "secret", FIXED_NOW)
        expected = hashlib.md5(b"SW001secret20260301090507").hexdigest()
        assert params == {"serie": "SW001", "tm": "20260301090507", "tmc": expected}


class TestLookup:
    """Single license lookups."""

    # Parsing Tests
    # ─────────────────────────────────────────────────────────────

    def test_to_ranking_parses_points(self):
        ranking = to_ranking(FFTTJoueur(**_joueur("123456", point="1523.5")))
        assert ranking.points == 1523
        assert ranking.club_code == "08950001"
        assert ranking.first_name == "Marie"

    def test_numeric_json_fields_accepted(self):
        """Points and licence sent as JSON numbers are read as text."""
        joueur = FFTTJoueur.model_validate({**_joueur("123456"), "licence": 123456, "point": 1234})

        ranking = to_ranking(joueur)

        assert ranking.license_number == "123456"
        assert ranking.points == 1234

    def test_to_ranking_unparsable_points_default(self):
        assert to_ranking(FFTTJoueur(**_joueur("123456", point="N/A"))).points == 500

    # Network / Cache Tests
    # ─────────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_found_player_is_cached(self, cache, sleeper):
        fake = FakeSmartping(players={"123456": _joueur("123456")})
        client = _client(fake, cache, sleeper)

        first = await client.lookup("123456")
        second = await client.lookup("123456")

        assert first == second
        assert first.points == 812
        assert len(fake.requests) == 1
        params = fake.requests[0].url.params
        assert params["serie"] == "SW001"
        assert params["tm"] == "20260301090507"
        assert params["licence"] == "123456"
        assert fake.requests[0].url.path == "/mobile/pxml/xml_joueur.php"

    @pytest.mark.asyncio
    async def test_empty_result_cached_as_not_found(self, cache, sleeper):
        """A second lookup of an unknown license makes zero network calls."""
        fake = FakeSmartping()
        client = _client(fake, cache, sleeper)

        assert await client.lookup("7654321") is None
        assert await cache.get(CacheKeys.fftt_player("7654321")) == NOT_FOUND

        assert await client.lookup("7654321") is None
        assert len(fake.requests) == 1

    @pytest.mark.asyncio
    async def test_404_cached_as_not_found(self, cache, sleeper):
        fake = FakeSmartping(statuses={"7654321": 404})
        client = _client(fake, cache, sleeper)

        assert await client.lookup("7654321") is None
        assert await client.lookup("7654321") is None
        assert len(fake.requests) == 1

    @pytest.mark.asyncio
    async def test_not_found_expires_after_ttl(self, cache, clock, sleeper):
        fake = FakeSmartping()
        client = _client(fake, cache, sleeper)

        await client.lookup("7654321")
        clock.advance(86400 + 1)
        await client.lookup("7654321")

        assert len(fake.requests) == 2

    @pytest.mark.asyncio
    async def test_upstream_error_propagates(self, cache, sleeper):
        fake = FakeSmartping(statuses={"123456": 401})
        client = _client(fake, cache, sleeper)

        with pytest.raises(ApiError) as exc_info:
            await client.lookup("123456")

        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED
        assert await cache.get(CacheKeys.fftt_player("123456")) is None

    @pytest.mark.asyncio
    async def test_missing_credentials(self, cache, sleeper):
        fake = FakeSmartping()
        client = _client(fake, cache, sleeper, password="")

        with pytest.raises(ApiError) as exc_info:
            await client.lookup("123456")

        assert exc_info.value.kind is ErrorKind.BAD_REQUEST
        assert fake.requests == []


class TestLookupMany:
    """Batched lookups."""

    @pytest.mark.asyncio
    async def test_failed_license_maps_to_none(self, cache, sleeper):
        fake = FakeSmartping(
            players={"123456": _joueur("123456")},
            statuses={"222222": 500},
        )
        client = _client(fake, cache, sleeper)

        results, failed = await client.lookup_many_detailed(["123456", "222222", "333333"])

        assert results["123456"].points == 812
        assert results["222222"] is None
        assert results["333333"] is None
        assert failed == ["222222"]

    @pytest.mark.asyncio
    async def test_duplicates_looked_up_once(self, cache, sleeper):
        fake = FakeSmartping(players={"123456": _joueur("123456")})
        client = _client(fake, cache, sleeper)

        results = await client.lookup_many(["123456", "123456", ""])

        assert list(results) == ["123456"]
        assert len(fake.requests) == 1

    @pytest.mark.asyncio
    async def test_all_licenses_resolved_across_batches(self, cache, sleeper):
        licenses = [f"{100000 + n}" for n in range(BATCH_SIZE * 2 + 3)]
        fake = FakeSmartping(players={lic: _joueur(lic) for lic in licenses})
        client = _client(fake, cache, sleeper)

        results = await client.lookup_many(licenses)

        assert len(results) == len(licenses)
        assert all(results[lic].license_number == lic for lic in licenses)
        assert len(fake.requests) == len(licenses)

    @pytest.mark.asyncio
    async def test_missing_credentials_raise_for_batches(self, cache, sleeper):
        client = _client(FakeSmartping(), cache, sleeper, serial="")

        with pytest.raises(ApiError) as exc_info:
            await client.lookup_many(["123456"])

        assert exc_info.value.kind is ErrorKind.BAD_REQUEST

    @pytest.mark.asyncio
    async def test_empty_input_needs_no_credentials(self, cache, sleeper):
        client = _client(FakeSmartping(), cache, sleeper, serial="")
        assert await client.lookup_many([]) == {}
