"""Tests for the primary API client and relay rotation."""

import asyncio

import httpx
import pytest

from izsuwatch.models import EndpointKey
from izsuwatch.sources.base import FetchError, FetchErrorKind
from izsuwatch.sources.primary import PrimaryApiClient, RelayRing

BASE = "https://api.test/izsu"
RELAYS = [
    "https://relay-a.test/?{url}",
    "https://relay-b.test/?u={url}",
    "https://relay-c.test/proxy?quest={url}",
]


def host_handler(responses):
    """Answer by host; ``responses`` maps host -> callable(request) -> Response."""
    hits = []

    def handler(request):
        hits.append(request.url.host)
        return responses[request.url.host](request)

    return handler, hits


def ok(body):
    return lambda request: httpx.Response(200, json=body)


def status(code):
    return lambda request: httpx.Response(code, json={"message": "nope"})


class TestRelayRing:
    """Tests for RelayRing."""

    def test_requires_templates(self):
        """An empty ring is rejected."""
        with pytest.raises(ValueError):
            RelayRing([])

    def test_order_starts_at_cursor(self):
        """Order begins at the cursor and wraps around."""
        ring = RelayRing(RELAYS)
        assert ring.order() == [0, 1, 2]
        ring.mark_failed(0)
        assert ring.order() == [1, 2, 0]

    def test_mark_failed_wraps(self):
        """Failing the last relay moves the cursor back to the first."""
        ring = RelayRing(RELAYS)
        ring.mark_failed(0)
        ring.mark_failed(1)
        ring.mark_failed(2)
        assert ring.cursor == 0

    def test_stale_failure_ignored(self):
        """A failure for a relay the cursor already left does not move it."""
        ring = RelayRing(RELAYS)
        ring.mark_failed(0)
        ring.mark_failed(0)
        assert ring.cursor == 1

    def test_wrap_quotes_target(self):
        """The target URL is percent-encoded into the template."""
        ring = RelayRing(RELAYS)
        wrapped = ring.wrap(1, "https://api.test/izsu/barajdurum?Yil=2024")
        assert wrapped == (
            "https://relay-b.test/?u=https%3A%2F%2Fapi.test%2Fizsu%2Fbarajdurum%3FYil%3D2024"
        )


class TestDirectRequests:
    """Tests for calls without relays."""

    def test_fetch(self, make_client, instant_sleep):
        """Endpoints are requested at base/raw_name."""
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json=[{"BarajKuyuAdi": "Tahtalı Barajı"}])

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, sleep=instant_sleep)
                return await api.fetch(EndpointKey.DAM_STATUS)

        assert asyncio.run(run()) == [{"BarajKuyuAdi": "Tahtalı Barajı"}]
        assert seen == [f"{BASE}/barajdurum"]

    def test_params_appended(self):
        """Filters become query parameters."""
        api = PrimaryApiClient(BASE)
        assert api.endpoint_url(EndpointKey.PRODUCTION_DISTRIBUTION, {"Yil": 2024}) == (
            f"{BASE}/suuretiminindagilimi?Yil=2024"
        )

    def test_server_error_retried(self, make_client, instant_sleep):
        """5xx responses are retried until success."""
        responses = iter([503, 502, 200])

        def handler(request):
            code = next(responses)
            return httpx.Response(code, json=[1] if code == 200 else {})

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, max_retries=3, sleep=instant_sleep)
                return await api.fetch(EndpointKey.OUTAGES)

        assert asyncio.run(run()) == [1]

    def test_invalid_json_retried(self, make_client, instant_sleep):
        """An unreadable body is retried and a later valid reply is returned."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(200, text="<html>busy</html>")
            return httpx.Response(200, json=[{"BarajKuyuAdi": "Tahtalı"}])

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, max_retries=3, sleep=instant_sleep)
                return await api.fetch(EndpointKey.DAM_STATUS)

        assert asyncio.run(run()) == [{"BarajKuyuAdi": "Tahtalı"}]
        assert len(calls) == 2

    def test_invalid_json_exhausts_retries(self, make_client, instant_sleep):
        """A body that never parses fails as a parse error after every attempt."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, text="{truncated")

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, max_retries=3, sleep=instant_sleep)
                await api.fetch(EndpointKey.DAM_STATUS)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.kind is FetchErrorKind.PARSE
        assert len(calls) == 3

    def test_client_error_not_retried(self, make_client, instant_sleep):
        """4xx responses fail after a single request."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, max_retries=3, sleep=instant_sleep)
                await api.fetch(EndpointKey.OUTAGES)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.kind is FetchErrorKind.HTTP_CLIENT
        assert exc_info.value.status == 404
        assert len(calls) == 1

    def test_error_body_with_success_status(self, make_client, instant_sleep):
        """A 200 carrying the upstream error message counts as degraded."""

        def handler(request):
            return httpx.Response(200, json={"message": "An unexpected error occurred"})

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, max_retries=2, sleep=instant_sleep)
                await api.fetch(EndpointKey.DAM_STATUS)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.kind is FetchErrorKind.UPSTREAM_DEGRADED

    def test_datastore_only_endpoint(self, make_client, instant_sleep):
        """Endpoints only the datastore publishes are reported as no data."""

        def handler(request):
            raise AssertionError("no request expected")

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, sleep=instant_sleep)
                await api.fetch(EndpointKey.TARIFFS)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.kind is FetchErrorKind.NO_DATA


class TestRelayRequests:
    """Tests for calls routed through relays."""

    def test_first_relay_used(self, make_client, instant_sleep):
        """A healthy first relay serves the request and keeps the cursor."""
        handler, hits = host_handler({"relay-a.test": ok([1])})
        ring = RelayRing(RELAYS)

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, relays=ring, sleep=instant_sleep)
                return await api.fetch(EndpointKey.DAM_STATUS)

        assert asyncio.run(run()) == [1]
        assert hits == ["relay-a.test"]
        assert ring.cursor == 0

    def test_rotates_past_failing_relay(self, make_client, instant_sleep):
        """A failing relay is skipped and later calls start at the one that worked."""
        handler, hits = host_handler({
            "relay-a.test": status(403),
            "relay-b.test": ok([2]),
        })
        ring = RelayRing(RELAYS)

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, relays=ring, sleep=instant_sleep)
                first = await api.fetch(EndpointKey.DAM_STATUS)
                second = await api.fetch(EndpointKey.OUTAGES)
                return first, second

        assert asyncio.run(run()) == ([2], [2])
        assert hits == ["relay-a.test", "relay-b.test", "relay-b.test"]
        assert ring.cursor == 1

    def test_server_errors_retried_per_relay(self, make_client, instant_sleep):
        """Each relay gets the full retry budget for retryable failures."""
        handler, hits = host_handler({
            "relay-a.test": status(500),
            "relay-b.test": ok([3]),
        })

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(
                    BASE, client=http, relays=RelayRing(RELAYS), max_retries=2,
                    sleep=instant_sleep,
                )
                return await api.fetch(EndpointKey.DAM_STATUS)

        assert asyncio.run(run()) == [3]
        assert hits == ["relay-a.test", "relay-a.test", "relay-b.test"]

    def test_all_relays_fail(self, make_client, instant_sleep):
        """The last relay's error is raised when every relay fails."""
        handler, hits = host_handler({
            "relay-a.test": status(403),
            "relay-b.test": status(404),
            "relay-c.test": status(410),
        })
        ring = RelayRing(RELAYS)

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(BASE, client=http, relays=ring, sleep=instant_sleep)
                await api.fetch(EndpointKey.DAM_STATUS)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.status == 410
        assert hits == ["relay-a.test", "relay-b.test", "relay-c.test"]
        assert ring.cursor == 0

    def test_target_url_passed_to_relay(self, make_client, instant_sleep):
        """The relay receives the encoded primary URL."""
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json=[1])

        async def run():
            async with make_client(handler) as http:
                api = PrimaryApiClient(
                    BASE, client=http, relays=RelayRing(RELAYS[1:2]), sleep=instant_sleep
                )
                await api.fetch(EndpointKey.DAM_STATUS)

        asyncio.run(run())
        assert seen[0].params["u"] == f"{BASE}/barajdurum"

    def test_owned_client_follows_redirects(self):
        """A client created by the API client follows relay redirects."""

        async def run():
            api = PrimaryApiClient(BASE, relays=RelayRing(RELAYS))
            try:
                return api.client.follow_redirects
            finally:
                await api.aclose()

        assert asyncio.run(run()) is True
