"""
Unit tests for ConnectionSelector.

Tests verify:
- Candidates are probed in order and the first live one wins
- A slow candidate is abandoned after the per-candidate timeout
- Failed and replaced clients are closed
- Observers are notified of the new endpoint
"""

import asyncio

import pytest

from registrar.domain.endpoints import ConnectionSelector, EndpointChanged
from registrar.domain.exceptions import NoReachableEndpoint
from registrar.domain.ports import Network


def selector_for(clients: dict) -> ConnectionSelector:
    return ConnectionSelector(lambda endpoint: clients[endpoint], probe_timeout=0.05)


class TestSelectEndpoint:
    """Tests for select_endpoint()."""

    def test_first_live_candidate_wins(self, make_rpc) -> None:
        clients = {"https://a": make_rpc("https://a"), "https://b": make_rpc("https://b")}
        selector = selector_for(clients)

        endpoint = asyncio.run(selector.select_endpoint(["https://a", "https://b"]))

        assert endpoint == "https://a"
        assert selector.client is clients["https://a"]
        assert clients["https://b"].closed is False

    def test_slow_candidate_times_out_and_next_is_selected(self, make_rpc) -> None:
        """Candidate 1 exceeds its deadline; candidate 2 answers."""
        slow = make_rpc("https://slow")
        slow.version_delay = 1.0
        fast = make_rpc("https://fast")
        selector = selector_for({"https://slow": slow, "https://fast": fast})

        endpoint = asyncio.run(
            selector.select_endpoint(["https://slow", "https://fast"], per_candidate_timeout=0.05)
        )

        assert endpoint == "https://fast"
        assert selector.endpoint == "https://fast"
        assert slow.closed is True

    def test_erroring_candidate_is_skipped(self, make_rpc) -> None:
        broken = make_rpc("https://broken")
        broken.version_error = ConnectionError("refused")
        ok = make_rpc("https://ok")
        selector = selector_for({"https://broken": broken, "https://ok": ok})

        assert asyncio.run(selector.select_endpoint(["https://broken", "https://ok"])) == "https://ok"
        assert broken.closed is True

    def test_no_reachable_endpoint(self, make_rpc) -> None:
        broken = make_rpc("https://broken")
        broken.version_error = ConnectionError("refused")
        selector = selector_for({"https://broken": broken})

        with pytest.raises(NoReachableEndpoint) as exc_info:
            asyncio.run(selector.select_endpoint(["https://broken"], network=Network.TEST))

        assert "test" in exc_info.value.message
        with pytest.raises(NoReachableEndpoint):
            _ = selector.client

    def test_previous_client_closed_on_replace(self, make_rpc) -> None:
        first = make_rpc("https://a")
        second = make_rpc("https://b")
        selector = selector_for({"https://a": first, "https://b": second})

        async def scenario() -> None:
            await selector.select_endpoint(["https://a"], network=Network.MAIN)
            await selector.select_endpoint(["https://b"], network=Network.TEST)

        asyncio.run(scenario())

        assert first.closed is True
        assert selector.client is second
        assert selector.network == Network.TEST

    def test_observers_notified(self, make_rpc) -> None:
        client = make_rpc("https://a")
        selector = selector_for({"https://a": client})
        events: list[EndpointChanged] = []
        unsubscribe = selector.subscribe(events.append)

        asyncio.run(selector.select_endpoint(["https://a"], network=Network.MAIN))
        unsubscribe()
        asyncio.run(selector.select_endpoint(["https://a"], network=Network.MAIN))

        assert len(events) == 1
        assert events[0].endpoint == "https://a"
        assert events[0].network == Network.MAIN
        assert events[0].version == {"solana-core": "1.18.0"}


class TestCheckHealth:
    """Tests for check_health()."""

    def test_healthy(self, rpc, make_selector) -> None:
        health = asyncio.run(make_selector(rpc).check_health())
        assert health.healthy is True
        assert health.endpoint == rpc.endpoint
        assert health.response_time_ms is not None

    def test_unhealthy(self, rpc, make_selector) -> None:
        selector = make_selector(rpc)
        rpc.version_error = ConnectionError("down")

        health = asyncio.run(selector.check_health())

        assert health.healthy is False
        assert health.error == "down"

    def test_nothing_selected(self, make_rpc) -> None:
        health = asyncio.run(ConnectionSelector(make_rpc).check_health())
        assert health.healthy is False
        assert health.endpoint is None

    def test_close(self, rpc, make_selector) -> None:
        selector = make_selector(rpc)
        asyncio.run(selector.close())
        assert rpc.closed is True
        assert selector.endpoint is None
