"""
Connection selector - picks the first reachable RPC endpoint.

Candidates are probed strictly in order, one at a time, so that
preferred endpoints win deterministically and no two backends are
connected at once. Each probe (getVersion) is raced against a
per-candidate timeout.
"""

import asyncio
import inspect
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .exceptions import NoReachableEndpoint
from .ports import Network, RpcClient, RpcClientFactory

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 3.0


@dataclass(frozen=True)
class EndpointChanged:
    """Notification sent after a new endpoint is selected."""

    endpoint: str
    network: Network | None
    version: dict[str, Any]


@dataclass(frozen=True)
class EndpointHealth:
    """Result of a health check against the selected endpoint."""

    healthy: bool
    endpoint: str | None
    response_time_ms: float | None = None
    version: dict[str, Any] | None = None
    error: str | None = None


EndpointObserver = Callable[[EndpointChanged], Any]


class ConnectionSelector:
    """
    Owns the selected RPC endpoint and its client.

    The selected client is shared by the wallet session and the
    registration workflow; it only changes through select_endpoint().
    """

    def __init__(
        self,
        client_factory: RpcClientFactory,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        self._client_factory = client_factory
        self._probe_timeout = probe_timeout
        self._client: RpcClient | None = None
        self._endpoint: str | None = None
        self._network: Network | None = None
        self._observers: list[EndpointObserver] = []

    @property
    def endpoint(self) -> str | None:
        return self._endpoint

    @property
    def network(self) -> Network | None:
        return self._network

    @property
    def client(self) -> RpcClient:
        """Client for the selected endpoint."""
        if self._client is None:
            raise NoReachableEndpoint("No RPC endpoint selected")
        return self._client

    def subscribe(self, observer: EndpointObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    async def select_endpoint(
        self,
        candidates: Sequence[str],
        per_candidate_timeout: float | None = None,
        network: Network | None = None,
    ) -> str:
        """
        Select the first candidate whose liveness probe succeeds.

        Args:
            candidates: Endpoint URLs, preferred first
            per_candidate_timeout: Probe deadline in seconds (default 3.0)
            network: Network the candidates belong to, for notifications

        Returns:
            The selected endpoint URL

        Raises:
            NoReachableEndpoint: If every candidate timed out or errored
        """
        timeout = self._probe_timeout if per_candidate_timeout is None else per_candidate_timeout

        for endpoint in candidates:
            logger.info("Probing RPC endpoint: %s", endpoint)
            client = self._client_factory(endpoint)
            try:
                version = await asyncio.wait_for(client.get_version(), timeout=timeout)
            except Exception as e:
                reason = "timeout" if isinstance(e, TimeoutError) else str(e)
                logger.warning("RPC endpoint failed: %s (%s)", endpoint, reason)
                await client.aclose()
                continue

            await self._replace_client(client, endpoint, network)
            logger.info("Connected to RPC endpoint: %s", endpoint)
            await self._notify(EndpointChanged(endpoint=endpoint, network=network, version=version))
            return endpoint

        label = network.value if network is not None else "network"
        raise NoReachableEndpoint(f"Failed to connect to {label}: no reachable RPC endpoint")

    async def check_health(self) -> EndpointHealth:
        """Probe the selected endpoint and measure its response time."""
        if self._client is None:
            return EndpointHealth(healthy=False, endpoint=None, error="No RPC endpoint selected")

        started = time.monotonic()
        try:
            version = await asyncio.wait_for(self._client.get_version(), timeout=self._probe_timeout)
        except Exception as e:
            logger.warning("RPC health check failed: %s (%s)", self._endpoint, e)
            return EndpointHealth(healthy=False, endpoint=self._endpoint, error=str(e) or "timeout")

        elapsed_ms = (time.monotonic() - started) * 1000
        return EndpointHealth(
            healthy=True,
            endpoint=self._endpoint,
            response_time_ms=elapsed_ms,
            version=version,
        )

    async def close(self) -> None:
        """Close the selected client."""
        if self._client is not None:
            await self._client.aclose()
        self._client = None
        self._endpoint = None

    async def _replace_client(self, client: RpcClient, endpoint: str, network: Network | None) -> None:
        previous = self._client
        self._client = client
        self._endpoint = endpoint
        self._network = network
        if previous is not None and previous is not client:
            await previous.aclose()

    async def _notify(self, event: EndpointChanged) -> None:
        for observer in list(self._observers):
            result = observer(event)
            if inspect.isawaitable(result):
                await result
