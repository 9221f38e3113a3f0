"""
SNS proxy name resolver - Implements NameResolver protocol.

Resolves .sol names through the SNS SDK proxy HTTP API
(GET /resolve/{name}). The proxy answers {"s": "ok", "result": owner}
for registered names and {"s": "error", "result": message} otherwise.
Only a not-found message means the name is free; every other failure
raises LookupFailed.
"""

import logging

import httpx

from registrar.domain.exceptions import LookupFailed
from registrar.domain.ports import Availability, NameLookup

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("not found", "does not exist", "invalid name account")


class SnsProxyResolver:
    """
    Implements NameResolver protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, base_url: str, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def lookup(self, name: str) -> NameLookup:
        """Resolve the owner of name.sol."""
        url = f"{self.base_url}/resolve/{name}"
        try:
            response = await self._client.get(url)
            body = response.json()
        except httpx.HTTPError as e:
            raise LookupFailed(f"Failed to check domain availability: {e}") from e
        except ValueError as e:
            raise LookupFailed("Failed to check domain availability: malformed response") from e

        if not isinstance(body, dict):
            raise LookupFailed("Failed to check domain availability: malformed response")

        status = body.get("s")
        result = body.get("result")

        if status == "ok" and result:
            return NameLookup(Availability.TAKEN, owner=str(result))

        if status == "error" and _is_not_found(str(result)):
            logger.info("Name %s has no owner", name)
            return NameLookup(Availability.FREE)

        raise LookupFailed(f"Failed to check domain availability: {result or response.status_code}")

    async def aclose(self) -> None:
        await self._client.aclose()


def _is_not_found(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _NOT_FOUND_MARKERS)
