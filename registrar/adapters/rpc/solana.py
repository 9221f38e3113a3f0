"""
Solana JSON-RPC adapter - Implements RpcClient protocol.

This module provides an httpx-based JSON-RPC 2.0 client for the
subset of Solana RPC methods the registrar needs. Transport and
RPC errors are raised as RpcError; on-chain failures and expired
blockhashes during confirmation are raised as domain errors.
"""

import asyncio
import base64
import logging
import time
from typing import Any

import httpx

from registrar.domain.exceptions import BroadcastFailed, SigningTimeout
from registrar.domain.ports import Blockhash

logger = logging.getLogger(__name__)

_CONFIRMATION_LEVELS = {
    "processed": ("processed", "confirmed", "finalized"),
    "confirmed": ("confirmed", "finalized"),
    "finalized": ("finalized",),
}


class RpcError(Exception):
    """JSON-RPC transport or method error."""

    def __init__(self, message: str, code: int | None = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class SolanaRpcClient:
    """
    Implements RpcClient protocol via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    One client per endpoint; the connection selector owns its lifetime.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 10.0,
        confirmation_timeout: float = 60.0,
        poll_interval: float = 0.5,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize client for one endpoint.

        Args:
            endpoint: RPC endpoint URL
            timeout: HTTP request timeout in seconds
            confirmation_timeout: Deadline for confirm_transaction()
            poll_interval: Delay between signature status polls
            client: Optional preconfigured httpx.AsyncClient
        """
        self.endpoint = endpoint
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def call(self, method: str, params: list | None = None) -> Any:
        """
        Call an RPC method.

        Returns:
            The "result" member of the response

        Raises:
            RpcError: On HTTP failure or an RPC error response
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        try:
            response = await self._client.post(self.endpoint, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise RpcError(f"RPC timeout: {method}") from e
        except httpx.HTTPError as e:
            raise RpcError(f"RPC connection error: {e}") from e
        except ValueError as e:
            raise RpcError("RPC malformed response") from e

        if not isinstance(data, dict):
            raise RpcError("RPC malformed response")

        if "error" in data:
            error = data["error"]
            raise RpcError(
                error.get("message", "RPC error"),
                code=error.get("code"),
                data=error.get("data"),
            )
        return data.get("result")

    async def get_version(self) -> dict[str, Any]:
        return await self.call("getVersion")

    async def get_balance(self, address: str, commitment: str = "confirmed") -> int:
        """Balance in lamports."""
        result = await self.call("getBalance", [address, {"commitment": commitment}])
        return int(result["value"])

    async def get_latest_blockhash(self, commitment: str = "confirmed") -> Blockhash:
        result = await self.call("getLatestBlockhash", [{"commitment": commitment}])
        value = result["value"]
        return Blockhash(
            blockhash=value["blockhash"],
            last_valid_block_height=int(value["lastValidBlockHeight"]),
        )

    async def get_block_height(self, commitment: str = "confirmed") -> int:
        return int(await self.call("getBlockHeight", [{"commitment": commitment}]))

    async def send_raw_transaction(self, payload: bytes, preflight_commitment: str = "confirmed") -> str:
        """Submit a signed transaction; returns its signature."""
        encoded = base64.b64encode(payload).decode()
        options = {
            "encoding": "base64",
            "skipPreflight": False,
            "preflightCommitment": preflight_commitment,
            "maxRetries": 3,
        }
        return await self.call("sendTransaction", [encoded, options])

    async def get_signature_status(self, signature: str) -> dict[str, Any] | None:
        result = await self.call(
            "getSignatureStatuses", [[signature], {"searchTransactionHistory": False}]
        )
        statuses = result.get("value") or [None]
        return statuses[0]

    async def confirm_transaction(
        self,
        signature: str,
        commitment: str = "confirmed",
        last_valid_block_height: int | None = None,
    ) -> dict[str, Any]:
        """
        Poll signature status until it reaches the commitment level.

        Raises:
            BroadcastFailed: If the transaction failed or its blockhash expired
            SigningTimeout: If confirmation_timeout elapsed
        """
        accepted = _CONFIRMATION_LEVELS.get(commitment, _CONFIRMATION_LEVELS["confirmed"])
        deadline = time.monotonic() + self.confirmation_timeout

        while True:
            status = await self.get_signature_status(signature)
            if status is not None:
                if status.get("err"):
                    raise BroadcastFailed(f"Transaction failed: {status['err']}")
                if status.get("confirmationStatus") in accepted:
                    logger.info("Transaction confirmed (%s): %s", status["confirmationStatus"], signature)
                    return status

            if last_valid_block_height is not None:
                height = await self.get_block_height(commitment)
                if height > last_valid_block_height:
                    raise BroadcastFailed("Transaction expired: blockhash is no longer valid")

            if time.monotonic() >= deadline:
                raise SigningTimeout(f"Transaction was not confirmed in {self.confirmation_timeout:.0f} seconds")
            await asyncio.sleep(self.poll_interval)

    async def request_airdrop(self, address: str, lamports: int) -> str:
        return await self.call("requestAirdrop", [address, lamports])

    async def aclose(self) -> None:
        await self._client.aclose()


def rpc_client_factory(
    timeout: float = 10.0,
    confirmation_timeout: float = 60.0,
    poll_interval: float = 0.5,
):
    """Build a RpcClientFactory producing SolanaRpcClient instances."""

    def create(endpoint: str) -> SolanaRpcClient:
        return SolanaRpcClient(
            endpoint,
            timeout=timeout,
            confirmation_timeout=confirmation_timeout,
            poll_interval=poll_interval,
        )

    return create
