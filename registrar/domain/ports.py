"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure: the RPC endpoint, the wallet signing capability
and the name-resolution lookup. Adapters implement these protocols.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .analytics import FailureRecord, RegistrationFilter, RegistrationRecord


class Network(str, Enum):
    """Selectable blockchain networks."""

    MAIN = "main"
    TEST = "test"


class Availability(Enum):
    """
    Result of an ownership lookup.

    A failed lookup is not a result: resolvers raise LookupFailed
    instead, so a transient RPC error is never mistaken for FREE.
    """

    TAKEN = "taken"
    FREE = "free"


@dataclass(frozen=True)
class NameLookup:
    """Ownership lookup outcome for a single name."""

    availability: Availability
    owner: str | None = None


@dataclass(frozen=True)
class Blockhash:
    """Recent blockhash (transaction freshness token)."""

    blockhash: str
    last_valid_block_height: int


@dataclass
class TransactionDraft:
    """
    Transfer-style payment awaiting a freshness token and a signature.

    recent_blockhash is filled in by WalletSession.sign() right before
    the draft is handed to the wallet provider.
    """

    fee_payer: str
    recipient: str
    lamports: int
    recent_blockhash: str | None = None
    last_valid_block_height: int | None = None


@dataclass(frozen=True)
class SignedTransaction:
    """Wire-encoded signed transaction, opaque to the domain."""

    payload: bytes
    blockhash: str
    last_valid_block_height: int


class RpcClient(Protocol):
    """Port interface for a blockchain RPC endpoint."""

    endpoint: str

    async def get_version(self) -> dict[str, Any]:
        """Lightweight liveness probe."""
        ...

    async def get_balance(self, address: str, commitment: str = "confirmed") -> int:
        """Return the account balance in lamports."""
        ...

    async def get_latest_blockhash(self, commitment: str = "confirmed") -> Blockhash:
        """Return a recent blockhash for transaction freshness."""
        ...

    async def send_raw_transaction(
        self, payload: bytes, preflight_commitment: str = "confirmed"
    ) -> str:
        """
        Submit a signed transaction.

        Returns:
            Transaction signature (base58)
        """
        ...

    async def confirm_transaction(
        self,
        signature: str,
        commitment: str = "confirmed",
        last_valid_block_height: int | None = None,
    ) -> dict[str, Any]:
        """
        Wait until the transaction reaches the commitment level.

        Raises:
            BroadcastFailed: Transaction failed on chain or expired
            SigningTimeout: Confirmation did not arrive in time
        """
        ...

    async def request_airdrop(self, address: str, lamports: int) -> str:
        """Request test tokens; returns the airdrop signature."""
        ...

    async def aclose(self) -> None:
        """Release the underlying connection."""
        ...


# Builds an RPC client for an endpoint URL.
RpcClientFactory = Callable[[str], RpcClient]


class WalletProvider(Protocol):
    """
    Port interface for the external signing capability.

    Providers signal rejection by raising an exception with
    code 4001 or a "User rejected" message.
    """

    name: str

    async def connect(self) -> str:
        """
        Ask the user to connect.

        Returns:
            Public address of the connected account
        """
        ...

    async def disconnect(self) -> None:
        """Notify the provider that the session ended."""
        ...

    async def sign_transaction(self, draft: TransactionDraft) -> bytes:
        """Ask the user to approve and sign the draft; returns wire bytes."""
        ...


class NameResolver(Protocol):
    """Port interface for name-service ownership lookups."""

    async def lookup(self, name: str) -> NameLookup:
        """
        Look up the owner of a name.

        Returns:
            NameLookup with TAKEN (and owner) or FREE

        Raises:
            LookupFailed: If ownership could not be determined
        """
        ...


class RegistrationLedger(Protocol):
    """Port interface for the registration/failure log behind the admin API."""

    def record_registration(self, record: RegistrationRecord) -> int:
        """
        Store a reported registration.

        Re-reporting a known signature updates its status instead of
        inserting a duplicate.

        Returns:
            Row id
        """
        ...

    def record_failure(self, record: FailureRecord) -> int:
        """Store a reported failure; returns the row id."""
        ...

    def daily_aggregates(self, filters: RegistrationFilter) -> list[dict[str, Any]]:
        """Counts and sums per (date, status)."""
        ...
