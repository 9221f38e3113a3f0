"""
Shared test fixtures and configuration.

This module provides in-memory fakes for the domain ports:
- FakeRpcClient for the blockchain endpoint
- FakeWallet for the signing capability
- FakeResolver for name ownership lookups
"""

import asyncio
from decimal import Decimal

import pytest

from registrar.domain.endpoints import ConnectionSelector
from registrar.domain.ports import Availability, Blockhash, NameLookup, Network, TransactionDraft
from registrar.domain.pricing import LAMPORTS_PER_SOL
from registrar.domain.wallet import WalletSession

WALLET_ADDRESS = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"


class FakeRpcClient:
    """RpcClient double with configurable failures."""

    def __init__(self, endpoint: str = "https://rpc.test", balance_sol: Decimal = Decimal(1)) -> None:
        self.endpoint = endpoint
        self.balance_lamports = int(balance_sol * LAMPORTS_PER_SOL)
        self.version_delay = 0.0
        self.version_error: Exception | None = None
        self.balance_errors: list[Exception] = []
        self.blockhash_delay = 0.0
        self.send_error: Exception | None = None
        self.confirm_error: Exception | None = None
        self.sent: list[bytes] = []
        self.balance_calls = 0
        self.closed = False

    async def get_version(self) -> dict:
        if self.version_delay:
            await asyncio.sleep(self.version_delay)
        if self.version_error is not None:
            raise self.version_error
        return {"solana-core": "1.18.0"}

    async def get_balance(self, address: str, commitment: str = "confirmed") -> int:
        self.balance_calls += 1
        if self.balance_errors:
            raise self.balance_errors.pop(0)
        return self.balance_lamports

    async def get_latest_blockhash(self, commitment: str = "confirmed") -> Blockhash:
        if self.blockhash_delay:
            await asyncio.sleep(self.blockhash_delay)
        return Blockhash("EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N", 1000)

    async def send_raw_transaction(self, payload: bytes, preflight_commitment: str = "confirmed") -> str:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(payload)
        return "5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnb"

    async def confirm_transaction(
        self, signature: str, commitment: str = "confirmed", last_valid_block_height: int | None = None
    ) -> dict:
        if self.confirm_error is not None:
            raise self.confirm_error
        return {"confirmationStatus": commitment, "err": None}

    async def request_airdrop(self, address: str, lamports: int) -> str:
        return "airdrop-signature"

    async def aclose(self) -> None:
        self.closed = True


class FakeWallet:
    """WalletProvider double; set connect_error/sign_error to simulate the user declining."""

    name = "Fake"

    def __init__(self, address: str = WALLET_ADDRESS) -> None:
        self.address = address
        self.connect_error: Exception | None = None
        self.disconnect_error: Exception | None = None
        self.sign_error: Exception | None = None
        self.signed: list[TransactionDraft] = []

    async def connect(self) -> str:
        if self.connect_error is not None:
            raise self.connect_error
        return self.address

    async def disconnect(self) -> None:
        if self.disconnect_error is not None:
            raise self.disconnect_error

    async def sign_transaction(self, draft: TransactionDraft) -> bytes:
        if self.sign_error is not None:
            raise self.sign_error
        self.signed.append(draft)
        return b"signed-bytes"


class FakeResolver:
    """NameResolver double; names in taken resolve to an owner."""

    def __init__(self, taken: set[str] | None = None) -> None:
        self.taken = taken or set()
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.lookups: list[str] = []

    async def lookup(self, name: str) -> NameLookup:
        self.lookups.append(name)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if name in self.taken:
            return NameLookup(Availability.TAKEN, owner="owner-address")
        return NameLookup(Availability.FREE)


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def select(client: FakeRpcClient) -> ConnectionSelector:
    """Selector that already has client selected."""
    selector = ConnectionSelector(lambda endpoint: client)
    asyncio.run(selector.select_endpoint([client.endpoint]))
    return selector


@pytest.fixture
def make_rpc():
    """Factory for additional FakeRpcClient instances."""
    return FakeRpcClient


@pytest.fixture
def make_selector():
    return select


@pytest.fixture
def rpc() -> FakeRpcClient:
    return FakeRpcClient()


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def session(rpc: FakeRpcClient, wallet: FakeWallet, sleep: RecordingSleep) -> WalletSession:
    """Disconnected session on the main network with a selected endpoint."""
    return WalletSession(provider=wallet, selector=select(rpc), network=Network.MAIN, sleep=sleep)
