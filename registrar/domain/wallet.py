"""
Wallet session - connect/disconnect lifecycle around a signing capability.

Session State Machine
=====================

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED
    CONNECTED -> CONNECTED          (account changed, address updated)

Disconnection is always honored locally, even when notifying the
provider fails. Balance lookups never raise: an unavailable balance
is reported as zero so callers are never blocked on it.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from .endpoints import ConnectionSelector
from .exceptions import (
    NotConnected,
    NoWalletFound,
    SigningTimeout,
    UnknownError,
    UnsupportedNetwork,
    UserRejected,
    classify_error,
)
from .ports import Network, SignedTransaction, TransactionDraft, WalletProvider
from .pricing import LAMPORTS_PER_SOL, lamports_to_sol

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Wallet session lifecycle states."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"


@dataclass(frozen=True)
class WalletEvent:
    """Lifecycle notification: connected, disconnected or account_changed."""

    type: str
    public_address: str | None
    network: Network


WalletObserver = Callable[[WalletEvent], Any]


@dataclass
class WalletSession:
    """
    Owns the connection to a wallet provider.

    The selector supplies the RPC client used for blockhash and
    balance queries. provider is None when no signing capability
    is installed in the host environment.
    """

    provider: WalletProvider | None
    selector: ConnectionSelector
    network: Network = Network.MAIN
    commitment: str = "confirmed"
    signing_timeout: float = 10.0
    balance_attempts: int = 3
    balance_retry_delay: float = 1.0
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def __post_init__(self) -> None:
        self.state = SessionState.DISCONNECTED
        self.public_address: str | None = None
        self._observers: list[WalletObserver] = []

    @property
    def connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    @property
    def wallet_name(self) -> str | None:
        return self.provider.name if self.provider is not None else None

    def subscribe(self, observer: WalletObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    async def connect(self) -> str:
        """
        Connect to the wallet provider.

        Returns:
            Public address of the connected account

        Raises:
            NoWalletFound: If no provider is present
            UserRejected: If the user declined the connection
        """
        if self.provider is None:
            raise NoWalletFound()

        self.state = SessionState.CONNECTING
        try:
            address = await self.provider.connect()
        except Exception as e:
            self.state = SessionState.DISCONNECTED
            error = classify_error(e)
            if isinstance(error, UserRejected):
                raise UserRejected("Connection rejected by user") from e
            raise error from e

        if not address:
            self.state = SessionState.DISCONNECTED
            raise UnknownError("Failed to connect to wallet")

        self.public_address = address
        self.state = SessionState.CONNECTED
        logger.info("%s connected on %s: %s", self.provider.name, self.network.value, address)
        await self._notify("connected")
        return address

    async def disconnect(self) -> None:
        """Disconnect; the local state always ends DISCONNECTED."""
        try:
            if self.provider is not None and self.connected:
                await self.provider.disconnect()
        except Exception as e:
            logger.warning("Wallet provider disconnect failed: %s", e)
        finally:
            await self.handle_provider_disconnect()

    async def handle_provider_disconnect(self) -> None:
        """Provider reported that the session ended."""
        was_connected = self.state != SessionState.DISCONNECTED
        self.state = SessionState.DISCONNECTED
        self.public_address = None
        if was_connected:
            logger.info("Wallet disconnected")
            await self._notify("disconnected")

    async def handle_account_changed(self, address: str | None) -> None:
        """Provider switched accounts; None means the account was removed."""
        if not address:
            await self.handle_provider_disconnect()
            return
        if not self.connected:
            return
        self.public_address = address
        logger.info("Wallet account changed: %s", address)
        await self._notify("account_changed")

    async def sign(self, draft: TransactionDraft) -> SignedTransaction:
        """
        Attach a recent blockhash and have the provider sign the draft.

        Raises:
            NotConnected: If the session is not connected
            SigningTimeout: If no blockhash arrived within signing_timeout
            UserRejected: If the user declined to sign
        """
        if not self.connected or self.provider is None:
            raise NotConnected()

        try:
            latest = await asyncio.wait_for(
                self.selector.client.get_latest_blockhash(self.commitment),
                timeout=self.signing_timeout,
            )
        except TimeoutError as e:
            raise SigningTimeout("Timeout getting blockhash") from e

        draft.recent_blockhash = latest.blockhash
        draft.last_valid_block_height = latest.last_valid_block_height
        draft.fee_payer = self.public_address

        logger.info("Requesting transaction signature on %s...", self.network.value)
        try:
            payload = await self.provider.sign_transaction(draft)
        except Exception as e:
            error = classify_error(e)
            if isinstance(error, UserRejected):
                raise UserRejected("Transaction rejected by user") from e
            raise error from e

        return SignedTransaction(
            payload=payload,
            blockhash=latest.blockhash,
            last_valid_block_height=latest.last_valid_block_height,
        )

    async def get_balance(self) -> Decimal:
        """
        Balance of the connected account in SOL.

        Retries the query balance_attempts times, balance_retry_delay
        apart. Returns 0 when disconnected or when every attempt failed.
        """
        if not self.connected or self.public_address is None:
            return Decimal(0)

        for attempt in range(1, self.balance_attempts + 1):
            try:
                lamports = await self.selector.client.get_balance(self.public_address, self.commitment)
                return lamports_to_sol(lamports)
            except Exception as e:
                logger.warning(
                    "Balance fetch attempt failed (%d/%d): %s", attempt, self.balance_attempts, e
                )
                if attempt < self.balance_attempts:
                    await self.sleep(self.balance_retry_delay)

        logger.error("Balance unavailable after %d attempts, assuming zero", self.balance_attempts)
        return Decimal(0)

    async def request_airdrop(self, amount: Decimal = Decimal(2)) -> str:
        """
        Request test tokens for the connected account (test network only).

        Returns:
            Airdrop transaction signature
        """
        if not self.connected or self.public_address is None:
            raise NotConnected()
        if self.network != Network.TEST:
            raise UnsupportedNetwork("Airdrops are only available on the test network")

        lamports = int(Decimal(amount) * LAMPORTS_PER_SOL)
        client = self.selector.client
        logger.info("Requesting %s SOL airdrop", amount)
        signature = await client.request_airdrop(self.public_address, lamports)
        await client.confirm_transaction(signature, self.commitment)
        logger.info("Airdrop successful: %s", signature)
        return signature

    async def _notify(self, event_type: str) -> None:
        event = WalletEvent(type=event_type, public_address=self.public_address, network=self.network)
        for observer in list(self._observers):
            result = observer(event)
            if inspect.isawaitable(result):
                await result
