"""
Keypair wallet adapter - Implements WalletProvider protocol.

Signs transfer payments with a local solders keypair (Solana CLI
JSON keypair file). An optional approval callback plays the role of
the wallet's confirmation prompt; declining raises a rejection with
the standard 4001 code.
"""

import inspect
import json
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from registrar.domain.exceptions import USER_REJECTED_CODE
from registrar.domain.ports import TransactionDraft

logger = logging.getLogger(__name__)

Approval = Callable[[TransactionDraft], bool | Awaitable[bool]]


class WalletRejection(Exception):
    """User declined a wallet request."""

    def __init__(self, message: str = "User rejected the request.") -> None:
        super().__init__(message)
        self.code = USER_REJECTED_CODE


class KeypairWallet:
    """
    Implements WalletProvider protocol with a local keypair.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    name = "Keypair"

    def __init__(self, keypair: Keypair, approve: Approval | None = None) -> None:
        self._keypair = keypair
        self._approve = approve
        self._connected = False

    @classmethod
    def from_file(cls, path: str | Path, approve: Approval | None = None) -> "KeypairWallet":
        """Load a Solana CLI keypair file (JSON array of 64 bytes)."""
        keypair_file = Path(path).expanduser()
        secret = json.loads(keypair_file.read_text())
        return cls(Keypair.from_bytes(bytes(secret)), approve=approve)

    @property
    def public_address(self) -> str:
        return str(self._keypair.pubkey())

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> str:
        self._connected = True
        return self.public_address

    async def disconnect(self) -> None:
        self._connected = False

    async def sign_transaction(self, draft: TransactionDraft) -> bytes:
        """
        Build, approve and sign a transfer transaction.

        Returns:
            Serialized signed transaction

        Raises:
            WalletRejection: If the approval callback declined
        """
        if draft.recent_blockhash is None:
            raise ValueError("Transaction draft has no recent blockhash")

        if self._approve is not None:
            approved = self._approve(draft)
            if inspect.isawaitable(approved):
                approved = await approved
            if not approved:
                raise WalletRejection()

        payer = self._keypair.pubkey()
        instruction = transfer(
            TransferParams(
                from_pubkey=payer,
                to_pubkey=Pubkey.from_string(draft.recipient),
                lamports=draft.lamports,
            )
        )
        message = Message([instruction], payer)
        blockhash = Hash.from_string(draft.recent_blockhash)
        transaction = Transaction([self._keypair], message, blockhash)
        logger.info("Signed transfer of %d lamports to %s", draft.lamports, draft.recipient)
        return bytes(transaction)
