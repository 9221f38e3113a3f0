"""
Domain exceptions - Semantic error types for name registration.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Every error carries an ErrorKind from the registration taxonomy so
callers can report failures without inspecting exception classes.
"""

from enum import Enum

# Rejection code reported by wallet providers when the user declines a request.
USER_REJECTED_CODE = 4001


class ErrorKind(str, Enum):
    """Failure taxonomy shared by the workflow, notices and the failure log."""

    VALIDATION_ERROR = "validation_error"
    NAME_TAKEN = "name_taken"
    LOOKUP_FAILED = "lookup_failed"
    NO_WALLET_FOUND = "no_wallet_found"
    USER_REJECTED = "user_rejected"
    NOT_CONNECTED = "not_connected"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    TIMEOUT = "timeout"
    NO_REACHABLE_ENDPOINT = "no_reachable_endpoint"
    BROADCAST_FAILED = "broadcast_failed"
    UNSUPPORTED_NETWORK = "unsupported_network"
    UNKNOWN_ERROR = "unknown_error"


class RegistrarError(Exception):
    """Base class for registrar domain errors."""

    kind = ErrorKind.UNKNOWN_ERROR
    default_message = "Registration failed"
    retryable = False

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidName(RegistrarError):
    """Candidate name breaks a naming rule."""

    kind = ErrorKind.VALIDATION_ERROR
    default_message = "Invalid domain name"


class NameTaken(RegistrarError):
    """Name already has a resolvable owner."""

    kind = ErrorKind.NAME_TAKEN
    default_message = "Domain is not available for registration"


class LookupFailed(RegistrarError):
    """Ownership lookup failed; availability is unknown."""

    kind = ErrorKind.LOOKUP_FAILED
    default_message = "Could not check domain availability, please try again"
    retryable = True


class NoWalletFound(RegistrarError):
    """No signing capability is present."""

    kind = ErrorKind.NO_WALLET_FOUND
    default_message = "Solana wallet not found. Please install Phantom, Solflare, or another Solana wallet."


class UserRejected(RegistrarError):
    """User declined the wallet request."""

    kind = ErrorKind.USER_REJECTED
    default_message = "Request rejected by user"


class NotConnected(RegistrarError):
    """Operation requires a connected wallet."""

    kind = ErrorKind.NOT_CONNECTED
    default_message = "Wallet not connected"


class InsufficientFunds(RegistrarError):
    """Balance does not cover the quote."""

    kind = ErrorKind.INSUFFICIENT_FUNDS
    default_message = "Insufficient SOL balance for transaction"


class SigningTimeout(RegistrarError):
    """A network wait exceeded its deadline."""

    kind = ErrorKind.TIMEOUT
    default_message = "Transaction timed out. Please try again."
    retryable = True


class NoReachableEndpoint(RegistrarError):
    """Every candidate endpoint failed its liveness probe."""

    kind = ErrorKind.NO_REACHABLE_ENDPOINT
    default_message = "No reachable RPC endpoint"
    retryable = True


class BroadcastFailed(RegistrarError):
    """Submission or confirmation of a signed transaction failed."""

    kind = ErrorKind.BROADCAST_FAILED
    default_message = "Transaction failed"


class UnsupportedNetwork(RegistrarError):
    """Operation is not available on the selected network."""

    kind = ErrorKind.UNSUPPORTED_NETWORK
    default_message = "Operation not available on this network"


class UnknownError(RegistrarError):
    """Unclassified failure; the original message is preserved."""

    kind = ErrorKind.UNKNOWN_ERROR


class AttemptInProgress(Exception):
    """A registration attempt is already running."""

    pass


def classify_error(error: BaseException) -> RegistrarError:
    """
    Map a foreign exception onto the registrar taxonomy.

    Matches known error signatures (rejection code, message substrings).
    Unclassified errors become UnknownError with the original message.
    """
    if isinstance(error, RegistrarError):
        return error

    message = str(error) or type(error).__name__
    lowered = message.lower()

    if getattr(error, "code", None) == USER_REJECTED_CODE or "user rejected" in lowered:
        return UserRejected()
    if isinstance(error, TimeoutError) or "timeout" in lowered or "timed out" in lowered:
        return SigningTimeout()
    if "insufficient funds" in lowered or "insufficient lamports" in lowered:
        return InsufficientFunds()
    return UnknownError(message)
