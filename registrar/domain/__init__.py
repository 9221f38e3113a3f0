"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for name registration:
validation, pricing, endpoint selection, the wallet session and the
registration state machine. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture
decoupling.
"""

from .endpoints import ConnectionSelector, EndpointChanged, EndpointHealth
from .exceptions import (
    AttemptInProgress,
    BroadcastFailed,
    ErrorKind,
    InsufficientFunds,
    InvalidName,
    LookupFailed,
    NameTaken,
    NoReachableEndpoint,
    NotConnected,
    NoWalletFound,
    RegistrarError,
    SigningTimeout,
    UnknownError,
    UnsupportedNetwork,
    UserRejected,
    classify_error,
)
from .ports import (
    Availability,
    Blockhash,
    NameLookup,
    NameResolver,
    Network,
    RpcClient,
    SignedTransaction,
    TransactionDraft,
    WalletProvider,
)
from .pricing import PriceQuote, price
from .registration import (
    AvailabilityReport,
    Outcome,
    RegistrationAttempt,
    RegistrationResult,
    RegistrationWorkflow,
    StepChanged,
    WorkflowStep,
)
from .status import Notice, NoticeLevel, ProgressUpdate, StatusProjector
from .validation import NameValidation, validate
from .wallet import SessionState, WalletSession

__all__ = [
    "AttemptInProgress",
    "Availability",
    "AvailabilityReport",
    "Blockhash",
    "BroadcastFailed",
    "ConnectionSelector",
    "EndpointChanged",
    "EndpointHealth",
    "ErrorKind",
    "InsufficientFunds",
    "InvalidName",
    "LookupFailed",
    "NameLookup",
    "NameResolver",
    "NameTaken",
    "NameValidation",
    "Network",
    "NoReachableEndpoint",
    "NotConnected",
    "Notice",
    "NoticeLevel",
    "NoWalletFound",
    "Outcome",
    "PriceQuote",
    "ProgressUpdate",
    "RegistrarError",
    "RegistrationAttempt",
    "RegistrationResult",
    "RegistrationWorkflow",
    "RpcClient",
    "SessionState",
    "SignedTransaction",
    "SigningTimeout",
    "StatusProjector",
    "StepChanged",
    "TransactionDraft",
    "UnknownError",
    "UnsupportedNetwork",
    "UserRejected",
    "WalletProvider",
    "WalletSession",
    "WorkflowStep",
    "classify_error",
    "price",
    "validate",
]
