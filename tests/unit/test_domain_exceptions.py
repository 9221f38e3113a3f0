"""
Unit tests for domain exceptions and ports.

Tests verify:
- Error kinds and retryable flags
- classify_error() maps foreign errors onto the taxonomy
- Domain purity (zero framework imports)
"""

import subprocess

import pytest

from registrar.domain.exceptions import (
    USER_REJECTED_CODE,
    BroadcastFailed,
    ErrorKind,
    InsufficientFunds,
    LookupFailed,
    NameTaken,
    RegistrarError,
    SigningTimeout,
    UnknownError,
    UserRejected,
    classify_error,
)
from registrar.domain.ports import Availability, Network


class CodedError(Exception):
    def __init__(self, message: str, code: int) -> None:
        super().__init__(message)
        self.code = code


class TestRegistrarErrors:
    """Tests for the RegistrarError hierarchy."""

    def test_default_message(self) -> None:
        error = NameTaken()
        assert error.message == "Domain is not available for registration"
        assert str(error) == error.message

    def test_custom_message(self) -> None:
        assert BroadcastFailed("boom").message == "boom"

    def test_kinds(self) -> None:
        assert NameTaken.kind == ErrorKind.NAME_TAKEN
        assert SigningTimeout.kind == ErrorKind.TIMEOUT
        assert InsufficientFunds.kind == ErrorKind.INSUFFICIENT_FUNDS

    def test_lookup_failed_is_retryable(self) -> None:
        """Lookup failures can be retried; a taken name cannot."""
        assert LookupFailed().retryable is True
        assert NameTaken().retryable is False

    def test_all_inherit_from_base(self) -> None:
        for error_class in (NameTaken, LookupFailed, UserRejected, BroadcastFailed):
            assert issubclass(error_class, RegistrarError)

    def test_error_kind_is_str_enum(self) -> None:
        assert ErrorKind.USER_REJECTED == "user_rejected"


class TestClassifyError:
    """Tests for classify_error()."""

    def test_rejection_code(self) -> None:
        assert isinstance(classify_error(CodedError("nope", USER_REJECTED_CODE)), UserRejected)

    def test_rejection_message(self) -> None:
        assert isinstance(classify_error(RuntimeError("User rejected the request.")), UserRejected)

    def test_timeout(self) -> None:
        assert isinstance(classify_error(TimeoutError()), SigningTimeout)
        assert isinstance(classify_error(RuntimeError("request timed out")), SigningTimeout)

    def test_insufficient_funds(self) -> None:
        error = classify_error(RuntimeError("Attempt to debit: insufficient funds for rent"))
        assert isinstance(error, InsufficientFunds)

    def test_unknown_keeps_message(self) -> None:
        error = classify_error(RuntimeError("Blockhash not found"))
        assert isinstance(error, UnknownError)
        assert error.message == "Blockhash not found"

    def test_registrar_errors_pass_through(self) -> None:
        original = NameTaken()
        assert classify_error(original) is original


class TestPortTypes:
    """Tests for port value types."""

    def test_network_values(self) -> None:
        assert Network("main") is Network.MAIN
        assert Network("test") is Network.TEST

    def test_availability_has_no_failed_member(self) -> None:
        """A failed lookup is an exception, not an availability value."""
        assert {member.value for member in Availability} == {"taken", "free"}


class TestDomainPurity:
    """Tests that the domain layer has zero framework imports."""

    @pytest.mark.parametrize("module", ["fastapi", "pydantic", "psycopg", "httpx", "solders"])
    def test_no_framework_imports_in_domain(self, module: str) -> None:
        result = subprocess.run(
            ["grep", "-rE", f"^(from|import) {module}", "registrar/domain/"],
            capture_output=True,
            text=True,
        )
        assert result.returncode != 0, f"{module} import found: {result.stdout}"
