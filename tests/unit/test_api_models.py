"""
Unit tests for API request models.
"""

import pytest
from pydantic import ValidationError

from registrar.api.models import ConfigUpdateRequest, FailureReport, RegistrationReport
from registrar.domain.exceptions import ErrorKind


class TestConfigUpdateRequest:
    """Tests for ConfigUpdateRequest normalization."""

    def test_number(self) -> None:
        assert ConfigUpdateRequest(value="2", type="number").value == "2.0"

    def test_boolean(self) -> None:
        assert ConfigUpdateRequest(value="true", type="boolean").value == "true"
        assert ConfigUpdateRequest(value=False, type="boolean").value == "false"

    def test_json_object(self) -> None:
        request = ConfigUpdateRequest(value={"max": 3}, type="json")
        assert request.value == '{"max": 3}'

    def test_string_default(self) -> None:
        request = ConfigUpdateRequest(value="hello")
        assert request.type == "string"
        assert request.category == "general"

    @pytest.mark.parametrize("value", ["", None])
    def test_value_required(self, value) -> None:
        with pytest.raises(ValidationError, match="Value is required"):
            ConfigUpdateRequest(value=value)

    def test_number_must_parse(self) -> None:
        with pytest.raises(ValidationError):
            ConfigUpdateRequest(value="many", type="number")

    def test_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            ConfigUpdateRequest(value="x", type="date")


class TestReports:
    """Tests for RegistrationReport and FailureReport."""

    def test_registration_defaults(self) -> None:
        report = RegistrationReport(domain_name="hello", network="main")
        assert report.payment_method == "SOL"
        assert report.status.value == "confirmed"

    def test_negative_amount_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegistrationReport(domain_name="hello", network="main", amount_paid="-1")

    def test_unknown_network_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RegistrationReport(domain_name="hello", network="devnet")

    def test_failure_kind(self) -> None:
        report = FailureReport(domain_name="hello", error_type="insufficient_funds")
        assert report.error_type == ErrorKind.INSUFFICIENT_FUNDS
