"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

import json
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from registrar.domain.analytics import RegistrationStatus
from registrar.domain.exceptions import ErrorKind
from registrar.domain.ports import Network


class QuoteResponse(BaseModel):
    """Validation result and price for a candidate name."""

    name: str
    valid: bool
    reason: str | None = None
    base: Decimal | None = None
    fee: Decimal | None = None
    total: Decimal | None = None
    lamports: int | None = None


class RegistrationReport(BaseModel):
    """Request model for logging a registration."""

    domain_name: str = Field(..., min_length=1, max_length=32, pattern=r"^[a-z0-9-]+$")
    user_public_key: str | None = Field(None, max_length=64)
    signature: str | None = Field(None, max_length=128)
    network: Network
    status: RegistrationStatus = RegistrationStatus.CONFIRMED
    amount_paid: Decimal = Field(Decimal(0), ge=0)
    platform_fee: Decimal = Field(Decimal(0), ge=0)
    payment_method: str = Field("SOL", max_length=16)


class FailureReport(BaseModel):
    """Request model for logging a failed attempt."""

    domain_name: str = Field(..., min_length=1, max_length=64)
    user_public_key: str | None = Field(None, max_length=64)
    network: Network | None = None
    error_type: ErrorKind
    error_message: str | None = Field(None, max_length=1000)


class CreatedResponse(BaseModel):
    """Response model for logged records."""

    id: int
    message: str


class ConfigValueResponse(BaseModel):
    """Public config lookup result; value is None for unknown keys."""

    key: str
    value: Any = None


class ConfigUpdateRequest(BaseModel):
    """
    Request model for updating a config entry.

    value is normalized to its stored string form according to type.
    """

    value: Any
    type: Literal["string", "number", "boolean", "json"] = "string"
    description: str | None = None
    category: str = "general"

    @model_validator(mode="after")
    def normalize_value(self) -> "ConfigUpdateRequest":
        if self.value is None or self.value == "":
            raise ValueError("Value is required")

        try:
            if self.type == "number":
                self.value = repr(float(self.value))
            elif self.type == "boolean":
                self.value = "true" if self.value is True or self.value == "true" else "false"
            elif self.type == "json":
                parsed = json.loads(self.value) if isinstance(self.value, str) else self.value
                self.value = json.dumps(parsed)
            else:
                self.value = str(self.value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value format for type {self.type}") from e
        return self


class DataResponse(BaseModel):
    """Envelope for admin data endpoints."""

    success: bool = True
    data: Any


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
