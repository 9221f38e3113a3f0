"""
API v1 routes.

Defines the public REST endpoints used by registration clients:
quotes, public config lookups and outcome logging.
"""

from fastapi import APIRouter, Depends, status

from registrar.adapters.repository.postgres import PostgresRegistrationLedger, config_value_to_python
from registrar.api.dependencies import get_ledger
from registrar.api.models import (
    ConfigValueResponse,
    CreatedResponse,
    FailureReport,
    QuoteResponse,
    RegistrationReport,
)
from registrar.domain.analytics import FailureRecord, RegistrationRecord
from registrar.domain.pricing import price
from registrar.domain.validation import validate

router = APIRouter(tags=["v1"])


@router.get(
    "/quote/{name}",
    response_model=QuoteResponse,
    summary="Quote a name",
    description="Validate a candidate name and return its one-time registration price.",
)
async def quote(name: str) -> QuoteResponse:
    """
    Validate and price a candidate name.

    Invalid names return valid=false with the first failing rule as reason.
    """
    validation = validate(name)
    if not validation.valid:
        return QuoteResponse(name=name, valid=False, reason=validation.reason)

    price_quote = price(name)
    return QuoteResponse(
        name=name,
        valid=True,
        base=price_quote.base,
        fee=price_quote.fee,
        total=price_quote.total,
        lamports=price_quote.lamports,
    )


@router.get(
    "/config/{key}",
    response_model=ConfigValueResponse,
    summary="Read a public config value",
)
async def read_config(
    key: str,
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> ConfigValueResponse:
    row = ledger.get_config(key)
    if row is None:
        return ConfigValueResponse(key=key)
    return ConfigValueResponse(key=key, value=config_value_to_python(row["value"], row["type"]))


@router.post(
    "/registrations",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"description": "Validation error"}},
    summary="Log a registration",
    description="Record a registration reported by a client after its transaction confirmed.",
)
async def log_registration(
    report: RegistrationReport,
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> CreatedResponse:
    record = RegistrationRecord(
        domain_name=report.domain_name,
        network=report.network.value,
        status=report.status,
        user_public_key=report.user_public_key,
        signature=report.signature,
        amount_paid=report.amount_paid,
        platform_fee=report.platform_fee,
        payment_method=report.payment_method,
    )
    row_id = ledger.record_registration(record)
    return CreatedResponse(id=row_id, message="Registration recorded")


@router.post(
    "/failures",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"description": "Validation error"}},
    summary="Log a failed attempt",
)
async def log_failure(
    report: FailureReport,
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> CreatedResponse:
    record = FailureRecord(
        domain_name=report.domain_name,
        error_type=report.error_type.value,
        error_message=report.error_message,
        network=report.network.value if report.network is not None else None,
        user_public_key=report.user_public_key,
    )
    row_id = ledger.record_failure(record)
    return CreatedResponse(id=row_id, message="Failure recorded")
