"""
API v1 admin routes.

Dashboard, analytics, platform configuration and report export.
Every route requires HTTP BASIC AUTH administrator credentials.
"""

import csv
import io
from datetime import date, datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from registrar.adapters.repository.postgres import PostgresRegistrationLedger
from registrar.api.dependencies import get_ledger, require_admin
from registrar.api.models import ConfigUpdateRequest, DataResponse, ErrorResponse, MessageResponse
from registrar.domain.analytics import RegistrationFilter, RegistrationStatus

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse, "description": "Invalid credentials"}},
)

EMPTY_DAY_STATS = {
    "total_registrations": 0,
    "successful_registrations": 0,
    "failed_registrations": 0,
    "total_revenue": 0,
    "platform_fees_collected": 0,
}


def registration_filter(
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    network: str | None = Query(None),
    status_filter: RegistrationStatus | None = Query(None, alias="status"),
) -> RegistrationFilter:
    """Shared startDate/endDate/network/status query parameters."""
    return RegistrationFilter(
        start_date=start_date,
        end_date=end_date,
        network=network,
        status=status_filter,
    )


@router.get("/dashboard/overview", response_model=DataResponse, summary="Dashboard overview")
async def dashboard_overview(ledger: PostgresRegistrationLedger = Depends(get_ledger)) -> DataResponse:
    """Today's and 30-day statistics, recent activity and health."""
    now = datetime.now(timezone.utc)
    today = now.date()
    return DataResponse(
        data={
            "today_stats": ledger.analytics_for_day(today) or EMPTY_DAY_STATS,
            "thirty_day_stats": ledger.analytics_totals(today - timedelta(days=30), today),
            "realtime_stats": ledger.realtime_stats(now),
            "recent_transactions": ledger.list_registrations(RegistrationFilter(), limit=10),
            "recent_failures": ledger.recent_failures(limit=5),
            "health_metrics": ledger.health_metrics(now),
        }
    )


@router.get("/registrations", response_model=DataResponse, summary="List registrations")
async def list_registrations(
    filters: RegistrationFilter = Depends(registration_filter),
    limit: int = Query(100, ge=1, le=1000),
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> DataResponse:
    return DataResponse(data=ledger.list_registrations(filters, limit=limit))


@router.get("/analytics/transactions", response_model=DataResponse, summary="Transaction analytics")
async def transaction_analytics(
    filters: RegistrationFilter = Depends(registration_filter),
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> DataResponse:
    return DataResponse(data=ledger.transaction_analytics(filters))


@router.get(
    "/analytics/daily",
    response_model=DataResponse,
    summary="Daily aggregates",
    description="Registration counts and sums keyed by date and status.",
)
async def daily_aggregates(
    filters: RegistrationFilter = Depends(registration_filter),
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> DataResponse:
    return DataResponse(data=ledger.daily_aggregates(filters))


@router.post("/analytics/daily/refresh", response_model=DataResponse, summary="Recompute daily analytics")
async def refresh_daily_analytics(
    day: date | None = Query(None, alias="date"),
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> DataResponse:
    target = day or datetime.now(timezone.utc).date()
    return DataResponse(data=ledger.refresh_daily_analytics(target))


@router.get("/analytics/revenue", response_model=DataResponse, summary="Revenue analytics")
async def revenue_analytics(
    period: str = Query("30d"),
    granularity: str = Query("day"),
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> DataResponse:
    return DataResponse(data=ledger.revenue_analytics(period, granularity))


@router.get("/analytics/failures", response_model=DataResponse, summary="Failure analysis")
async def failure_analytics(
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    error_type: str | None = Query(None, alias="errorType"),
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> DataResponse:
    return DataResponse(data=ledger.failure_analytics(start_date, end_date, error_type))


@router.get("/config", response_model=DataResponse, summary="Platform configuration")
async def list_config(ledger: PostgresRegistrationLedger = Depends(get_ledger)) -> DataResponse:
    return DataResponse(data=ledger.list_config())


@router.put(
    "/config/{key}",
    response_model=MessageResponse,
    responses={422: {"description": "Validation error"}},
    summary="Update a config entry",
)
async def update_config(
    key: str,
    update: ConfigUpdateRequest,
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
) -> MessageResponse:
    ledger.set_config(key, update.value, update.type, update.description, update.category)
    return MessageResponse(message="Configuration updated successfully")


@router.get(
    "/reports/export/{report_type}",
    summary="Export a report",
    responses={400: {"model": ErrorResponse, "description": "Invalid report type"}},
)
async def export_report(
    report_type: str,
    start_date: datetime = Query(..., alias="startDate"),
    end_date: datetime = Query(..., alias="endDate"),
    report_format: str = Query("json", alias="format", pattern="^(json|csv)$"),
    ledger: PostgresRegistrationLedger = Depends(get_ledger),
):
    """Export transactions, failures or revenue rows as JSON or CSV."""
    try:
        rows = ledger.export_rows(report_type, start_date, end_date)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid report type",
        ) from None

    filename = f"{report_type}_{start_date.date().isoformat()}_to_{end_date.date().isoformat()}"
    if report_format == "csv":
        return Response(
            content=rows_to_csv(rows),
            media_type="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}.csv"},
        )
    return {"success": True, "data": rows, "filename": filename}


def rows_to_csv(rows: list[dict]) -> str:
    """Render rows as CSV with a header line; empty input gives an empty string."""
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()
