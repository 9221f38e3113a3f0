"""
Analytics rules - pure helpers behind the admin dashboard.

The repository computes the aggregates in SQL; this module holds the
rules applied on top of them so they can be tested without a database.
"""

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

PERIODS = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_PERIOD = "30d"

# date_trunc field per granularity
GRANULARITIES = {"hour": "hour", "day": "day", "week": "week", "month": "month"}
DEFAULT_GRANULARITY = "day"

HEALTHY_SUCCESS_RATE = 85.0
WARNING_SUCCESS_RATE = 70.0


class RegistrationStatus(str, Enum):
    """Status of a logged registration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class RegistrationFilter:
    """Query filters shared by the admin analytics endpoints."""

    start_date: datetime | None = None
    end_date: datetime | None = None
    network: str | None = None
    status: RegistrationStatus | None = None


def success_rate(successful: int, failed: int) -> float:
    """Percentage of successes, rounded to two decimals; 100 when nothing happened."""
    total = successful + failed
    if total == 0:
        return 100.0
    return round(successful / total * 100, 2)


def health_status(rate: float) -> HealthStatus:
    """Classify a success rate."""
    if rate < WARNING_SUCCESS_RATE:
        return HealthStatus.CRITICAL
    if rate < HEALTHY_SUCCESS_RATE:
        return HealthStatus.WARNING
    return HealthStatus.HEALTHY


def resolve_period(period: str, now: datetime) -> tuple[datetime, datetime]:
    """Window for a period label; unknown labels fall back to 30 days."""
    days = PERIODS.get(period, PERIODS[DEFAULT_PERIOD])
    return now - timedelta(days=days), now


def resolve_granularity(granularity: str) -> str:
    """date_trunc field for a granularity label; unknown labels mean daily."""
    return GRANULARITIES.get(granularity, GRANULARITIES[DEFAULT_GRANULARITY])


def most_common(breakdown: Mapping[str, int], limit: int = 5) -> list[tuple[str, int]]:
    """Largest buckets first."""
    return Counter(breakdown).most_common(limit)


def distribution(timestamps: Iterable[datetime], key: str = "hour") -> dict[str, int]:
    """Count timestamps per hour of day or per calendar day."""
    counts: Counter[str] = Counter()
    for ts in timestamps:
        bucket = str(ts.hour) if key == "hour" else ts.date().isoformat()
        counts[bucket] += 1
    return dict(counts)


@dataclass(frozen=True)
class RegistrationRecord:
    """Registration reported by a client after a terminal step."""

    domain_name: str
    network: str
    status: RegistrationStatus
    user_public_key: str | None = None
    signature: str | None = None
    amount_paid: Decimal = Decimal(0)
    platform_fee: Decimal = Decimal(0)
    payment_method: str = "SOL"


@dataclass(frozen=True)
class FailureRecord:
    """Failed attempt reported by a client."""

    domain_name: str
    error_type: str
    error_message: str | None = None
    network: str | None = None
    user_public_key: str | None = None


def summarise_failures(failures: Iterable[Mapping], days: int = PERIODS[DEFAULT_PERIOD]) -> dict:
    """
    Failure patterns over a list of failure rows.

    Rows need error_type, network and created_at keys.
    """
    rows = list(failures)
    by_type = Counter(row["error_type"] for row in rows)
    by_network = Counter(row["network"] or "unknown" for row in rows)
    timestamps = [row["created_at"] for row in rows]
    return {
        "total": len(rows),
        "error_type_breakdown": dict(by_type),
        "network_breakdown": dict(by_network),
        "hourly_failures": distribution(timestamps, "hour"),
        "daily_failures": distribution(timestamps, "day"),
        "common_errors": most_common(by_type),
        "average_failures_per_day": round(len(rows) / days, 2) if days > 0 else float(len(rows)),
    }
