"""
PostgreSQL repository adapter - Implements RegistrationLedger protocol.

This module provides the PostgreSQL implementation of the registration
ledger behind the admin dashboard using psycopg3 with raw SQL.

Query Design:
-------------
All filters are passed as query parameters; only whitelisted column
and table names are ever interpolated into SQL text. Aggregates are
computed by PostgreSQL (COUNT/SUM ... FILTER, date_trunc) and the
classification rules on top of them live in registrar.domain.analytics.
"""

import json
import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from registrar.domain.analytics import (
    FailureRecord,
    RegistrationFilter,
    RegistrationRecord,
    health_status,
    resolve_granularity,
    resolve_period,
    success_rate,
    summarise_failures,
)

logger = logging.getLogger(__name__)

CONFIG_TYPES = ("string", "number", "boolean", "json")

# Report kind -> (table, timestamp column)
_EXPORTS = {
    "transactions": ("domain_registrations", "created_at"),
    "failures": ("transaction_failures", "created_at"),
    "revenue": ("platform_analytics", "date"),
}


def _filter_clause(filters: RegistrationFilter) -> tuple[str, list[Any]]:
    """Build a WHERE clause for registration filters."""
    conditions: list[str] = []
    params: list[Any] = []

    if filters.start_date is not None and filters.end_date is not None:
        conditions.append("created_at BETWEEN %s AND %s")
        params.extend([filters.start_date, filters.end_date])
    elif filters.start_date is not None:
        conditions.append("created_at >= %s")
        params.append(filters.start_date)
    elif filters.end_date is not None:
        conditions.append("created_at <= %s")
        params.append(filters.end_date)

    if filters.network:
        conditions.append("network = %s")
        params.append(filters.network)

    if filters.status is not None:
        conditions.append("status = %s")
        params.append(filters.status.value)

    if not conditions:
        return "", params
    return "WHERE " + " AND ".join(conditions), params


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class PostgresRegistrationLedger:
    """
    Implements RegistrationLedger protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_registration(self, record: RegistrationRecord) -> int:
        """
        Store a reported registration.

        Uses INSERT ... ON CONFLICT (signature) DO UPDATE so a pending
        registration reported again as confirmed is updated in place.
        """
        sql = """
            INSERT INTO domain_registrations
                (domain_name, user_public_key, signature, network, status,
                 amount_paid, platform_fee, payment_method, created_at, confirmed_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, NOW(),
                    CASE WHEN %s::text = 'confirmed' THEN NOW() END)
            ON CONFLICT (signature) DO UPDATE
            SET status = EXCLUDED.status,
                confirmed_at = COALESCE(domain_registrations.confirmed_at, EXCLUDED.confirmed_at)
            RETURNING id
        """
        status = record.status.value
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    record.domain_name,
                    record.user_public_key,
                    record.signature,
                    record.network,
                    status,
                    record.amount_paid,
                    record.platform_fee,
                    record.payment_method,
                    status,
                ),
            )
            row = cursor.fetchone()
            conn.commit()
        logger.info("Recorded %s registration of %s", status, record.domain_name)
        return row[0]

    def record_failure(self, record: FailureRecord) -> int:
        """Store a reported failure."""
        sql = """
            INSERT INTO transaction_failures
                (domain_name, user_public_key, network, error_type, error_message, created_at)
            VALUES (%s, %s, %s, %s, %s, NOW())
            RETURNING id
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    record.domain_name,
                    record.user_public_key,
                    record.network,
                    record.error_type,
                    record.error_message,
                ),
            )
            row = cursor.fetchone()
            conn.commit()
        logger.info("Recorded %s failure for %s", record.error_type, record.domain_name)
        return row[0]

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_registrations(self, filters: RegistrationFilter, limit: int = 100) -> list[dict[str, Any]]:
        """Registrations matching filters, newest first."""
        where, params = _filter_clause(filters)
        sql = f"""
            SELECT id, domain_name, user_public_key, signature, network, status,
                   amount_paid, platform_fee, payment_method, created_at, confirmed_at
            FROM domain_registrations
            {where}
            ORDER BY created_at DESC
            LIMIT %s
        """
        return self._fetch_all(sql, [*params, limit])

    def recent_failures(self, limit: int = 5) -> list[dict[str, Any]]:
        sql = """
            SELECT id, domain_name, user_public_key, network, error_type, error_message, created_at
            FROM transaction_failures
            ORDER BY created_at DESC
            LIMIT %s
        """
        return self._fetch_all(sql, [limit])

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def transaction_analytics(self, filters: RegistrationFilter) -> dict[str, Any]:
        """Status counts, revenue, per-network and per-hour breakdowns."""
        where, params = _filter_clause(filters)
        totals_sql = f"""
            SELECT COUNT(*) AS total,
                   COUNT(*) FILTER (WHERE status = 'confirmed') AS successful,
                   COUNT(*) FILTER (WHERE status = 'failed') AS failed,
                   COUNT(*) FILTER (WHERE status = 'pending') AS pending,
                   COALESCE(SUM(platform_fee) FILTER (WHERE status = 'confirmed'), 0) AS total_revenue
            FROM domain_registrations
            {where}
        """
        network_sql = f"""
            SELECT network, COUNT(*) AS count
            FROM domain_registrations
            {where}
            GROUP BY network
        """
        hourly_sql = f"""
            SELECT EXTRACT(HOUR FROM created_at)::int AS hour, COUNT(*) AS count
            FROM domain_registrations
            {where}
            GROUP BY 1
            ORDER BY 1
        """
        totals = self._fetch_one(totals_sql, params)
        networks = self._fetch_all(network_sql, params)
        hourly = self._fetch_all(hourly_sql, params)

        successful = totals["successful"]
        revenue = Decimal(totals["total_revenue"])
        return {
            "total": totals["total"],
            "successful": successful,
            "failed": totals["failed"],
            "pending": totals["pending"],
            "success_rate": success_rate(successful, totals["failed"]),
            "total_revenue": revenue,
            "avg_transaction_value": revenue / successful if successful else Decimal(0),
            "network_breakdown": {row["network"]: row["count"] for row in networks},
            "hourly_data": {str(row["hour"]): row["count"] for row in hourly},
        }

    def daily_aggregates(self, filters: RegistrationFilter) -> list[dict[str, Any]]:
        """Counts and sums keyed by date and status."""
        where, params = _filter_clause(filters)
        sql = f"""
            SELECT created_at::date AS date,
                   status,
                   COUNT(*) AS count,
                   COALESCE(SUM(amount_paid), 0) AS amount_paid,
                   COALESCE(SUM(platform_fee), 0) AS platform_fees
            FROM domain_registrations
            {where}
            GROUP BY 1, 2
            ORDER BY 1, 2
        """
        return self._fetch_all(sql, params)

    def revenue_analytics(self, period: str, granularity: str, now: datetime | None = None) -> dict[str, Any]:
        """Confirmed revenue bucketed by hour, day, week or month."""
        start, end = resolve_period(period, now or datetime.now(timezone.utc))
        field = resolve_granularity(granularity)
        sql = """
            SELECT date_trunc(%s, created_at) AS period,
                   COALESCE(SUM(platform_fee), 0) AS revenue,
                   COUNT(*) AS transactions
            FROM domain_registrations
            WHERE status = 'confirmed'
              AND created_at BETWEEN %s AND %s
            GROUP BY 1
            ORDER BY 1
        """
        rows = self._fetch_all(sql, [field, start, end])
        total_revenue = sum((Decimal(row["revenue"]) for row in rows), Decimal(0))
        total_transactions = sum(row["transactions"] for row in rows)
        return {
            "revenue_data": rows,
            "total_revenue": total_revenue,
            "total_transactions": total_transactions,
            "avg_revenue_per_transaction": (
                total_revenue / total_transactions if total_transactions else Decimal(0)
            ),
            "period": period,
            "granularity": field,
        }

    def failure_analytics(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        error_type: str | None = None,
    ) -> dict[str, Any]:
        """Failure rows plus their breakdowns."""
        conditions: list[str] = []
        params: list[Any] = []
        if start is not None and end is not None:
            conditions.append("created_at BETWEEN %s AND %s")
            params.extend([start, end])
        if error_type:
            conditions.append("error_type = %s")
            params.append(error_type)
        where = "WHERE " + " AND ".join(conditions) if conditions else ""

        sql = f"""
            SELECT id, domain_name, user_public_key, network, error_type, error_message, created_at
            FROM transaction_failures
            {where}
            ORDER BY created_at DESC
        """
        failures = self._fetch_all(sql, params)
        days = max((end - start).days, 1) if start is not None and end is not None else 30
        return {"failures": failures, "analytics": summarise_failures(failures, days)}

    def realtime_stats(self, now: datetime | None = None) -> dict[str, Any]:
        """Today's registrations, failures, revenue and processing time."""
        day_start, day_end = _day_bounds((now or datetime.now(timezone.utc)).date())
        registrations_sql = """
            SELECT COUNT(*) AS registrations,
                   COALESCE(SUM(platform_fee) FILTER (WHERE status = 'confirmed'), 0) AS revenue,
                   AVG(EXTRACT(EPOCH FROM confirmed_at - created_at)) / 60 AS avg_minutes
            FROM domain_registrations
            WHERE created_at >= %s AND created_at < %s
        """
        failures_sql = """
            SELECT COUNT(*) AS failures
            FROM transaction_failures
            WHERE created_at >= %s AND created_at < %s
        """
        registrations = self._fetch_one(registrations_sql, [day_start, day_end])
        failures = self._fetch_one(failures_sql, [day_start, day_end])
        return {
            "today_registrations": registrations["registrations"],
            "today_failures": failures["failures"],
            "today_revenue": Decimal(registrations["revenue"]),
            "avg_processing_minutes": float(registrations["avg_minutes"] or 0),
            "success_rate": success_rate(registrations["registrations"], failures["failures"]),
        }

    def health_metrics(self, now: datetime | None = None) -> dict[str, Any]:
        """Success rate over the last hour and the derived health status."""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(hours=1)
        transactions = self._fetch_one(
            "SELECT COUNT(*) AS count FROM domain_registrations WHERE created_at >= %s", [since]
        )["count"]
        failures = self._fetch_one(
            "SELECT COUNT(*) AS count FROM transaction_failures WHERE created_at >= %s", [since]
        )["count"]
        rate = success_rate(transactions, failures)
        return {
            "status": health_status(rate).value,
            "transaction_rate": transactions,
            "failure_rate": failures,
            "success_rate": rate,
            "last_updated": now,
        }

    def analytics_for_day(self, day: date) -> dict[str, Any] | None:
        return self._fetch_one("SELECT * FROM platform_analytics WHERE date = %s", [day])

    def analytics_totals(self, start: date, end: date) -> dict[str, Any]:
        sql = """
            SELECT COALESCE(SUM(total_registrations), 0) AS total_registrations,
                   COALESCE(SUM(successful_registrations), 0) AS successful_registrations,
                   COALESCE(SUM(failed_registrations), 0) AS failed_registrations,
                   COALESCE(SUM(total_revenue), 0) AS total_revenue,
                   COALESCE(SUM(platform_fees_collected), 0) AS platform_fees_collected,
                   COALESCE(AVG(average_transaction_value), 0) AS avg_transaction_value
            FROM platform_analytics
            WHERE date BETWEEN %s AND %s
        """
        return self._fetch_one(sql, [start, end])

    def refresh_daily_analytics(self, day: date) -> dict[str, Any]:
        """Recompute and upsert the platform_analytics row for a day."""
        day_start, day_end = _day_bounds(day)
        sql = """
            INSERT INTO platform_analytics
                (date, total_registrations, successful_registrations, failed_registrations,
                 total_revenue, platform_fees_collected, unique_users, average_transaction_value)
            SELECT %s::date,
                   COUNT(*),
                   COUNT(*) FILTER (WHERE status = 'confirmed'),
                   (SELECT COUNT(*) FROM transaction_failures
                     WHERE created_at >= %s AND created_at < %s),
                   COALESCE(SUM(amount_paid) FILTER (WHERE status = 'confirmed'), 0),
                   COALESCE(SUM(platform_fee) FILTER (WHERE status = 'confirmed'), 0),
                   COUNT(DISTINCT user_public_key),
                   COALESCE(AVG(amount_paid) FILTER (WHERE status = 'confirmed'), 0)
            FROM domain_registrations
            WHERE created_at >= %s AND created_at < %s
            ON CONFLICT (date) DO UPDATE
            SET total_registrations = EXCLUDED.total_registrations,
                successful_registrations = EXCLUDED.successful_registrations,
                failed_registrations = EXCLUDED.failed_registrations,
                total_revenue = EXCLUDED.total_revenue,
                platform_fees_collected = EXCLUDED.platform_fees_collected,
                unique_users = EXCLUDED.unique_users,
                average_transaction_value = EXCLUDED.average_transaction_value
            RETURNING *
        """
        row = self._fetch_one(sql, [day, day_start, day_end, day_start, day_end], commit=True)
        logger.info("Daily analytics updated for %s", day.isoformat())
        return row

    # ------------------------------------------------------------------
    # Platform configuration
    # ------------------------------------------------------------------

    def get_config(self, key: str) -> dict[str, Any] | None:
        return self._fetch_one(
            "SELECT key, value, type, description, category FROM platform_config WHERE key = %s",
            [key],
        )

    def list_config(self) -> dict[str, list[dict[str, Any]]]:
        """All config entries grouped by category."""
        rows = self._fetch_all(
            "SELECT key, value, type, description, category FROM platform_config ORDER BY category, key",
            [],
        )
        grouped: dict[str, list[dict[str, Any]]] = {}
        for row in rows:
            grouped.setdefault(row["category"], []).append(row)
        return grouped

    def set_config(
        self,
        key: str,
        value: str,
        value_type: str = "string",
        description: str | None = None,
        category: str = "general",
    ) -> None:
        """Insert or replace a config entry. value is already normalized for its type."""
        if value_type not in CONFIG_TYPES:
            raise ValueError(f"Invalid config type: {value_type}")
        sql = """
            INSERT INTO platform_config (key, value, type, description, category, updated_at)
            VALUES (%s, %s, %s, %s, %s, NOW())
            ON CONFLICT (key) DO UPDATE
            SET value = EXCLUDED.value,
                type = EXCLUDED.type,
                description = COALESCE(EXCLUDED.description, platform_config.description),
                category = EXCLUDED.category,
                updated_at = NOW()
        """
        with self._pool.connection() as conn:
            conn.execute(sql, (key, value, value_type, description, category))
            conn.commit()
        logger.info("Config updated: %s", key)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def export_rows(self, kind: str, start: datetime, end: datetime) -> list[dict[str, Any]]:
        """
        Raw rows for a report.

        Raises:
            ValueError: If kind is not a known report type
        """
        if kind not in _EXPORTS:
            raise ValueError(f"Invalid report type: {kind}")
        table, column = _EXPORTS[kind]
        sql = f"SELECT * FROM {table} WHERE {column} BETWEEN %s AND %s ORDER BY {column}"
        return self._fetch_all(sql, [start, end])

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fetch_all(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            return cursor.fetchall()

    def _fetch_one(self, sql: str, params: list[Any], commit: bool = False) -> dict[str, Any] | None:
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            if commit:
                conn.commit()
            return row


MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> None:
    """
    Apply every *.sql file in migrations_dir, in filename order.

    Files must be idempotent; all of them run on every startup.

    Raises:
        RuntimeError: If a file fails; later files are not run
    """
    if not migrations_dir.is_dir():
        logger.warning("No migrations directory at %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))
    logger.info("Applying %d migration(s) from %s", len(sql_files), migrations_dir)

    for sql_file in sql_files:
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
        except Exception as e:
            logger.error("Migration %s failed: %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
        logger.info("Applied migration %s", sql_file.name)


def config_value_to_python(value: str, value_type: str) -> Any:
    """Decode a stored config value according to its type."""
    if value_type == "number":
        return float(value)
    if value_type == "boolean":
        return value == "true"
    if value_type == "json":
        return json.loads(value)
    return value
