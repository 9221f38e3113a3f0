"""Repository adapters - Database implementations."""

from .postgres import PostgresRegistrationLedger, run_migrations

__all__ = ["PostgresRegistrationLedger", "run_migrations"]
