"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting the
registration ledger and admin authentication into routes.
"""

import secrets

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from psycopg_pool import ConnectionPool

from registrar.adapters.repository.postgres import PostgresRegistrationLedger
from registrar.config.settings import Settings, get_settings

# Compared against when no admin hash is configured so bcrypt always runs.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10))


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_ledger(request: Request) -> PostgresRegistrationLedger:
    """Create ledger repository with connection pool from app state."""
    pool = get_pool(request)
    return PostgresRegistrationLedger(pool)


# HTTP BASIC AUTH security scheme for OpenAPI documentation
http_basic = HTTPBasic()


def require_admin(
    credentials: HTTPBasicCredentials = Depends(http_basic),
    settings: Settings = Depends(get_settings),
) -> str:
    """
    Authenticate an administrator via HTTP BASIC AUTH.

    Username and password are both always checked (constant-time
    comparison and bcrypt) so failures take the same time whichever
    part was wrong. An empty admin_password_hash rejects everyone.

    Returns:
        Admin username
    """
    configured_hash = settings.admin_password_hash.encode()
    stored_hash = configured_hash or _DUMMY_BCRYPT_HASH

    username_valid = secrets.compare_digest(
        credentials.username.encode(), settings.admin_username.encode()
    )
    password_valid = bcrypt.checkpw(credentials.password.encode(), stored_hash)

    if not (configured_hash and username_valid and password_valid):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username
