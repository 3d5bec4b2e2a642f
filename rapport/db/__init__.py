"""Database utilities for Rapport.

This module contains:
- Store error hierarchy
- asyncpg connection pool management
- Alembic migrations (``rapport/db/migrations``)
"""

from rapport.db.errors import (
    ConflictError,
    NotFoundError,
    StoreError,
    StoreUnavailableError,
    ValidationError,
)

__all__ = [
    "StoreError",
    "StoreUnavailableError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
]
