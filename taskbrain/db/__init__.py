"""Database connection management."""

from taskbrain.db.pool import PostgresPool

__all__ = ["PostgresPool"]
