"""Storage backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

BackendType = Literal["inmemory", "postgres"]
CacheBackendType = Literal["inmemory", "redis"]


class PostgresConfig(BaseModel):
    """PostgreSQL connection pool configuration."""

    dsn: str | None = Field(
        default=None,
        description="Connection string (falls back to DATABASE_URL)",
    )
    min_pool_size: int = Field(default=2, gt=0, description="Minimum connections to keep open")
    max_pool_size: int = Field(default=10, gt=0, description="Maximum connections in pool")
    max_inactive_connection_lifetime: float = Field(
        default=300.0,
        gt=0,
        description="Close connections idle longer than this (seconds)",
    )
    command_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Default timeout for queries (seconds)",
    )


class CacheConfig(BaseModel):
    """Task snapshot cache configuration."""

    backend: CacheBackendType = Field(default="inmemory", description="Cache backend")
    redis_url: str = Field(default="redis://localhost:6379", description="Redis URL")
    ttl_seconds: int = Field(
        default=3600,  # 1 hour
        gt=0,
        description="Cache entry time-to-live (seconds)",
    )
    key_prefix: str = Field(default="task", description="Redis key prefix for task entries")


class StorageConfig(BaseModel):
    """Durable storage plus cache configuration."""

    backend: BackendType = Field(default="inmemory", description="Task store backend")
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
