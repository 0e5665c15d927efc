"""Nested configuration models."""

from taskbrain.config.models.api import APIConfig
from taskbrain.config.models.intelligence import IntelligenceConfig
from taskbrain.config.models.notifications import NotificationConfig
from taskbrain.config.models.observability import ObservabilityConfig
from taskbrain.config.models.storage import (
    CacheConfig,
    PostgresConfig,
    StorageConfig,
)
from taskbrain.config.models.sync import SyncConfig

__all__ = [
    "APIConfig",
    "CacheConfig",
    "IntelligenceConfig",
    "NotificationConfig",
    "ObservabilityConfig",
    "PostgresConfig",
    "StorageConfig",
    "SyncConfig",
]
