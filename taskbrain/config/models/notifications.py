"""Outward notification sink configuration."""

from pydantic import BaseModel, Field, SecretStr


class NotificationConfig(BaseModel):
    """Where and how change notifications are dispatched.

    The endpoint and its key come from TASKBRAIN_NOTIFICATIONS__URL and
    TASKBRAIN_NOTIFICATIONS__API_KEY, never from committed config files.
    """

    url: str | None = Field(default=None, description="Notification endpoint (disabled when unset)")
    api_key: SecretStr | None = Field(default=None, description="Value of the X-API-Key header")
    connect_timeout: float = Field(default=5.0, gt=0, description="Connect timeout (seconds)")
    read_timeout: float = Field(default=10.0, gt=0, description="Read timeout (seconds)")
    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Deliveries allowed in flight at once",
    )
