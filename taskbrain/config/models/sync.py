"""Provider sync configuration."""

from pydantic import BaseModel, Field, SecretStr


class SyncConfig(BaseModel):
    """Webhook verification secrets and polling cadence.

    Secrets come from environment variables (TASKBRAIN_SYNC__TODOIST_WEBHOOK_SECRET,
    TASKBRAIN_SYNC__LINEAR_WEBHOOK_SECRET).
    """

    todoist_webhook_secret: SecretStr | None = Field(default=None)
    linear_webhook_secret: SecretStr | None = Field(default=None)
    linear_user_id: str | None = Field(
        default=None,
        description="Linear issues are mirrored only when assigned to this user",
    )
    poll_enabled: bool = Field(default=True, description="Run the background sync loop")
    poll_interval_seconds: float = Field(
        default=300.0,  # 5 minutes
        gt=0,
        description="Seconds between background sync iterations",
    )

    def webhook_secret(self, provider: str) -> SecretStr | None:
        """Return the configured secret for a provider, if any."""
        return {
            "todoist": self.todoist_webhook_secret,
            "linear": self.linear_webhook_secret,
        }.get(provider)
