"""HTTP server configuration."""

from pydantic import BaseModel, Field


class APIConfig(BaseModel):
    """Where the API server listens."""

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="Bind port")
