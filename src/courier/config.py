"""Configuration management for Courier."""

import logging
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

MEMORY_LOCATION = ":memory:"


class Settings(BaseSettings):
    """Courier configuration loaded from environment variables.

    All settings can be overridden via environment variables with
    the COURIER_ prefix. For example:
        COURIER_QDRANT_URL=http://localhost:6333
        COURIER_WORKER_COUNT=8

    The Qdrant URL ":memory:" selects qdrant-client's embedded local mode,
    which keeps everything in process memory. It is meant for tests and
    local experiments and is rejected in production.
    """

    model_config = SettingsConfigDict(env_prefix="COURIER_", extra="ignore")

    # Environment
    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
    )

    # Storage
    qdrant_url: str = Field(
        default="http://localhost:6333",
        description="Qdrant connection URL, or ':memory:' for local mode",
    )
    qdrant_api_key: str | None = Field(
        default=None,
        description="Qdrant API key (for cloud)",
    )
    collection_prefix: str = Field(
        default="courier",
        min_length=1,
        description="Prefix for Qdrant collection names",
    )

    # Delivery
    webhook_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Per-attempt HTTP timeout",
    )
    webhook_user_agent: str = Field(
        default="Courier-Webhook/0.1",
        description="User-Agent header sent with every delivery",
    )
    secret_length: int = Field(
        default=64,
        ge=32,
        le=256,
        description="Length of generated destination secrets",
    )

    # Workers
    worker_count: int = Field(
        default=4,
        ge=1,
        le=256,
        description="Number of concurrent delivery workers",
    )
    sweep_interval_seconds: float = Field(
        default=60.0,
        gt=0,
        description="How often the sweeper re-enqueues due deliveries",
    )
    sweep_batch_size: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum deliveries re-enqueued per sweep",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )

    @model_validator(mode="after")
    def validate_production_storage(self) -> "Settings":
        """Refuse the embedded in-memory store in production.

        Deliveries must survive restarts; local mode loses every pending
        delivery when the process exits.
        """
        if self.env == "production" and self.qdrant_url == MEMORY_LOCATION:
            raise ValueError(
                "COURIER_QDRANT_URL must point at a Qdrant server in production, "
                f"not {MEMORY_LOCATION!r}"
            )
        if self.env != "production" and self.qdrant_url == MEMORY_LOCATION:
            logger.debug("Using in-memory Qdrant; deliveries will not survive restart")
        return self

    @property
    def uses_memory_storage(self) -> bool:
        """Whether the embedded in-memory Qdrant is selected."""
        return self.qdrant_url == MEMORY_LOCATION


settings = Settings()
