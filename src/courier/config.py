"""Configuration management for Courier."""

import logging
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings

from courier.models.endpoint import RetryPolicy

logger = logging.getLogger(__name__)


class BreakerSettings(BaseModel):
    """Thresholds for deactivating chronically failing endpoints.

    An endpoint is deactivated once it has at least ``failure_threshold``
    recorded deliveries and its lifetime failure ratio reaches
    ``failure_rate``. Counters are lifetime totals, so a long history of
    successes dilutes a recent outage.

    Attributes:
        failure_threshold: Minimum deliveries before the breaker may trip.
        failure_rate: Failure ratio (0-1) at or above which it trips.
    """

    failure_threshold: int = Field(
        default=10,
        ge=1,
        description="Minimum total deliveries before evaluating the failure rate",
    )
    failure_rate: float = Field(
        default=0.9,
        gt=0.0,
        le=1.0,
        description="Failure ratio at or above which an endpoint is deactivated",
    )


class Settings(BaseSettings):
    """Courier configuration loaded from environment variables.

    All settings can be overridden via environment variables with
    the COURIER_ prefix. For example:
        COURIER_WORKER_TICK_SECONDS=0.5
        COURIER_BREAKER__FAILURE_RATE=0.8
        COURIER_PLAN_ENDPOINT_LIMITS='{"free": 2, "basic": 10, "premium": 100}'
    """

    # Environment
    env: Literal["development", "production", "test"] = Field(
        default="development",
        description="Environment: development, production, or test",
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

    # Delivery
    default_timeout_ms: int = Field(
        default=5000,
        ge=1000,
        le=120000,
        description="Per-call timeout for endpoints registered without one",
    )
    test_timeout_ms: int = Field(
        default=10000,
        ge=1000,
        le=120000,
        description="Timeout for synchronous probe deliveries",
    )
    default_retry_policy: RetryPolicy = Field(
        default_factory=RetryPolicy,
        description="Retry policy for endpoints registered without one",
    )
    user_agent: str = Field(
        default="courier-webhooks/0.1.0",
        description="User-Agent header sent with every delivery",
    )
    url_max_length: int = Field(
        default=2048,
        ge=16,
        le=8192,
        description="Maximum accepted endpoint URL length",
    )

    # Queue & worker
    worker_tick_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Interval between scheduler scans for due attempts",
    )
    worker_max_concurrent: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Maximum HTTP deliveries in flight at once",
    )
    queue_max_size: int = Field(
        default=10000,
        ge=1,
        description=(
            "Maximum pending attempts held in memory. When full, new delivery "
            "requests are dropped and logged."
        ),
    )

    # Circuit breaker
    breaker: BreakerSettings = Field(
        default_factory=BreakerSettings,
        description="Circuit breaker thresholds",
    )

    # Delivery log
    log_retention_entries: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Log entries kept per endpoint (oldest dropped first)",
    )
    log_retention_days: int = Field(
        default=30,
        ge=1,
        description="Age after which maintenance prunes log entries",
    )

    # Plans
    plan_endpoint_limits: dict[str, int] = Field(
        default_factory=lambda: {"free": 1, "basic": 5, "premium": 50},
        description="Maximum endpoints per owner, by plan tier",
    )
    default_plan: str = Field(
        default="free",
        description="Plan assumed for owners without a recorded plan",
    )

    model_config = {
        "env_prefix": "COURIER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",
    }

    @model_validator(mode="after")
    def validate_plans(self) -> "Settings":
        """Validate the plan table.

        The default plan must have a limit, otherwise owners without a
        recorded plan could never register an endpoint.
        """
        if self.default_plan not in self.plan_endpoint_limits:
            raise ValueError(
                f"default_plan ({self.default_plan!r}) is missing from plan_endpoint_limits "
                f"({sorted(self.plan_endpoint_limits)})"
            )
        negative = [plan for plan, limit in self.plan_endpoint_limits.items() if limit < 0]
        if negative:
            raise ValueError(f"plan_endpoint_limits must be non-negative: {negative}")
        return self

    @model_validator(mode="after")
    def validate_timeouts(self) -> "Settings":
        """Warn when probes time out sooner than regular deliveries."""
        if self.test_timeout_ms < self.default_timeout_ms:
            logger.warning(
                "test_timeout_ms (%d) is lower than default_timeout_ms (%d); "
                "probes may fail against endpoints that accept regular deliveries",
                self.test_timeout_ms,
                self.default_timeout_ms,
            )
        return self

    def endpoint_limit(self, plan: str) -> int:
        """Maximum endpoints for a plan, falling back to the default plan."""
        if plan in self.plan_endpoint_limits:
            return self.plan_endpoint_limits[plan]
        return self.plan_endpoint_limits[self.default_plan]


settings = Settings()
