"""Endpoint models: a tenant's registered delivery target.

An endpoint subscribes to a subset of the closed event catalog, carries the
secret used to sign every call, and holds the lifetime counters that drive
the circuit breaker.
"""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import generate_id, utc_now

# RFC 9110 token for names; visible ASCII, space and tab for values
_HEADER_NAME = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_HEADER_VALUE = re.compile(r"[\t\x20-\x7e]*")

# Event names that can be delivered. Extending this list is the only way to
# add an event.
EventName = Literal[
    "message.received",
    "message.sent",
    "message.delivered",
    "message.read",
    "session.connected",
    "session.disconnected",
    "session.qr",
    "webhook.test",
]

EVENT_CATALOG: tuple[EventName, ...] = (
    "message.received",
    "message.sent",
    "message.delivered",
    "message.read",
    "session.connected",
    "session.disconnected",
    "session.qr",
    "webhook.test",
)

TEST_EVENT: EventName = "webhook.test"

# Subscription plan tiers; limits live in Settings.plan_endpoint_limits
PlanTier = Literal["free", "basic", "premium"]


class RetryPolicy(BaseModel):
    """Retry schedule for failed deliveries.

    Attempt ``n`` that fails is retried after
    ``initial_delay_ms * backoff_multiplier ** (n - 1)`` milliseconds, as long
    as ``n <= max_retries``. ``max_retries=3`` therefore allows four attempts
    in total, spaced 1s, 2s and 4s apart with the defaults.

    Attributes:
        max_retries: Retries after the first attempt.
        initial_delay_ms: Delay before the first retry.
        backoff_multiplier: Growth factor applied per retry.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    max_retries: int = Field(default=3, ge=0, le=10, description="Retries after first attempt")
    initial_delay_ms: int = Field(default=1000, ge=100, description="Delay before first retry")
    backoff_multiplier: float = Field(
        default=2.0, ge=1.0, le=10.0, description="Delay growth factor per retry"
    )

    def delay_ms(self, attempt_number: int) -> float:
        """Delay to wait after the given failed attempt before the next one."""
        return self.initial_delay_ms * self.backoff_multiplier ** (attempt_number - 1)


class Endpoint(BaseModel):
    """A tenant-registered HTTP target.

    Attributes:
        id: Unique identifier for this endpoint.
        owner_id: Tenant that owns the endpoint.
        scope_id: Session the endpoint is limited to (None = every session).
        url: Absolute http(s) URL receiving POSTs.
        secret: Shared secret for HMAC-SHA256 signatures.
        events: Subscribed event names.
        headers: Extra headers merged into every call.
        timeout_ms: Per-call timeout.
        retry_policy: Retry schedule for failed deliveries.
        active: False stops all deliveries until the owner reactivates it.
        success_count: Lifetime successful deliveries.
        failure_count: Lifetime failed deliveries.
        last_triggered_at: Time of the last delivery outcome.
        last_error: Error text of the last failed delivery.
        last_error_at: When the last failure happened.
        description: Optional human-readable label.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("whk"))
    owner_id: str = Field(description="Tenant that owns this endpoint")
    scope_id: str | None = Field(default=None, description="Session scope (optional)")
    url: str = Field(description="HTTP(S) URL to receive events")
    secret: str = Field(min_length=8, repr=False, description="Shared secret for signatures")
    events: list[EventName] = Field(min_length=1, description="Subscribed event names")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    timeout_ms: int = Field(default=5000, ge=1000, le=120000, description="Per-call timeout")
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    active: bool = Field(default=True, description="Whether deliveries are attempted")
    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)
    last_triggered_at: datetime | None = None
    last_error: str | None = None
    last_error_at: datetime | None = None
    description: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("events")
    @classmethod
    def _dedupe_events(cls, value: list[EventName]) -> list[EventName]:
        return list(dict.fromkeys(value))

    @field_validator("headers")
    @classmethod
    def _check_headers(cls, value: dict[str, str]) -> dict[str, str]:
        for name, header_value in value.items():
            if not _HEADER_NAME.fullmatch(name):
                raise ValueError(f"invalid header name: {name!r}")
            if not _HEADER_VALUE.fullmatch(header_value):
                raise ValueError(f"header {name} must be printable ASCII without line breaks")
        return value

    def subscribes_to(self, event: str) -> bool:
        """Check if this endpoint is active and subscribed to the event."""
        return self.active and event in self.events

    def covers_scope(self, scope_id: str | None) -> bool:
        """Check if events raised in the given scope are meant for this endpoint.

        Unscoped endpoints receive events from every scope of their owner.
        Scoped endpoints only receive events raised in their own scope.
        """
        return self.scope_id is None or self.scope_id == scope_id

    @property
    def total_deliveries(self) -> int:
        return self.success_count + self.failure_count


class EndpointSpec(BaseModel):
    """Owner-supplied fields for registering an endpoint.

    Values are validated by the registry, which reports problems as
    ``courier.exceptions.ValidationError``.
    """

    model_config = ConfigDict(extra="forbid")

    url: str
    events: list[str]
    secret: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_ms: int | None = None
    retry_policy: RetryPolicy | None = None
    scope_id: str | None = None
    description: str | None = None


class EndpointPatch(BaseModel):
    """Partial update of an endpoint. Only explicitly set fields are applied."""

    model_config = ConfigDict(extra="forbid")

    url: str | None = None
    events: list[str] | None = None
    secret: str | None = None
    headers: dict[str, str] | None = None
    timeout_ms: int | None = None
    retry_policy: RetryPolicy | None = None
    active: bool | None = None
    description: str | None = None

    def changes(self) -> dict[str, object]:
        """Fields the caller set, as a plain dict."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None or name == "description"
        }


__all__ = [
    "EVENT_CATALOG",
    "Endpoint",
    "EndpointPatch",
    "EndpointSpec",
    "EventName",
    "PlanTier",
    "RetryPolicy",
    "TEST_EVENT",
]
