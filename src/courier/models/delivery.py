"""Delivery models: attempts, log entries and derived statistics."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .base import generate_id, utc_now
from .endpoint import Endpoint
from .envelope import EventEnvelope

# pending -> in_flight -> {delivered | retrying -> pending | abandoned}
AttemptState = Literal["pending", "in_flight", "delivered", "retrying", "abandoned"]


class DeliveryAttempt(BaseModel):
    """One try to deliver one envelope to one endpoint.

    Transient: owned by the queue until delivered or abandoned, never
    persisted.

    Attributes:
        id: Unique identifier for this attempt.
        endpoint_id: Target endpoint.
        envelope: Envelope being delivered.
        attempt_number: 1-based attempt counter.
        max_retries: Retry budget copied from the endpoint at enqueue time.
        state: Position in the attempt state machine.
        due_at: Scheduler clock reading (seconds) when the attempt is due.
        last_error: Error text of the previous failed attempt.
    """

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: generate_id("att"))
    endpoint_id: str
    envelope: EventEnvelope
    attempt_number: int = Field(default=1, ge=1)
    max_retries: int = Field(ge=0)
    state: AttemptState = "pending"
    due_at: float = 0.0
    last_error: str | None = None

    @model_validator(mode="after")
    def _check_attempt_budget(self) -> "DeliveryAttempt":
        if self.attempt_number > self.max_retries + 1:
            raise ValueError(
                f"attempt_number ({self.attempt_number}) exceeds "
                f"max_retries + 1 ({self.max_retries + 1})"
            )
        return self

    @property
    def has_retries_left(self) -> bool:
        return self.attempt_number <= self.max_retries

    def next_attempt(self, due_at: float, error: str | None) -> "DeliveryAttempt":
        """Build the follow-up attempt for a failed one."""
        return self.model_copy(
            update={
                "id": generate_id("att"),
                "attempt_number": self.attempt_number + 1,
                "state": "pending",
                "due_at": due_at,
                "last_error": error,
            }
        )


class DeliveryLogEntry(BaseModel):
    """Observed outcome of one delivery attempt.

    Attributes:
        timestamp: When the outcome was recorded.
        event: Event name that was delivered.
        success: Whether the receiver answered with a 2xx status.
        attempt_number: Which attempt produced this outcome.
        status_code: HTTP status if a response was received.
        response_time_ms: Wall time of the HTTP call.
        error: Error text for failures.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    timestamp: datetime = Field(default_factory=utc_now)
    event: str
    success: bool
    attempt_number: int = Field(default=1, ge=1)
    status_code: int | None = None
    response_time_ms: float | None = Field(default=None, ge=0)
    error: str | None = None


class DeliveryStats(BaseModel):
    """Delivery statistics for one endpoint."""

    model_config = ConfigDict(extra="forbid")

    total_deliveries: int = Field(ge=0)
    successful_deliveries: int = Field(ge=0)
    failed_deliveries: int = Field(ge=0)
    success_rate: float = Field(ge=0.0, le=100.0, description="Percent of successful deliveries")
    average_response_time_ms: float | None = Field(
        default=None, description="Mean over retained log entries"
    )
    last_delivery: datetime | None = None
    active: bool = True


class TestDeliveryResult(BaseModel):
    """Outcome of a synchronous probe delivery."""

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    success: bool
    response_time_ms: float = Field(ge=0)
    status_code: int | None = None
    error: str | None = None


class RegistrationResult(BaseModel):
    """Endpoint returned by create/update along with the probe outcome.

    ``test`` is None when no probe ran (an update that did not touch the
    URL or the subscribed events).
    """

    model_config = ConfigDict(extra="forbid")

    endpoint: Endpoint
    test: TestDeliveryResult | None = None


__all__ = [
    "AttemptState",
    "DeliveryAttempt",
    "DeliveryLogEntry",
    "DeliveryStats",
    "RegistrationResult",
    "TestDeliveryResult",
]