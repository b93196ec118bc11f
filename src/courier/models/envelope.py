"""Event envelope: the immutable payload sent to endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .base import generate_id, utc_now
from .endpoint import TEST_EVENT, EventName


class EventEnvelope(BaseModel):
    """Event payload wrapper delivered to endpoints.

    The wire body is ``{"event", "timestamp", "sessionId", "data"}``; the
    envelope id is only carried in a request header.

    Attributes:
        id: Unique identifier for this envelope.
        event: Event name.
        timestamp: When the envelope was created.
        scope_id: Session the event was raised in (optional).
        data: Event-specific payload, opaque to the engine.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    id: str = Field(default_factory=lambda: generate_id("evt"), exclude=True)
    event: EventName = Field(description="Event name")
    timestamp: datetime = Field(default_factory=utc_now, description="Creation time")
    scope_id: str | None = Field(default=None, alias="sessionId", description="Session scope")
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific payload")

    def to_bytes(self) -> bytes:
        """Canonical wire form: compact JSON, UTF-8.

        These exact bytes are signed and sent, so the receiver can recompute
        the signature over the raw request body.
        """
        return self.model_dump_json(by_alias=True).encode("utf-8")

    @classmethod
    def for_test(cls, scope_id: str | None = None) -> "EventEnvelope":
        """Create the synthetic envelope used to probe an endpoint."""
        return cls(
            event=TEST_EVENT,
            scope_id=scope_id,
            data={"message": "This is a test webhook delivery"},
        )


__all__ = ["EventEnvelope"]
