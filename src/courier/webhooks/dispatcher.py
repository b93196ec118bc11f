"""Event dispatcher: the entry point for domain events.

``trigger`` only promises that matching deliveries were enqueued. It
returns before any HTTP call is made and never reports delivery failures;
those are visible through the delivery log, the endpoint counters and the
circuit breaker.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import pydantic
from pydantic_core import PydanticSerializationError

from courier.exceptions import ValidationError
from courier.logging import get_logger, log_context
from courier.models import EVENT_CATALOG, EventEnvelope, TestDeliveryResult, generate_id

if TYPE_CHECKING:
    from courier.models import Endpoint

    from .queue import DeliveryQueue
    from .registry import EndpointRegistry
    from .sender import WebhookSender

logger = get_logger(__name__)


class EventDispatcher:
    """Fans a domain event out to every matching endpoint.

    Example:
        ```python
        dispatcher = EventDispatcher(registry, queue, sender)

        # Called by the transport integration; returns once enqueued
        await dispatcher.trigger(
            "message.received",
            {"from": "+15550100", "body": "hi"},
            owner_id="tenant_1",
            scope_id="session_42",
        )
        ```
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        queue: DeliveryQueue,
        sender: WebhookSender,
        test_timeout_ms: int = 10000,
    ) -> None:
        self._registry = registry
        self._queue = queue
        self._sender = sender
        self._test_timeout_ms = test_timeout_ms

    async def trigger(
        self,
        event: str,
        data: dict[str, Any],
        owner_id: str,
        scope_id: str | None = None,
    ) -> int:
        """Enqueue one delivery per matching endpoint.

        An endpoint matches when it is active, subscribed to the event and
        either unscoped or scoped to ``scope_id``.

        Args:
            event: Event name from the catalog.
            data: Event payload, delivered as-is.
            owner_id: Tenant the event belongs to.
            scope_id: Session the event was raised in (optional).

        Returns:
            Number of deliveries enqueued.

        Raises:
            ValidationError: Unknown event name, or a payload that is not a
                JSON-serializable object.
        """
        if event not in EVENT_CATALOG:
            raise ValidationError("event", f"unsupported event: {event}")
        template = self._build_envelope(event, scope_id, data)

        with log_context(event_name=event, owner_id=owner_id, scope_id=scope_id):
            endpoints = await self._registry.list_for_owner(owner_id)
            matches = [
                ep for ep in endpoints if ep.subscribes_to(event) and ep.covers_scope(scope_id)
            ]

            if not matches:
                logger.debug("no_endpoints_subscribed")
                return 0

            enqueued = 0
            for endpoint in matches:
                envelope = template.model_copy(update={"id": generate_id("evt")}, deep=True)
                if self._queue.enqueue(endpoint, envelope) is not None:
                    enqueued += 1

            logger.debug("event_dispatched", enqueued=enqueued)
        return enqueued

    @staticmethod
    def _build_envelope(event: str, scope_id: str | None, data: Any) -> EventEnvelope:
        """Build an envelope, rejecting payloads that cannot be delivered as JSON.

        The body is serialized once here so that a bad payload fails the
        producer's call instead of every later delivery attempt.
        """
        try:
            envelope = EventEnvelope(event=event, scope_id=scope_id, data=data)  # type: ignore[arg-type]
            envelope.to_bytes()
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"]) or "data"
            raise ValidationError(field, first["msg"]) from e
        except PydanticSerializationError as e:
            raise ValidationError("data", f"payload is not JSON serializable: {e}") from e
        return envelope

    async def test_delivery(self, endpoint: Endpoint) -> TestDeliveryResult:
        """Deliver a synthetic ``webhook.test`` envelope once, right now.

        Bypasses the queue and leaves counters, history and retry state
        untouched.
        """
        envelope = EventEnvelope.for_test(scope_id=endpoint.scope_id)
        started = time.perf_counter()
        try:
            result = await self._sender.send(endpoint, envelope, timeout_ms=self._test_timeout_ms)
        except Exception as e:
            logger.exception("test_delivery_error", endpoint_id=endpoint.id)
            return TestDeliveryResult(
                success=False,
                response_time_ms=(time.perf_counter() - started) * 1000,
                error=f"Unexpected error: {e}",
            )

        return TestDeliveryResult(
            success=result.success,
            response_time_ms=result.response_time_ms,
            status_code=result.status_code,
            error=result.error,
        )
