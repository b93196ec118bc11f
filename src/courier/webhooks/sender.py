"""Single signed HTTP delivery.

Performs exactly one POST of an envelope to an endpoint and classifies the
outcome. Retrying, logging and counters are the worker's job.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from courier.exceptions import DeliveryError
from courier.logging import get_logger

from .signing import SIGNATURE_HEADER, sign

if TYPE_CHECKING:
    from courier.models import Endpoint, EventEnvelope

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "courier-webhooks/0.1.0"


@dataclass(frozen=True)
class SendResult:
    """Outcome of one HTTP delivery."""

    success: bool
    response_time_ms: float
    status_code: int | None = None
    error: str | None = None


class WebhookSender:
    """Signs and POSTs envelopes to endpoints.

    Example:
        ```python
        sender = WebhookSender(user_agent="my-platform/1.0")
        result = await sender.send(endpoint, envelope)
        if not result.success:
            print(result.error)
        ```
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the sender.

        Args:
            user_agent: User-Agent header value.
            transport: Optional httpx transport (tests pass httpx.MockTransport).
        """
        self._user_agent = user_agent
        self._transport = transport

    def build_headers(
        self,
        endpoint: Endpoint,
        envelope: EventEnvelope,
        body: bytes,
        attempt_number: int = 1,
    ) -> httpx.Headers:
        """Build request headers.

        Endpoint-configured headers are applied first; the engine's own
        headers override any of them with the same name.
        """
        headers = httpx.Headers(endpoint.headers)
        headers.update(
            {
                "Content-Type": "application/json",
                SIGNATURE_HEADER: sign(body, endpoint.secret),
                "X-Webhook-Event": envelope.event,
                "X-Webhook-Id": envelope.id,
                "X-Webhook-Attempt": str(attempt_number),
                "User-Agent": self._user_agent,
            }
        )
        return headers

    async def send(
        self,
        endpoint: Endpoint,
        envelope: EventEnvelope,
        attempt_number: int = 1,
        timeout_ms: int | None = None,
    ) -> SendResult:
        """Deliver an envelope once.

        Args:
            endpoint: Target endpoint.
            envelope: Envelope to deliver.
            attempt_number: Attempt counter, sent as a header.
            timeout_ms: Overrides endpoint.timeout_ms when given.

        Returns:
            SendResult; ``success`` is True only for a 2xx response.
        """
        timeout_ms = timeout_ms or endpoint.timeout_ms
        started = time.perf_counter()
        try:
            status_code = await self._post(endpoint, envelope, attempt_number, timeout_ms)
        except DeliveryError as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.debug(
                "delivery_failed",
                endpoint_id=endpoint.id,
                event_name=envelope.event,
                attempt=attempt_number,
                status_code=e.status_code,
                error=e.message,
            )
            return SendResult(
                success=False,
                response_time_ms=elapsed,
                status_code=e.status_code,
                error=e.message,
            )

        elapsed = (time.perf_counter() - started) * 1000
        logger.debug(
            "delivery_succeeded",
            endpoint_id=endpoint.id,
            event_name=envelope.event,
            attempt=attempt_number,
            status_code=status_code,
            response_time_ms=round(elapsed, 1),
        )
        return SendResult(success=True, response_time_ms=elapsed, status_code=status_code)

    async def _post(
        self,
        endpoint: Endpoint,
        envelope: EventEnvelope,
        attempt_number: int,
        timeout_ms: int,
    ) -> int:
        """POST the envelope, raising DeliveryError unless the response is 2xx."""
        body = envelope.to_bytes()
        headers = self.build_headers(endpoint, envelope, body, attempt_number)

        try:
            async with httpx.AsyncClient(
                timeout=timeout_ms / 1000,
                transport=self._transport,
            ) as client:
                response = await client.post(endpoint.url, content=body, headers=headers)
        except httpx.TimeoutException as e:
            raise DeliveryError(f"Request timeout after {timeout_ms}ms") from e
        except httpx.RequestError as e:
            raise DeliveryError(f"{type(e).__name__}: {e}") from e

        if not 200 <= response.status_code < 300:
            raise DeliveryError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response.status_code
