"""Webhook delivery engine for Courier.

Provides HMAC-signed webhook delivery with exponential backoff retry,
circuit breaking and per-endpoint delivery history.

Example:
    ```python
    from courier.webhooks import verify

    # Receiver side: authenticate an incoming delivery
    body = await request.body()
    if not verify(body, request.headers["X-Webhook-Signature"], secret):
        raise PermissionError("bad signature")
    ```
"""

from .breaker import CircuitBreaker
from .dispatcher import EventDispatcher
from .log import DeliveryLog
from .queue import DeliveryQueue, DeliveryWorker
from .registry import EndpointRegistry
from .sender import SendResult, WebhookSender
from .signing import SIGNATURE_HEADER, generate_secret, sign, verify

__all__ = [
    "SIGNATURE_HEADER",
    "CircuitBreaker",
    "DeliveryLog",
    "DeliveryQueue",
    "DeliveryWorker",
    "EndpointRegistry",
    "EventDispatcher",
    "SendResult",
    "WebhookSender",
    "generate_secret",
    "sign",
    "verify",
]
