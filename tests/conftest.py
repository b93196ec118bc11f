"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest

# Add tests directory to path so helpers can be imported
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from courier.config import Settings  # noqa: E402
from courier.models import Endpoint, RetryPolicy  # noqa: E402
from courier.storage import InMemoryEndpointStore  # noqa: E402
from courier.webhooks import (  # noqa: E402
    CircuitBreaker,
    DeliveryLog,
    DeliveryQueue,
    DeliveryWorker,
    WebhookSender,
)


class FakeClock:
    """Manually advanced scheduler clock (seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Receiver:
    """Records requests sent through an httpx.MockTransport.

    Responds with the next status from ``statuses`` (the last one repeats),
    or raises ``error`` when set.
    """

    def __init__(self, statuses: list[int] | None = None) -> None:
        self.statuses = list(statuses or [200])
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return httpx.Response(status, text="ok" if status < 300 else "error")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def fail_with_timeout(self) -> None:
        self.error = httpx.ReadTimeout("timed out")

    def fail_with_connect_error(self) -> None:
        self.error = httpx.ConnectError("Connection refused")


def make_endpoint(**overrides: object) -> Endpoint:
    """Build an endpoint with test defaults."""
    fields: dict[str, object] = {
        "owner_id": "tenant_1",
        "url": "https://example.com/hooks",
        "secret": "test_secret_16chars",
        "events": ["message.received", "message.sent"],
        "retry_policy": RetryPolicy(max_retries=3, initial_delay_ms=1000, backoff_multiplier=2),
    }
    fields.update(overrides)
    return Endpoint.model_validate(fields)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's environment."""
    return Settings(env="test", log_format="text", _env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def store() -> InMemoryEndpointStore:
    return InMemoryEndpointStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def receiver() -> Receiver:
    return Receiver()


@pytest.fixture
def sender(receiver: Receiver) -> WebhookSender:
    return WebhookSender(user_agent="courier-tests/1.0", transport=receiver.transport)


@pytest.fixture
def queue(clock: FakeClock) -> DeliveryQueue:
    return DeliveryQueue(clock=clock)


@pytest.fixture
def delivery_log(store: InMemoryEndpointStore) -> DeliveryLog:
    return DeliveryLog(store, retention=100)


@pytest.fixture
def breaker(store: InMemoryEndpointStore) -> CircuitBreaker:
    return CircuitBreaker(store, failure_threshold=10, failure_rate=0.9)


@pytest.fixture
def worker(
    queue: DeliveryQueue,
    store: InMemoryEndpointStore,
    sender: WebhookSender,
    delivery_log: DeliveryLog,
    breaker: CircuitBreaker,
) -> DeliveryWorker:
    return DeliveryWorker(queue, store, sender, delivery_log, breaker, tick_seconds=0.01)
