"""Courier service layer.

Wires the endpoint store, registry, delivery log, circuit breaker, queue,
worker and dispatcher together and exposes the surface consumed by the
platform: endpoint CRUD for the API layer, ``trigger`` for the transport
integration, and maintenance tasks for schedulers.

Example:
    ```python
    from courier.models import EndpointSpec
    from courier.service import WebhookService

    async with WebhookService.create() as courier:
        result = await courier.create_endpoint(
            owner_id="tenant_1",
            spec=EndpointSpec(
                url="https://example.com/hooks",
                events=["message.received"],
            ),
        )
        await courier.trigger("message.received", {"from": "X"}, owner_id="tenant_1")
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from courier.config import Settings
from courier.logging import configure_logging, get_logger
from courier.storage import EndpointStore, InMemoryEndpointStore
from courier.webhooks import (
    CircuitBreaker,
    DeliveryLog,
    DeliveryQueue,
    DeliveryWorker,
    EndpointRegistry,
    EventDispatcher,
    WebhookSender,
)

if TYPE_CHECKING:
    from courier.models import (
        DeliveryLogEntry,
        DeliveryStats,
        Endpoint,
        EndpointPatch,
        EndpointSpec,
        RegistrationResult,
        TestDeliveryResult,
    )
    from courier.webhooks.queue import Clock

logger = get_logger(__name__)


@dataclass
class WebhookService:
    """High-level webhook service.

    Uses dependency injection for every component, making it easy to test
    and configure. ``create()`` builds a default wiring; entering the async
    context starts the delivery worker and leaving it stops the worker.

    Attributes:
        settings: Configuration settings.
        store: Endpoint, log and plan storage.
        registry: Endpoint CRUD with validation and quotas.
        log: Per-endpoint delivery history.
        breaker: Deactivates chronically failing endpoints.
        queue: Pending delivery attempts.
        worker: Background scheduler draining the queue.
        dispatcher: Entry point for domain events.
    """

    settings: Settings
    store: EndpointStore
    registry: EndpointRegistry
    log: DeliveryLog
    breaker: CircuitBreaker
    queue: DeliveryQueue
    worker: DeliveryWorker
    dispatcher: EventDispatcher

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        store: EndpointStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock | None = None,
    ) -> WebhookService:
        """Create a WebhookService with default dependencies.

        Args:
            settings: Optional settings. Uses defaults if None.
            store: Optional store. Uses an in-memory store if None.
            transport: Optional httpx transport for outbound calls.
            clock: Optional scheduler clock (seconds).

        Returns:
            Configured WebhookService instance.
        """
        if settings is None:
            settings = Settings()
        if store is None:
            store = InMemoryEndpointStore()

        sender = WebhookSender(user_agent=settings.user_agent, transport=transport)
        log = DeliveryLog(store, retention=settings.log_retention_entries)
        breaker = CircuitBreaker(
            store,
            failure_threshold=settings.breaker.failure_threshold,
            failure_rate=settings.breaker.failure_rate,
        )
        queue_kwargs: dict[str, Any] = {"max_size": settings.queue_max_size}
        if clock is not None:
            queue_kwargs["clock"] = clock
        queue = DeliveryQueue(**queue_kwargs)
        worker = DeliveryWorker(
            queue,
            store,
            sender,
            log,
            breaker,
            tick_seconds=settings.worker_tick_seconds,
            max_concurrent=settings.worker_max_concurrent,
        )
        registry = EndpointRegistry(store, settings)
        dispatcher = EventDispatcher(
            registry,
            queue,
            sender,
            test_timeout_ms=settings.test_timeout_ms,
        )
        registry.set_tester(dispatcher.test_delivery)

        return cls(
            settings=settings,
            store=store,
            registry=registry,
            log=log,
            breaker=breaker,
            queue=queue,
            worker=worker,
            dispatcher=dispatcher,
        )

    async def initialize(self) -> None:
        """Configure logging and start the delivery worker."""
        configure_logging(level=self.settings.log_level, format=self.settings.log_format)
        await self.worker.start()

    async def close(self) -> None:
        """Stop the delivery worker and drop pending attempts, which are not persisted."""
        await self.worker.stop()
        dropped = self.queue.clear()
        if dropped:
            logger.warning("pending_deliveries_discarded", pending=dropped)

    async def __aenter__(self) -> WebhookService:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # Endpoint CRUD

    async def create_endpoint(self, owner_id: str, spec: EndpointSpec) -> RegistrationResult:
        return await self.registry.create(owner_id, spec)

    async def get_endpoint(self, endpoint_id: str, owner_id: str) -> Endpoint:
        return await self.registry.get(endpoint_id, owner_id)

    async def list_endpoints(self, owner_id: str, scope_id: str | None = None) -> list[Endpoint]:
        return await self.registry.list_for_owner(owner_id, scope_id)

    async def update_endpoint(
        self,
        endpoint_id: str,
        owner_id: str,
        patch: EndpointPatch,
    ) -> RegistrationResult:
        return await self.registry.update(endpoint_id, owner_id, patch)

    async def delete_endpoint(self, endpoint_id: str, owner_id: str) -> None:
        await self.registry.delete(endpoint_id, owner_id)

    async def regenerate_secret(self, endpoint_id: str, owner_id: str) -> str:
        return await self.registry.regenerate_secret(endpoint_id, owner_id)

    async def test_endpoint(self, endpoint_id: str, owner_id: str) -> TestDeliveryResult:
        """Probe an owner's endpoint with a ``webhook.test`` delivery."""
        endpoint = await self.registry.get(endpoint_id, owner_id)
        return await self.dispatcher.test_delivery(endpoint)

    def supported_events(self) -> list[str]:
        return self.registry.supported_events()

    async def set_owner_plan(self, owner_id: str, plan: str) -> None:
        """Record an owner's plan tier, which sets their endpoint limit."""
        await self.store.set_owner_plan(owner_id, plan)

    async def register_scope(self, scope_id: str, owner_id: str) -> None:
        """Record that a scope (session) belongs to an owner.

        Endpoints scoped to a registered scope can only be created by its
        owner. Unregistered scopes are accepted as-is.
        """
        await self.store.set_scope_owner(scope_id, owner_id)

    # Events

    async def trigger(
        self,
        event: str,
        data: dict[str, Any],
        owner_id: str,
        scope_id: str | None = None,
    ) -> int:
        """Enqueue deliveries for a domain event. See EventDispatcher.trigger."""
        return await self.dispatcher.trigger(event, data, owner_id, scope_id)

    # History

    async def get_stats(self, endpoint_id: str, owner_id: str) -> DeliveryStats:
        endpoint = await self.registry.get(endpoint_id, owner_id)
        return await self.log.stats(endpoint)

    async def get_logs(
        self,
        endpoint_id: str,
        owner_id: str,
        limit: int = 50,
    ) -> list[DeliveryLogEntry]:
        await self.registry.get(endpoint_id, owner_id)
        return await self.log.recent(endpoint_id, limit)

    # Maintenance

    async def cleanup_old_logs(self, older_than_days: int | None = None) -> int:
        """Prune delivery history older than the retention age."""
        days = older_than_days or self.settings.log_retention_days
        return await self.log.cleanup(days)

    async def disable_failed_endpoints(self) -> int:
        """Run the circuit breaker over every active endpoint."""
        return await self.breaker.sweep()
