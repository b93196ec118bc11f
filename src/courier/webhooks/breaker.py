"""Circuit breaker for chronically failing endpoints.

Evaluated against lifetime counters, not a sliding window: an endpoint with
a long record of successes will not trip quickly during a fresh outage
because old successes dilute the failure ratio. Reactivation is always an
explicit owner action and leaves the counters untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from courier.logging import get_logger

if TYPE_CHECKING:
    from courier.models import Endpoint
    from courier.storage import EndpointStore

logger = get_logger(__name__)


class CircuitBreaker:
    """Deactivates endpoints whose failure ratio crosses a threshold."""

    def __init__(
        self,
        store: EndpointStore,
        failure_threshold: int = 10,
        failure_rate: float = 0.9,
    ) -> None:
        self._store = store
        self.failure_threshold = failure_threshold
        self.failure_rate = failure_rate

    def should_trip(self, endpoint: Endpoint) -> bool:
        """Whether the endpoint's counters call for deactivation."""
        total = endpoint.total_deliveries
        if total < self.failure_threshold:
            return False
        return endpoint.failure_count / total >= self.failure_rate

    async def evaluate(self, endpoint: Endpoint) -> bool:
        """Deactivate the endpoint if it crossed the threshold.

        Returns:
            True if the endpoint was deactivated by this call.
        """
        if not endpoint.active or not self.should_trip(endpoint):
            return False

        updated = await self._store.set_active(endpoint.id, False)
        if updated is None:
            return False

        logger.warning(
            "endpoint_deactivated",
            endpoint_id=endpoint.id,
            owner_id=endpoint.owner_id,
            url=endpoint.url,
            success_count=endpoint.success_count,
            failure_count=endpoint.failure_count,
        )
        return True

    async def sweep(self) -> int:
        """Evaluate every active endpoint.

        Returns:
            Number of endpoints deactivated.
        """
        disabled = 0
        for endpoint in await self._store.list_active_endpoints():
            if await self.evaluate(endpoint):
                disabled += 1

        logger.info("breaker_sweep_complete", disabled=disabled)
        return disabled
