"""Per-endpoint delivery history and statistics."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from courier.logging import get_logger
from courier.models import DeliveryLogEntry, DeliveryStats, utc_now

if TYPE_CHECKING:
    from courier.models import Endpoint
    from courier.storage import EndpointStore

logger = get_logger(__name__)


class DeliveryLog:
    """Bounded delivery history kept per endpoint.

    Entries live in the endpoint store and disappear with their endpoint.
    Each endpoint keeps at most ``retention`` entries; older ones are
    dropped first. ``cleanup`` additionally prunes by age.
    """

    def __init__(self, store: EndpointStore, retention: int = 100) -> None:
        self._store = store
        self._retention = retention

    async def record(self, endpoint_id: str, entry: DeliveryLogEntry) -> None:
        """Append an outcome to the endpoint's history."""
        await self._store.append_log(endpoint_id, entry, self._retention)

    async def recent(self, endpoint_id: str, limit: int = 50) -> list[DeliveryLogEntry]:
        """Most recent entries first."""
        if limit <= 0:
            return []
        return await self._store.get_logs(endpoint_id, limit)

    async def stats(self, endpoint: Endpoint) -> DeliveryStats:
        """Derive statistics from lifetime counters and retained history.

        Totals and the success rate come from the endpoint's lifetime
        counters. The average response time only covers retained entries.
        """
        total = endpoint.total_deliveries
        success_rate = (endpoint.success_count / total) * 100 if total > 0 else 0.0

        entries = await self._store.get_logs(endpoint.id, self._retention)
        timings = [e.response_time_ms for e in entries if e.response_time_ms is not None]
        average = sum(timings) / len(timings) if timings else None
        last_delivery = entries[0].timestamp if entries else endpoint.last_triggered_at

        return DeliveryStats(
            total_deliveries=total,
            successful_deliveries=endpoint.success_count,
            failed_deliveries=endpoint.failure_count,
            success_rate=success_rate,
            average_response_time_ms=average,
            last_delivery=last_delivery,
            active=endpoint.active,
        )

    async def cleanup(self, older_than_days: int = 30) -> int:
        """Prune entries older than the given age across all endpoints.

        Returns:
            Number of entries removed.
        """
        cutoff = utc_now() - timedelta(days=older_than_days)
        removed = await self._store.prune_logs(cutoff)
        logger.info("delivery_log_pruned", removed=removed, older_than_days=older_than_days)
        return removed
