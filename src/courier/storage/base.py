"""Storage interface for endpoints, delivery logs and owner plans.

The delivery engine only needs a handful of fields from the platform's
record store. Implementations must make counter increments and partial
updates atomic so that owner edits and worker bookkeeping on the same
endpoint never lose each other's writes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from datetime import datetime

    from courier.models import DeliveryLogEntry, Endpoint


class EndpointStore(ABC):
    """Abstract base class for endpoint storage backends.

    Reads return detached copies: mutating a returned Endpoint never
    changes stored state. All writes go through the methods below.
    """

    # Endpoints

    @abstractmethod
    async def store_endpoint(self, endpoint: Endpoint) -> str:
        """Insert or replace an endpoint.

        Returns:
            The endpoint ID.
        """
        ...

    @abstractmethod
    async def get_endpoint(self, endpoint_id: str) -> Endpoint | None:
        """Get an endpoint by ID regardless of owner."""
        ...

    @abstractmethod
    async def list_endpoints(
        self,
        owner_id: str,
        scope_id: str | None = None,
    ) -> list[Endpoint]:
        """List an owner's endpoints, newest first.

        Args:
            owner_id: Owning tenant.
            scope_id: If set, only endpoints scoped to exactly this session.
        """
        ...

    @abstractmethod
    async def list_active_endpoints(self) -> list[Endpoint]:
        """List active endpoints across all owners."""
        ...

    @abstractmethod
    async def count_endpoints(self, owner_id: str) -> int:
        """Count an owner's endpoints."""
        ...

    @abstractmethod
    async def update_endpoint(self, endpoint_id: str, changes: dict[str, Any]) -> Endpoint | None:
        """Atomically apply field changes to an endpoint.

        Counters are never part of ``changes``; use record_success and
        record_failure for those.

        Returns:
            Updated endpoint, or None if it does not exist.
        """
        ...

    @abstractmethod
    async def delete_endpoint(self, endpoint_id: str) -> bool:
        """Delete an endpoint together with its delivery log.

        Returns:
            True if deleted, False if not found.
        """
        ...

    @abstractmethod
    async def record_success(self, endpoint_id: str, at: datetime) -> Endpoint | None:
        """Atomically increment success_count and set last_triggered_at."""
        ...

    @abstractmethod
    async def record_failure(self, endpoint_id: str, error: str, at: datetime) -> Endpoint | None:
        """Atomically increment failure_count and record the error."""
        ...

    @abstractmethod
    async def set_active(self, endpoint_id: str, active: bool) -> Endpoint | None:
        """Set the active flag of an endpoint."""
        ...

    # Delivery log

    @abstractmethod
    async def append_log(self, endpoint_id: str, entry: DeliveryLogEntry, max_entries: int) -> None:
        """Append a log entry, dropping the oldest beyond max_entries."""
        ...

    @abstractmethod
    async def get_logs(self, endpoint_id: str, limit: int) -> list[DeliveryLogEntry]:
        """Get up to ``limit`` log entries, newest first."""
        ...

    @abstractmethod
    async def prune_logs(self, before: datetime) -> int:
        """Delete log entries older than ``before`` across all endpoints.

        Returns:
            Number of entries deleted.
        """
        ...

    # Owner plans

    @abstractmethod
    async def get_owner_plan(self, owner_id: str) -> str | None:
        """Get the subscription plan of an owner, if known."""
        ...

    @abstractmethod
    async def set_owner_plan(self, owner_id: str, plan: str) -> None:
        """Record the subscription plan of an owner."""
        ...

    # Scopes

    @abstractmethod
    async def get_scope_owner(self, scope_id: str) -> str | None:
        """Get the owner of a scope (session), if the scope is known."""
        ...

    @abstractmethod
    async def set_scope_owner(self, scope_id: str, owner_id: str) -> None:
        """Record which owner a scope (session) belongs to."""
        ...
