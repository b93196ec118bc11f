"""In-memory endpoint store.

Holds endpoints, per-endpoint delivery logs and owner plans in process
memory. Suitable for tests and single-process deployments; nothing
survives a restart.

Example:
    ```python
    from courier.storage import InMemoryEndpointStore

    store = InMemoryEndpointStore()
    await store.store_endpoint(endpoint)
    updated = await store.record_success(endpoint.id, utc_now())
    ```
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING, Any

from .base import EndpointStore

if TYPE_CHECKING:
    from datetime import datetime

    from courier.models import DeliveryLogEntry, Endpoint

# Fields owners may change through update_endpoint
_PROTECTED_FIELDS = frozenset({"id", "owner_id", "success_count", "failure_count", "created_at"})


class InMemoryEndpointStore(EndpointStore):
    """Dict-backed store guarded by a single asyncio lock.

    Every mutation holds the lock for its whole read-modify-write.
    """

    def __init__(self) -> None:
        self._endpoints: dict[str, Endpoint] = {}
        self._logs: dict[str, deque[DeliveryLogEntry]] = {}
        self._plans: dict[str, str] = {}
        self._scopes: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def store_endpoint(self, endpoint: Endpoint) -> str:
        async with self._lock:
            self._endpoints[endpoint.id] = endpoint.model_copy(deep=True)
        return endpoint.id

    async def get_endpoint(self, endpoint_id: str) -> Endpoint | None:
        endpoint = self._endpoints.get(endpoint_id)
        return endpoint.model_copy(deep=True) if endpoint is not None else None

    async def list_endpoints(
        self,
        owner_id: str,
        scope_id: str | None = None,
    ) -> list[Endpoint]:
        matches = [
            ep.model_copy(deep=True)
            for ep in self._endpoints.values()
            if ep.owner_id == owner_id and (scope_id is None or ep.scope_id == scope_id)
        ]
        matches.reverse()
        return matches

    async def list_active_endpoints(self) -> list[Endpoint]:
        return [ep.model_copy(deep=True) for ep in self._endpoints.values() if ep.active]

    async def count_endpoints(self, owner_id: str) -> int:
        return sum(1 for ep in self._endpoints.values() if ep.owner_id == owner_id)

    async def update_endpoint(self, endpoint_id: str, changes: dict[str, Any]) -> Endpoint | None:
        blocked = _PROTECTED_FIELDS.intersection(changes)
        if blocked:
            raise ValueError(f"Fields cannot be updated directly: {sorted(blocked)}")

        async with self._lock:
            current = self._endpoints.get(endpoint_id)
            if current is None:
                return None
            updated = current.model_copy(update=changes, deep=True)
            self._endpoints[endpoint_id] = updated
            return updated.model_copy(deep=True)

    async def delete_endpoint(self, endpoint_id: str) -> bool:
        async with self._lock:
            self._logs.pop(endpoint_id, None)
            return self._endpoints.pop(endpoint_id, None) is not None

    async def record_success(self, endpoint_id: str, at: datetime) -> Endpoint | None:
        async with self._lock:
            current = self._endpoints.get(endpoint_id)
            if current is None:
                return None
            current.success_count += 1
            current.last_triggered_at = at
            return current.model_copy(deep=True)

    async def record_failure(self, endpoint_id: str, error: str, at: datetime) -> Endpoint | None:
        async with self._lock:
            current = self._endpoints.get(endpoint_id)
            if current is None:
                return None
            current.failure_count += 1
            current.last_triggered_at = at
            current.last_error = error
            current.last_error_at = at
            return current.model_copy(deep=True)

    async def set_active(self, endpoint_id: str, active: bool) -> Endpoint | None:
        async with self._lock:
            current = self._endpoints.get(endpoint_id)
            if current is None:
                return None
            current.active = active
            return current.model_copy(deep=True)

    async def append_log(self, endpoint_id: str, entry: DeliveryLogEntry, max_entries: int) -> None:
        async with self._lock:
            if endpoint_id not in self._endpoints:
                return
            log = self._logs.get(endpoint_id)
            if log is None or log.maxlen != max_entries:
                log = deque(log or (), maxlen=max_entries)
                self._logs[endpoint_id] = log
            log.append(entry)

    async def get_logs(self, endpoint_id: str, limit: int) -> list[DeliveryLogEntry]:
        log = self._logs.get(endpoint_id)
        if not log:
            return []
        return list(reversed(log))[:limit]

    async def prune_logs(self, before: datetime) -> int:
        removed = 0
        async with self._lock:
            for endpoint_id, log in self._logs.items():
                kept = [entry for entry in log if entry.timestamp >= before]
                removed += len(log) - len(kept)
                self._logs[endpoint_id] = deque(kept, maxlen=log.maxlen)
        return removed

    async def get_owner_plan(self, owner_id: str) -> str | None:
        return self._plans.get(owner_id)

    async def set_owner_plan(self, owner_id: str, plan: str) -> None:
        async with self._lock:
            self._plans[owner_id] = plan

    async def get_scope_owner(self, scope_id: str) -> str | None:
        return self._scopes.get(scope_id)

    async def set_scope_owner(self, scope_id: str, owner_id: str) -> None:
        async with self._lock:
            self._scopes[scope_id] = owner_id
