"""Tests for the circuit breaker."""

from __future__ import annotations

import pytest
from conftest import make_endpoint

from courier.models import utc_now
from courier.storage import InMemoryEndpointStore
from courier.webhooks import CircuitBreaker


async def _stored_with_counts(
    store: InMemoryEndpointStore, successes: int, failures: int, **overrides: object
):
    endpoint = make_endpoint(**overrides)
    await store.store_endpoint(endpoint)
    at = utc_now()
    for _ in range(successes):
        await store.record_success(endpoint.id, at)
    for _ in range(failures):
        await store.record_failure(endpoint.id, "HTTP 500: error", at)
    return await store.get_endpoint(endpoint.id)


class TestShouldTrip:
    """Tests for the trip condition."""

    def test_below_threshold_never_trips(self) -> None:
        breaker = CircuitBreaker(InMemoryEndpointStore())
        assert not breaker.should_trip(make_endpoint(failure_count=9))

    def test_ratio_at_threshold(self) -> None:
        breaker = CircuitBreaker(InMemoryEndpointStore())
        assert breaker.should_trip(make_endpoint(success_count=1, failure_count=9))
        assert not breaker.should_trip(make_endpoint(success_count=2, failure_count=8))

    def test_old_successes_dilute_failures(self) -> None:
        breaker = CircuitBreaker(InMemoryEndpointStore())
        assert not breaker.should_trip(make_endpoint(success_count=1000, failure_count=100))

    def test_custom_thresholds(self) -> None:
        breaker = CircuitBreaker(InMemoryEndpointStore(), failure_threshold=4, failure_rate=0.5)
        assert breaker.should_trip(make_endpoint(success_count=2, failure_count=2))


class TestEvaluate:
    """Tests for CircuitBreaker.evaluate()."""

    @pytest.mark.asyncio
    async def test_trips_and_deactivates(self) -> None:
        store = InMemoryEndpointStore()
        breaker = CircuitBreaker(store)
        endpoint = await _stored_with_counts(store, successes=1, failures=9)

        assert await breaker.evaluate(endpoint)
        stored = await store.get_endpoint(endpoint.id)
        assert stored is not None
        assert not stored.active
        assert stored.success_count == 1
        assert stored.failure_count == 9

    @pytest.mark.asyncio
    async def test_healthy_endpoint_stays_active(self) -> None:
        store = InMemoryEndpointStore()
        breaker = CircuitBreaker(store)
        endpoint = await _stored_with_counts(store, successes=2, failures=8)

        assert not await breaker.evaluate(endpoint)
        stored = await store.get_endpoint(endpoint.id)
        assert stored is not None
        assert stored.active

    @pytest.mark.asyncio
    async def test_already_inactive_is_not_reported(self) -> None:
        store = InMemoryEndpointStore()
        breaker = CircuitBreaker(store)
        endpoint = await _stored_with_counts(store, successes=0, failures=10, active=False)

        assert not await breaker.evaluate(endpoint)

    @pytest.mark.asyncio
    async def test_deleted_endpoint(self) -> None:
        store = InMemoryEndpointStore()
        breaker = CircuitBreaker(store)
        endpoint = make_endpoint(failure_count=10)

        assert not await breaker.evaluate(endpoint)


class TestSweep:
    """Tests for CircuitBreaker.sweep()."""

    @pytest.mark.asyncio
    async def test_sweep_disables_only_failing(self) -> None:
        store = InMemoryEndpointStore()
        breaker = CircuitBreaker(store)
        failing = await _stored_with_counts(store, successes=0, failures=12)
        healthy = await _stored_with_counts(store, successes=10, failures=2)
        young = await _stored_with_counts(store, successes=0, failures=3)

        assert await breaker.sweep() == 1

        for endpoint, active in ((failing, False), (healthy, True), (young, True)):
            stored = await store.get_endpoint(endpoint.id)
            assert stored is not None
            assert stored.active is active

        assert await breaker.sweep() == 0
