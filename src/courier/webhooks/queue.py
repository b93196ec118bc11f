"""Delivery queue and worker.

The queue is an in-memory min-heap of attempts ordered by due time.
Producers push synchronously and never wait for delivery. A single worker
task wakes on a fixed tick, pops every attempt that is due and delivers
them through a bounded semaphore, so one slow receiver cannot hold up the
others.

Attempt lifecycle:
    pending -> in_flight -> delivered
                         -> retrying -> pending (attempt n + 1)
                         -> abandoned

Example:
    ```python
    queue = DeliveryQueue()
    worker = DeliveryWorker(queue, store, sender, log, breaker)
    await worker.start()

    queue.enqueue(endpoint, envelope)  # returns immediately

    await worker.stop()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import heapq
import itertools
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from courier.exceptions import RetriesExhaustedError
from courier.logging import get_logger, log_context
from courier.models import DeliveryAttempt, DeliveryLogEntry, utc_now

from .sender import SendResult

if TYPE_CHECKING:
    from courier.models import AttemptState, Endpoint, EventEnvelope
    from courier.storage import EndpointStore

    from .breaker import CircuitBreaker
    from .log import DeliveryLog
    from .sender import WebhookSender

logger = get_logger(__name__)

Clock = Callable[[], float]


class DeliveryQueue:
    """Due-time ordered pending set of delivery attempts.

    Not thread-safe: every producer and the worker must run on the same
    event loop. Pushes and pops never await, so they cannot interleave.
    """

    def __init__(self, clock: Clock = time.monotonic, max_size: int = 10000) -> None:
        """Initialize the queue.

        Args:
            clock: Monotonic clock in seconds used for due times.
            max_size: Maximum pending first attempts; retries are always kept.
        """
        self._clock = clock
        self._max_size = max_size
        self._heap: list[tuple[float, int, DeliveryAttempt]] = []
        self._sequence = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def now(self) -> float:
        """Current reading of the scheduler clock."""
        return self._clock()

    def enqueue(self, endpoint: Endpoint, envelope: EventEnvelope) -> DeliveryAttempt | None:
        """Create and queue the first attempt for an envelope.

        The attempt is due immediately and snapshots the endpoint's current
        ``max_retries``.

        Returns:
            The queued attempt, or None if the queue is full.
        """
        if len(self._heap) >= self._max_size:
            logger.warning(
                "delivery_dropped_queue_full",
                endpoint_id=endpoint.id,
                event_name=envelope.event,
                queue_size=len(self._heap),
            )
            return None

        attempt = DeliveryAttempt(
            endpoint_id=endpoint.id,
            envelope=envelope,
            max_retries=endpoint.retry_policy.max_retries,
            due_at=self._clock(),
        )
        self.push(attempt)
        return attempt

    def push(self, attempt: DeliveryAttempt) -> None:
        """Queue an attempt at its due time."""
        heapq.heappush(self._heap, (attempt.due_at, next(self._sequence), attempt))

    def pop_due(self) -> list[DeliveryAttempt]:
        """Remove and return every attempt whose due time has arrived."""
        now = self._clock()
        due: list[DeliveryAttempt] = []
        while self._heap and self._heap[0][0] <= now:
            _, _, attempt = heapq.heappop(self._heap)
            due.append(attempt)
        return due

    def next_due(self) -> float | None:
        """Due time of the earliest pending attempt."""
        return self._heap[0][0] if self._heap else None

    def pending(self) -> list[DeliveryAttempt]:
        """Snapshot of pending attempts in due order."""
        return [attempt for _, _, attempt in sorted(self._heap, key=lambda item: item[:2])]

    def clear(self) -> int:
        """Drop every pending attempt.

        Returns:
            Number of attempts dropped.
        """
        dropped = len(self._heap)
        self._heap.clear()
        return dropped


class DeliveryWorker:
    """Drains due attempts, delivers them and applies the retry policy."""

    def __init__(
        self,
        queue: DeliveryQueue,
        store: EndpointStore,
        sender: WebhookSender,
        log: DeliveryLog,
        breaker: CircuitBreaker,
        tick_seconds: float = 1.0,
        max_concurrent: int = 10,
    ) -> None:
        """Initialize the worker.

        Args:
            queue: Pending attempts.
            store: Endpoint store, re-read for every attempt.
            sender: Performs the HTTP call.
            log: Delivery history.
            breaker: Evaluated after every outcome.
            tick_seconds: Interval between scans for due attempts.
            max_concurrent: Maximum deliveries in flight at once.
        """
        self._queue = queue
        self._store = store
        self._sender = sender
        self._log = log
        self._breaker = breaker
        self._tick = tick_seconds
        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background scheduler loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run_loop(), name="courier-delivery-worker")
        logger.info("worker_started", tick_seconds=self._tick, max_concurrent=self._max_concurrent)

    async def stop(self) -> None:
        """Stop the scheduler loop. Attempts still pending are kept in the queue."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("worker_stopped", pending=len(self._queue))

    async def _run_loop(self) -> None:
        while True:
            try:
                await self.drain()
            except Exception:
                logger.exception("worker_tick_failed")
            await asyncio.sleep(self._sleep_interval())

    def _sleep_interval(self) -> float:
        """Seconds until the next scan: one tick, or less if an attempt is due sooner."""
        next_due = self._queue.next_due()
        if next_due is None:
            return self._tick
        return min(self._tick, max(0.0, next_due - self._queue.now()))

    async def drain(self) -> int:
        """Deliver every attempt currently due.

        Returns:
            Number of attempts processed.
        """
        due = self._queue.pop_due()
        if not due:
            return 0

        await asyncio.gather(*(self._process_bounded(attempt) for attempt in due))
        return len(due)

    async def _process_bounded(self, attempt: DeliveryAttempt) -> None:
        async with self._semaphore:
            await self.process(attempt)

    async def process(self, attempt: DeliveryAttempt) -> AttemptState:
        """Run one attempt through the state machine.

        The endpoint is re-read when the attempt becomes due: a deleted or
        inactive endpoint abandons the attempt without a log entry.

        Returns:
            Final state of this attempt.
        """
        with log_context(
            endpoint_id=attempt.endpoint_id,
            event_name=attempt.envelope.event,
            attempt=attempt.attempt_number,
        ):
            return await self._process(attempt)

    async def _process(self, attempt: DeliveryAttempt) -> AttemptState:
        endpoint = await self._store.get_endpoint(attempt.endpoint_id)
        if endpoint is None or not endpoint.active:
            attempt.state = "abandoned"
            logger.debug("attempt_skipped_endpoint_unavailable", endpoint_exists=endpoint is not None)
            return attempt.state

        attempt.state = "in_flight"
        try:
            result = await self._sender.send(endpoint, attempt.envelope, attempt.attempt_number)
        except Exception as e:
            logger.exception("delivery_unexpected_error")
            result = SendResult(success=False, response_time_ms=0.0, error=f"Unexpected error: {e}")

        now = utc_now()
        await self._log.record(
            endpoint.id,
            DeliveryLogEntry(
                timestamp=now,
                event=attempt.envelope.event,
                success=result.success,
                attempt_number=attempt.attempt_number,
                status_code=result.status_code,
                response_time_ms=result.response_time_ms,
                error=result.error,
            ),
        )

        if result.success:
            updated = await self._store.record_success(endpoint.id, now)
            attempt.state = "delivered"
            logger.info("webhook_delivered", status_code=result.status_code)
        else:
            error = result.error or "Unknown error"
            updated = await self._store.record_failure(endpoint.id, error, now)
            self._handle_failure(attempt, updated, error)

        if updated is not None:
            await self._breaker.evaluate(updated)
        return attempt.state

    def _handle_failure(
        self,
        attempt: DeliveryAttempt,
        endpoint: Endpoint | None,
        error: str,
    ) -> None:
        """Schedule the next attempt, or abandon once retries are exhausted."""
        if endpoint is None:
            # Deleted while the call was in flight
            attempt.state = "abandoned"
            return

        if not attempt.has_retries_left:
            attempt.state = "abandoned"
            exhausted = RetriesExhaustedError(endpoint.id, attempt.attempt_number, error)
            logger.warning("retries_exhausted", attempts=exhausted.attempts, error=exhausted.message)
            return

        delay_ms = endpoint.retry_policy.delay_ms(attempt.attempt_number)
        follow_up = attempt.next_attempt(due_at=self._queue.now() + delay_ms / 1000, error=error)
        self._queue.push(follow_up)
        attempt.state = "retrying"
        logger.info(
            "retry_scheduled",
            next_attempt=follow_up.attempt_number,
            delay_ms=delay_ms,
            error=error,
        )
