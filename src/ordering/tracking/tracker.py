"""Order Status Tracker — the read side that follows orders after checkout.

Status changes come from kitchen and delivery staff, outside this process.
The tracker observes them, either by polling the order store
(:meth:`OrderTracker.subscribe`) or by consuming pushed records
(:meth:`OrderTracker.follow`). Both deliver statuses in non-decreasing order
per order: a record whose status is behind the last applied one is dropped.

Transient fetch failures are retried with exponential backoff up to a small
bound. Past the bound, a polling subscription reports the failure through its
``on_error`` callback (a banner, not a crash) and keeps polling. A missing
order ends the subscription with ``OrderNotFound``.
"""

import asyncio
from collections.abc import AsyncIterable, AsyncIterator

import structlog

from ordering.errors import TransientFetchError
from ordering.store.base import OrderStore
from ordering.store.records import OrderRecord
from ordering.tracking.history import OrderHistory

logger = structlog.get_logger(__name__)

POLL_INTERVAL = 5.0
MAX_FETCH_ATTEMPTS = 3
BACKOFF = 0.5


class StatusGate:
    """Lets a record through only if it does not move an order backwards."""

    def __init__(self):
        self.last: OrderRecord | None = None

    @property
    def is_terminal(self) -> bool:
        return self.last is not None and self.last.is_terminal

    def accept(self, record: OrderRecord) -> bool:
        if self.last is None:
            self.last = record
            return True

        step, last_step = record.step, self.last.step
        if step is None:
            # Unknown statuses never replace a known one
            return False
        if last_step is None or step > last_step:
            self.last = record
            return True
        if step == last_step and self.last.is_being_created and not record.is_being_created:
            # Same status, but the lines have landed
            self.last = record
            return True
        return False


class OrderTracker:
    def __init__(
        self,
        store: OrderStore,
        poll_interval: float = POLL_INTERVAL,
        max_fetch_attempts: int = MAX_FETCH_ATTEMPTS,
        backoff: float = BACKOFF,
        sleep=asyncio.sleep,
    ):
        self._store = store
        self._poll_interval = poll_interval
        self._max_fetch_attempts = max(1, max_fetch_attempts)
        self._backoff = backoff
        self._sleep = sleep

    async def _with_retry(self, operation, **context):
        delay = self._backoff
        for attempt in range(1, self._max_fetch_attempts + 1):
            try:
                return await operation()
            except TransientFetchError as exc:
                if attempt == self._max_fetch_attempts:
                    logger.warning("Order fetch failed, giving up", attempts=attempt, error=exc.message, **context)
                    raise
                logger.info("Order fetch failed, retrying", attempt=attempt, delay=delay, **context)
                await self._sleep(delay)
                delay *= 2

    async def fetch(self, order_id) -> OrderRecord:
        """Fetch one order, retrying transient failures; ``OrderNotFound`` is not retried."""
        return await self._with_retry(lambda: self._store.get_order(order_id), order_id=order_id)

    async def load_history(self, customer_id, history: OrderHistory | None = None) -> OrderHistory:
        """Fetch a customer's orders and fold them into a current/history partition."""
        records = await self._with_retry(
            lambda: self._store.list_orders_by_customer(customer_id),
            customer_id=customer_id,
        )
        history = history if history is not None else OrderHistory()
        moved = history.update(records)
        if moved:
            logger.info("Orders moved to history", customer_id=customer_id, order_ids=[r.id for r in moved])
        return history

    async def subscribe(self, order_id, on_error=None) -> AsyncIterator[OrderRecord]:
        """Poll an order and yield each status advance until it is delivered."""
        gate = StatusGate()
        while True:
            try:
                record = await self.fetch(order_id)
            except TransientFetchError as exc:
                if on_error is not None:
                    on_error(exc)
                await self._sleep(self._poll_interval)
                continue

            if gate.accept(record):
                yield record
            if gate.is_terminal:
                return
            await self._sleep(self._poll_interval)

    async def follow(self, order_id, notifications: AsyncIterable[OrderRecord]) -> AsyncIterator[OrderRecord]:
        """Apply pushed records for one order, dropping any that arrive behind."""
        gate = StatusGate()
        async for record in notifications:
            if record.id != str(order_id):
                continue
            if gate.accept(record):
                yield record
            else:
                logger.debug("Dropping stale order notification", order_id=record.id, status=record.status)
            if gate.is_terminal:
                return
