"""The order store collaborator.

Order Assembly writes through it and the tracker reads through it. Two
backends exist: :class:`~ordering.store.domain_store.DomainOrderStore` runs
the protean ``ordering`` domain in process, and
:class:`~ordering.store.postgrest.PostgrestOrderStore` talks to the hosted
backend over HTTP.

Failures surface as ``OrderNotFound`` (no such order, or not visible to the
caller), ``TransientFetchError`` (retryable) or ``OrderCodeTaken`` (the unique
order code collided on insert).
"""

from abc import ABC, abstractmethod

from ordering.store.records import (
    OrderHeader,
    OrderLineDraft,
    OrderLineRecord,
    OrderRecord,
)


class OrderCodeTaken(Exception):
    """The store already holds an order with this code."""

    def __init__(self, order_code: str):
        super().__init__(f"Order code {order_code} is already taken")
        self.order_code = order_code


class OrderStore(ABC):
    supports_atomic_placement = False

    @abstractmethod
    async def create_order(self, header: OrderHeader) -> OrderRecord:
        """Persist an order header and return it with its assigned id."""

    @abstractmethod
    async def create_order_lines(self, order_id: str, lines: list[OrderLineDraft]) -> list[OrderLineRecord]:
        """Persist all lines of an order in one call."""

    async def create_order_with_lines(self, header: OrderHeader, lines: list[OrderLineDraft]) -> OrderRecord:
        """Persist the header and its lines as one unit; nothing is kept on failure.

        Only stores that set ``supports_atomic_placement`` implement this.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_order(self, order_id: str) -> OrderRecord:
        """Fetch an order with its lines and nested venue/location/center projections."""

    @abstractmethod
    async def list_orders_by_customer(self, customer_id: str) -> list[OrderRecord]:
        """List a customer's orders, most recent first."""

    @abstractmethod
    async def update_order_status(self, order_id: str, status: str) -> OrderRecord:
        ...

    @abstractmethod
    async def record_feedback(
        self,
        order_id: str,
        rating: int,
        feedback: str | None = None,
        tip=None,
    ) -> OrderRecord:
        ...
