import os
import uuid
from datetime import UTC, datetime

import pytest
from catalogue.schemas import DeliveryLocation, HospitalityCenter, MenuItem, ProductVariation, Venue
from ordering.errors import OrderNotFound
from ordering.store.base import OrderCodeTaken, OrderStore
from ordering.store.records import OrderLineRecord, OrderRecord


@pytest.fixture(scope="session")
def _ordering_domain(request):
    """Initialize the ordering domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from ordering.domain import ordering

    ordering.init()
    return ordering


@pytest.fixture(autouse=True)
def run_around_tests(_ordering_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _ordering_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()


class InMemoryOrderStore(OrderStore):
    """Order store double that records every call.

    ``taken_codes`` collide on insert, ``fail_header``/``fail_lines`` make the
    matching write blow up, and ``script(order_id, [...])`` queues the results
    of successive ``get_order`` calls (records or exceptions to raise).
    """

    def __init__(self):
        self.orders: dict[str, OrderRecord] = {}
        self.calls: list[str] = []
        self.taken_codes: set[str] = set()
        self.fail_header = False
        self.fail_lines = False
        self._scripts: dict[str, list] = {}

    def script(self, order_id, results):
        self._scripts[str(order_id)] = list(results)

    async def create_order(self, header):
        self.calls.append("create_order")
        if header.order_code in self.taken_codes:
            raise OrderCodeTaken(header.order_code)
        if self.fail_header:
            raise RuntimeError("insert failed")

        record = OrderRecord(
            id=str(uuid.uuid4()),
            **header.model_dump(exclude={"delivery_location", "venue_name"}),
        )
        self.orders[record.id] = record
        self.taken_codes.add(header.order_code)
        return record

    async def create_order_lines(self, order_id, lines):
        self.calls.append("create_order_lines")
        if self.fail_lines:
            raise RuntimeError("lines insert failed")

        records = [
            OrderLineRecord(id=str(uuid.uuid4()), **line.model_dump())
            for line in lines
        ]
        self.orders[order_id] = self.orders[order_id].model_copy(update={"lines": records})
        return records

    async def get_order(self, order_id):
        self.calls.append("get_order")
        script = self._scripts.get(str(order_id))
        if script:
            result = script.pop(0) if len(script) > 1 else script[0]
            if isinstance(result, Exception):
                raise result
            return result
        if order_id not in self.orders:
            raise OrderNotFound(order_id)
        return self.orders[order_id]

    async def list_orders_by_customer(self, customer_id):
        self.calls.append("list_orders_by_customer")
        records = [r for r in self.orders.values() if r.customer_id == str(customer_id)]
        return sorted(records, key=lambda r: r.ordered_at or datetime.min.replace(tzinfo=UTC), reverse=True)

    async def update_order_status(self, order_id, status):
        self.calls.append("update_order_status")
        if order_id not in self.orders:
            raise OrderNotFound(order_id)
        self.orders[order_id] = self.orders[order_id].model_copy(update={"status": status})
        return self.orders[order_id]

    async def record_feedback(self, order_id, rating, feedback=None, tip=None):
        self.calls.append("record_feedback")
        self.orders[order_id] = self.orders[order_id].model_copy(
            update={"rating": rating, "feedback": feedback, "tip": tip}
        )
        return self.orders[order_id]


@pytest.fixture
def order_store():
    return InMemoryOrderStore()


@pytest.fixture
def center():
    return HospitalityCenter(id=1, name="Azure Bay Resort")


@pytest.fixture
def pool_bar():
    return Venue(id=10, name="Pool Bar", hospitality_center_id=1, prep_time=12)


@pytest.fixture
def grill():
    return Venue(id=20, name="Beach Grill", hospitality_center_id=1)


@pytest.fixture
def mojito():
    return MenuItem(id=101, name="Mojito", price=8, merchant_id=10)


@pytest.fixture
def burger():
    return MenuItem(id=201, name="Burger", price=12, merchant_id=20)


@pytest.fixture
def large_mojito(mojito):
    return ProductVariation(id=501, name="Large", price=2.5, product_id=mojito.id)


@pytest.fixture
def cabana():
    return DeliveryLocation(id=7, name="Cabana 7", type="cabana", hospitality_center_id=1)
