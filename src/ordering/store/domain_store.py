"""In-process order store backed by the protean ``ordering`` domain.

Writes go through the placement, status and feedback commands; reads go
through the Order repository. Every call pushes the domain context itself so
the store can be used from code that is not already inside one.
"""

import json
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import OrderNotFound
from ordering.money import to_money
from ordering.order.feedback import RecordOrderFeedback
from ordering.order.order import Order
from ordering.order.placement import PlaceOrder, RecordOrderLines
from ordering.order.progress import UpdateOrderStatus
from ordering.store.base import OrderCodeTaken, OrderStore
from ordering.store.records import (
    CenterSummary,
    LocationSummary,
    OrderHeader,
    OrderLineDraft,
    OrderLineRecord,
    OrderRecord,
    VariationSnapshotRecord,
    VenueSummary,
)

logger = structlog.get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _line_record(line) -> OrderLineRecord:
    variation = None
    if line.variation is not None:
        variation = VariationSnapshotRecord(
            variation_id=str(line.variation.variation_id),
            name=line.variation.name,
            price=to_money(line.variation.price),
        )
    return OrderLineRecord(
        id=str(line.id),
        product_id=str(line.product_id),
        name=line.name,
        quantity=line.quantity,
        price=to_money(line.price),
        customization_note=line.customization_note,
        variation=variation,
    )


def order_to_record(order: Order) -> OrderRecord:
    spot = order.delivery_location
    if spot is not None:
        location = LocationSummary(id=spot.location_id, name=spot.name, kind=spot.kind, note=spot.note)
    else:
        location = LocationSummary(id=order.ordering_location_id)

    return OrderRecord(
        id=str(order.id),
        order_code=order.order_code,
        customer_id=str(order.customer_id),
        status=order.status,
        total_price=to_money(order.total_price),
        ordering_location_id=order.ordering_location_id,
        hospitality_center_id=str(order.hospitality_center_id) if order.hospitality_center_id else None,
        merchant_id=str(order.merchant_id) if order.merchant_id else None,
        instructions=order.instructions,
        payment_method=order.payment_method,
        ordered_at=order.ordered_at,
        updated_at=order.updated_at,
        rating=order.rating,
        feedback=order.feedback,
        tip=to_money(order.tip) if order.tip is not None else None,
        lines=[_line_record(line) for line in order.lines],
        venue=VenueSummary(id=str(order.merchant_id), name=order.venue_name) if order.merchant_id else None,
        location=location,
        hospitality_center=(
            CenterSummary(id=str(order.hospitality_center_id)) if order.hospitality_center_id else None
        ),
    )


def _line_payload(line: OrderLineDraft) -> dict:
    variation = None
    if line.variation is not None:
        variation = {
            "variation_id": line.variation.variation_id,
            "name": line.variation.name,
            "price": float(line.variation.price),
        }
    return {
        "product_id": line.product_id,
        "name": line.name,
        "quantity": line.quantity,
        "price": float(line.price),
        "customization_note": line.customization_note,
        "variation": variation,
    }


class DomainOrderStore(OrderStore):
    supports_atomic_placement = True

    def __init__(self, domain=None):
        self._domain = domain or ordering

    def _process(self, command, order_id=None):
        try:
            return current_domain.process(command, asynchronous=False)
        except ObjectNotFoundError as exc:
            raise OrderNotFound(order_id) from exc

    def _load(self, order_id) -> Order:
        try:
            return current_domain.repository_for(Order).get(order_id)
        except ObjectNotFoundError as exc:
            raise OrderNotFound(order_id) from exc

    def _place(self, header: OrderHeader, lines: list[OrderLineDraft] | None = None) -> OrderRecord:
        delivery_location = None
        if header.delivery_location is not None and header.delivery_location.id:
            spot = header.delivery_location
            delivery_location = json.dumps(
                {"location_id": spot.id, "name": spot.name, "kind": spot.kind, "note": spot.note}
            )

        with self._domain.domain_context():
            command = PlaceOrder(
                order_code=header.order_code,
                customer_id=header.customer_id,
                ordering_location_id=header.ordering_location_id,
                total_price=float(header.total_price),
                hospitality_center_id=header.hospitality_center_id,
                merchant_id=header.merchant_id,
                venue_name=header.venue_name,
                delivery_location=delivery_location,
                instructions=header.instructions,
                payment_method=header.payment_method,
                lines=json.dumps([_line_payload(line) for line in lines]) if lines else None,
            )
            try:
                order_id = self._process(command)
            except ValidationError as exc:
                if "order_code" in exc.messages:
                    raise OrderCodeTaken(header.order_code) from exc
                raise
            return order_to_record(self._load(order_id))

    async def create_order(self, header: OrderHeader) -> OrderRecord:
        record = self._place(header)
        logger.info("Order header stored", order_id=record.id, order_code=record.order_code)
        return record

    async def create_order_with_lines(self, header: OrderHeader, lines: list[OrderLineDraft]) -> OrderRecord:
        record = self._place(header, lines)
        logger.info(
            "Order stored with its lines",
            order_id=record.id,
            order_code=record.order_code,
            line_count=len(record.lines),
        )
        return record

    async def create_order_lines(self, order_id: str, lines: list[OrderLineDraft]) -> list[OrderLineRecord]:
        with self._domain.domain_context():
            command = RecordOrderLines(
                order_id=order_id,
                lines=json.dumps([_line_payload(line) for line in lines]),
            )
            self._process(command, order_id)
            order = self._load(order_id)
            return [_line_record(line) for line in order.lines]

    async def get_order(self, order_id: str) -> OrderRecord:
        with self._domain.domain_context():
            return order_to_record(self._load(order_id))

    async def list_orders_by_customer(self, customer_id: str) -> list[OrderRecord]:
        with self._domain.domain_context():
            repo = current_domain.repository_for(Order)
            orders = repo._dao.query.filter(customer_id=str(customer_id)).all().items
            records = [order_to_record(order) for order in orders]

        return sorted(records, key=lambda record: record.ordered_at or _EPOCH, reverse=True)

    async def update_order_status(self, order_id: str, status: str) -> OrderRecord:
        with self._domain.domain_context():
            self._process(UpdateOrderStatus(order_id=order_id, status=status), order_id)
            record = order_to_record(self._load(order_id))

        logger.info("Order status updated", order_id=order_id, status=record.status)
        return record

    async def record_feedback(self, order_id: str, rating: int, feedback: str | None = None, tip=None) -> OrderRecord:
        with self._domain.domain_context():
            command = RecordOrderFeedback(
                order_id=order_id,
                rating=rating,
                feedback=feedback,
                tip=float(tip) if tip is not None else None,
            )
            self._process(command, order_id)
            return order_to_record(self._load(order_id))
