"""Order store backed by the hosted backend's PostgREST API.

Orders live in the ``order`` table and their lines in ``order_products``. The
header and the lines are two separate inserts, so a reader can briefly see an
order with no lines; readers treat that as an order still being created.
"""

import structlog
from protean.exceptions import ValidationError
from shared.postgrest import PostgrestClient, PostgrestError, eq

from ordering.errors import OrderingError, OrderNotFound, TransientFetchError
from ordering.money import to_money
from ordering.order.status import OrderStatus, parse_status
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

ORDER_TABLE = "order"
LINE_TABLE = "order_products"

ORDER_COLUMNS = (
    "*,"
    "merchant:merchant_id(id,name,image_url),"
    "ordering_location:ordering_location_id(id,name,type),"
    "hospitality_center:hospitality_center_id(id,name),"
    "order_products(*,product:product_id(name))"
)


def _text(value) -> str | None:
    return str(value) if value is not None else None


def _variation_from_json(data) -> VariationSnapshotRecord | None:
    if not data:
        return None
    return VariationSnapshotRecord(
        variation_id=str(data.get("id")),
        name=data.get("name"),
        price=to_money(data.get("price")),
    )


def _line_from_row(row: dict) -> OrderLineRecord:
    product = row.get("product") or {}
    return OrderLineRecord(
        id=str(row["id"]),
        product_id=str(row["product_id"]),
        name=product.get("name"),
        quantity=row.get("quantity"),
        price=to_money(row.get("price")),
        customization_note=row.get("customizations"),
        variation=_variation_from_json(row.get("product_variation_json")),
    )


def _order_from_row(row: dict) -> OrderRecord:
    merchant = row.get("merchant")
    location = row.get("ordering_location")
    center = row.get("hospitality_center")

    return OrderRecord(
        id=str(row["id"]),
        order_code=row["order_code"],
        customer_id=str(row["customer_id"]),
        status=row.get("status") or "",
        total_price=to_money(row.get("total_price")),
        ordering_location_id=row.get("ordering_location_id"),
        hospitality_center_id=_text(row.get("hospitality_center_id")),
        merchant_id=_text(row.get("merchant_id")),
        instructions=row.get("instructions"),
        payment_method=row.get("payment_method"),
        ordered_at=row.get("ordered_at"),
        updated_at=row.get("updated_at"),
        rating=row.get("user_rating"),
        feedback=row.get("user_feedback"),
        tip=to_money(row["tip"]) if row.get("tip") is not None else None,
        lines=[_line_from_row(line) for line in row.get("order_products") or []],
        venue=(
            VenueSummary(id=_text(merchant.get("id")), name=merchant.get("name"), image_url=merchant.get("image_url"))
            if merchant
            else None
        ),
        location=(
            LocationSummary(id=location.get("id"), name=location.get("name"), kind=location.get("type"))
            if location
            else None
        ),
        hospitality_center=(
            CenterSummary(id=_text(center.get("id")), name=center.get("name")) if center else None
        ),
    )


def _line_row(order_id: str, line: OrderLineDraft) -> dict:
    variation = None
    if line.variation is not None:
        variation = {
            "id": line.variation.variation_id,
            "name": line.variation.name,
            "price": float(line.variation.price),
        }
    return {
        "order_id": order_id,
        "product_id": line.product_id,
        "quantity": line.quantity,
        "price": float(line.price),
        "customizations": line.customization_note,
        "product_variation_json": variation,
    }


def _read_error(exc: PostgrestError, order_id=None) -> OrderingError:
    """Translate a failed read into the tracker's error vocabulary.

    A malformed id and a row the caller may not see both mean the order does
    not exist for this guest. Anything else surfaces as a fetch failure, which
    the tracker retries and then reports without ending the view.
    """
    if exc.is_no_rows or exc.is_invalid_input or exc.is_denied:
        return OrderNotFound(order_id)
    if exc.is_transient:
        return TransientFetchError(f"Could not reach the order store: {exc.message}")
    return TransientFetchError(f"The order store rejected the request: {exc.message}")


class PostgrestOrderStore(OrderStore):
    def __init__(self, client: PostgrestClient):
        self._client = client

    async def create_order(self, header: OrderHeader) -> OrderRecord:
        row = {
            "order_code": header.order_code,
            "customer_id": header.customer_id,
            "ordering_location_id": header.ordering_location_id,
            "hospitality_center_id": header.hospitality_center_id,
            "merchant_id": header.merchant_id,
            "total_price": float(header.total_price),
            "instructions": header.instructions,
            "payment_method": header.payment_method,
            "status": header.status,
            "ordered_at": header.ordered_at.isoformat(),
        }
        try:
            rows = await self._client.insert(ORDER_TABLE, row)
        except PostgrestError as exc:
            if exc.is_unique_violation:
                raise OrderCodeTaken(header.order_code) from exc
            raise

        if not rows:
            raise PostgrestError(None, "Order insert returned no rows")
        record = _order_from_row(rows[0])
        logger.info("Order header stored", order_id=record.id, order_code=record.order_code)
        return record

    async def create_order_lines(self, order_id: str, lines: list[OrderLineDraft]) -> list[OrderLineRecord]:
        rows = await self._client.insert(LINE_TABLE, [_line_row(order_id, line) for line in lines])
        return [_line_from_row(row) for row in rows]

    async def get_order(self, order_id: str) -> OrderRecord:
        try:
            rows = await self._client.select(
                ORDER_TABLE,
                columns=ORDER_COLUMNS,
                filters={"id": eq(order_id)},
                limit=1,
            )
        except PostgrestError as exc:
            raise _read_error(exc, order_id) from exc

        if not rows:
            raise OrderNotFound(order_id)
        return _order_from_row(rows[0])

    async def list_orders_by_customer(self, customer_id: str) -> list[OrderRecord]:
        try:
            rows = await self._client.select(
                ORDER_TABLE,
                columns=ORDER_COLUMNS,
                filters={"customer_id": eq(customer_id)},
                order="ordered_at.desc",
            )
        except PostgrestError as exc:
            error = _read_error(exc)
            if isinstance(error, OrderNotFound):
                # No orders are visible for this customer
                logger.warning("Customer orders not readable", customer_id=customer_id, error=exc.message)
                return []
            raise error from exc
        return [_order_from_row(row) for row in rows]

    async def update_order_status(self, order_id: str, status: str) -> OrderRecord:
        target = parse_status(status)
        if target is None:
            raise ValidationError({"status": [f"Unknown order status '{status}'"]})

        try:
            rows = await self._client.update(
                ORDER_TABLE,
                {"status": target.value},
                filters={"id": eq(order_id)},
            )
        except PostgrestError as exc:
            raise _read_error(exc, order_id) from exc

        if not rows:
            raise OrderNotFound(order_id)
        logger.info("Order status updated", order_id=order_id, status=target.value)
        return await self.get_order(order_id)

    async def record_feedback(self, order_id: str, rating: int, feedback: str | None = None, tip=None) -> OrderRecord:
        if rating is None or not 1 <= rating <= 5:
            raise ValidationError({"rating": ["Rating must be between 1 and 5"]})
        if tip is not None and tip < 0:
            raise ValidationError({"tip": ["Tip cannot be negative"]})

        values = {
            "user_rating": rating,
            "user_feedback": feedback.strip() if feedback and feedback.strip() else None,
            "tip": float(to_money(tip)) if tip is not None else None,
        }
        # Only a delivered order without a rating accepts feedback
        filters = {
            "id": eq(order_id),
            "status": eq(OrderStatus.DELIVERED.value),
            "user_rating": "is.null",
        }
        try:
            rows = await self._client.update(ORDER_TABLE, values, filters=filters)
        except PostgrestError as exc:
            raise _read_error(exc, order_id) from exc

        if rows:
            return await self.get_order(order_id)

        record = await self.get_order(order_id)
        if record.has_feedback:
            raise ValidationError({"feedback": ["Feedback has already been recorded for this order"]})
        raise ValidationError({"status": ["Feedback can only be left once the order is delivered"]})
