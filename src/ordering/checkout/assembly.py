"""Order Assembly — turns a cart, a delivery spot and a customer into an order.

Preconditions are checked before any I/O, in a fixed order, and the first
failure wins:

    1. the cart has lines                      -> EmptyCart
    2. the delivery spot has a positive id     -> InvalidDeliveryLocation
    3. a customer id was resolved              -> UnresolvedCustomer

Placement writes the order, retrying with a fresh order code when the store
reports a collision. A store that supports atomic placement receives the
header and the lines together, and a failure leaves nothing behind. Otherwise
the header is written first and the lines follow in one call; a failure there
leaves the header behind, and the raised ``OrderCreationFailed`` is marked
``partial`` and names the orphaned order.

Placed orders are remembered by idempotency key so a retried checkout returns
the same order. Only the most recent keys are kept.

Resolving the customer is the caller's job. The assembler never retries it.
"""

from collections import OrderedDict
from datetime import UTC, datetime
from decimal import Decimal

import structlog
from catalogue.schemas import DeliveryLocation

from ordering.cart.cart import Cart, CartLine
from ordering.errors import (
    EmptyCart,
    InvalidDeliveryLocation,
    OrderCreationFailed,
    UnresolvedCustomer,
)
from ordering.money import to_money
from ordering.order.code import generate_order_code
from ordering.order.status import OrderStatus
from ordering.store.base import OrderCodeTaken, OrderStore
from ordering.store.records import (
    CartLineSnapshot,
    LocationSummary,
    OrderHeader,
    OrderLineDraft,
    OrderRecord,
    PlacedOrder,
    VariationSnapshotRecord,
)

logger = structlog.get_logger(__name__)

DEFAULT_DELIVERY_FEE = Decimal("5.00")
MAX_CODE_ATTEMPTS = 3
MAX_REMEMBERED_PLACEMENTS = 64


def snapshot_cart(cart: Cart) -> list[CartLineSnapshot]:
    return [
        CartLineSnapshot(
            line_id=str(line.id),
            menu_item_id=str(line.menu_item_id),
            name=line.name,
            unit_price=to_money(line.unit_price),
            quantity=line.quantity,
            line_total=line.line_total,
            customization_note=line.customization_note,
            variation_name=line.selected_variation.name if line.selected_variation else None,
        )
        for line in cart.lines
    ]


def line_draft(line: CartLine) -> OrderLineDraft:
    variation = None
    if line.selected_variation is not None:
        variation = VariationSnapshotRecord(
            variation_id=str(line.selected_variation.variation_id),
            name=line.selected_variation.name,
            price=to_money(line.selected_variation.price_delta),
        )
    return OrderLineDraft(
        product_id=str(line.menu_item_id),
        name=line.name,
        quantity=line.quantity,
        price=line.line_total,
        customization_note=line.customization_note,
        variation=variation,
    )


class OrderAssembler:
    def __init__(
        self,
        store: OrderStore,
        delivery_fee: Decimal = DEFAULT_DELIVERY_FEE,
        code_factory=generate_order_code,
        max_code_attempts: int = MAX_CODE_ATTEMPTS,
        max_remembered: int = MAX_REMEMBERED_PLACEMENTS,
    ):
        self._store = store
        self.delivery_fee = to_money(delivery_fee)
        self._code_factory = code_factory
        self._max_code_attempts = max(1, max_code_attempts)
        self._max_remembered = max(1, max_remembered)
        self._placed: OrderedDict[str, PlacedOrder] = OrderedDict()

    @staticmethod
    def check_order_input(cart: Cart | None, delivery: DeliveryLocation | None) -> int:
        """Validate cart and delivery spot; return the numeric delivery location id."""
        if cart is None or cart.is_empty:
            raise EmptyCart()
        if delivery is None or delivery.numeric_id is None:
            raise InvalidDeliveryLocation(delivery.id if delivery is not None else None)
        return delivery.numeric_id

    @classmethod
    def check_preconditions(cls, cart: Cart | None, delivery: DeliveryLocation | None, customer_id) -> int:
        location_id = cls.check_order_input(cart, delivery)
        if not customer_id:
            raise UnresolvedCustomer()
        return location_id

    def total_for(self, cart: Cart) -> Decimal:
        return cart.subtotal() + self.delivery_fee

    async def place_order(
        self,
        cart: Cart,
        delivery: DeliveryLocation,
        customer_id,
        hospitality_center_id=None,
        idempotency_key: str | None = None,
        payment_method: str | None = None,
        estimated_time: str | None = None,
    ) -> PlacedOrder:
        if idempotency_key and idempotency_key in self._placed:
            placed = self._placed[idempotency_key]
            logger.info(
                "Order already placed for idempotency key",
                idempotency_key=idempotency_key,
                order_id=placed.order_id,
            )
            return placed

        location_id = self.check_preconditions(cart, delivery, customer_id)

        # Snapshot before the first await; the caller owns the cart
        venue = cart.current_venue()
        snapshot = snapshot_cart(cart)
        drafts = [line_draft(line) for line in cart.lines]
        subtotal = cart.subtotal()
        total = subtotal + self.delivery_fee

        if hospitality_center_id is None and delivery.hospitality_center_id is not None:
            hospitality_center_id = delivery.hospitality_center_id

        header_fields = dict(
            customer_id=str(customer_id),
            ordering_location_id=location_id,
            total_price=total,
            hospitality_center_id=str(hospitality_center_id) if hospitality_center_id is not None else None,
            merchant_id=venue.id if venue else None,
            venue_name=venue.name if venue else None,
            delivery_location=LocationSummary(
                id=location_id,
                name=delivery.name,
                kind=delivery.kind.value,
                note=delivery.instructions,
            ),
            instructions=delivery.instructions,
            payment_method=payment_method,
            status=OrderStatus.RECEIVED.value,
        )
        if self._store.supports_atomic_placement:
            header = await self._create_header(header_fields, drafts)
            lines = header.lines
        else:
            header = await self._create_header(header_fields)
            lines = await self._store_lines(header, drafts)

        placed = PlacedOrder(
            record=header.model_copy(update={"lines": lines}),
            cart=snapshot,
            delivery_location=delivery,
            subtotal=subtotal,
            delivery_fee=self.delivery_fee,
            estimated_time=estimated_time,
        )
        if idempotency_key:
            self._remember(idempotency_key, placed)

        logger.info(
            "Order placed",
            order_id=placed.order_id,
            order_code=placed.order_code,
            venue_id=header.merchant_id,
            total_price=str(total),
            line_count=len(lines),
        )
        return placed

    def forget(self, idempotency_key: str) -> None:
        """Drop a finished checkout's key; a later placement with it is a new order."""
        self._placed.pop(idempotency_key, None)

    def _remember(self, idempotency_key: str, placed: PlacedOrder) -> None:
        self._placed[idempotency_key] = placed
        self._placed.move_to_end(idempotency_key)
        while len(self._placed) > self._max_remembered:
            self._placed.popitem(last=False)

    async def _create_header(self, header_fields: dict, drafts: list[OrderLineDraft] | None = None) -> OrderRecord:
        for attempt in range(1, self._max_code_attempts + 1):
            header = OrderHeader(
                order_code=self._code_factory(),
                ordered_at=datetime.now(UTC),
                **header_fields,
            )
            try:
                if drafts is not None:
                    return await self._store.create_order_with_lines(header, drafts)
                return await self._store.create_order(header)
            except OrderCodeTaken:
                logger.warning(
                    "Order code already taken, retrying with a new code",
                    order_code=header.order_code,
                    attempt=attempt,
                )
            except Exception as exc:
                logger.error("Order could not be stored", error=str(exc))
                raise OrderCreationFailed(f"Failed to place order: {exc}") from exc

        raise OrderCreationFailed("Failed to place order: could not allocate a unique order code")

    async def _store_lines(self, header: OrderRecord, drafts: list[OrderLineDraft]):
        try:
            return await self._store.create_order_lines(header.id, drafts)
        except Exception as exc:
            logger.error(
                "Order lines could not be stored",
                order_id=header.id,
                order_code=header.order_code,
                error=str(exc),
            )
            raise OrderCreationFailed(
                "Your order could not be completed. Please try again.",
                order_id=header.id,
                partial=True,
            ) from exc
