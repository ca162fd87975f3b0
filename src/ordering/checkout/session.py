"""Checkout session — the guest-side application state.

A ``CheckoutSession`` is created by the composition root and passed to
whatever drives the guest flow. It owns the cart, the selected hospitality
center and delivery spot, the order just placed and the local order history.

Checkout order of operations:
    1. cart and delivery checks (no network for an empty cart)
    2. customer resolution, with exactly one resync
    3. order placement

A failed checkout leaves the cart and the delivery choice untouched so the
guest can retry. A successful one clears the cart.
"""

import asyncio
import uuid

import structlog
from catalogue.schemas import DeliveryLocation, HospitalityCenter, MenuItem, ProductVariation, Venue
from identity.resolution import CustomerResolver, IdentitySession
from protean.exceptions import ValidationError

from ordering.cart.cart import Cart, SelectedVariation
from ordering.checkout.assembly import OrderAssembler
from ordering.errors import UnresolvedCustomer
from ordering.store.records import PlacedOrder

logger = structlog.get_logger(__name__)

DEFAULT_ESTIMATED_TIME = "15-20 min"


class CheckoutSession:
    def __init__(self, assembler: OrderAssembler, resolver: CustomerResolver, session_id: str | None = None):
        self._assembler = assembler
        self._resolver = resolver
        self.session_id = session_id or str(uuid.uuid4())
        self.cart = Cart.create(session_id=self.session_id)
        self.hospitality_center: HospitalityCenter | None = None
        self.delivery_location: DeliveryLocation | None = None
        self.current_order: PlacedOrder | None = None
        self.order_history: list[PlacedOrder] = []
        self._venue: Venue | None = None
        self._checkout_key: str | None = None
        self._in_flight: asyncio.Future | None = None

    # -------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------
    def select_center(self, center: HospitalityCenter) -> None:
        """Switch hospitality center; a delivery spot from another center is dropped."""
        if self.hospitality_center is None or self.hospitality_center.id != center.id:
            self.delivery_location = None
        self.hospitality_center = center

    def choose_delivery(self, location: DeliveryLocation) -> None:
        self.delivery_location = location

    # -------------------------------------------------------------------
    # Cart
    # -------------------------------------------------------------------
    @property
    def cart_badge(self) -> int:
        return self.cart.item_count

    @property
    def is_checking_out(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def add_to_cart(
        self,
        menu_item: MenuItem,
        venue: Venue,
        quantity: int = 1,
        customization_note: str | None = None,
        variation: ProductVariation | None = None,
        replace_existing: bool = False,
    ) -> Cart:
        """Add a catalog item to the cart.

        ``replace_existing`` is the guest's confirmation to discard a cart from
        another venue; without it a ``VenueConflict`` propagates to the caller.
        """
        if variation is not None and variation.product_id != menu_item.id:
            raise ValidationError({"variation": ["Variation does not belong to this menu item"]})

        selected = None
        if variation is not None:
            selected = SelectedVariation(
                variation_id=str(variation.id),
                name=variation.name,
                price_delta=variation.price_delta,
            )

        line = dict(
            menu_item_id=str(menu_item.id),
            name=menu_item.name,
            base_price=menu_item.price,
            venue_id=str(venue.id),
            venue_name=venue.name,
            quantity=quantity,
            customization_note=customization_note,
            variation=selected,
        )

        current = self.cart.current_venue()
        if replace_existing and current is not None and current.id != str(venue.id):
            # The old cart is only discarded for a line the new one accepts
            Cart.create(session_id=self.session_id).add_item(**line)
            logger.info("Discarding cart from another venue", previous_venue_id=current.id, venue_id=venue.id)
            self.cart.clear()

        self.cart.add_item(**line)
        self._venue = venue
        self._checkout_key = None
        return self.cart

    def update_quantity(self, line_id, new_quantity: int) -> Cart:
        self._checkout_key = None
        return self.cart.update_quantity(line_id, new_quantity)

    def remove_from_cart(self, line_id) -> Cart:
        self._checkout_key = None
        return self.cart.remove_item(line_id)

    def clear_cart(self) -> Cart:
        self._checkout_key = None
        self._venue = None
        return self.cart.clear()

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    async def checkout(self, identity_session: IdentitySession | None, payment_method: str | None = None) -> PlacedOrder:
        """Place an order for the current cart.

        A second call while one is in flight joins it rather than placing a
        second order. The in-flight write is shielded from the caller's
        cancellation.
        """
        if self.is_checking_out:
            logger.info("Checkout already in progress", session_id=self.session_id)
            return await asyncio.shield(self._in_flight)

        self._in_flight = asyncio.ensure_future(self._checkout(identity_session, payment_method))
        return await asyncio.shield(self._in_flight)

    async def _checkout(self, identity_session, payment_method) -> PlacedOrder:
        self._assembler.check_order_input(self.cart, self.delivery_location)

        resolution = await self._resolver.resolve_for_checkout(identity_session)
        if not resolution.is_resolved:
            logger.warning("Checkout blocked: customer unresolved", reason=resolution.reason)
            raise UnresolvedCustomer(resolution.reason)

        if self._checkout_key is None:
            self._checkout_key = str(uuid.uuid4())

        placed = await self._assembler.place_order(
            self.cart,
            self.delivery_location,
            resolution.customer_id,
            hospitality_center_id=self.hospitality_center.id if self.hospitality_center else None,
            idempotency_key=self._checkout_key,
            payment_method=payment_method,
            estimated_time=self._estimated_time(),
        )

        self._assembler.forget(self._checkout_key)
        self.cart.clear()
        self._venue = None
        self._checkout_key = None
        self.current_order = placed
        self.order_history.insert(0, placed)
        return placed

    def _estimated_time(self) -> str:
        if self._venue is not None and self._venue.prep_time and self._venue.prep_time > 0:
            return self._venue.prep_time_range()
        return DEFAULT_ESTIMATED_TIME
