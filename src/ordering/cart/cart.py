"""Cart aggregate — the guest's in-memory, single-venue basket.

The cart lives for the duration of a guest session and is never persisted.
Unit prices are resolved when a line is added (base price plus the selected
variation's delta) and frozen into the line, so catalog price changes made
mid-session never move an open cart.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import NamedTuple

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityUpdated,
)
from ordering.domain import ordering
from ordering.errors import VenueConflict
from ordering.money import ZERO, to_money


class VenueRef(NamedTuple):
    id: str
    name: str | None


def normalize_note(note: str | None) -> str | None:
    """Blank customization notes are the same as no note at all."""
    if note is None:
        return None
    note = note.strip()
    return note or None


@ordering.value_object(part_of="Cart")
class SelectedVariation:
    variation_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price_delta = Float(default=0.0)


@ordering.entity(part_of="Cart")
class CartLine:
    menu_item_id = Identifier(required=True)
    name = String(max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    customization_note = String(max_length=500)
    selected_variation = ValueObject(SelectedVariation)
    venue_id = Identifier(required=True)
    venue_name = String(max_length=255)
    added_at = DateTime()

    @property
    def variation_id(self) -> str | None:
        if self.selected_variation is None:
            return None
        return str(self.selected_variation.variation_id)

    @property
    def line_total(self) -> Decimal:
        return to_money(to_money(self.unit_price) * self.quantity)

    def matches(self, menu_item_id, customization_note, variation_id) -> bool:
        """Two lines merge only when item, note and variation all agree."""
        return (
            str(self.menu_item_id) == str(menu_item_id)
            and normalize_note(self.customization_note)
            == normalize_note(customization_note)
            and self.variation_id
            == (str(variation_id) if variation_id is not None else None)
        )


@ordering.aggregate
class Cart:
    session_id = String(max_length=255)
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def lines_must_come_from_one_venue(self):
        venues = {str(line.venue_id) for line in self.lines}
        if len(venues) > 1:
            raise ValidationError(
                {"lines": ["All cart lines must come from the same venue"]}
            )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, session_id=None):
        now = datetime.now(UTC)
        return cls(session_id=session_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def current_venue(self) -> VenueRef | None:
        """The venue the cart is bound to, taken from its first line."""
        if not self.lines:
            return None
        first = self.lines[0]
        return VenueRef(id=str(first.venue_id), name=first.venue_name)

    def line(self, line_id) -> CartLine | None:
        return next(
            (line for line in self.lines if str(line.id) == str(line_id)), None
        )

    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.lines), ZERO)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_item(
        self,
        menu_item_id,
        name,
        base_price,
        venue_id,
        venue_name=None,
        quantity=1,
        customization_note=None,
        variation=None,
    ):
        """Add a menu item, merging into an equivalent line when one exists.

        Raises ``VenueConflict`` without touching the cart when it already
        holds lines from a different venue.
        """
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        venue = self.current_venue()
        if venue is not None and venue.id != str(venue_id):
            raise VenueConflict(venue.id, venue.name, str(venue_id))

        note = normalize_note(customization_note)
        variation_id = variation.variation_id if variation is not None else None
        now = datetime.now(UTC)

        line = next(
            (
                existing
                for existing in self.lines
                if existing.matches(menu_item_id, note, variation_id)
            ),
            None,
        )
        if line is not None:
            line.quantity += quantity
        else:
            delta = variation.price_delta if variation is not None else None
            line = CartLine(
                menu_item_id=str(menu_item_id),
                name=name,
                unit_price=float(to_money(base_price) + to_money(delta)),
                quantity=quantity,
                customization_note=note,
                selected_variation=variation,
                venue_id=str(venue_id),
                venue_name=venue_name,
                added_at=now,
            )
            self.add_lines(line)

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                line_id=str(line.id),
                menu_item_id=str(menu_item_id),
                venue_id=str(venue_id),
                quantity=quantity,
                unit_price=line.unit_price,
            )
        )
        return self

    def update_quantity(self, line_id, new_quantity):
        """Set a line's quantity; zero or less removes the line."""
        line = self.line(line_id)
        if line is None:
            return self

        if new_quantity <= 0:
            return self.remove_item(line_id)

        previous = line.quantity
        line.quantity = new_quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line.id),
                previous_quantity=previous,
                new_quantity=new_quantity,
            )
        )
        return self

    def remove_item(self, line_id):
        line = self.line(line_id)
        if line is None:
            return self

        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartItemRemoved(cart_id=str(self.id), line_id=str(line.id)))
        return self

    def clear(self):
        """Empty the cart, releasing its venue binding."""
        if not self.lines:
            return self

        removed = len(self.lines)
        for line in list(self.lines):
            self.remove_lines(line)
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCleared(cart_id=str(self.id), lines_removed=removed))
        return self
