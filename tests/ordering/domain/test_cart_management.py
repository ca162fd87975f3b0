"""Tests for cart quantity updates, removal, clearing and subtotals."""

from decimal import Decimal
from itertools import permutations

import pytest
from ordering.cart.cart import Cart, SelectedVariation
from ordering.cart.events import CartCleared, CartItemRemoved, CartQuantityUpdated


def _make_cart():
    cart = Cart.create(session_id="sess-001")
    cart.add_item("mojito", "Mojito", 8, venue_id="V1", quantity=2)
    cart.add_item("nachos", "Nachos", 11.5, venue_id="V1", quantity=1)
    return cart


class TestUpdateQuantity:
    def test_update_sets_new_quantity(self):
        cart = _make_cart()
        line = cart.lines[0]

        cart.update_quantity(line.id, 5)

        assert cart.line(line.id).quantity == 5
        assert cart.item_count == 6

    def test_update_raises_event(self):
        cart = _make_cart()
        line = cart.lines[0]
        cart._events.clear()

        cart.update_quantity(line.id, 4)

        assert len(cart._events) == 1
        event = cart._events[0]
        assert isinstance(event, CartQuantityUpdated)
        assert event.previous_quantity == 2
        assert event.new_quantity == 4

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_zero_or_less_removes_the_line(self, quantity):
        cart = _make_cart()
        line = cart.lines[0]

        cart.update_quantity(line.id, quantity)

        assert len(cart.lines) == 1
        assert cart.line(line.id) is None

    def test_unknown_line_is_ignored(self):
        cart = _make_cart()
        cart.update_quantity("missing", 3)
        assert cart.item_count == 3


class TestRemoveItem:
    def test_remove_drops_the_line(self):
        cart = _make_cart()
        line = cart.lines[1]

        cart.remove_item(line.id)

        assert [line.name for line in cart.lines] == ["Mojito"]
        assert any(isinstance(e, CartItemRemoved) for e in cart._events)

    def test_remove_unknown_line_is_ignored(self):
        cart = _make_cart()
        cart.remove_item("missing")
        assert len(cart.lines) == 2

    def test_removing_last_line_releases_venue(self):
        cart = Cart.create()
        cart.add_item("mojito", "Mojito", 8, venue_id="V1")
        cart.remove_item(cart.lines[0].id)

        assert cart.is_empty
        assert cart.current_venue() is None


class TestClear:
    def test_clear_empties_the_cart(self):
        cart = _make_cart()
        cart.clear()

        assert cart.is_empty
        assert cart.subtotal() == Decimal("0.00")
        cleared = [e for e in cart._events if isinstance(e, CartCleared)]
        assert cleared[0].lines_removed == 2

    def test_clear_on_empty_cart_raises_nothing(self):
        cart = Cart.create()
        cart.clear()
        assert len(cart._events) == 0


class TestSubtotal:
    def test_subtotal_sums_line_totals(self):
        cart = _make_cart()
        assert cart.subtotal() == Decimal("27.50")

    def test_subtotal_includes_variation_deltas(self):
        cart = Cart.create()
        cart.add_item(
            "burger", "Burger", 12, venue_id="V2", quantity=2,
            variation=SelectedVariation(variation_id="cheese", name="Cheese", price_delta=1.25),
        )
        assert cart.subtotal() == Decimal("26.50")

    def test_subtotal_avoids_float_drift(self):
        cart = Cart.create()
        cart.add_item("soda", "Soda", 0.1, venue_id="V1", quantity=3)
        cart.add_item("water", "Water", 0.2, venue_id="V1", quantity=1)
        assert cart.subtotal() == Decimal("0.50")

    def test_subtotal_is_independent_of_insertion_order(self):
        items = [("a", 1.10, 3), ("b", 2.35, 1), ("c", 7.99, 2)]
        totals = set()
        for sequence in permutations(items):
            cart = Cart.create()
            for item_id, price, quantity in sequence:
                cart.add_item(item_id, item_id, price, venue_id="V1", quantity=quantity)
            totals.add(cart.subtotal())

        assert totals == {Decimal("21.63")}
