"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.cart.cart import Cart
from pytest_bdd import given, parsers, then


@pytest.fixture
def error():
    """Container for capturing exceptions raised in When steps."""
    return {"exc": None}


@given("an empty cart", target_fixture="cart")
def empty_cart():
    return Cart.create(session_id="sess-bdd")


@given(parsers.cfparse('the cart holds {qty:d} "{name}" at {price:f} from venue "{venue}"'))
def cart_holds(cart, qty, name, price, venue):
    cart.add_item(name.lower(), name, price, venue_id=venue, quantity=qty)


@then(parsers.cfparse("the cart has {count:d} line"))
@then(parsers.cfparse("the cart has {count:d} lines"))
def cart_has_lines(cart, count):
    assert len(cart.lines) == count
