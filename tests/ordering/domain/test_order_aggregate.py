"""Tests for the Order aggregate: placement, lines, status changes and feedback."""

from decimal import Decimal

import pytest
from ordering.order.events import (
    OrderFeedbackRecorded,
    OrderLinesRecorded,
    OrderPlaced,
    OrderStatusChanged,
)
from ordering.order.order import DeliverySpot, Order
from ordering.order.status import OrderStatus
from protean.exceptions import ValidationError


def _place(**overrides):
    defaults = {
        "order_code": "LX2K9A1B-7QF3ZP0M",
        "customer_id": "cust-001",
        "ordering_location_id": 12,
        "total_price": 21.0,
        "merchant_id": "V1",
        "venue_name": "Pool Bar",
        "delivery_location": DeliverySpot(location_id=12, name="Cabana 4", kind="cabana"),
    }
    defaults.update(overrides)
    return Order.place(**defaults)


def _lines():
    return [
        {"product_id": "mojito", "name": "Mojito", "quantity": 2, "price": 16.0},
        {
            "product_id": "burger",
            "name": "Burger",
            "quantity": 1,
            "price": 15.0,
            "customization_note": "no onions",
            "variation": {"variation_id": "double", "name": "Double", "price": 3.0},
        },
    ]


def _delivered():
    order = _place()
    order.change_status("delivered")
    return order


class TestPlacement:
    def test_place_starts_received(self):
        order = _place()
        assert order.status == OrderStatus.RECEIVED.value
        assert order.ordered_at is not None
        assert len(order.lines) == 0

    def test_place_raises_order_placed(self):
        order = _place()

        placed = [e for e in order._events if isinstance(e, OrderPlaced)]
        assert len(placed) == 1
        assert placed[0].order_code == "LX2K9A1B-7QF3ZP0M"
        assert placed[0].customer_id == "cust-001"
        assert placed[0].status == "received"

    def test_total_amount_is_money(self):
        order = _place(total_price=21.1)
        assert order.total_amount == Decimal("21.10")

    def test_location_must_be_positive(self):
        with pytest.raises(ValidationError):
            _place(ordering_location_id=0)

    def test_delivery_spot_is_kept(self):
        order = _place()
        assert order.delivery_location.name == "Cabana 4"
        assert order.delivery_location.kind == "cabana"


class TestRecordLines:
    def test_lines_are_recorded(self):
        order = _place()
        order.record_lines(_lines())

        assert len(order.lines) == 2
        burger = next(line for line in order.lines if line.product_id == "burger")
        assert burger.customization_note == "no onions"
        assert burger.variation.name == "Double"
        assert burger.variation.price == 3.0

    def test_recording_raises_event(self):
        order = _place()
        order.record_lines(_lines())

        recorded = [e for e in order._events if isinstance(e, OrderLinesRecorded)]
        assert recorded[0].line_count == 2

    def test_lines_are_written_once(self):
        order = _place()
        order.record_lines(_lines())

        with pytest.raises(ValidationError) as exc:
            order.record_lines(_lines())
        assert "lines" in exc.value.messages

    def test_an_order_needs_lines(self):
        with pytest.raises(ValidationError):
            _place().record_lines([])


class TestStatusChanges:
    @pytest.mark.parametrize("status", ["preparing", "on-delivery", "delivered"])
    def test_change_to_known_status(self, status):
        order = _place()
        order.change_status(status)
        assert order.status == status

    def test_aliases_are_normalized(self):
        order = _place()
        order.change_status("out_for_delivery")
        assert order.status == "on-delivery"

    def test_staff_may_skip_and_go_back(self):
        order = _place()
        order.change_status("delivered")
        order.change_status("preparing")
        assert order.status == "preparing"

    def test_change_raises_event(self):
        order = _place()
        order._events.clear()

        order.change_status("preparing")

        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderStatusChanged)
        assert event.previous_status == "received"
        assert event.new_status == "preparing"

    def test_same_status_is_a_no_op(self):
        order = _place()
        order._events.clear()
        order.change_status("received")
        assert len(order._events) == 0

    def test_unknown_status_is_rejected(self):
        order = _place()
        with pytest.raises(ValidationError) as exc:
            order.change_status("lost-at-sea")
        assert "status" in exc.value.messages
        assert order.status == "received"

    def test_terminal_and_display(self):
        order = _place()
        assert not order.is_terminal
        assert order.status_display.label == "Order Received"

        order.change_status("delivered")
        assert order.is_terminal
        assert order.status_display.step == 3


class TestFeedback:
    def test_feedback_after_delivery(self):
        order = _delivered()
        order.record_feedback(5, feedback="  Lovely  ", tip=4.5)

        assert order.rating == 5
        assert order.feedback == "Lovely"
        assert order.tip == 4.5
        assert order.feedback_at is not None
        assert any(isinstance(e, OrderFeedbackRecorded) for e in order._events)

    def test_feedback_requires_delivery(self):
        with pytest.raises(ValidationError) as exc:
            _place().record_feedback(4)
        assert "status" in exc.value.messages

    def test_feedback_is_write_once(self):
        order = _delivered()
        order.record_feedback(4)

        with pytest.raises(ValidationError) as exc:
            order.record_feedback(5)
        assert "feedback" in exc.value.messages
        assert order.rating == 4

    @pytest.mark.parametrize("rating", [0, 6, None])
    def test_rating_range(self, rating):
        with pytest.raises(ValidationError):
            _delivered().record_feedback(rating)

    def test_tip_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            _delivered().record_feedback(5, tip=-1)
