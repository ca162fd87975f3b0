"""Order placement — commands and handler.

``PlaceOrder`` may carry the lines with it, in which case the header and the
lines are stored together or not at all. ``RecordOrderLines`` serves stores
that write the lines as a second step and must report a header left without
lines as a partially created order.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import DeliverySpot, Order


@ordering.command(part_of="Order")
class PlaceOrder:
    order_code = String(required=True, max_length=50)
    customer_id = Identifier(required=True)
    ordering_location_id = Integer(required=True, min_value=1)
    total_price = Float(required=True, min_value=0.0)
    hospitality_center_id = Identifier()
    merchant_id = Identifier()
    venue_name = String(max_length=255)
    delivery_location = Text()  # JSON: location_id, name, kind, note
    instructions = Text()
    payment_method = String(max_length=50)
    lines = Text()  # JSON: optional list of line dicts


@ordering.command(part_of="Order")
class RecordOrderLines:
    order_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of line dicts


@ordering.command_handler(part_of=Order)
class OrderPlacementHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        repo = current_domain.repository_for(Order)

        # The code is the guest-facing key; a duplicate must fail loudly
        existing = repo._dao.query.filter(order_code=command.order_code).all().items
        if existing:
            raise ValidationError({"order_code": ["Order code is already taken"]})

        delivery_location = None
        if command.delivery_location:
            spot = (
                json.loads(command.delivery_location)
                if isinstance(command.delivery_location, str)
                else command.delivery_location
            )
            delivery_location = DeliverySpot(**spot)

        order = Order.place(
            order_code=command.order_code,
            customer_id=command.customer_id,
            ordering_location_id=command.ordering_location_id,
            total_price=command.total_price,
            hospitality_center_id=command.hospitality_center_id,
            merchant_id=command.merchant_id,
            venue_name=command.venue_name,
            delivery_location=delivery_location,
            instructions=command.instructions,
            payment_method=command.payment_method,
        )
        if command.lines:
            lines_data = json.loads(command.lines) if isinstance(command.lines, str) else command.lines
            order.record_lines(lines_data)
        repo.add(order)
        return str(order.id)

    @handle(RecordOrderLines)
    def record_order_lines(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        lines_data = json.loads(command.lines) if isinstance(command.lines, str) else command.lines
        order.record_lines(lines_data)
        repo.add(order)
        return [str(line.id) for line in order.lines]
