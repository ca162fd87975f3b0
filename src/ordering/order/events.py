"""Domain events for the Order aggregate.

Events are versioned, immutable facts. Orders are stored as plain aggregates,
so the events describe what happened for downstream consumers and are not
used to rebuild state.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A guest checked out and the order header was persisted."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_code = String(required=True)
    customer_id = Identifier(required=True)
    ordering_location_id = Integer(required=True)
    merchant_id = Identifier()
    total_price = Float(required=True)
    status = String(required=True)
    ordered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderLinesRecorded:
    """The order's lines were written after the header."""

    __version__ = 1

    order_id = Identifier(required=True)
    line_count = Integer(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """Kitchen or delivery staff moved the order to another status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderFeedbackRecorded:
    """The guest rated a delivered order."""

    __version__ = 1

    order_id = Identifier(required=True)
    rating = Integer(required=True)
    tip = Float()
    recorded_at = DateTime(required=True)
