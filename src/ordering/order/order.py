"""Order aggregate — a guest's persisted order and its lines.

Orders are created exactly once per checkout and afterwards change only in two
ways: staff move them through the delivery statuses, and the guest may leave
feedback (rating, comment, tip) once, after delivery. Orders are never deleted.

Status flow (display order, not enforced on writes):
    received → preparing → on-delivery → delivered
"""

from datetime import UTC, datetime
from decimal import Decimal

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.money import to_money
from ordering.order.events import (
    OrderFeedbackRecorded,
    OrderLinesRecorded,
    OrderPlaced,
    OrderStatusChanged,
)
from ordering.order.status import (
    OrderStatus,
    StatusDisplay,
    describe,
    is_terminal,
    parse_status,
)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class DeliverySpot:
    """The drop-off point chosen at checkout, frozen onto the order."""

    location_id = Integer(required=True, min_value=1)
    name = String(max_length=255)
    kind = String(max_length=20)
    note = String(max_length=500)


@ordering.value_object(part_of="Order")
class VariationSnapshot:
    """The variation selected for a line, copied verbatim from the cart.

    Later catalog changes to the variation never reach historical orders.
    """

    variation_id = Identifier(required=True)
    name = String(max_length=255)
    price = Float(default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    """One ordered product. ``price`` is the line total, not the unit price."""

    product_id = Identifier(required=True)
    name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)
    customization_note = String(max_length=500)
    variation = ValueObject(VariationSnapshot)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_code = String(required=True, max_length=50, unique=True)
    customer_id = Identifier(required=True)
    ordering_location_id = Integer(required=True, min_value=1)
    hospitality_center_id = Identifier()
    merchant_id = Identifier()
    venue_name = String(max_length=255)
    delivery_location = ValueObject(DeliverySpot)
    total_price = Float(required=True, min_value=0.0)
    instructions = Text()
    payment_method = String(max_length=50)
    status = String(choices=OrderStatus, default=OrderStatus.RECEIVED.value)
    ordered_at = DateTime()
    updated_at = DateTime()
    rating = Integer(min_value=1, max_value=5)
    feedback = Text()
    tip = Float(min_value=0.0)
    feedback_at = DateTime()
    lines = HasMany(OrderLine)

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_code,
        customer_id,
        ordering_location_id,
        total_price,
        hospitality_center_id=None,
        merchant_id=None,
        venue_name=None,
        delivery_location=None,
        instructions=None,
        payment_method=None,
    ):
        """Create the order header in the ``received`` status."""
        now = datetime.now(UTC)
        order = cls(
            order_code=order_code,
            customer_id=str(customer_id),
            ordering_location_id=ordering_location_id,
            hospitality_center_id=hospitality_center_id,
            merchant_id=merchant_id,
            venue_name=venue_name,
            delivery_location=delivery_location,
            total_price=total_price,
            instructions=instructions,
            payment_method=payment_method,
            status=OrderStatus.RECEIVED.value,
            ordered_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_code=order_code,
                customer_id=str(customer_id),
                ordering_location_id=ordering_location_id,
                merchant_id=merchant_id,
                total_price=total_price,
                status=order.status,
                ordered_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    @property
    def status_display(self) -> StatusDisplay:
        return describe(self.status)

    @property
    def total_amount(self) -> Decimal:
        return to_money(self.total_price)

    # -------------------------------------------------------------------
    # Lines
    # -------------------------------------------------------------------
    def record_lines(self, lines_data):
        """Attach the order's lines. Lines are written once, in bulk.

        Args:
            lines_data: List of dicts with product_id, name, quantity, price
                (line total), customization_note and an optional variation
                dict with variation_id, name, price.
        """
        if self.lines:
            raise ValidationError({"lines": ["Order lines have already been recorded"]})
        if not lines_data:
            raise ValidationError({"lines": ["An order needs at least one line"]})

        for data in lines_data:
            variation = data.get("variation")
            self.add_lines(
                OrderLine(
                    product_id=str(data["product_id"]),
                    name=data.get("name"),
                    quantity=data["quantity"],
                    price=data["price"],
                    customization_note=data.get("customization_note"),
                    variation=VariationSnapshot(**variation) if variation else None,
                )
            )

        self.raise_(
            OrderLinesRecorded(order_id=str(self.id), line_count=len(self.lines))
        )

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def change_status(self, new_status):
        """Move the order to any known status.

        Staff may set statuses out of sequence; readers are responsible for
        never displaying a regression. Setting the current status is a no-op.
        """
        target = parse_status(new_status)
        if target is None:
            raise ValidationError({"status": [f"Unknown order status '{new_status}'"]})
        if target.value == self.status:
            return

        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Feedback
    # -------------------------------------------------------------------
    def record_feedback(self, rating, feedback=None, tip=None):
        """Record the guest's rating, comment and tip. Write-once."""
        if self.status != OrderStatus.DELIVERED.value:
            raise ValidationError({"status": ["Feedback can only be left once the order is delivered"]})
        if self.feedback_at is not None:
            raise ValidationError({"feedback": ["Feedback has already been recorded for this order"]})
        if rating is None or not 1 <= rating <= 5:
            raise ValidationError({"rating": ["Rating must be between 1 and 5"]})
        if tip is not None and tip < 0:
            raise ValidationError({"tip": ["Tip cannot be negative"]})

        now = datetime.now(UTC)
        self.rating = rating
        self.feedback = feedback.strip() if feedback and feedback.strip() else None
        self.tip = float(to_money(tip)) if tip is not None else None
        self.feedback_at = now
        self.updated_at = now

        self.raise_(
            OrderFeedbackRecorded(
                order_id=str(self.id),
                rating=rating,
                tip=self.tip,
                recorded_at=now,
            )
        )
