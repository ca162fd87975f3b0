"""Post-delivery feedback — command and handler."""

from protean import handle
from protean.fields import Float, Identifier, Integer, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class RecordOrderFeedback:
    order_id = Identifier(required=True)
    rating = Integer(required=True, min_value=1, max_value=5)
    feedback = Text()
    tip = Float(min_value=0.0)


@ordering.command_handler(part_of=Order)
class OrderFeedbackHandler:
    @handle(RecordOrderFeedback)
    def record_feedback(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_feedback(
            rating=command.rating,
            feedback=command.feedback,
            tip=command.tip,
        )
        repo.add(order)
