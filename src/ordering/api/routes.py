"""FastAPI routes for the Ordering domain — order lookup, status and feedback.

This is the staff-facing side: kitchen and delivery staff move orders through
their statuses here, and guests' clients read orders and leave feedback.
"""

from fastapi import APIRouter, HTTPException
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    CustomerOrdersResponse,
    OrderResponse,
    RecordFeedbackRequest,
    UpdateStatusRequest,
)
from ordering.order.feedback import RecordOrderFeedback
from ordering.order.order import Order
from ordering.order.progress import UpdateOrderStatus
from ordering.store.domain_store import order_to_record
from ordering.tracking.history import partition_orders


def _load_order(order_id: str) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")


def _process(command) -> None:
    try:
        current_domain.process(command, asynchronous=False)
    except ObjectNotFoundError:
        raise HTTPException(status_code=404, detail=f"Order {command.order_id} not found")
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.messages)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return OrderResponse.from_record(order_to_record(_load_order(order_id)))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(order_id: str, body: UpdateStatusRequest) -> OrderResponse:
    _process(UpdateOrderStatus(order_id=order_id, status=body.status))
    return OrderResponse.from_record(order_to_record(_load_order(order_id)))


@order_router.post("/{order_id}/feedback", response_model=OrderResponse)
async def record_feedback(order_id: str, body: RecordFeedbackRequest) -> OrderResponse:
    command = RecordOrderFeedback(
        order_id=order_id,
        rating=body.rating,
        feedback=body.feedback,
        tip=float(body.tip) if body.tip is not None else None,
    )
    _process(command)
    return OrderResponse.from_record(order_to_record(_load_order(order_id)))


# ---------------------------------------------------------------------------
# Customer Orders Router
# ---------------------------------------------------------------------------
customer_orders_router = APIRouter(prefix="/customers", tags=["orders"])


@customer_orders_router.get("/{customer_id}/orders", response_model=CustomerOrdersResponse)
async def list_customer_orders(customer_id: str) -> CustomerOrdersResponse:
    repo = current_domain.repository_for(Order)
    orders = repo._dao.query.filter(customer_id=customer_id).all().items
    records = sorted(
        (order_to_record(order) for order in orders),
        key=lambda record: record.ordered_at,
        reverse=True,
    )
    partition = partition_orders(records)
    return CustomerOrdersResponse(
        current=[OrderResponse.from_record(record) for record in partition.current],
        history=[OrderResponse.from_record(record) for record in partition.history],
    )
