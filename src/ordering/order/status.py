"""Order status vocabulary shared by the Order aggregate and the tracker.

Statuses progress linearly ``received -> preparing -> on-delivery -> delivered``.
Nothing enforces that progression on the write side, since kitchen and delivery
staff may set any status, but readers display the sequence as steps and never
show an order going backwards.
"""

from dataclasses import dataclass
from enum import Enum


class OrderStatus(Enum):
    RECEIVED = "received"
    PREPARING = "preparing"
    ON_DELIVERY = "on-delivery"
    DELIVERED = "delivered"


STATUS_SEQUENCE = (
    OrderStatus.RECEIVED,
    OrderStatus.PREPARING,
    OrderStatus.ON_DELIVERY,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED})

# Older rows and clients spell the delivery step differently
_ALIASES = {
    "delivering": OrderStatus.ON_DELIVERY,
    "out_for_delivery": OrderStatus.ON_DELIVERY,
    "on_delivery": OrderStatus.ON_DELIVERY,
}

_LABELS = {
    OrderStatus.RECEIVED: "Order Received",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.ON_DELIVERY: "Out for Delivery",
    OrderStatus.DELIVERED: "Delivered",
}


@dataclass(frozen=True)
class StatusDisplay:
    """What a reader shows for a status: a label and its step in the sequence."""

    status: OrderStatus | None
    label: str
    step: int | None

    @property
    def is_unknown(self) -> bool:
        return self.status is None


UNKNOWN = StatusDisplay(status=None, label="Unknown", step=None)


def parse_status(value) -> OrderStatus | None:
    """Parse a raw status value, returning None for anything unrecognised."""
    if isinstance(value, OrderStatus):
        return value
    if value is None:
        return None

    key = str(value).strip().lower()
    try:
        return OrderStatus(key)
    except ValueError:
        return _ALIASES.get(key)


def current_step(status) -> int | None:
    parsed = parse_status(status)
    if parsed is None:
        return None
    return STATUS_SEQUENCE.index(parsed)


def describe(status) -> StatusDisplay:
    parsed = parse_status(status)
    if parsed is None:
        return UNKNOWN
    return StatusDisplay(
        status=parsed, label=_LABELS[parsed], step=STATUS_SEQUENCE.index(parsed)
    )


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATUSES
