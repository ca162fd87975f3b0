"""Ordering bounded context — cart, order lifecycle and order tracking.

Handles the guest's single-venue cart, the conversion of a cart into a
persisted order with its lines, and the read side that follows an order
through its delivery states.
"""

from protean.domain import Domain

from shared.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

ordering = Domain(name="ordering")
