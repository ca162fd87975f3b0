"""Error taxonomy of the ordering core.

Cart errors are resolved locally by the caller (prompt and retry); checkout
errors keep the guest on the checkout step with cart and delivery intact;
tracker errors distinguish a missing order from a transient fetch failure.
"""

from enum import Enum


class ErrorKind(Enum):
    VENUE_CONFLICT = "VenueConflict"
    EMPTY_CART = "EmptyCart"
    INVALID_DELIVERY_LOCATION = "InvalidDeliveryLocation"
    UNRESOLVED_CUSTOMER = "UnresolvedCustomer"
    ORDER_CREATION_FAILED = "OrderCreationFailed"
    ORDER_NOT_FOUND = "OrderNotFound"
    TRANSIENT_FETCH_ERROR = "TransientFetchError"


class OrderingError(Exception):
    kind: ErrorKind
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class VenueConflict(OrderingError):
    """The cart already holds items from another venue.

    Carries the existing venue so the caller can ask the guest whether to
    start a new cart.
    """

    kind = ErrorKind.VENUE_CONFLICT

    def __init__(self, existing_venue_id, existing_venue_name, requested_venue_id):
        super().__init__(
            f"Your cart has items from {existing_venue_name}. Clear it to order from another venue."
        )
        self.existing_venue_id = str(existing_venue_id)
        self.existing_venue_name = existing_venue_name
        self.requested_venue_id = str(requested_venue_id)


class EmptyCart(OrderingError):
    kind = ErrorKind.EMPTY_CART

    def __init__(self):
        super().__init__("Your cart is empty")


class InvalidDeliveryLocation(OrderingError):
    kind = ErrorKind.INVALID_DELIVERY_LOCATION

    def __init__(self, location_id=None):
        super().__init__("Please select a valid delivery location")
        self.location_id = location_id


class UnresolvedCustomer(OrderingError):
    """No customer record could be resolved for the signed-in session.

    Usually a stale or half-synchronized session, so callers should ask the
    guest to sign in again rather than show a generic error.
    """

    kind = ErrorKind.UNRESOLVED_CUSTOMER
    requires_reauthentication = True

    def __init__(self, reason: str | None = None):
        super().__init__("Unable to resolve customer. Please sign out and sign in again.")
        self.reason = reason


class OrderCreationFailed(OrderingError):
    """The backing store rejected the order header or its lines.

    ``partial`` is true when the header was written but the lines were not;
    ``order_id`` then names the orphaned header.
    """

    kind = ErrorKind.ORDER_CREATION_FAILED
    retryable = True

    def __init__(self, message: str, order_id=None, partial: bool = False):
        super().__init__(message)
        self.order_id = order_id
        self.partial = partial


class OrderNotFound(OrderingError):
    kind = ErrorKind.ORDER_NOT_FOUND

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class TransientFetchError(OrderingError):
    kind = ErrorKind.TRANSIENT_FETCH_ERROR
    retryable = True
