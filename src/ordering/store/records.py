"""Read-side order records and write-side drafts exchanged with order stores.

Stores speak these pydantic models regardless of backend, so the assembler and
the tracker never see protean aggregates or raw PostgREST rows.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from catalogue.schemas import DeliveryLocation
from ordering.order.status import (
    OrderStatus,
    StatusDisplay,
    current_step,
    describe,
    is_terminal,
)


# ---------------------------------------------------------------------------
# Nested projections
# ---------------------------------------------------------------------------
class VenueSummary(BaseModel):
    id: str | None = None
    name: str | None = None
    image_url: str | None = None


class LocationSummary(BaseModel):
    id: int | None = None
    name: str | None = None
    kind: str | None = None
    note: str | None = None


class CenterSummary(BaseModel):
    id: str | None = None
    name: str | None = None


class VariationSnapshotRecord(BaseModel):
    variation_id: str
    name: str | None = None
    price: Decimal = Decimal("0.00")


# ---------------------------------------------------------------------------
# Write-side drafts
# ---------------------------------------------------------------------------
class OrderHeader(BaseModel):
    order_code: str
    customer_id: str
    ordering_location_id: int = Field(gt=0)
    total_price: Decimal = Field(ge=0)
    hospitality_center_id: str | None = None
    merchant_id: str | None = None
    venue_name: str | None = None
    delivery_location: LocationSummary | None = None
    instructions: str | None = None
    payment_method: str | None = None
    status: str = OrderStatus.RECEIVED.value
    ordered_at: datetime


class OrderLineDraft(BaseModel):
    """One line to persist. ``price`` is the line total (unit price x quantity)."""

    product_id: str
    name: str | None = None
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    customization_note: str | None = None
    variation: VariationSnapshotRecord | None = None


# ---------------------------------------------------------------------------
# Read-side records
# ---------------------------------------------------------------------------
class OrderLineRecord(BaseModel):
    id: str
    product_id: str
    name: str | None = None
    quantity: int | None = None
    price: Decimal
    customization_note: str | None = None
    variation: VariationSnapshotRecord | None = None


class OrderRecord(BaseModel):
    """An order as a reader sees it, with its lines and nested projections.

    ``status`` keeps the raw stored value so unrecognised statuses reach the
    display layer as an explicit unknown state instead of failing validation.
    """

    id: str
    order_code: str
    customer_id: str
    status: str
    total_price: Decimal
    ordering_location_id: int | None = None
    hospitality_center_id: str | None = None
    merchant_id: str | None = None
    instructions: str | None = None
    payment_method: str | None = None
    ordered_at: datetime | None = None
    updated_at: datetime | None = None
    rating: int | None = None
    feedback: str | None = None
    tip: Decimal | None = None
    lines: list[OrderLineRecord] = Field(default_factory=list)
    venue: VenueSummary | None = None
    location: LocationSummary | None = None
    hospitality_center: CenterSummary | None = None

    @property
    def status_display(self) -> StatusDisplay:
        return describe(self.status)

    @property
    def step(self) -> int | None:
        return current_step(self.status)

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    @property
    def is_being_created(self) -> bool:
        """Header written but lines not yet visible to readers."""
        return not self.lines and not self.is_terminal

    @property
    def has_feedback(self) -> bool:
        return self.rating is not None


class CartLineSnapshot(BaseModel):
    """A cart line as it looked when the order was placed."""

    model_config = ConfigDict(frozen=True)

    line_id: str
    menu_item_id: str
    name: str | None = None
    unit_price: Decimal
    quantity: int
    line_total: Decimal
    customization_note: str | None = None
    variation_name: str | None = None


class PlacedOrder(BaseModel):
    """The optimistic local copy handed back right after checkout.

    It joins the persisted header with the in-memory cart so the confirmation
    view needs no read-after-write round trip. Once the tracker fetches the
    order, the server record takes precedence.
    """

    record: OrderRecord
    cart: list[CartLineSnapshot]
    delivery_location: DeliveryLocation
    subtotal: Decimal
    delivery_fee: Decimal
    estimated_time: str | None = None

    @property
    def order_id(self) -> str:
        return self.record.id

    @property
    def order_code(self) -> str:
        return self.record.order_code

    @property
    def total_price(self) -> Decimal:
        return self.record.total_price

    @property
    def status(self) -> str:
        return self.record.status
