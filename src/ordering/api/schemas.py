"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ordering.store.records import (
    CenterSummary,
    LocationSummary,
    OrderLineRecord,
    OrderRecord,
    VenueSummary,
)


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class UpdateStatusRequest(BaseModel):
    model_config = {"json_schema_extra": {"examples": [{"status": "preparing"}]}}

    status: str = Field(..., max_length=50)


class RecordFeedbackRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [{"rating": 5, "feedback": "Arrived cold but fast", "tip": 10}]
        }
    }

    rating: int = Field(..., ge=1, le=5)
    feedback: str | None = Field(None, max_length=2000)
    tip: Decimal | None = Field(None, ge=0)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderResponse(BaseModel):
    id: str
    order_code: str
    customer_id: str
    status: str
    status_label: str
    step: int | None = None
    is_being_created: bool
    total_price: Decimal
    instructions: str | None = None
    ordered_at: datetime | None = None
    rating: int | None = None
    feedback: str | None = None
    tip: Decimal | None = None
    lines: list[OrderLineRecord] = Field(default_factory=list)
    venue: VenueSummary | None = None
    location: LocationSummary | None = None
    hospitality_center: CenterSummary | None = None

    @classmethod
    def from_record(cls, record: OrderRecord) -> "OrderResponse":
        return cls(
            **record.model_dump(
                include={
                    "id",
                    "order_code",
                    "customer_id",
                    "status",
                    "total_price",
                    "instructions",
                    "ordered_at",
                    "rating",
                    "feedback",
                    "tip",
                    "lines",
                    "venue",
                    "location",
                    "hospitality_center",
                }
            ),
            status_label=record.status_display.label,
            step=record.step,
            is_being_created=record.is_being_created,
        )


class CustomerOrdersResponse(BaseModel):
    current: list[OrderResponse] = Field(default_factory=list)
    history: list[OrderResponse] = Field(default_factory=list)
