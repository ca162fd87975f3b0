"""Catalog records as served by the hosted backend.

These are external contracts: they mirror the rows of the ``hospitality_center``,
``merchant``, ``product``, ``product_category``, ``product_variation`` and
``ordering_location`` tables and are never mutated by the ordering core.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HospitalityCenter(BaseModel):
    id: int
    name: str
    image: str | None = None


class Venue(BaseModel):
    """A merchant (restaurant or bar) inside a hospitality center."""

    id: int
    name: str
    hospitality_center_id: int | None = None
    description: str | None = None
    image_url: str | None = None
    rating: float | None = None
    prep_time: int | None = None
    cuisine_type: str | None = None

    def prep_time_range(self) -> str:
        if not self.prep_time or self.prep_time <= 0:
            return "N/A"
        low = max(1, self.prep_time - 4)
        high = self.prep_time + 4
        return f"{low}-{high} min"


class ProductCategory(BaseModel):
    id: int
    name: str


class MenuItem(BaseModel):
    """A product on a venue's menu, with its category reference resolved."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    price: float = Field(ge=0)
    merchant_id: int | None = None
    description: str = ""
    image: str | None = Field(default=None, validation_alias="image_url")
    category: ProductCategory | None = Field(default=None, validation_alias="product_category")
    dietary: list[str] = Field(default_factory=list)

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value):
        return value or ""

    @field_validator("dietary", mode="before")
    @classmethod
    def _dietary_list(cls, value):
        return value or []


class ProductVariation(BaseModel):
    """A priced modifier of a menu item; the wire column ``price`` is a delta."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    price_delta: float = Field(default=0.0, validation_alias="price")
    product_id: int


class DeliveryLocationKind(Enum):
    POOL = "pool"
    CABANA = "cabana"
    TABLE = "table"
    BEACH = "beach"
    VILLA = "villa"
    CUSTOM = "custom"


class DeliveryLocation(BaseModel):
    """A physical drop-off point (``ordering_location`` row) or a guest-typed spot."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    kind: DeliveryLocationKind = Field(default=DeliveryLocationKind.CUSTOM, validation_alias="type")
    custom_note: str | None = None
    hospitality_center_id: int | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value):
        return str(value)

    @field_validator("kind", mode="before")
    @classmethod
    def _known_kind(cls, value):
        if isinstance(value, DeliveryLocationKind):
            return value
        try:
            return DeliveryLocationKind(str(value).lower())
        except ValueError:
            return DeliveryLocationKind.CUSTOM

    @property
    def numeric_id(self) -> int | None:
        """The backend identifier, or ``None`` if this is not a positive integer id."""
        text = self.id.strip()
        if not (text.isascii() and text.isdigit()):
            return None
        value = int(text)
        return value if value > 0 else None

    @property
    def instructions(self) -> str | None:
        note = (self.custom_note or "").strip()
        return note or None
