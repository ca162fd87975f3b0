"""Catalog Access — read-only queries against the catalog collaborator.

The ordering core depends only on :class:`CatalogClient`. The hosted
implementation reads the PostgREST tables of the resort backend.
"""

from abc import ABC, abstractmethod

import structlog

from catalogue.schemas import (
    DeliveryLocation,
    HospitalityCenter,
    MenuItem,
    ProductCategory,
    ProductVariation,
    Venue,
)
from shared.postgrest import PostgrestClient, PostgrestError, eq

logger = structlog.get_logger(__name__)

_PRODUCT_COLUMNS = "*,product_category:category_id(id,name)"


class CatalogError(Exception):
    """Base class for catalog lookup failures."""


class CatalogUnavailable(CatalogError):
    """The catalog could not be reached; retrying later may succeed."""


class VenueNotFound(CatalogError):
    def __init__(self, venue_id):
        super().__init__(f"Venue {venue_id} not found")
        self.venue_id = venue_id


class CatalogClient(ABC):
    @abstractmethod
    async def list_hospitality_centers(self) -> list[HospitalityCenter]: ...

    @abstractmethod
    async def list_venues(self, hospitality_center_id: int) -> list[Venue]: ...

    @abstractmethod
    async def get_venue(self, venue_id: int) -> Venue: ...

    @abstractmethod
    async def list_products(self, venue_id: int) -> list[MenuItem]: ...

    @abstractmethod
    async def list_categories(self) -> list[ProductCategory]: ...

    @abstractmethod
    async def list_product_variations(self, product_id: int) -> list[ProductVariation]: ...

    @abstractmethod
    async def list_delivery_locations(self, hospitality_center_id: int) -> list[DeliveryLocation]: ...


class PostgrestCatalog(CatalogClient):
    def __init__(self, client: PostgrestClient):
        self._client = client

    async def _select(self, table, **kwargs) -> list[dict]:
        try:
            return await self._client.select(table, **kwargs)
        except PostgrestError as exc:
            logger.error("Catalog query failed", table=table, status_code=exc.status_code, error=exc.message)
            if exc.is_transient:
                raise CatalogUnavailable(f"Catalog unavailable while reading {table}") from exc
            raise CatalogError(f"Catalog query on {table} failed: {exc.message}") from exc

    async def list_hospitality_centers(self) -> list[HospitalityCenter]:
        rows = await self._select("hospitality_center", order="name.asc")
        return [HospitalityCenter.model_validate(row) for row in rows]

    async def list_venues(self, hospitality_center_id: int) -> list[Venue]:
        rows = await self._select(
            "merchant",
            filters={"hospitality_center_id": eq(hospitality_center_id)},
            order="name.asc",
        )
        return [Venue.model_validate(row) for row in rows]

    async def get_venue(self, venue_id: int) -> Venue:
        rows = await self._select("merchant", filters={"id": eq(venue_id)}, limit=1)
        if not rows:
            raise VenueNotFound(venue_id)
        return Venue.model_validate(rows[0])

    async def list_products(self, venue_id: int) -> list[MenuItem]:
        rows = await self._select(
            "product",
            columns=_PRODUCT_COLUMNS,
            filters={"merchant_id": eq(venue_id)},
            order="name.asc",
        )
        return [MenuItem.model_validate(row) for row in rows]

    async def list_categories(self) -> list[ProductCategory]:
        rows = await self._select("product_category", order="name.asc")
        return [ProductCategory.model_validate(row) for row in rows]

    async def list_product_variations(self, product_id: int) -> list[ProductVariation]:
        rows = await self._select(
            "product_variation",
            filters={"product_id": eq(product_id)},
            order="name.asc",
        )
        return [ProductVariation.model_validate(row) for row in rows]

    async def list_delivery_locations(self, hospitality_center_id: int) -> list[DeliveryLocation]:
        rows = await self._select(
            "ordering_location",
            filters={"hospitality_center_id": eq(hospitality_center_id)},
            order="name.asc",
        )
        return [DeliveryLocation.model_validate(row) for row in rows]
