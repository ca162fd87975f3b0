"""Composition root for the guest-side ordering client.

Wires the catalog, the order store, customer resolution, the sign-in flow,
the checkout session and the order tracker together. Two wirings exist:

- ``GuestApp.hosted(settings)`` talks to the hosted backend over PostgREST
  and its customer-sync edge function.
- ``GuestApp.in_process()`` runs the ``ordering`` and ``identity`` protean
  domains in this process, which is what local development and the tests use.

Usage:
    async with GuestApp.hosted(OrderingSettings.from_env()) as app:
        centers = await app.catalog.list_hospitality_centers()
        ...
"""

from catalogue.client import CatalogClient, PostgrestCatalog
from identity.auth_flow import AuthFlow
from identity.directories import DomainCustomerDirectory, EdgeFunctionCustomerDirectory
from identity.domain import identity
from identity.resolution import CustomerDirectory, CustomerResolver
from ordering.checkout.assembly import OrderAssembler
from ordering.checkout.session import CheckoutSession
from ordering.config import OrderingSettings
from ordering.domain import ordering
from ordering.store.base import OrderStore
from ordering.store.domain_store import DomainOrderStore
from ordering.store.postgrest import PostgrestOrderStore
from ordering.tracking.tracker import OrderTracker
from shared.logging import get_logger
from shared.postgrest import PostgrestClient

logger = get_logger(__name__)


class GuestApp:
    def __init__(
        self,
        settings: OrderingSettings,
        store: OrderStore,
        directory: CustomerDirectory,
        catalog: CatalogClient | None = None,
        client: PostgrestClient | None = None,
    ):
        identity.init()
        ordering.init()

        # Carts and orders are protean aggregates; keep the ordering context
        # pushed for as long as the app is alive.
        self._context = ordering.domain_context()
        self._context.push()

        self.settings = settings
        self.catalog = catalog
        self.store = store
        self._client = client

        self.resolver = CustomerResolver(directory)
        self.assembler = OrderAssembler(
            store,
            delivery_fee=settings.delivery_fee,
            max_code_attempts=settings.order_code_attempts,
        )
        self.tracker = OrderTracker(
            store,
            poll_interval=settings.tracker_poll_interval,
            max_fetch_attempts=settings.tracker_fetch_attempts,
            backoff=settings.tracker_backoff,
        )
        self.checkout = CheckoutSession(self.assembler, self.resolver)
        self.auth = AuthFlow(self.resolver, on_resolved=self._customer_resolved)
        self.customer_id: str | None = None

    # -------------------------------------------------------------------
    # Wirings
    # -------------------------------------------------------------------
    @classmethod
    def hosted(cls, settings: OrderingSettings | None = None, transport=None) -> "GuestApp":
        settings = settings or OrderingSettings.from_env()
        client = PostgrestClient(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.http_timeout,
            transport=transport,
        )
        logger.info("Guest app wired to hosted backend", url=settings.supabase_url)
        return cls(
            settings,
            store=PostgrestOrderStore(client),
            directory=EdgeFunctionCustomerDirectory(client),
            catalog=PostgrestCatalog(client),
            client=client,
        )

    @classmethod
    def in_process(cls, settings: OrderingSettings | None = None, catalog: CatalogClient | None = None) -> "GuestApp":
        settings = settings or OrderingSettings()
        return cls(
            settings,
            store=DomainOrderStore(ordering),
            directory=DomainCustomerDirectory(identity),
            catalog=catalog,
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def _customer_resolved(self, customer_id: str) -> None:
        self.customer_id = customer_id
        logger.info("Guest signed in", customer_id=customer_id)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
        if self._context is not None:
            self._context.pop()
            self._context = None

    async def __aenter__(self) -> "GuestApp":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
