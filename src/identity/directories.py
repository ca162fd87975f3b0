"""Customer directories: the in-process identity domain and the hosted backend."""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from shared.postgrest import PostgrestClient, PostgrestError, eq

from identity.customer.sync import SyncCustomer, find_customer
from identity.domain import identity
from identity.resolution import CustomerDirectory, CustomerDirectoryError, IdentitySession

logger = structlog.get_logger(__name__)

CUSTOMER_TABLE = "customers"
SYNC_FUNCTION = "sync-clerk-customer"


class DomainCustomerDirectory(CustomerDirectory):
    """Customers kept by the protean ``identity`` domain."""

    def __init__(self, domain=None):
        self._domain = domain or identity

    async def lookup_customer(self, session: IdentitySession) -> str | None:
        with self._domain.domain_context():
            customer = find_customer(external_id=session.external_id)
        return str(customer.id) if customer else None

    async def resolve_or_create_customer(self, session: IdentitySession) -> str | None:
        with self._domain.domain_context():
            try:
                result = current_domain.process(
                    SyncCustomer(
                        external_id=session.external_id,
                        email=session.email,
                        first_name=session.first_name,
                        last_name=session.last_name,
                        full_name=session.full_name,
                    ),
                    asynchronous=False,
                )
            except ValidationError as exc:
                raise CustomerDirectoryError(f"Customer sync rejected: {exc.messages}") from exc
        return result["customer_id"]


class EdgeFunctionCustomerDirectory(CustomerDirectory):
    """Customers in the hosted backend's ``customers`` table.

    Lookups read the table directly; syncing goes through the
    ``sync-clerk-customer`` edge function, which links or creates the record.
    """

    def __init__(self, client: PostgrestClient, sync_function: str = SYNC_FUNCTION):
        self._client = client
        self._sync_function = sync_function

    async def lookup_customer(self, session: IdentitySession) -> str | None:
        try:
            rows = await self._client.select(
                CUSTOMER_TABLE,
                columns="id",
                filters={"clerk_user_id": eq(session.external_id)},
                limit=1,
            )
        except PostgrestError as exc:
            raise CustomerDirectoryError(exc.message) from exc
        return str(rows[0]["id"]) if rows else None

    async def resolve_or_create_customer(self, session: IdentitySession) -> str | None:
        payload = {
            "clerk_user_id": session.external_id,
            "email": session.email,
            "first_name": session.first_name,
            "last_name": session.last_name,
            "full_name": session.full_name,
        }
        try:
            body = await self._client.invoke(self._sync_function, payload)
        except PostgrestError as exc:
            raise CustomerDirectoryError(exc.message) from exc

        customer = (body.get("data") or {}).get("customer")
        if not customer:
            logger.warning("Customer sync returned no customer", external_id=session.external_id)
            return None

        logger.info(
            "Customer synced",
            customer_id=customer["id"],
            created=bool(body.get("created")),
        )
        return str(customer["id"])
