"""Customer sync — command and handler.

Runs after a guest signs in with the identity provider: find the customer by
email, link the provider's user id when it is missing, otherwise register a
new customer. Returns the customer id and whether a record was created.
"""

from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from identity.customer.customer import Customer, normalize_email
from identity.domain import identity


@identity.command(part_of="Customer")
class SyncCustomer:
    """Make sure a customer record exists for a signed-in identity-provider account."""

    external_id: String(max_length=255)
    email: String(required=True, max_length=254)
    first_name: String(max_length=100)
    last_name: String(max_length=100)
    full_name: String(max_length=255)


def find_customer(email=None, external_id=None):
    """Look a customer up by provider user id first, then by email."""
    repo = current_domain.repository_for(Customer)
    if external_id:
        matches = repo._dao.query.filter(external_id=external_id).all().items
        if matches:
            return matches[0]
    if email:
        matches = repo._dao.query.filter(email=normalize_email(email)).all().items
        if matches:
            return matches[0]
    return None


@identity.command_handler(part_of=Customer)
class SyncCustomerHandler:
    @handle(SyncCustomer)
    def sync_customer(self, command):
        repo = current_domain.repository_for(Customer)

        customer = find_customer(email=command.email)
        if customer is not None:
            if customer.link_external_id(command.external_id):
                repo.add(customer)
            return {"customer_id": str(customer.id), "created": False}

        customer = Customer.register(
            email=command.email,
            external_id=command.external_id,
            first_name=command.first_name,
            last_name=command.last_name,
            full_name=command.full_name,
        )
        repo.add(customer)
        return {"customer_id": str(customer.id), "created": True}
