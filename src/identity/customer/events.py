"""Domain events for the Customer aggregate."""

from protean.fields import DateTime, Identifier, String

from identity.domain import identity


@identity.event(part_of="Customer")
class CustomerRegistered:
    """A customer record was created for a newly synced identity-provider account."""

    __version__ = 1

    customer_id: Identifier(required=True)
    external_id: String()
    email: String(required=True)
    full_name: String()
    registered_at: DateTime(required=True)


@identity.event(part_of="Customer")
class ExternalIdentityLinked:
    """An existing customer was linked to an identity-provider user id."""

    __version__ = 1

    customer_id: Identifier(required=True)
    external_id: String(required=True)
    linked_at: DateTime(required=True)
