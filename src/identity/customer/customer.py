"""Customer aggregate — the backend record a signed-in guest orders as."""

from datetime import datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, String

from identity.customer.events import CustomerRegistered, ExternalIdentityLinked
from identity.domain import identity
from identity.shared.email import EmailAddress


def compose_full_name(first_name=None, last_name=None, full_name=None):
    """Use the provider's full name, else join the name parts that are present."""
    if full_name and full_name.strip():
        return full_name.strip()
    joined = " ".join(part.strip() for part in (first_name, last_name) if part and part.strip())
    return joined or None


def normalize_email(email: str) -> str:
    try:
        return EmailAddress(address=(email or "").strip()).normalized
    except ValidationError as exc:
        raise ValidationError({"email": [f"Invalid email address: {email!r}"]}) from exc
    except ValueError as exc:
        raise ValidationError({"email": [str(exc)]}) from exc


@identity.aggregate
class Customer:
    """A guest known to the backend, matched to an identity-provider account.

    Customers are keyed by email. The identity provider's user id
    (``external_id``) is attached on the first sync and never replaced.
    """

    external_id: String(max_length=255)
    email: String(required=True, max_length=254)
    first_name: String(max_length=100)
    last_name: String(max_length=100)
    full_name: String(max_length=255)
    registered_at: DateTime(default=datetime.now)
    updated_at: DateTime()

    @classmethod
    def register(cls, email, external_id=None, first_name=None, last_name=None, full_name=None):
        email = normalize_email(email)
        now = datetime.now()

        customer = cls(
            external_id=external_id,
            email=email,
            first_name=first_name or None,
            last_name=last_name or None,
            full_name=compose_full_name(first_name, last_name, full_name),
            registered_at=now,
            updated_at=now,
        )
        customer.raise_(
            CustomerRegistered(
                customer_id=customer.id,
                external_id=external_id,
                email=email,
                full_name=customer.full_name,
                registered_at=now,
            )
        )
        return customer

    def link_external_id(self, external_id) -> bool:
        """Attach the provider's user id if none is linked yet.

        Returns True when the link was made. An existing link is left alone.
        """
        if not external_id or self.external_id:
            return False

        now = datetime.now()
        self.external_id = external_id
        self.updated_at = now
        self.raise_(
            ExternalIdentityLinked(
                customer_id=self.id,
                external_id=external_id,
                linked_at=now,
            )
        )
        return True
