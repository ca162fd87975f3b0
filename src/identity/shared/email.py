"""EmailAddress value object for validated email addresses."""

from protean import invariant
from protean.fields import String

from identity.domain import identity

_FORBIDDEN_CHARACTERS = (";", ",", "(", ")", '"', ":", "<", ">", "[", "]", "\\")


def _is_literal_domain(domain_part: str) -> bool:
    return domain_part.startswith("[") and domain_part.endswith("]")


@identity.value_object
class EmailAddress:
    """A validated email address, as delivered by the identity provider.

    Customers are matched by email when an identity-provider account is synced,
    so the address must be structurally valid: exactly one @, non-empty local
    and domain parts, no consecutive dots and no forbidden characters.
    """

    address: String(required=True, max_length=254)

    @property
    def normalized(self) -> str:
        return self.address.strip().lower()

    @invariant.post
    def verify_email_address(self):
        email = self.address

        def invalid():
            return ValueError(f"Invalid email address: {email!r}")

        if any(whitespace in email for whitespace in (" ", "\t", "\n")):
            raise invalid()
        if email.count("@") != 1:
            raise invalid()

        local_part, domain_part = email.split("@", 1)
        for part in (local_part, domain_part):
            if not part or part.startswith(".") or part.endswith(".") or ".." in part:
                raise invalid()

        literal = _is_literal_domain(domain_part)
        if not literal:
            if "." not in domain_part:
                raise invalid()
            if any(label.startswith("-") or label.endswith("-") for label in domain_part.split(".")):
                raise invalid()

        allowed = "[]" if literal else ""
        if any(c in email for c in _FORBIDDEN_CHARACTERS if c not in allowed):
            raise invalid()
