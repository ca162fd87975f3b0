"""Identity Resolution — from a signed-in session to a customer id.

Signing in with the identity provider and syncing the backend customer record
happen independently, so a valid session can briefly exist without a customer
record. Resolution reports that window as ``PENDING``. Checkout then asks for
exactly one explicit resync; anything beyond that (polling, backoff, asking
the guest to sign in again) is the caller's business.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class ResolutionState(Enum):
    RESOLVED = "Resolved"
    PENDING = "Pending"
    FAILED = "Failed"


@dataclass(frozen=True)
class IdentitySession:
    """What the identity provider tells us about the signed-in guest."""

    external_id: str | None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    full_name: str | None = None
    access_token: str | None = None
    customer_id: str | None = None


@dataclass(frozen=True)
class Resolution:
    state: ResolutionState
    customer_id: str | None = None
    reason: str | None = None

    @classmethod
    def resolved(cls, customer_id) -> "Resolution":
        return cls(ResolutionState.RESOLVED, customer_id=str(customer_id))

    @classmethod
    def pending(cls, reason: str) -> "Resolution":
        return cls(ResolutionState.PENDING, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> "Resolution":
        return cls(ResolutionState.FAILED, reason=reason)

    @property
    def is_resolved(self) -> bool:
        return self.state is ResolutionState.RESOLVED


class CustomerDirectoryError(Exception):
    """The customer directory could not be queried or updated."""


class CustomerDirectory(ABC):
    """Where customer records live, in process or behind the hosted backend."""

    @abstractmethod
    async def lookup_customer(self, session: IdentitySession) -> str | None:
        """Return the customer id already linked to this session, if any."""

    @abstractmethod
    async def resolve_or_create_customer(self, session: IdentitySession) -> str | None:
        """Sync the session's account into a customer record and return its id."""


class CustomerResolver:
    def __init__(self, directory: CustomerDirectory):
        self._directory = directory

    async def resolve_customer(self, session: IdentitySession | None) -> Resolution:
        if session is None or not session.external_id:
            return Resolution.failed("No signed-in session")
        if session.customer_id:
            return Resolution.resolved(session.customer_id)

        try:
            customer_id = await self._directory.lookup_customer(session)
        except CustomerDirectoryError as exc:
            logger.warning("Customer lookup failed", external_id=session.external_id, error=str(exc))
            return Resolution.failed(str(exc))

        if customer_id:
            return Resolution.resolved(customer_id)
        return Resolution.pending("Customer record not synchronized yet")

    async def resync(self, session: IdentitySession) -> Resolution:
        """Ask the directory to sync the session's account, once."""
        if not session.email:
            return Resolution.failed("The signed-in account has no email address")

        try:
            customer_id = await self._directory.resolve_or_create_customer(session)
        except CustomerDirectoryError as exc:
            logger.warning("Customer resync failed", external_id=session.external_id, error=str(exc))
            return Resolution.failed(str(exc))

        if customer_id:
            logger.info("Customer resynced", external_id=session.external_id, customer_id=customer_id)
            return Resolution.resolved(customer_id)
        return Resolution.failed("Customer sync returned no record")

    async def resolve_for_checkout(self, session: IdentitySession | None) -> Resolution:
        """Resolve, resyncing exactly once if the record is still pending."""
        resolution = await self.resolve_customer(session)
        if resolution.state is ResolutionState.PENDING:
            resolution = await self.resync(session)
        return resolution
