"""Sign-in state machine.

    Idle → Authenticating → SessionPending → Resolved | Failed

Sign-out returns any state to Idle, and a failed attempt may start over.
Events that do not apply to the current state are ignored and logged, so a
late or duplicated provider callback cannot move the flow backwards. The
single ``on_resolved`` subscriber runs exactly once per transition into
Resolved; navigation after sign-in hangs off it.
"""

from enum import Enum

import structlog

from identity.resolution import CustomerResolver, IdentitySession, ResolutionState

logger = structlog.get_logger(__name__)


class AuthState(Enum):
    IDLE = "Idle"
    AUTHENTICATING = "Authenticating"
    SESSION_PENDING = "SessionPending"
    RESOLVED = "Resolved"
    FAILED = "Failed"


class AuthEvent(Enum):
    SIGN_IN_STARTED = "SignInStarted"
    SESSION_ESTABLISHED = "SessionEstablished"
    CUSTOMER_RESOLVED = "CustomerResolved"
    SIGN_IN_FAILED = "SignInFailed"
    SIGNED_OUT = "SignedOut"


# State machine transition map
_TRANSITIONS = {
    AuthState.IDLE: {AuthEvent.SIGN_IN_STARTED: AuthState.AUTHENTICATING},
    AuthState.AUTHENTICATING: {
        AuthEvent.SESSION_ESTABLISHED: AuthState.SESSION_PENDING,
        AuthEvent.SIGN_IN_FAILED: AuthState.FAILED,
    },
    AuthState.SESSION_PENDING: {
        AuthEvent.CUSTOMER_RESOLVED: AuthState.RESOLVED,
        AuthEvent.SIGN_IN_FAILED: AuthState.FAILED,
    },
    AuthState.RESOLVED: {},
    AuthState.FAILED: {AuthEvent.SIGN_IN_STARTED: AuthState.AUTHENTICATING},
}


class AuthFlow:
    def __init__(self, resolver: CustomerResolver | None = None, on_resolved=None):
        self._resolver = resolver
        self._on_resolved = on_resolved
        self.state = AuthState.IDLE
        self.session: IdentitySession | None = None
        self.customer_id: str | None = None
        self.failure_reason: str | None = None

    def subscribe(self, callback) -> None:
        """Register the single subscriber called with the customer id on Resolved."""
        self._on_resolved = callback

    def dispatch(self, event: AuthEvent, *, session=None, customer_id=None, reason=None) -> AuthState:
        if event is AuthEvent.SIGNED_OUT:
            target = AuthState.IDLE
        else:
            target = _TRANSITIONS[self.state].get(event)

        if target is None:
            logger.warning("Ignoring sign-in event", state=self.state.value, auth_event=event.value)
            return self.state

        previous = self.state
        self.state = target

        if target is AuthState.IDLE:
            self.session = None
            self.customer_id = None
            self.failure_reason = None
        elif target is AuthState.AUTHENTICATING:
            self.failure_reason = None
        elif target is AuthState.SESSION_PENDING:
            self.session = session
        elif target is AuthState.RESOLVED:
            self.customer_id = str(customer_id)
        elif target is AuthState.FAILED:
            self.failure_reason = reason

        logger.info("Sign-in state changed", previous=previous.value, state=target.value)

        if target is AuthState.RESOLVED and self._on_resolved is not None:
            self._on_resolved(self.customer_id)
        return self.state

    # -------------------------------------------------------------------
    # Convenience wrappers
    # -------------------------------------------------------------------
    def start_sign_in(self) -> AuthState:
        return self.dispatch(AuthEvent.SIGN_IN_STARTED)

    def fail(self, reason: str) -> AuthState:
        return self.dispatch(AuthEvent.SIGN_IN_FAILED, reason=reason)

    def sign_out(self) -> AuthState:
        return self.dispatch(AuthEvent.SIGNED_OUT)

    async def session_established(self, session: IdentitySession) -> AuthState:
        """Record the provider session and resolve its customer, resyncing once."""
        if self.dispatch(AuthEvent.SESSION_ESTABLISHED, session=session) is not AuthState.SESSION_PENDING:
            return self.state
        if self._resolver is None:
            return self.state

        resolution = await self._resolver.resolve_for_checkout(session)
        # A sign-out may have happened while resolving
        if self.state is not AuthState.SESSION_PENDING or self.session is not session:
            return self.state

        if resolution.state is ResolutionState.RESOLVED:
            return self.dispatch(AuthEvent.CUSTOMER_RESOLVED, customer_id=resolution.customer_id)
        return self.fail(resolution.reason or "Customer could not be resolved")
