"""
Payment outcome resolution - establishing a session after checkout.

Recovery chain, in order; each step may end the resolution:

1. Verify the checkout session id. Failure: report, no retry.
2. Verification returned token + user: adopt them (preferred path).
3. No token and no PendingCredentials: paid but not signed in;
   the visitor must log in manually. Payment is never retried.
4. Password login with PendingCredentials. Success: adopt the
   session and release the credentials. Failure: report, keeping
   the credentials until teardown so the error is seen first.

Resolution runs at most once per session id; repeated calls (for
example a re-render) share the first call's outcome. A recorded
sign-in is only replayed while its session is still stored; after a
logout the visitor is told to log in instead.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from .exceptions import GatewayError
from .models import AuthSession, PaymentOutcome
from .ports import AuthGateway, ErrorKind, SessionStore, UserRole
from .results import Err, Ok, Result
from .session import PendingCredentialsVault, load_auth, save_auth

logger = logging.getLogger(__name__)

DASHBOARD_ROUTES = {
    UserRole.SUPER_ADMIN.value: "/super/dashboard",
    UserRole.COMPANY_ADMIN.value: "/company/dashboard",
}
DEFAULT_DASHBOARD = "/psychologist/dashboard"

PAID_BUT_SIGNED_OUT_MESSAGE = (
    "Your payment was successful, but we could not sign you in automatically. "
    "Please log in with your email and password."
)
ALREADY_PROCESSED_MESSAGE = "This payment has already been processed. Please log in to continue."


def dashboard_for(role: str | None) -> str:
    """Route a signed-in user to the dashboard for their role."""
    return DASHBOARD_ROUTES.get(role or "", DEFAULT_DASHBOARD)


@dataclass
class PaymentOutcomeResolver:
    """Turn a verified checkout session into an authenticated session."""

    gateway: AuthGateway
    store: SessionStore
    _outcomes: dict[str, Result[PaymentOutcome]] = field(default_factory=dict, init=False)
    _inflight: dict[str, "asyncio.Task[Result[PaymentOutcome]]"] = field(
        default_factory=dict, init=False
    )

    async def resolve(self, session_id: str) -> Result[PaymentOutcome]:
        if session_id in self._outcomes:
            logger.debug("Checkout session %s already resolved", session_id)
            return self._replay(session_id)

        task = self._inflight.get(session_id)
        if task is None:
            task = asyncio.ensure_future(self._resolve_once(session_id))
            self._inflight[session_id] = task
        try:
            outcome = await asyncio.shield(task)
        finally:
            if task.done():
                self._inflight.pop(session_id, None)
        self._outcomes[session_id] = outcome
        return outcome

    def _replay(self, session_id: str) -> Result[PaymentOutcome]:
        outcome = self._outcomes[session_id]
        if isinstance(outcome, Ok) and load_auth(self.store) is None:
            # Signed out since: the recorded session no longer exists
            return Err(ErrorKind.PAYMENT_VERIFIED_LOGIN_FAILED, ALREADY_PROCESSED_MESSAGE)
        return outcome

    async def _resolve_once(self, session_id: str) -> Result[PaymentOutcome]:
        vault = PendingCredentialsVault(self.store)

        try:
            verified = await self.gateway.verify_checkout_session(session_id)
        except GatewayError as exc:
            logger.warning("Checkout session verification failed: %s", exc.message)
            return Err(
                ErrorKind.PAYMENT_VERIFICATION_FAILED,
                exc.message or "Payment verification failed",
            )

        if verified.has_session:
            auth = AuthSession(token=verified.token, user=verified.user)  # type: ignore[arg-type]
            return Ok(self._adopt(auth, vault))

        return await self._login_with_pending_credentials(vault)

    async def _login_with_pending_credentials(
        self, vault: PendingCredentialsVault
    ) -> Result[PaymentOutcome]:
        credentials = vault.load()
        if credentials is None:
            logger.warning("Payment verified without a token and no pending credentials")
            return Err(ErrorKind.PAYMENT_VERIFIED_LOGIN_FAILED, PAID_BUT_SIGNED_OUT_MESSAGE)

        logger.info("Verification returned no token; signing in with pending credentials")
        try:
            auth = await self.gateway.login(credentials.email, credentials.password)
        except GatewayError as exc:
            logger.warning("Fallback login after payment failed: %s", exc.message)
            return Err(
                ErrorKind.PAYMENT_VERIFIED_LOGIN_FAILED,
                f"{PAID_BUT_SIGNED_OUT_MESSAGE} ({exc.message})",
            )
        return Ok(self._adopt(auth, vault))

    def _adopt(self, auth: AuthSession, vault: PendingCredentialsVault) -> PaymentOutcome:
        save_auth(self.store, auth)
        vault.release()
        return PaymentOutcome(auth=auth, redirect_to=dashboard_for(auth.role))
