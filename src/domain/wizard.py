"""
Registration wizard - step state machine for self-service signup.

Steps and transitions
=====================

    select  --select_account_type-->  email      (resets email / status)
    email   --check_email-->          details    (unless status is exists_paid)
    details --submit_details-->       payment    (organization also stores seats)
    payment --back-->                 details
    payment --proceed-->              external checkout redirect

Return trip (query parameters, not buttons):

    status=success & session_id   -> processingPayment -> resolver
    status=cancelled              -> payment, rebuilt from the URL identity

Breadcrumbs jump backwards only, to steps already visited. Jumping to
the account type resets the whole session.

Only one step-mutating call may be outstanding at a time; a second
call while the first awaits the backend is refused with BUSY.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from typing import TypeVar

from .models import (
    AccountDetails,
    CheckoutRedirect,
    PendingCredentials,
    RegistrationSession,
    ReturnOutcome,
    TempAccount,
)
from .payment import PaymentOutcomeResolver
from .ports import AccountType, EmailStatus, ErrorKind, ReturnStatus, SessionStore, WizardStep
from .registration import CheckoutSessionBroker, EmailAvailabilityChecker, TempAccountProvisioner
from .results import Err, Ok, Result
from .session import PendingCredentialsVault

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXISTS_PAID_MESSAGE = "This email is already registered. Please log in to continue."

BREADCRUMB_TARGETS = {
    "accountType": WizardStep.SELECT,
    "email": WizardStep.EMAIL,
    "details": WizardStep.DETAILS,
}

_STEP_ORDER = [WizardStep.SELECT, WizardStep.EMAIL, WizardStep.DETAILS, WizardStep.PAYMENT]


class RegistrationWizard:
    """
    Orchestrating controller for the registration flow.

    Owns the RegistrationSession and the step-transition rules; the
    collaborators do the backend work. Every public call returns a
    Result and leaves the session unchanged on failure.
    """

    def __init__(
        self,
        *,
        checker: EmailAvailabilityChecker,
        provisioner: TempAccountProvisioner,
        broker: CheckoutSessionBroker,
        resolver: PaymentOutcomeResolver,
        store: SessionStore,
        return_url: str,
        registration_path: str = "/auth/register",
    ) -> None:
        self._checker = checker
        self._provisioner = provisioner
        self._broker = broker
        self._resolver = resolver
        self._vault = PendingCredentialsVault(store)
        self._return_url = return_url
        self._registration_path = registration_path
        self._session = RegistrationSession()
        self._busy = False

    @property
    def session(self) -> RegistrationSession:
        return self._session

    @property
    def busy(self) -> bool:
        return self._busy

    def select_account_type(self, account_type: AccountType | str) -> Result[RegistrationSession]:
        if self._busy:
            return _busy()
        try:
            chosen = AccountType(account_type)
        except ValueError:
            return Err(ErrorKind.VALIDATION, f"Unknown account type: {account_type}")

        # A new flow starts: nothing from an earlier attempt may leak into it
        self._vault.release()
        self._session = RegistrationSession(account_type=chosen).advance(WizardStep.EMAIL)
        return Ok(self._session)

    async def check_email(self, email: str) -> Result[RegistrationSession]:
        return await self._exclusive(lambda: self._check_email(email))

    async def _check_email(self, email: str) -> Result[RegistrationSession]:
        if self._session.step != WizardStep.EMAIL:
            return _invalid_transition("check the email", self._session.step)

        result = await self._checker.check(email)
        if isinstance(result, Err):
            return result

        check = result.value
        if check.status == EmailStatus.EXISTS_PAID:
            # Terminal for this email: record it, never move forward
            self._session = replace(self._session, email=check.email, email_status=check.status)
            return Err(ErrorKind.ACCOUNT_EXISTS_PAID, EXISTS_PAID_MESSAGE)

        self._session = self._session.advance(
            WizardStep.DETAILS, email=check.email, email_status=check.status
        )
        return Ok(self._session)

    async def submit_details(
        self,
        *,
        name: str,
        password: str,
        confirm_password: str,
        company_name: str = "",
        seats: int | None = None,
    ) -> Result[RegistrationSession]:
        return await self._exclusive(
            lambda: self._submit_details(name, password, confirm_password, company_name, seats)
        )

    async def _submit_details(
        self,
        name: str,
        password: str,
        confirm_password: str,
        company_name: str,
        seats: int | None,
    ) -> Result[RegistrationSession]:
        session = self._session
        if session.step != WizardStep.DETAILS or session.account_type is None:
            return _invalid_transition("submit details", session.step)
        if session.email_status == EmailStatus.EXISTS_PAID:
            return Err(ErrorKind.ACCOUNT_EXISTS_PAID, EXISTS_PAID_MESSAGE)
        if not session.email:
            # Sessions rebuilt from a cancelled checkout carry no email
            return Err(ErrorKind.INVALID_TRANSITION, "Please confirm your email address first")

        is_organization = session.account_type == AccountType.ORGANIZATION
        details = AccountDetails(
            account_type=session.account_type,
            email=session.email,
            name=name.strip(),
            password=password,
            confirm_password=confirm_password,
            company_name=company_name.strip(),
            seats=seats if is_organization else None,
        )
        result = await self._provisioner.create(details)
        if isinstance(result, Err):
            return result

        if not is_organization:
            # Must be stored before advancing: the return trip may need it
            self._vault.store(
                PendingCredentials(
                    email=session.email, password=password, account_type=AccountType.INDIVIDUAL
                )
            )

        changes: dict = {"temp_account": result.value}
        if is_organization and seats is not None:
            changes["seats"] = seats
        self._session = session.advance(WizardStep.PAYMENT, **changes)
        return Ok(self._session)

    def back(self) -> Result[RegistrationSession]:
        if self._busy:
            return _busy()
        if self._session.step != WizardStep.PAYMENT:
            return _invalid_transition("go back", self._session.step)
        self._session = replace(self._session, step=WizardStep.DETAILS)
        return Ok(self._session)

    def navigate_to(self, target: str) -> Result[RegistrationSession]:
        """Breadcrumb navigation: backward jumps to visited steps only."""
        if self._busy:
            return _busy()
        step = BREADCRUMB_TARGETS.get(target)
        if step is None:
            return Err(ErrorKind.VALIDATION, f"Unknown breadcrumb target: {target}")

        current = self._session.step
        if current not in _STEP_ORDER or step not in self._session.visited:
            return _invalid_transition(f"jump to {target}", current)
        if _STEP_ORDER.index(step) >= _STEP_ORDER.index(current):
            return _invalid_transition(f"jump forward to {target}", current)

        if step == WizardStep.SELECT:
            self._vault.release()
            self._session = RegistrationSession()
        else:
            self._session = replace(self._session, step=step)
        return Ok(self._session)

    async def proceed(self) -> Result[CheckoutRedirect]:
        return await self._exclusive(self._proceed)

    async def _proceed(self) -> Result[CheckoutRedirect]:
        session = self._session
        if session.step != WizardStep.PAYMENT or session.account_type is None:
            return _invalid_transition("proceed to payment", session.step)
        if session.temp_account is None:
            return Err(
                ErrorKind.INVALID_TRANSITION,
                "Temporary user not found. Please go back and try again.",
            )

        result = await self._broker.create_session(
            session.temp_account,
            session.account_type,
            session.checkout_seats,
            self._return_url,
        )
        if isinstance(result, Ok):
            logger.info("Redirecting user %s to checkout", session.temp_account.user_id)
        return result

    async def handle_return(self, params: Mapping[str, str]) -> Result[ReturnOutcome]:
        """Handle the checkout return trip from its URL query parameters."""
        return await self._exclusive(lambda: self._handle_return(params))

    async def _handle_return(self, params: Mapping[str, str]) -> Result[ReturnOutcome]:
        try:
            status = ReturnStatus(params.get("status", ""))
        except ValueError:
            return Ok(ReturnOutcome(status=None, redirect_to=self._registration_path))

        if status == ReturnStatus.CANCELLED:
            restored = _session_from_identity(params, self._provisioner.min_organization_seats)
            if restored is not None:
                self._session = restored
            else:
                logger.info("Cancelled checkout return without a usable identity")
            return Ok(ReturnOutcome(status=status, redirect_to=self._registration_path))

        session_id = params.get("session_id")
        if not session_id:
            return Ok(ReturnOutcome(status=None, redirect_to=self._registration_path))

        self._session = self._session.advance(WizardStep.PROCESSING_PAYMENT)
        result = await self._resolver.resolve(session_id)
        if isinstance(result, Err):
            # Payment may have gone through: stay on the overlay, never offer checkout again
            return result

        self._session = RegistrationSession()
        return Ok(
            ReturnOutcome(status=status, redirect_to=result.value.redirect_to, payment=result.value)
        )

    def close(self) -> None:
        """Teardown: the wizard is discarded, and so are pending credentials."""
        self._vault.release()
        self._session = RegistrationSession()

    async def _exclusive(self, operation: Callable[[], Awaitable[Result[T]]]) -> Result[T]:
        if self._busy:
            return _busy()
        self._busy = True
        try:
            return await operation()
        finally:
            self._busy = False


def _session_from_identity(
    params: Mapping[str, str], min_organization_seats: int
) -> RegistrationSession | None:
    """
    Rebuild a payment-step session from the identity carried in the return URL.

    The URL is user-editable: organizations must carry a seat count
    that would have passed the details step.
    """
    user_id = params.get("userId")
    try:
        account_type = AccountType(params.get("accountType", ""))
    except ValueError:
        return None
    if not user_id:
        return None

    organization_id = params.get("organizationId") or None
    if account_type == AccountType.ORGANIZATION and organization_id is None:
        return None
    seats = RegistrationSession().seats
    if account_type == AccountType.ORGANIZATION:
        try:
            seats = int(params.get("seats", ""))
        except ValueError:
            return None
        if seats < min_organization_seats:
            return None

    return RegistrationSession(
        account_type=account_type,
        step=WizardStep.PAYMENT,
        seats=seats,
        temp_account=TempAccount(user_id=user_id, organization_id=organization_id),
        visited=frozenset(_STEP_ORDER),
    )


def _busy() -> Err:
    return Err(ErrorKind.BUSY, "Another request is still in progress")


def _invalid_transition(action: str, step: WizardStep) -> Err:
    return Err(ErrorKind.INVALID_TRANSITION, f"Cannot {action} from the {step.value} step")
