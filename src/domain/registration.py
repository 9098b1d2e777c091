"""
Registration domain services - pre-payment account provisioning.

Three thin collaborators the wizard drives, each converting gateway
failures into ``Err`` results at its boundary:

- EmailAvailabilityChecker: email -> EmailCheck
- TempAccountProvisioner: validated details -> TempAccount
- CheckoutSessionBroker: TempAccount + seats -> CheckoutRedirect
"""

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlencode

from .exceptions import GatewayError, ValidationFailed
from .models import (
    DEFAULT_ORGANIZATION_SEATS,
    AccountDetails,
    CheckoutRedirect,
    CheckoutRequest,
    EmailCheck,
    TempAccount,
)
from .ports import AccountType, ErrorKind, RegistrationGateway, ReturnStatus
from .results import Err, Ok, Result

logger = logging.getLogger(__name__)

# Placeholder the payment provider substitutes with the real session id
CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def validate_details(
    details: AccountDetails,
    *,
    min_password_length: int = 8,
    min_organization_seats: int = DEFAULT_ORGANIZATION_SEATS,
) -> None:
    """
    Validate the details form before anything reaches the network.

    Raises:
        ValidationFailed: With the first problem found
    """
    is_organization = details.account_type == AccountType.ORGANIZATION

    if is_organization and not details.company_name.strip():
        raise ValidationFailed("Organization name is required")
    if not details.name.strip():
        raise ValidationFailed("Admin name is required" if is_organization else "Full name is required")

    if len(details.password) < min_password_length:
        raise ValidationFailed(
            f"Password must be at least {min_password_length} characters long"
        )
    if details.password != details.confirm_password:
        raise ValidationFailed("Passwords do not match")

    if is_organization:
        seats = details.seats
        if isinstance(seats, bool) or not isinstance(seats, int) or seats < min_organization_seats:
            raise ValidationFailed(
                f"Minimum of {min_organization_seats} psychologist seats is required"
            )


def build_return_urls(
    base_url: str,
    account: TempAccount,
    account_type: AccountType,
    seats: int,
) -> tuple[str, str]:
    """
    Build the checkout success and cancel URLs.

    Both carry the identity needed to resume after the redirect
    (userId, organizationId, accountType, seats). The success URL
    ends with the provider's session-id placeholder, left unescaped.
    """
    identity = {"userId": account.user_id}
    if account.organization_id:
        identity["organizationId"] = account.organization_id
    identity["accountType"] = account_type.value
    identity["seats"] = str(seats)

    success_query = urlencode({"status": ReturnStatus.SUCCESS.value, **identity})
    cancel_query = urlencode({"status": ReturnStatus.CANCELLED.value, **identity})
    success_url = f"{base_url}?{success_query}&session_id={CHECKOUT_SESSION_PLACEHOLDER}"
    cancel_url = f"{base_url}?{cancel_query}"
    return success_url, cancel_url


@dataclass
class EmailAvailabilityChecker:
    """Resolve an email address to its account status."""

    gateway: RegistrationGateway

    async def check(self, email: str) -> Result[EmailCheck]:
        normalized = normalize_email(email)
        if not _EMAIL_PATTERN.match(normalized):
            return Err(ErrorKind.VALIDATION, "Please enter a valid email address")
        try:
            result = await self.gateway.check_email(normalized)
        except GatewayError as exc:
            logger.info("Email check failed: %s", exc.message)
            return Err.from_exception(exc)
        return Ok(result)


@dataclass
class TempAccountProvisioner:
    """Create the not-yet-paid account records after local validation."""

    gateway: RegistrationGateway
    min_password_length: int = 8
    min_organization_seats: int = DEFAULT_ORGANIZATION_SEATS

    async def create(self, details: AccountDetails) -> Result[TempAccount]:
        try:
            validate_details(
                details,
                min_password_length=self.min_password_length,
                min_organization_seats=self.min_organization_seats,
            )
        except ValidationFailed as exc:
            return Err.from_exception(exc)

        try:
            account = await self.gateway.create_temp_account(details)
        except GatewayError as exc:
            logger.info("Temp account creation failed for %s: %s", details.email, exc.message)
            return Err.from_exception(exc)
        return Ok(account)


@dataclass
class CheckoutSessionBroker:
    """Request a hosted checkout session for a temp account."""

    gateway: RegistrationGateway

    async def create_session(
        self,
        account: TempAccount,
        account_type: AccountType,
        seats: int,
        return_base_url: str,
    ) -> Result[CheckoutRedirect]:
        success_url, cancel_url = build_return_urls(return_base_url, account, account_type, seats)
        request = CheckoutRequest(
            user_id=account.user_id,
            organization_id=account.organization_id,
            account_type=account_type,
            seats=seats,
            success_url=success_url,
            cancel_url=cancel_url,
        )
        try:
            url = await self.gateway.create_checkout_session(request)
        except GatewayError as exc:
            return Err.from_exception(exc)

        if not url:
            # Reported distinctly from transport failures: the backend answered but gave no URL
            logger.error("Checkout session for user %s returned no URL", account.user_id)
            return Err(
                ErrorKind.CHECKOUT_URL_MISSING,
                "Checkout URL not received from server. Please try again.",
            )
        return Ok(CheckoutRedirect(url=url))
