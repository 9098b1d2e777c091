"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the vocabulary (enums) and the interfaces (ports)
the onboarding domain requires from infrastructure. Adapters implement
these protocols by structural subtyping.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import (
        AccountDetails,
        AuthSession,
        CheckoutRequest,
        EmailCheck,
        SubscriptionSnapshot,
        TempAccount,
        VerifiedCheckout,
    )


class AccountType(str, Enum):
    """Kind of account being registered."""

    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"


class WizardStep(str, Enum):
    """
    Registration wizard steps.

    Forward path:
        SELECT -> EMAIL -> DETAILS -> PAYMENT -> (external checkout)

    PROCESSING_PAYMENT is an overlay entered only from the checkout
    return trip, never from a wizard button.
    """

    SELECT = "select"
    EMAIL = "email"
    DETAILS = "details"
    PAYMENT = "payment"
    PROCESSING_PAYMENT = "processingPayment"


class EmailStatus(str, Enum):
    """Account status reported for an email address."""

    NEW = "new"
    UNPAID_EXISTING = "unpaid_existing"
    EXISTS_PAID = "exists_paid"


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    COMPANY_ADMIN = "company_admin"
    PSYCHOLOGIST = "psychologist"


class SubscriptionScope(str, Enum):
    """Which record a subscription operation targets."""

    ORGANIZATION = "organization"
    USER = "user"


class ReturnStatus(str, Enum):
    """Value of the ``status`` query parameter on the checkout return trip."""

    SUCCESS = "success"
    CANCELLED = "cancelled"


class ErrorKind(str, Enum):
    """
    Failure classes surfaced by orchestration calls.

    - VALIDATION: rejected locally, never reached the network
    - INVALID_TRANSITION: operation not allowed from the current step
    - BUSY: another step-mutating call is still outstanding
    - CONFLICT: server conflict, see ConflictKind
    - ACCOUNT_EXISTS_PAID: email already belongs to a paid account
    - PAYMENT_VERIFICATION_FAILED: checkout session could not be verified
    - PAYMENT_VERIFIED_LOGIN_FAILED: paid, but no session could be established
    - CHECKOUT_URL_MISSING: checkout session created without a redirect URL
    - TRANSIENT: network, timeout or 5xx; retry by repeating the action
    - BACKEND: any other error reported by the backend
    """

    VALIDATION = "validation"
    INVALID_TRANSITION = "invalid_transition"
    BUSY = "busy"
    CONFLICT = "conflict"
    ACCOUNT_EXISTS_PAID = "account_exists_paid"
    PAYMENT_VERIFICATION_FAILED = "payment_verification_failed"
    PAYMENT_VERIFIED_LOGIN_FAILED = "payment_verified_login_failed"
    CHECKOUT_URL_MISSING = "checkout_url_missing"
    TRANSIENT = "transient"
    BACKEND = "backend"


class ConflictKind(str, Enum):
    """Structured discriminant for server conflicts on cancellation."""

    ALREADY_SCHEDULED = "already_scheduled"
    NOT_SCHEDULED = "not_scheduled"


class SessionStore(Protocol):
    """
    Port interface for session-scoped key/value persistence.

    Values are strings (JSON for structured data). Nothing stored here
    may outlive ``close()``.
    """

    def open(self) -> None: ...

    def close(self) -> None: ...

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class RegistrationGateway(Protocol):
    """Port interface for the pre-payment registration endpoints."""

    async def check_email(self, email: str) -> EmailCheck:
        """
        Report the account status of an email address.

        Raises:
            GatewayError: On transport or backend failure
        """
        ...

    async def create_temp_account(self, details: AccountDetails) -> TempAccount:
        """
        Create a not-yet-paid user (and organization) record.

        Raises:
            GatewayError: On transport or backend failure
        """
        ...

    async def create_checkout_session(self, request: CheckoutRequest) -> str | None:
        """
        Request a hosted checkout session.

        Returns:
            The checkout URL, or None when the backend returned none

        Raises:
            GatewayError: On transport or backend failure
        """
        ...


class AuthGateway(Protocol):
    """Port interface for session establishment."""

    async def verify_checkout_session(self, session_id: str) -> VerifiedCheckout: ...

    async def login(self, email: str, password: str) -> AuthSession: ...

    async def logout(self) -> None: ...


class SubscriptionGateway(Protocol):
    """Port interface for live subscription records."""

    async def fetch_snapshot(
        self, scope: SubscriptionScope, subject_id: str
    ) -> SubscriptionSnapshot: ...

    async def upgrade_seats(
        self, organization_id: str, additional_seats: int
    ) -> SubscriptionSnapshot: ...

    async def schedule_cancellation(
        self, scope: SubscriptionScope, subject_id: str, reason: str | None = None
    ) -> SubscriptionSnapshot: ...

    async def undo_cancellation(
        self, scope: SubscriptionScope, subject_id: str
    ) -> SubscriptionSnapshot: ...
