"""
Domain models - Plain value objects for onboarding and subscriptions.

Dataclasses only; serialisation to JSON-friendly dicts (camelCase, as
the presentation layer expects) lives on each model.
"""

import json
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from .ports import (
    AccountType,
    EmailStatus,
    ReturnStatus,
    SubscriptionScope,
    WizardStep,
)

DEFAULT_ORGANIZATION_SEATS = 4


@dataclass(frozen=True)
class EmailCheck:
    """Outcome of an email availability check."""

    email: str
    status: EmailStatus
    redirect_to_payment: bool = False
    account_type: AccountType | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "status": self.status.value,
            "redirectToPayment": self.redirect_to_payment,
            "accountType": self.account_type.value if self.account_type else None,
        }


@dataclass(frozen=True)
class AccountDetails:
    """
    Details form submitted on the ``details`` step.

    For organizations ``name`` is the administrator's name and
    ``company_name`` and ``seats`` are required.
    """

    account_type: AccountType
    email: str
    name: str
    password: str
    confirm_password: str
    company_name: str = ""
    seats: int | None = None

    def __repr__(self) -> str:
        # Keeps passwords out of logs and tracebacks
        return (
            f"AccountDetails(account_type={self.account_type.value!r}, "
            f"email={self.email!r}, name={self.name!r}, seats={self.seats!r})"
        )


@dataclass(frozen=True)
class TempAccount:
    """Server-issued, not-yet-paid account identifiers."""

    user_id: str
    organization_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"tempUserId": self.user_id, "tempOrganizationId": self.organization_id}


@dataclass(frozen=True)
class CheckoutRequest:
    user_id: str
    account_type: AccountType
    seats: int
    success_url: str
    cancel_url: str
    organization_id: str | None = None


@dataclass(frozen=True)
class CheckoutRedirect:
    """Where the browser must navigate to complete payment."""

    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url}


@dataclass(frozen=True)
class VerifiedCheckout:
    """Backend answer to a checkout-session verification."""

    user: dict[str, Any] | None = None
    token: str | None = None

    @property
    def has_session(self) -> bool:
        return bool(self.token) and bool(self.user)


@dataclass(frozen=True)
class AuthSession:
    """Authenticated session: bearer token plus the user record."""

    token: str
    user: dict[str, Any]

    @property
    def role(self) -> str | None:
        return self.user.get("role")

    def __repr__(self) -> str:
        return f"AuthSession(user_id={self.user.get('_id') or self.user.get('id')!r}, role={self.role!r})"


@dataclass(frozen=True)
class PendingCredentials:
    """
    Credentials kept for the password-login fallback after checkout.

    Sensitive: serialised only into the session store and cleared as
    soon as the flow ends.
    """

    email: str
    password: str
    account_type: AccountType

    def to_json(self) -> str:
        return json.dumps(
            {"email": self.email, "password": self.password, "accountType": self.account_type.value}
        )

    @classmethod
    def from_json(cls, raw: str) -> "PendingCredentials":
        data = json.loads(raw)
        return cls(
            email=data["email"],
            password=data["password"],
            account_type=AccountType(data.get("accountType", AccountType.INDIVIDUAL.value)),
        )

    def __repr__(self) -> str:
        return f"PendingCredentials(email={self.email!r}, account_type={self.account_type.value!r})"


@dataclass(frozen=True)
class PaymentOutcome:
    """Session established after checkout, with the dashboard to land on."""

    auth: AuthSession
    redirect_to: str

    def to_dict(self) -> dict[str, Any]:
        return {"user": self.auth.user, "redirectTo": self.redirect_to}


@dataclass(frozen=True)
class ReturnOutcome:
    """Result of handling the checkout return trip."""

    status: ReturnStatus | None
    redirect_to: str
    payment: PaymentOutcome | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status.value if self.status else None,
            "redirectTo": self.redirect_to,
        }
        if self.payment is not None:
            data["user"] = self.payment.auth.user
        return data


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """Current subscription state of an organization or an individual user."""

    subject_id: str
    scope: SubscriptionScope
    status: str
    subscription_end_date: datetime | None = None
    seats_total: int | None = None
    cancel_at_period_end: bool = False

    def to_dict(self) -> dict[str, Any]:
        id_key = "organizationId" if self.scope == SubscriptionScope.ORGANIZATION else "userId"
        return {
            id_key: self.subject_id,
            "status": self.status,
            "subscriptionEndDate": (
                self.subscription_end_date.isoformat() if self.subscription_end_date else None
            ),
            "seatsTotal": self.seats_total,
            "cancelAtPeriodEnd": self.cancel_at_period_end,
        }


@dataclass(frozen=True)
class UpgradeQuote:
    """
    Flat, non-prorated seat upgrade pricing.

    The extra charge this month is ``additional_seats * unit_price``;
    the new recurring amount is ``(current_seats + additional_seats) * unit_price``.
    """

    current_seats: int
    additional_seats: int
    unit_price: Decimal

    @property
    def new_total_seats(self) -> int:
        return self.current_seats + self.additional_seats

    @property
    def extra_payment_this_month(self) -> Decimal:
        return self.additional_seats * self.unit_price

    @property
    def monthly_recurring(self) -> Decimal:
        return self.new_total_seats * self.unit_price

    def to_dict(self) -> dict[str, Any]:
        return {
            "currentSeats": self.current_seats,
            "additionalSeats": self.additional_seats,
            "newTotalSeats": self.new_total_seats,
            "unitPrice": str(self.unit_price),
            "extraPaymentThisMonth": str(self.extra_payment_this_month),
            "monthlyRecurring": str(self.monthly_recurring),
        }


@dataclass(frozen=True)
class UpgradeOutcome:
    quote: UpgradeQuote
    snapshot: SubscriptionSnapshot

    def to_dict(self) -> dict[str, Any]:
        return {"quote": self.quote.to_dict(), "subscription": self.snapshot.to_dict()}


@dataclass(frozen=True)
class CancellationOutcome:
    """
    Result of scheduling or undoing a cancellation.

    ``unchanged`` is True when the desired state already held
    (already scheduled, or nothing to undo).
    """

    snapshot: SubscriptionSnapshot
    unchanged: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"subscription": self.snapshot.to_dict(), "unchanged": self.unchanged}


@dataclass(frozen=True)
class RegistrationSession:
    """
    Ephemeral wizard state.

    Replaced (never mutated in place) by each step transition.
    """

    account_type: AccountType | None = None
    step: WizardStep = WizardStep.SELECT
    email: str = ""
    email_status: EmailStatus | None = None
    seats: int = DEFAULT_ORGANIZATION_SEATS
    temp_account: TempAccount | None = None
    visited: frozenset[WizardStep] = field(default_factory=lambda: frozenset({WizardStep.SELECT}))

    def advance(self, step: WizardStep, **changes: Any) -> "RegistrationSession":
        return replace(self, step=step, visited=self.visited | {step}, **changes)

    @property
    def checkout_seats(self) -> int:
        return self.seats if self.account_type == AccountType.ORGANIZATION else 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountType": self.account_type.value if self.account_type else None,
            "step": self.step.value,
            "email": self.email,
            "emailStatus": self.email_status.value if self.email_status else None,
            "seats": self.checkout_seats,
            "tempAccount": self.temp_account.to_dict() if self.temp_account else None,
        }
