"""
Backend payload models.

Pydantic models for parsing backend responses and building request
bodies. They translate the backend's mixed camelCase / snake_case
records into domain values and never leak past the adapter.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from src.domain.models import (
    AccountDetails,
    AuthSession,
    CheckoutRequest,
    EmailCheck,
    SubscriptionSnapshot,
    TempAccount,
    VerifiedCheckout,
)
from src.domain.ports import AccountType, EmailStatus, SubscriptionScope

# Older backends answer "available" for an unknown email
_EMAIL_STATUS_ALIASES = {"available": EmailStatus.NEW.value}


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class EmailCheckPayload(_Payload):
    status: EmailStatus
    redirect_to_payment: bool = Field(
        default=False, validation_alias=AliasChoices("redirectToPayment", "redirect_to_payment")
    )
    account_type: AccountType | None = Field(default=None, alias="accountType")

    @field_validator("status", mode="before")
    @classmethod
    def _alias_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _EMAIL_STATUS_ALIASES.get(value, value)
        return value

    def to_domain(self, email: str) -> EmailCheck:
        return EmailCheck(
            email=email,
            status=self.status,
            redirect_to_payment=self.redirect_to_payment,
            account_type=self.account_type,
        )


class RecordRef(_Payload):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))


class TempAccountPayload(_Payload):
    user: RecordRef = Field(validation_alias=AliasChoices("user", "tempUser"))
    organization: RecordRef | None = Field(
        default=None, validation_alias=AliasChoices("organization", "tempOrganization")
    )

    def to_domain(self) -> TempAccount:
        return TempAccount(
            user_id=self.user.id,
            organization_id=self.organization.id if self.organization else None,
        )


class CheckoutSessionPayload(_Payload):
    url: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")


class VerifiedCheckoutPayload(_Payload):
    user: dict[str, Any] | None = None
    token: str | None = None

    def to_domain(self) -> VerifiedCheckout:
        return VerifiedCheckout(user=self.user or None, token=self.token or None)


class LoginPayload(_Payload):
    token: str
    user: dict[str, Any]

    def to_domain(self) -> AuthSession:
        return AuthSession(token=self.token, user=self.user)


class SubscriptionRecordPayload(_Payload):
    """Organization or user record as returned by the subscription endpoints."""

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    subscription_status: str = Field(
        default="incomplete", validation_alias=AliasChoices("subscription_status", "status")
    )
    subscription_end_date: datetime | None = Field(
        default=None, validation_alias=AliasChoices("subscriptionEndDate", "subscription_end_date")
    )
    seats_limit: int | None = None
    psychologist_seats: int | None = Field(
        default=None, validation_alias=AliasChoices("psychologistSeats", "psychologist_seats")
    )
    cancel_at_period_end: bool = False

    @field_validator("cancel_at_period_end", mode="before")
    @classmethod
    def _none_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    @property
    def seats_total(self) -> int | None:
        counts = [n for n in (self.seats_limit, self.psychologist_seats) if n is not None]
        return max(counts) if counts else None

    def to_domain(self, scope: SubscriptionScope) -> SubscriptionSnapshot:
        return SubscriptionSnapshot(
            subject_id=self.id,
            scope=scope,
            status=self.subscription_status,
            subscription_end_date=self.subscription_end_date,
            seats_total=self.seats_total if scope == SubscriptionScope.ORGANIZATION else None,
            cancel_at_period_end=self.cancel_at_period_end,
        )


def temp_account_body(details: AccountDetails) -> dict[str, Any]:
    body: dict[str, Any] = {
        "accountType": details.account_type.value,
        "email": details.email,
        "password": details.password,
    }
    if details.account_type == AccountType.ORGANIZATION:
        body["adminName"] = details.name
        body["companyName"] = details.company_name
        body["seats"] = details.seats
    else:
        body["name"] = details.name
    return body


def checkout_session_body(request: CheckoutRequest) -> dict[str, Any]:
    body: dict[str, Any] = {
        "userId": request.user_id,
        "accountType": request.account_type.value,
        "seats": request.seats,
        "successUrl": request.success_url,
        "cancelUrl": request.cancel_url,
    }
    if request.organization_id:
        body["organizationId"] = request.organization_id
    return body
