"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Business rules (password length, seat minimums) are enforced by the domain
so that they surface as ``validation`` results, not as 422s.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.domain.ports import AccountType


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AccountTypeRequest(_Request):
    """Request model for choosing the account type."""

    account_type: AccountType = Field(..., alias="accountType")


class EmailRequest(_Request):
    """Request model for the email availability check."""

    email: EmailStr


class DetailsRequest(_Request):
    """
    Request model for the details step.

    Individuals send ``name``; organizations send ``adminName``,
    ``companyName`` and ``seats``.
    """

    name: str = ""
    admin_name: str = Field("", alias="adminName")
    company_name: str = Field("", alias="companyName")
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")
    seats: int | None = None

    @property
    def display_name(self) -> str:
        return self.admin_name or self.name


class BreadcrumbRequest(_Request):
    target: str = Field(..., description="accountType, email or details")


class UpgradeQuoteRequest(_Request):
    """Seats to price; the current count is read from the organization."""

    additional_seats: int = Field(..., alias="additionalSeats")


class UpgradeSeatsRequest(_Request):
    additional_seats: int = Field(..., alias="additionalSeats")


class CancellationRequest(_Request):
    reason: str | None = Field(default=None, max_length=1000)


class Envelope(BaseModel):
    """Uniform result envelope returned by every endpoint."""

    success: bool
    error: str | None = None
    error_kind: str | None = Field(default=None, alias="errorKind")
    data: Any = None
