"""
Unit tests for API request/response models.

Tests Pydantic model validation for the registration and subscription endpoints.
"""

import pytest
from pydantic import ValidationError

from src.api.models import (
    AccountTypeRequest,
    CancellationRequest,
    DetailsRequest,
    EmailRequest,
    Envelope,
    UpgradeQuoteRequest,
)
from src.domain.ports import AccountType


class TestAccountTypeRequest:
    """Tests for AccountTypeRequest model."""

    def test_camel_case_alias(self) -> None:
        """accountType is accepted as sent by the browser."""
        request = AccountTypeRequest.model_validate({"accountType": "organization"})
        assert request.account_type == AccountType.ORGANIZATION

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AccountTypeRequest.model_validate({"accountType": "team"})


class TestEmailRequest:
    """Tests for EmailRequest model."""

    def test_invalid_email_rejected(self) -> None:
        """Invalid email format raises ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            EmailRequest(email="not-an-email")
        assert "email" in str(exc_info.value)

    def test_valid_email(self) -> None:
        assert EmailRequest(email="user@example.com").email == "user@example.com"


class TestDetailsRequest:
    """Tests for DetailsRequest model."""

    def test_organization_fields(self) -> None:
        """Organizations send adminName, companyName and seats."""
        request = DetailsRequest.model_validate(
            {
                "adminName": "Ada Admin",
                "companyName": "Clinic",
                "password": "password123",
                "confirmPassword": "password123",
                "seats": 5,
            }
        )
        assert request.display_name == "Ada Admin"
        assert request.company_name == "Clinic"
        assert request.seats == 5

    def test_individual_name(self) -> None:
        request = DetailsRequest.model_validate(
            {"name": "Ivy", "password": "short", "confirmPassword": "short"}
        )
        assert request.display_name == "Ivy"

    def test_short_password_is_left_to_the_domain(self) -> None:
        """Business rules are not enforced at the model layer."""
        request = DetailsRequest.model_validate(
            {"name": "Ivy", "password": "x", "confirmPassword": "y"}
        )
        assert request.password == "x"

    def test_confirm_password_required(self) -> None:
        with pytest.raises(ValidationError):
            DetailsRequest.model_validate({"name": "Ivy", "password": "password123"})


class TestSubscriptionRequests:
    """Tests for the subscription request models."""

    def test_quote_takes_only_additional_seats(self) -> None:
        """A client-supplied current seat count is not part of the request."""
        request = UpgradeQuoteRequest.model_validate({"currentSeats": 1, "additionalSeats": 2})

        assert request.additional_seats == 2
        assert not hasattr(request, "current_seats")

    def test_quote_requires_additional_seats(self) -> None:
        with pytest.raises(ValidationError):
            UpgradeQuoteRequest.model_validate({})

    def test_reason_length_capped(self) -> None:
        with pytest.raises(ValidationError):
            CancellationRequest(reason="x" * 1001)

    def test_reason_optional(self) -> None:
        assert CancellationRequest().reason is None


class TestEnvelope:
    """Tests for the Envelope model."""

    def test_envelope_from_error(self) -> None:
        envelope = Envelope.model_validate(
            {"success": False, "error": "Busy", "errorKind": "busy", "data": None}
        )
        assert envelope.error_kind == "busy"
        assert not envelope.success
