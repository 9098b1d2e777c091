"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An opened in-memory session store
- Gateway mocks (AsyncMock) with sensible defaults
- Wired wizard, resolver and lifecycle manager
"""

from unittest.mock import AsyncMock

import pytest

from src.adapters.session import InMemorySessionStore
from src.domain.models import EmailCheck, TempAccount, VerifiedCheckout
from src.domain.payment import PaymentOutcomeResolver
from src.domain.ports import EmailStatus
from src.domain.registration import (
    CheckoutSessionBroker,
    EmailAvailabilityChecker,
    TempAccountProvisioner,
)
from src.domain.subscription import SubscriptionLifecycleManager
from src.domain.wizard import RegistrationWizard
from tests.factories import RETURN_URL, SEAT_PRICE, make_auth, make_snapshot


@pytest.fixture
def store() -> InMemorySessionStore:
    """Opened session store, wiped at teardown."""
    session_store = InMemorySessionStore()
    session_store.open()
    yield session_store
    session_store.close()


@pytest.fixture
def registration_gateway() -> AsyncMock:
    """RegistrationGateway mock answering the happy path."""
    gateway = AsyncMock()
    gateway.check_email.side_effect = lambda email: EmailCheck(email=email, status=EmailStatus.NEW)
    gateway.create_temp_account.return_value = TempAccount(user_id="user-1")
    gateway.create_checkout_session.return_value = "https://checkout.example.com/c/pay/cs_123"
    return gateway


@pytest.fixture
def auth_gateway() -> AsyncMock:
    """AuthGateway mock whose verification returns a token and user."""
    gateway = AsyncMock()
    auth = make_auth()
    gateway.verify_checkout_session.return_value = VerifiedCheckout(user=auth.user, token=auth.token)
    gateway.login.return_value = auth
    gateway.logout.return_value = None
    return gateway


@pytest.fixture
def subscription_gateway() -> AsyncMock:
    gateway = AsyncMock()
    gateway.fetch_snapshot.return_value = make_snapshot()
    return gateway


@pytest.fixture
def resolver(auth_gateway: AsyncMock, store: InMemorySessionStore) -> PaymentOutcomeResolver:
    return PaymentOutcomeResolver(gateway=auth_gateway, store=store)


@pytest.fixture
def wizard(
    registration_gateway: AsyncMock,
    resolver: PaymentOutcomeResolver,
    store: InMemorySessionStore,
) -> RegistrationWizard:
    """Wizard wired to mocked gateways."""
    return RegistrationWizard(
        checker=EmailAvailabilityChecker(registration_gateway),
        provisioner=TempAccountProvisioner(registration_gateway),
        broker=CheckoutSessionBroker(registration_gateway),
        resolver=resolver,
        store=store,
        return_url=RETURN_URL,
    )


@pytest.fixture
def manager(subscription_gateway: AsyncMock) -> SubscriptionLifecycleManager:
    return SubscriptionLifecycleManager(gateway=subscription_gateway, unit_price=SEAT_PRICE)
