"""
FastAPI dependencies - Dependency injection factories.

This module wires the domain orchestrators to their adapters and
provides Depends() factories for injecting them into routes. The
wizard, resolver and session store are long-lived: one browser
session per process, kept in ``app.state``.
"""

from fastapi import Depends, HTTPException, Request, status

from src.config.settings import Settings
from src.domain.models import AuthSession
from src.domain.payment import PaymentOutcomeResolver
from src.domain.ports import AuthGateway, RegistrationGateway, SessionStore, SubscriptionGateway
from src.domain.registration import (
    CheckoutSessionBroker,
    EmailAvailabilityChecker,
    TempAccountProvisioner,
)
from src.domain.session import load_auth
from src.domain.subscription import SubscriptionLifecycleManager
from src.domain.wizard import RegistrationWizard


def build_wizard(
    settings: Settings,
    gateway: RegistrationGateway,
    resolver: PaymentOutcomeResolver,
    store: SessionStore,
) -> RegistrationWizard:
    """Assemble the registration wizard and its collaborators."""
    return RegistrationWizard(
        checker=EmailAvailabilityChecker(gateway),
        provisioner=TempAccountProvisioner(
            gateway,
            min_password_length=settings.min_password_length,
            min_organization_seats=settings.min_organization_seats,
        ),
        broker=CheckoutSessionBroker(gateway),
        resolver=resolver,
        store=store,
        return_url=settings.return_url,
        registration_path=settings.registration_path,
    )


def build_lifecycle_manager(
    settings: Settings, gateway: SubscriptionGateway
) -> SubscriptionLifecycleManager:
    return SubscriptionLifecycleManager(gateway=gateway, unit_price=settings.seat_price_per_month)


def get_session_store(request: Request) -> SessionStore:
    """
    Get the session store from app state.

    The store is opened during app lifespan startup and closed on shutdown.
    """
    return request.app.state.session_store


def get_wizard(request: Request) -> RegistrationWizard:
    return request.app.state.wizard


def get_auth_gateway(request: Request) -> AuthGateway:
    return request.app.state.backend


def get_lifecycle_manager(request: Request) -> SubscriptionLifecycleManager:
    return request.app.state.lifecycle


def require_auth(store: SessionStore = Depends(get_session_store)) -> AuthSession:
    """
    Require an authenticated session.

    Subscription operations act on live accounts only; without a
    stored AuthSession they return 401.
    """
    auth = load_auth(store)
    if auth is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
    return auth
