"""
Domain layer - Pure onboarding and subscription logic with zero framework imports.

This package contains the registration wizard state machine, the
checkout return-trip recovery chain and the subscription lifecycle
rules. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .exceptions import GatewayError, OnboardingError, ValidationFailed
from .payment import PaymentOutcomeResolver, dashboard_for
from .ports import (
    AccountType,
    AuthGateway,
    ConflictKind,
    EmailStatus,
    ErrorKind,
    RegistrationGateway,
    ReturnStatus,
    SessionStore,
    SubscriptionGateway,
    SubscriptionScope,
    UserRole,
    WizardStep,
)
from .registration import CheckoutSessionBroker, EmailAvailabilityChecker, TempAccountProvisioner
from .results import Err, Ok, Result
from .subscription import SubscriptionLifecycleManager, quote_seat_upgrade
from .wizard import RegistrationWizard

__all__ = [
    "AccountType",
    "AuthGateway",
    "CheckoutSessionBroker",
    "ConflictKind",
    "EmailAvailabilityChecker",
    "EmailStatus",
    "Err",
    "ErrorKind",
    "GatewayError",
    "Ok",
    "OnboardingError",
    "PaymentOutcomeResolver",
    "RegistrationGateway",
    "RegistrationWizard",
    "Result",
    "ReturnStatus",
    "SessionStore",
    "SubscriptionGateway",
    "SubscriptionLifecycleManager",
    "SubscriptionScope",
    "TempAccountProvisioner",
    "UserRole",
    "ValidationFailed",
    "WizardStep",
    "dashboard_for",
    "quote_seat_upgrade",
]
