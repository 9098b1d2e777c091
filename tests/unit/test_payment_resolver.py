"""
Unit tests for PaymentOutcomeResolver.

Tests verify:
- Token path adopts the verified session
- Password-login fallback and its failure modes
- Dashboard routing by role
- Resolution runs once per checkout session id
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.adapters.session import InMemorySessionStore
from src.domain.exceptions import GatewayError
from src.domain.models import PendingCredentials, VerifiedCheckout
from src.domain.payment import ALREADY_PROCESSED_MESSAGE, PaymentOutcomeResolver, dashboard_for
from src.domain.ports import AccountType, ErrorKind
from src.domain.results import Err, Ok
from src.domain.session import (
    PENDING_CREDENTIALS_KEY,
    PendingCredentialsVault,
    load_auth,
    sign_out,
)
from tests.factories import make_auth


@pytest.fixture
def vault(store: InMemorySessionStore) -> PendingCredentialsVault:
    """Vault pre-loaded with an individual's credentials."""
    pending = PendingCredentialsVault(store)
    pending.store(
        PendingCredentials(
            email="user@example.com", password="password123", account_type=AccountType.INDIVIDUAL
        )
    )
    return pending


class TestDashboardRouting:
    """Tests for role-based dashboard routing."""

    @pytest.mark.parametrize(
        ("role", "path"),
        [
            ("super_admin", "/super/dashboard"),
            ("company_admin", "/company/dashboard"),
            ("psychologist", "/psychologist/dashboard"),
            (None, "/psychologist/dashboard"),
            ("unknown", "/psychologist/dashboard"),
        ],
    )
    def test_dashboard_for_role(self, role: str | None, path: str) -> None:
        """Each role lands on its own dashboard."""
        assert dashboard_for(role) == path


class TestTokenPath:
    """Verification returned token and user."""

    @pytest.mark.asyncio
    async def test_adopts_session_and_releases_credentials(
        self,
        resolver: PaymentOutcomeResolver,
        auth_gateway: AsyncMock,
        store: InMemorySessionStore,
        vault: PendingCredentialsVault,
    ) -> None:
        """Credentials are never consulted on the token path."""
        admin = make_auth(role="company_admin", token="admin-token")
        auth_gateway.verify_checkout_session.return_value = VerifiedCheckout(
            user=admin.user, token=admin.token
        )

        result = await resolver.resolve("cs_1")

        assert isinstance(result, Ok)
        assert result.value.redirect_to == "/company/dashboard"
        assert load_auth(store).token == "admin-token"
        assert not vault.present
        auth_gateway.login.assert_not_awaited()


class TestLoginFallback:
    """Verification succeeded without a token."""

    @pytest.mark.asyncio
    async def test_fallback_login_success(
        self,
        resolver: PaymentOutcomeResolver,
        auth_gateway: AsyncMock,
        store: InMemorySessionStore,
        vault: PendingCredentialsVault,
    ) -> None:
        """Stored credentials establish the session and are then released."""
        auth_gateway.verify_checkout_session.return_value = VerifiedCheckout()

        result = await resolver.resolve("cs_1")

        assert isinstance(result, Ok)
        auth_gateway.login.assert_awaited_once_with("user@example.com", "password123")
        assert load_auth(store) is not None
        assert not vault.present

    @pytest.mark.asyncio
    async def test_fallback_login_failure_keeps_credentials(
        self,
        resolver: PaymentOutcomeResolver,
        auth_gateway: AsyncMock,
        store: InMemorySessionStore,
        vault: PendingCredentialsVault,
    ) -> None:
        """A rejected login is reported and no session is stored."""
        auth_gateway.verify_checkout_session.return_value = VerifiedCheckout()
        auth_gateway.login.side_effect = GatewayError("Invalid credentials", status_code=401)

        result = await resolver.resolve("cs_1")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.PAYMENT_VERIFIED_LOGIN_FAILED
        assert "Invalid credentials" in result.message
        assert load_auth(store) is None
        assert vault.present

    @pytest.mark.asyncio
    async def test_no_credentials_means_paid_but_signed_out(
        self, resolver: PaymentOutcomeResolver, auth_gateway: AsyncMock
    ) -> None:
        """Without credentials the visitor must log in manually."""
        auth_gateway.verify_checkout_session.return_value = VerifiedCheckout()

        result = await resolver.resolve("cs_1")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.PAYMENT_VERIFIED_LOGIN_FAILED
        assert "payment was successful" in result.message
        auth_gateway.login.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_credentials_are_discarded(
        self,
        resolver: PaymentOutcomeResolver,
        auth_gateway: AsyncMock,
        store: InMemorySessionStore,
    ) -> None:
        store.set(PENDING_CREDENTIALS_KEY, "{not json")
        auth_gateway.verify_checkout_session.return_value = VerifiedCheckout()

        result = await resolver.resolve("cs_1")

        assert isinstance(result, Err)
        assert store.get(PENDING_CREDENTIALS_KEY) is None


class TestVerificationFailure:
    """The checkout session could not be verified."""

    @pytest.mark.asyncio
    async def test_verification_failure_is_reported(
        self,
        resolver: PaymentOutcomeResolver,
        auth_gateway: AsyncMock,
        vault: PendingCredentialsVault,
    ) -> None:
        """No login is attempted after a failed verification."""
        auth_gateway.verify_checkout_session.side_effect = GatewayError(
            "Invalid session", status_code=400
        )

        result = await resolver.resolve("cs_bad")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.PAYMENT_VERIFICATION_FAILED
        assert result.message == "Invalid session"
        auth_gateway.login.assert_not_awaited()
        assert vault.present


class TestResolveOnce:
    """Resolution runs at most once per session id."""

    @pytest.mark.asyncio
    async def test_repeated_resolve_reuses_outcome(
        self, resolver: PaymentOutcomeResolver, auth_gateway: AsyncMock
    ) -> None:
        """A second resolve does not verify again."""
        first = await resolver.resolve("cs_1")
        second = await resolver.resolve("cs_1")

        assert first == second
        auth_gateway.verify_checkout_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_replay_after_logout_asks_to_log_in(
        self, resolver: PaymentOutcomeResolver, auth_gateway: AsyncMock, store: InMemorySessionStore
    ) -> None:
        """Revisiting the return URL signed out does not hand back the old dashboard."""
        first = await resolver.resolve("cs_1")
        await sign_out(auth_gateway, store)

        replay = await resolver.resolve("cs_1")

        assert isinstance(first, Ok)
        assert isinstance(replay, Err)
        assert replay.kind == ErrorKind.PAYMENT_VERIFIED_LOGIN_FAILED
        assert replay.message == ALREADY_PROCESSED_MESSAGE
        assert load_auth(store) is None
        auth_gateway.verify_checkout_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_replay_while_signed_in_reuses_outcome(
        self, resolver: PaymentOutcomeResolver, auth_gateway: AsyncMock, store: InMemorySessionStore
    ) -> None:
        first = await resolver.resolve("cs_1")

        replay = await resolver.resolve("cs_1")

        assert replay == first
        assert load_auth(store) is not None

    @pytest.mark.asyncio
    async def test_concurrent_resolve_shares_one_verification(
        self, resolver: PaymentOutcomeResolver, auth_gateway: AsyncMock
    ) -> None:
        """Overlapping calls wait for the same in-flight resolution."""
        release = asyncio.Event()
        auth = make_auth()

        async def slow_verify(session_id: str) -> VerifiedCheckout:
            await release.wait()
            return VerifiedCheckout(user=auth.user, token=auth.token)

        auth_gateway.verify_checkout_session.side_effect = slow_verify

        first = asyncio.ensure_future(resolver.resolve("cs_1"))
        second = asyncio.ensure_future(resolver.resolve("cs_1"))
        await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(first, second)

        assert results[0] == results[1]
        assert auth_gateway.verify_checkout_session.await_count == 1

    @pytest.mark.asyncio
    async def test_distinct_sessions_resolve_independently(
        self, resolver: PaymentOutcomeResolver, auth_gateway: AsyncMock
    ) -> None:
        await resolver.resolve("cs_1")
        await resolver.resolve("cs_2")

        assert auth_gateway.verify_checkout_session.await_count == 2
