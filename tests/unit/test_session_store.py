"""
Unit tests for the in-memory session store and session helpers.

Tests verify:
- Store lifecycle (open, close wipes everything)
- AuthSession save / load / clear
- Pending credentials vault
- sign_out clears local state even when the backend fails
"""

from unittest.mock import AsyncMock

import pytest

from src.adapters.session import InMemorySessionStore
from src.domain.exceptions import GatewayError
from src.domain.models import PendingCredentials
from src.domain.ports import AccountType, ErrorKind
from src.domain.results import Err, Ok
from src.domain.session import (
    PENDING_CREDENTIALS_KEY,
    TOKEN_KEY,
    USER_KEY,
    PendingCredentialsVault,
    clear_auth,
    load_auth,
    save_auth,
    sign_out,
)
from tests.factories import make_auth


class TestInMemorySessionStore:
    """Tests for InMemorySessionStore."""

    def test_set_get_delete(self, store: InMemorySessionStore) -> None:
        store.set("k", "v")
        assert store.get("k") == "v"

        store.delete("k")
        assert store.get("k") is None

    def test_delete_missing_key_is_noop(self, store: InMemorySessionStore) -> None:
        store.delete("missing")

    def test_close_wipes_everything(self) -> None:
        """Nothing survives the end of the session."""
        session_store = InMemorySessionStore()
        session_store.open()
        session_store.set(TOKEN_KEY, "t")
        session_store.set(PENDING_CREDENTIALS_KEY, "{}")

        session_store.close()

        assert session_store.keys() == []
        assert not session_store.is_open

    def test_use_before_open_fails(self) -> None:
        """Reads on an unopened store fail loudly."""
        with pytest.raises(RuntimeError, match="not open"):
            InMemorySessionStore().get(TOKEN_KEY)


class TestAuthHelpers:
    """Tests for AuthSession persistence."""

    def test_save_then_load(self, store: InMemorySessionStore) -> None:
        auth = make_auth(role="super_admin")

        save_auth(store, auth)

        assert load_auth(store) == auth

    def test_load_without_token(self, store: InMemorySessionStore) -> None:
        assert load_auth(store) is None

    def test_load_with_unreadable_user(self, store: InMemorySessionStore) -> None:
        """A corrupt user record is treated as signed out."""
        store.set(TOKEN_KEY, "t")
        store.set(USER_KEY, "{oops")

        assert load_auth(store) is None

    def test_clear(self, store: InMemorySessionStore) -> None:
        save_auth(store, make_auth())

        clear_auth(store)

        assert store.keys() == []

    def test_repr_hides_token(self) -> None:
        assert "jwt-token" not in repr(make_auth())


class TestPendingCredentialsVault:
    """Tests for the credentials vault."""

    def test_store_load_release(self, store: InMemorySessionStore) -> None:
        vault = PendingCredentialsVault(store)
        credentials = PendingCredentials("user@example.com", "password123", AccountType.INDIVIDUAL)

        vault.store(credentials)
        assert vault.present
        assert vault.load() == credentials

        vault.release()
        assert not vault.present
        assert vault.load() is None

    def test_repr_hides_password(self) -> None:
        credentials = PendingCredentials("user@example.com", "password123", AccountType.INDIVIDUAL)

        assert "password123" not in repr(credentials)


class TestSignOut:
    """Tests for sign_out."""

    @pytest.mark.asyncio
    async def test_sign_out_clears_session(
        self, auth_gateway: AsyncMock, store: InMemorySessionStore
    ) -> None:
        save_auth(store, make_auth())

        result = await sign_out(auth_gateway, store)

        assert result == Ok(None)
        assert load_auth(store) is None
        auth_gateway.logout.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_backend_failure_still_clears_session(
        self, auth_gateway: AsyncMock, store: InMemorySessionStore
    ) -> None:
        """The local session is cleared even when logout fails remotely."""
        save_auth(store, make_auth())
        store.set(PENDING_CREDENTIALS_KEY, "{}")
        auth_gateway.logout.side_effect = GatewayError(
            "Could not reach the server", kind=ErrorKind.TRANSIENT
        )

        result = await sign_out(auth_gateway, store)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.TRANSIENT
        assert store.keys() == []
