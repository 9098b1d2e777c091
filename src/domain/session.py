"""
Session state - Typed access to the keys kept in the SessionStore.

The store holds exactly three things for this subsystem:
- ``token`` and ``user``: the AuthSession, durable until logout
- ``pendingRegistration``: PendingCredentials, sensitive and short-lived
"""

import json
import logging

from .exceptions import GatewayError
from .models import AuthSession, PendingCredentials
from .ports import AuthGateway, SessionStore
from .results import Err, Ok, Result

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"
PENDING_CREDENTIALS_KEY = "pendingRegistration"


def save_auth(store: SessionStore, auth: AuthSession) -> None:
    store.set(TOKEN_KEY, auth.token)
    store.set(USER_KEY, json.dumps(auth.user))


def load_auth(store: SessionStore) -> AuthSession | None:
    token = store.get(TOKEN_KEY)
    raw_user = store.get(USER_KEY)
    if not token or not raw_user:
        return None
    try:
        user = json.loads(raw_user)
    except json.JSONDecodeError:
        logger.warning("Discarding unreadable user record from session store")
        return None
    return AuthSession(token=token, user=user)


def clear_auth(store: SessionStore) -> None:
    store.delete(TOKEN_KEY)
    store.delete(USER_KEY)


class PendingCredentialsVault:
    """
    Scoped holder for PendingCredentials.

    Every exit path of the registration flow must end in ``release()``:
    successful login, a terminal failure, or teardown of the wizard.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def store(self, credentials: PendingCredentials) -> None:
        self._store.set(PENDING_CREDENTIALS_KEY, credentials.to_json())

    def load(self) -> PendingCredentials | None:
        raw = self._store.get(PENDING_CREDENTIALS_KEY)
        if raw is None:
            return None
        try:
            return PendingCredentials.from_json(raw)
        except (ValueError, KeyError):
            # Unusable blob is as good as absent; do not leave it behind
            logger.warning("Discarding malformed pending credentials")
            self.release()
            return None

    def release(self) -> None:
        self._store.delete(PENDING_CREDENTIALS_KEY)

    @property
    def present(self) -> bool:
        return self._store.get(PENDING_CREDENTIALS_KEY) is not None


async def sign_out(gateway: AuthGateway, store: SessionStore) -> Result[None]:
    """
    Log out on the backend and clear the local session.

    The local AuthSession is cleared whether or not the backend call
    succeeds; a failed call is still reported.
    """
    try:
        await gateway.logout()
    except GatewayError as exc:
        logger.info("Backend logout failed: %s", exc.message)
        return Err.from_exception(exc)
    finally:
        clear_auth(store)
        PendingCredentialsVault(store).release()
    return Ok(None)
