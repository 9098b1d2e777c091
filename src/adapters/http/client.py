"""
HTTP backend adapter - Implements the Registration, Auth and Subscription gateways.

One ``httpx.AsyncClient`` talks to the remote backend. Requests carry
the stored bearer token; failures are translated into ``GatewayError``
with a structured kind, which is the only place server error text is
inspected.

Error mapping:
- transport errors, timeouts, 5xx  -> TRANSIENT
- "already scheduled" text         -> CONFLICT / ALREADY_SCHEDULED
- "no cancellation is scheduled"   -> CONFLICT / NOT_SCHEDULED
- any other 409                    -> CONFLICT (no discriminant)
- any other 4xx                    -> BACKEND
"""

import logging
import re
from typing import Any

import httpx
from pydantic import ValidationError

from src.domain.exceptions import GatewayError
from src.domain.models import (
    AccountDetails,
    AuthSession,
    CheckoutRequest,
    EmailCheck,
    SubscriptionSnapshot,
    TempAccount,
    VerifiedCheckout,
)
from src.domain.ports import ConflictKind, ErrorKind, SessionStore, SubscriptionScope
from src.domain.session import TOKEN_KEY, load_auth, save_auth

from .payloads import (
    CheckoutSessionPayload,
    EmailCheckPayload,
    LoginPayload,
    SubscriptionRecordPayload,
    TempAccountPayload,
    VerifiedCheckoutPayload,
    checkout_session_body,
    temp_account_body,
)

logger = logging.getLogger(__name__)

_ALREADY_SCHEDULED = re.compile(r"already\s+scheduled", re.IGNORECASE)
_NOT_SCHEDULED = re.compile(r"no\s+cancellation\s+is\s+scheduled", re.IGNORECASE)

_SCOPE_SEGMENT = {
    SubscriptionScope.ORGANIZATION: "organizations",
    SubscriptionScope.USER: "users",
}

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
    "X-Requested-With": "XMLHttpRequest",
}


class BackendClient:
    """
    Implements RegistrationGateway, AuthGateway and SubscriptionGateway via httpx.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        base_url: str,
        store: SessionStore,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Backend root, e.g. ``http://localhost:3000``
            store: Session store the bearer token is read from
            timeout: Per-request timeout in seconds
            transport: Optional transport override (tests use MockTransport)
        """
        self._store = store
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers=DEFAULT_HEADERS,
            transport=transport,
            event_hooks={"request": [self._attach_token]},
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _attach_token(self, request: httpx.Request) -> None:
        token = self._store.get(TOKEN_KEY)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    # -- registration -------------------------------------------------

    async def check_email(self, email: str) -> EmailCheck:
        body = await self._request("POST", "/api/auth/check-email", json={"email": email})
        return self._parse(EmailCheckPayload, body).to_domain(email)

    async def create_temp_account(self, details: AccountDetails) -> TempAccount:
        body = await self._request(
            "POST", "/api/auth/create-temp-user", json=temp_account_body(details)
        )
        return self._parse(TempAccountPayload, body).to_domain()

    async def create_checkout_session(self, request: CheckoutRequest) -> str | None:
        body = await self._request(
            "POST", "/api/auth/create-checkout-session", json=checkout_session_body(request)
        )
        return self._parse(CheckoutSessionPayload, body or {}).url

    # -- auth ---------------------------------------------------------

    async def verify_checkout_session(self, session_id: str) -> VerifiedCheckout:
        body = await self._request("GET", f"/api/stripe/verify-session/{session_id}")
        return self._parse(VerifiedCheckoutPayload, body or {}).to_domain()

    async def login(self, email: str, password: str) -> AuthSession:
        body = await self._request(
            "POST", "/api/auth/login", json={"email": email, "password": password}
        )
        return self._parse(LoginPayload, body).to_domain()

    async def logout(self) -> None:
        await self._request("POST", "/api/auth/logout")

    # -- subscription -------------------------------------------------

    async def fetch_snapshot(
        self, scope: SubscriptionScope, subject_id: str
    ) -> SubscriptionSnapshot:
        """
        Read the current subscription record.

        Organizations are read from ``GET /api/company/details``. The
        backend has no read route for a user's own record, so user
        snapshots come from the signed-in user record, which every
        user-scoped mutation below keeps current.
        """
        if scope == SubscriptionScope.USER:
            return self._stored_user_snapshot(subject_id)

        body = await self._request("GET", "/api/company/details")
        record = _pick(body, "organization")
        snapshot = self._parse(SubscriptionRecordPayload, record).to_domain(scope)
        if snapshot.subject_id != subject_id:
            logger.warning(
                "Requested %s %s but backend returned %s", scope.value, subject_id, snapshot.subject_id
            )
        return snapshot

    async def upgrade_seats(
        self, organization_id: str, additional_seats: int
    ) -> SubscriptionSnapshot:
        body = await self._request(
            "POST",
            f"/api/subscription/organizations/{organization_id}/upgrade-seats",
            json={"additionalSeats": additional_seats},
        )
        record = _pick(body, "organization")
        return self._parse(SubscriptionRecordPayload, record).to_domain(SubscriptionScope.ORGANIZATION)

    async def schedule_cancellation(
        self, scope: SubscriptionScope, subject_id: str, reason: str | None = None
    ) -> SubscriptionSnapshot:
        payload = {"reason": reason} if reason else {}
        body = await self._request(
            "POST",
            f"/api/subscription/{_SCOPE_SEGMENT[scope]}/{subject_id}/cancel-at-period-end",
            json=payload,
        )
        return self._mutation_snapshot(scope, body)

    async def undo_cancellation(
        self, scope: SubscriptionScope, subject_id: str
    ) -> SubscriptionSnapshot:
        body = await self._request(
            "POST", f"/api/subscription/{_SCOPE_SEGMENT[scope]}/{subject_id}/undo-cancel"
        )
        return self._mutation_snapshot(scope, body)

    def _mutation_snapshot(self, scope: SubscriptionScope, body: Any) -> SubscriptionSnapshot:
        record = _pick(body, scope.value)
        snapshot = self._parse(SubscriptionRecordPayload, record).to_domain(scope)
        if scope == SubscriptionScope.USER and isinstance(record, dict):
            self._remember_user(record)
        return snapshot

    def _stored_user_snapshot(self, user_id: str) -> SubscriptionSnapshot:
        auth = load_auth(self._store)
        if auth is None or _record_id(auth.user) != user_id:
            raise GatewayError(
                "Subscription details are unavailable. Please log in again.", status_code=401
            )
        return self._parse(SubscriptionRecordPayload, auth.user).to_domain(SubscriptionScope.USER)

    def _remember_user(self, record: dict[str, Any]) -> None:
        auth = load_auth(self._store)
        if auth is None or _record_id(auth.user) != _record_id(record):
            return
        save_auth(self._store, AuthSession(token=auth.token, user={**auth.user, **record}))

    # -- plumbing -----------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        """
        Send a request and return the unwrapped JSON payload.

        Responses shaped ``{success, data, message}`` yield ``data``.

        Raises:
            GatewayError: On transport failure or a non-2xx response
        """
        logger.debug("%s %s", method, url)
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise GatewayError(
                "The server took too long to respond. Please try again.", kind=ErrorKind.TRANSIENT
            ) from exc
        except httpx.TransportError as exc:
            raise GatewayError(
                "Could not reach the server. Please check your connection.",
                kind=ErrorKind.TRANSIENT,
            ) from exc

        if response.is_error:
            raise _error_from_response(response)

        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError as exc:
            raise GatewayError("Unexpected response from server", status_code=response.status_code) from exc
        if isinstance(body, dict) and "data" in body and ("success" in body or "message" in body):
            return body["data"]
        return body

    @staticmethod
    def _parse(model: Any, body: Any) -> Any:
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            logger.warning("Malformed %s from backend: %s", model.__name__, exc.errors())
            raise GatewayError("Unexpected response from server") from exc


def _pick(body: Any, key: str) -> Any:
    """Return ``body[key]`` when the record is nested, else the body itself."""
    if isinstance(body, dict) and isinstance(body.get(key), dict):
        return body[key]
    return body


def _record_id(record: dict[str, Any]) -> str | None:
    value = record.get("_id") or record.get("id")
    return str(value) if value is not None else None


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"Request failed with status {response.status_code}"

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        error = error.get("message")
    if not error and isinstance(body, dict):
        error = body.get("message")
    return str(error) if error else f"Request failed with status {response.status_code}"


def _error_from_response(response: httpx.Response) -> GatewayError:
    message = _error_message(response)
    status = response.status_code

    conflict: ConflictKind | None = None
    if _ALREADY_SCHEDULED.search(message):
        conflict = ConflictKind.ALREADY_SCHEDULED
    elif _NOT_SCHEDULED.search(message):
        conflict = ConflictKind.NOT_SCHEDULED

    if conflict is not None or status == httpx.codes.CONFLICT:
        kind = ErrorKind.CONFLICT
    elif status >= 500:
        kind = ErrorKind.TRANSIENT
    else:
        kind = ErrorKind.BACKEND

    logger.debug("Backend error %s (%s): %s", status, kind.value, message)
    return GatewayError(message, kind=kind, conflict=conflict, status_code=status)
