"""
API v1 routes.

Exposes the registration wizard, the checkout return trip and the
subscription lifecycle operations. Every endpoint answers with the
``{success, error, errorKind, data}`` envelope; the HTTP status code
follows the error kind.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api.dependencies import (
    get_auth_gateway,
    get_lifecycle_manager,
    get_session_store,
    get_wizard,
    require_auth,
)
from src.api.models import (
    AccountTypeRequest,
    BreadcrumbRequest,
    CancellationRequest,
    DetailsRequest,
    EmailRequest,
    Envelope,
    UpgradeQuoteRequest,
    UpgradeSeatsRequest,
)
from src.domain.models import AuthSession
from src.domain.ports import AuthGateway, ErrorKind, SessionStore, SubscriptionScope
from src.domain.results import Err, Ok, Result
from src.domain.session import sign_out
from src.domain.subscription import SubscriptionLifecycleManager
from src.domain.wizard import RegistrationWizard

router = APIRouter(tags=["v1"])

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.BUSY: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.ACCOUNT_EXISTS_PAID: status.HTTP_409_CONFLICT,
    ErrorKind.PAYMENT_VERIFICATION_FAILED: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.PAYMENT_VERIFIED_LOGIN_FAILED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.CHECKOUT_URL_MISSING: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TRANSIENT: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.BACKEND: status.HTTP_400_BAD_REQUEST,
}

SCOPE_BY_SEGMENT = {
    "organizations": SubscriptionScope.ORGANIZATION,
    "users": SubscriptionScope.USER,
}

_ENVELOPE_RESPONSES = {
    401: {"model": Envelope, "description": "Not signed in, or paid but not signed in"},
    409: {"model": Envelope, "description": "Invalid transition, busy, conflict or paid account"},
    422: {"model": Envelope, "description": "Validation error"},
    503: {"model": Envelope, "description": "Backend unreachable, retry the action"},
}


def respond(result: Result) -> JSONResponse:
    """Render a domain result as an envelope with the matching status code."""
    if isinstance(result, Ok):
        return JSONResponse(status_code=status.HTTP_200_OK, content=result.to_envelope())
    return JSONResponse(status_code=STATUS_BY_KIND[result.kind], content=result.to_envelope())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies as a validation envelope."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return respond(Err(ErrorKind.VALIDATION, f"{field}: {message}" if field else message))


def _scope(segment: str) -> SubscriptionScope | None:
    return SCOPE_BY_SEGMENT.get(segment)


def _unknown_scope(segment: str) -> JSONResponse:
    return respond(Err(ErrorKind.VALIDATION, f"Unknown subscription scope: {segment}"))


# -- registration ------------------------------------------------------


@router.get("/registration", response_model=Envelope, summary="Current wizard state")
async def registration_state(wizard: RegistrationWizard = Depends(get_wizard)) -> JSONResponse:
    return respond(Ok(wizard.session))


@router.post(
    "/registration/account-type",
    response_model=Envelope,
    responses=_ENVELOPE_RESPONSES,
    summary="Choose individual or organization",
)
async def select_account_type(
    request_data: AccountTypeRequest,
    wizard: RegistrationWizard = Depends(get_wizard),
) -> JSONResponse:
    return respond(wizard.select_account_type(request_data.account_type))


@router.post(
    "/registration/email",
    response_model=Envelope,
    responses=_ENVELOPE_RESPONSES,
    summary="Check email availability",
    description="Advances to the details step unless the email belongs to a paid account.",
)
async def check_email(
    request_data: EmailRequest,
    wizard: RegistrationWizard = Depends(get_wizard),
) -> JSONResponse:
    return respond(await wizard.check_email(request_data.email))


@router.post(
    "/registration/details",
    response_model=Envelope,
    responses=_ENVELOPE_RESPONSES,
    summary="Submit account details and create the temporary account",
)
async def submit_details(
    request_data: DetailsRequest,
    wizard: RegistrationWizard = Depends(get_wizard),
) -> JSONResponse:
    result = await wizard.submit_details(
        name=request_data.display_name,
        password=request_data.password,
        confirm_password=request_data.confirm_password,
        company_name=request_data.company_name,
        seats=request_data.seats,
    )
    return respond(result)


@router.post("/registration/back", response_model=Envelope, responses=_ENVELOPE_RESPONSES)
async def back_from_payment(wizard: RegistrationWizard = Depends(get_wizard)) -> JSONResponse:
    return respond(wizard.back())


@router.post("/registration/breadcrumb", response_model=Envelope, responses=_ENVELOPE_RESPONSES)
async def breadcrumb(
    request_data: BreadcrumbRequest,
    wizard: RegistrationWizard = Depends(get_wizard),
) -> JSONResponse:
    return respond(wizard.navigate_to(request_data.target))


@router.post(
    "/registration/checkout",
    response_model=Envelope,
    responses={**_ENVELOPE_RESPONSES, 502: {"model": Envelope, "description": "No checkout URL"}},
    summary="Create the hosted checkout session",
    description="On success ``data.url`` is where the browser must navigate.",
)
async def proceed_to_checkout(wizard: RegistrationWizard = Depends(get_wizard)) -> JSONResponse:
    return respond(await wizard.proceed())


@router.get(
    "/registration/return",
    response_model=Envelope,
    responses={**_ENVELOPE_RESPONSES, 402: {"model": Envelope, "description": "Verification failed"}},
    summary="Checkout return trip",
    description="Handles ``status=success&session_id=...`` and ``status=cancelled``. "
    "``data.redirectTo`` is the clean location to navigate to.",
)
async def checkout_return(
    request: Request,
    wizard: RegistrationWizard = Depends(get_wizard),
) -> JSONResponse:
    return respond(await wizard.handle_return(dict(request.query_params)))


# -- auth --------------------------------------------------------------


@router.post("/auth/logout", response_model=Envelope, responses=_ENVELOPE_RESPONSES)
async def logout(
    gateway: AuthGateway = Depends(get_auth_gateway),
    store: SessionStore = Depends(get_session_store),
) -> JSONResponse:
    return respond(await sign_out(gateway, store))


# -- subscription ------------------------------------------------------


@router.get(
    "/subscription/{scope}/{subject_id}",
    response_model=Envelope,
    responses=_ENVELOPE_RESPONSES,
    summary="Fresh subscription snapshot",
)
async def subscription_snapshot(
    scope: str,
    subject_id: str,
    _auth: AuthSession = Depends(require_auth),
    manager: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    resolved = _scope(scope)
    if resolved is None:
        return _unknown_scope(scope)
    return respond(await manager.snapshot(resolved, subject_id))


@router.post(
    "/subscription/organizations/{organization_id}/upgrade-quote",
    response_model=Envelope,
    responses=_ENVELOPE_RESPONSES,
    summary="Price a seat upgrade",
    description="Flat per-seat pricing, no proration, against the organization's current seats.",
)
async def upgrade_quote(
    organization_id: str,
    request_data: UpgradeQuoteRequest,
    _auth: AuthSession = Depends(require_auth),
    manager: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    return respond(await manager.preview_upgrade(organization_id, request_data.additional_seats))


@router.post(
    "/subscription/organizations/{organization_id}/upgrade-seats",
    response_model=Envelope,
    responses=_ENVELOPE_RESPONSES,
    summary="Add seats to an organization subscription",
)
async def upgrade_seats(
    organization_id: str,
    request_data: UpgradeSeatsRequest,
    _auth: AuthSession = Depends(require_auth),
    manager: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    return respond(await manager.upgrade_seats(organization_id, request_data.additional_seats))


@router.post(
    "/subscription/{scope}/{subject_id}/cancel-at-period-end",
    response_model=Envelope,
    responses=_ENVELOPE_RESPONSES,
    summary="Schedule cancellation at period end",
    description="Scheduling an already scheduled cancellation succeeds with ``unchanged: true``.",
)
async def schedule_cancellation(
    scope: str,
    subject_id: str,
    request_data: CancellationRequest | None = None,
    _auth: AuthSession = Depends(require_auth),
    manager: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    resolved = _scope(scope)
    if resolved is None:
        return _unknown_scope(scope)
    reason = request_data.reason if request_data else None
    return respond(await manager.schedule_cancellation(resolved, subject_id, reason))


@router.post(
    "/subscription/{scope}/{subject_id}/undo-cancel",
    response_model=Envelope,
    responses=_ENVELOPE_RESPONSES,
    summary="Undo a scheduled cancellation",
    description="Undoing when nothing is scheduled succeeds with ``unchanged: true``.",
)
async def undo_cancellation(
    scope: str,
    subject_id: str,
    _auth: AuthSession = Depends(require_auth),
    manager: SubscriptionLifecycleManager = Depends(get_lifecycle_manager),
) -> JSONResponse:
    resolved = _scope(scope)
    if resolved is None:
        return _unknown_scope(scope)
    return respond(await manager.undo_cancellation(resolved, subject_id))
