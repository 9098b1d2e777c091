"""
Subscription lifecycle - seat upgrades and cancel-at-period-end.

All operations act on live (paid) subscriptions, either an
organization's or an individual user's; the semantics are the same
and only the identifier differs.

Idempotency rules:
- Scheduling a cancellation that is already scheduled is success:
  the desired end state (cancel_at_period_end=True) already holds.
- Undoing when nothing is scheduled is a benign no-op.

Both are recognised from the gateway's ConflictKind, never from
message text. Upgrades read the freshest snapshot before acting;
every successful mutation is followed by a refetch.
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal

from .exceptions import GatewayError, ValidationFailed
from .models import CancellationOutcome, SubscriptionSnapshot, UpgradeOutcome, UpgradeQuote
from .ports import ConflictKind, ErrorKind, SubscriptionGateway, SubscriptionScope
from .results import Err, Ok, Result

logger = logging.getLogger(__name__)


def quote_seat_upgrade(current_seats: int, additional_seats: int, unit_price: Decimal) -> UpgradeQuote:
    """
    Price a seat upgrade: flat per seat, no proration.

    Raises:
        ValidationFailed: If additional_seats is not a positive integer
    """
    if isinstance(additional_seats, bool) or not isinstance(additional_seats, int):
        raise ValidationFailed("Additional seats must be a positive integer")
    if additional_seats < 1:
        raise ValidationFailed("Please add at least 1 seat")
    return UpgradeQuote(
        current_seats=max(current_seats, 0),
        additional_seats=additional_seats,
        unit_price=unit_price,
    )


@dataclass
class SubscriptionLifecycleManager:
    """Post-login subscription operations."""

    gateway: SubscriptionGateway
    unit_price: Decimal

    def quote_upgrade(self, current_seats: int, additional_seats: int) -> Result[UpgradeQuote]:
        try:
            return Ok(quote_seat_upgrade(current_seats, additional_seats, self.unit_price))
        except ValidationFailed as exc:
            return Err.from_exception(exc)

    async def preview_upgrade(self, organization_id: str, additional_seats: int) -> Result[UpgradeQuote]:
        """Price an upgrade against the organization's current seat count."""
        if not organization_id:
            return Err(ErrorKind.VALIDATION, "Organization ID is required")
        try:
            quote_seat_upgrade(0, additional_seats, self.unit_price)
        except ValidationFailed as exc:
            return Err.from_exception(exc)
        try:
            current = await self.gateway.fetch_snapshot(SubscriptionScope.ORGANIZATION, organization_id)
        except GatewayError as exc:
            return Err.from_exception(exc)
        return self.quote_upgrade(current.seats_total or 0, additional_seats)

    async def snapshot(self, scope: SubscriptionScope, subject_id: str) -> Result[SubscriptionSnapshot]:
        try:
            return Ok(await self.gateway.fetch_snapshot(scope, subject_id))
        except GatewayError as exc:
            return Err.from_exception(exc)

    async def upgrade_seats(self, organization_id: str, additional_seats: int) -> Result[UpgradeOutcome]:
        """
        Add seats to an organization subscription.

        New seats are usable at once and the billing date is unchanged.
        The quote is computed from a snapshot fetched just before the
        request, and the returned snapshot is fetched just after it.
        """
        if not organization_id:
            return Err(ErrorKind.VALIDATION, "Organization ID is required")
        try:
            quote_seat_upgrade(0, additional_seats, self.unit_price)
        except ValidationFailed as exc:
            return Err.from_exception(exc)

        scope = SubscriptionScope.ORGANIZATION
        try:
            current = await self.gateway.fetch_snapshot(scope, organization_id)
            quote = quote_seat_upgrade(current.seats_total or 0, additional_seats, self.unit_price)
            updated = await self.gateway.upgrade_seats(organization_id, additional_seats)
        except GatewayError as exc:
            logger.info("Seat upgrade for organization %s failed: %s", organization_id, exc.message)
            return Err.from_exception(exc)

        refreshed = await self._refetch(scope, organization_id, fallback=updated)
        logger.info(
            "Organization %s upgraded by %d seats to %d",
            organization_id,
            additional_seats,
            quote.new_total_seats,
        )
        return Ok(UpgradeOutcome(quote=quote, snapshot=refreshed))

    async def schedule_cancellation(
        self, scope: SubscriptionScope, subject_id: str, reason: str | None = None
    ) -> Result[CancellationOutcome]:
        if not subject_id:
            return Err(ErrorKind.VALIDATION, _missing_id_message(scope))
        reason = (reason or "").strip() or None

        try:
            updated = await self.gateway.schedule_cancellation(scope, subject_id, reason)
        except GatewayError as exc:
            if exc.conflict != ConflictKind.ALREADY_SCHEDULED:
                return Err.from_exception(exc)
            logger.info("Cancellation already scheduled for %s %s", scope.value, subject_id)
            return await self._settled(scope, subject_id, cancel_at_period_end=True)

        refreshed = await self._refetch(scope, subject_id, fallback=updated)
        return Ok(CancellationOutcome(snapshot=refreshed))

    async def undo_cancellation(
        self, scope: SubscriptionScope, subject_id: str
    ) -> Result[CancellationOutcome]:
        """
        Undo a scheduled cancellation.

        The backend is asked directly; its "nothing scheduled" answer
        means the desired state already holds.
        """
        if not subject_id:
            return Err(ErrorKind.VALIDATION, _missing_id_message(scope))

        try:
            updated = await self.gateway.undo_cancellation(scope, subject_id)
        except GatewayError as exc:
            if exc.conflict != ConflictKind.NOT_SCHEDULED:
                return Err.from_exception(exc)
            logger.info("No cancellation scheduled for %s %s", scope.value, subject_id)
            return await self._settled(scope, subject_id, cancel_at_period_end=False)

        refreshed = await self._refetch(scope, subject_id, fallback=updated)
        return Ok(CancellationOutcome(snapshot=refreshed))

    async def schedule_organization_cancellation(
        self, organization_id: str, reason: str | None = None
    ) -> Result[CancellationOutcome]:
        return await self.schedule_cancellation(SubscriptionScope.ORGANIZATION, organization_id, reason)

    async def schedule_user_cancellation(
        self, user_id: str, reason: str | None = None
    ) -> Result[CancellationOutcome]:
        return await self.schedule_cancellation(SubscriptionScope.USER, user_id, reason)

    async def undo_organization_cancellation(self, organization_id: str) -> Result[CancellationOutcome]:
        return await self.undo_cancellation(SubscriptionScope.ORGANIZATION, organization_id)

    async def undo_user_cancellation(self, user_id: str) -> Result[CancellationOutcome]:
        return await self.undo_cancellation(SubscriptionScope.USER, user_id)

    async def _settled(
        self, scope: SubscriptionScope, subject_id: str, *, cancel_at_period_end: bool
    ) -> Result[CancellationOutcome]:
        # The conflict itself tells us the flag; the snapshot supplies the rest
        try:
            current = await self.gateway.fetch_snapshot(scope, subject_id)
        except GatewayError as exc:
            return Err.from_exception(exc)
        settled = replace(current, cancel_at_period_end=cancel_at_period_end)
        return Ok(CancellationOutcome(snapshot=settled, unchanged=True))

    async def _refetch(
        self, scope: SubscriptionScope, subject_id: str, *, fallback: SubscriptionSnapshot
    ) -> SubscriptionSnapshot:
        # The mutation already succeeded; a failed refresh must not turn it into an error
        try:
            return await self.gateway.fetch_snapshot(scope, subject_id)
        except GatewayError as exc:
            logger.warning("Snapshot refresh for %s %s failed: %s", scope.value, subject_id, exc.message)
            return fallback


def _missing_id_message(scope: SubscriptionScope) -> str:
    if scope == SubscriptionScope.ORGANIZATION:
        return "Organization ID is required"
    return "User ID is required"
