"""BookingApplicationService — booking lifecycle over the quota ledger.

create_booking consumes one unit of a quota; cancel_booking refunds it.
Both write the quota with compare-and-swap on the previously read
``remaining`` and retry with a fresh read at most QUOTA_CAS_MAX_RETRIES
times, so concurrent requests can never drive remaining below 0 or above
total. Exhausted retries surface as QuotaConflictError (safe to retry).
"""

import logging
from datetime import datetime
from typing import Any, NoReturn

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.fp_booking.application.schemas import (
    BookingListResponse,
    BookingResponse,
    CancelBookingResponse,
    CreateBookingResponse,
)
from src.fp_booking.domain.models import Booking, BookingQuota
from src.fp_booking.domain.repository import (
    BookingQuotaRepositoryProtocol,
    BookingRepositoryProtocol,
)
from src.fp_booking.infrastructure.persistence import BookingQuotaRepository, BookingRepository
from src.fp_common.datetime_utils import ensure_utc, utc_now
from src.fp_common.enums import BookingStatus
from src.fp_common.errors import (
    BookingAccessDeniedError,
    BookingNotFoundError,
    InvalidBookingTransitionError,
    QuotaAccessDeniedError,
    QuotaConflictError,
    QuotaNotFoundError,
    QuotaOverRefundError,
)
from src.fp_common.optimistic import retry_on_conflict
from src.fp_common.pagination import cursor_decode, cursor_encode
from src.fp_events.domain.events import EventPattern
from src.fp_events.domain.publisher import EventPublisherProtocol
from src.fp_events.infrastructure.outbox import OutboxEventPublisher

logger = logging.getLogger(__name__)

_STATUS_EVENTS = {
    BookingStatus.CONFIRMED: EventPattern.BOOKING_CONFIRMED,
    BookingStatus.COMPLETED: EventPattern.BOOKING_COMPLETED,
    BookingStatus.CANCELLED: EventPattern.BOOKING_CANCELLED,
}


def _booking_payload(booking: Booking) -> dict[str, Any]:
    return {
        "bookingId": booking.id,
        "userId": booking.user_id,
        "trainerId": booking.trainer_id,
        "gymId": booking.gym_id,
        "date": booking.date,
        "quotaId": booking.quota_id,
        "status": booking.status.value,
    }


class BookingApplicationService:
    def __init__(
        self,
        booking_repo: BookingRepositoryProtocol | None = None,
        quota_repo: BookingQuotaRepositoryProtocol | None = None,
        publisher: EventPublisherProtocol | None = None,
        max_retries: int = settings.QUOTA_CAS_MAX_RETRIES,
    ) -> None:
        self._bookings: BookingRepositoryProtocol = booking_repo or BookingRepository()
        self._quotas: BookingQuotaRepositoryProtocol = quota_repo or BookingQuotaRepository()
        self._publisher: EventPublisherProtocol = publisher or OutboxEventPublisher()
        self._max_retries = max_retries

    # ------------------------------------------------------------------
    # Quota ledger writes
    # ------------------------------------------------------------------

    async def _consume_quota(
        self, db: AsyncSession, quota_id: str, user_id: str
    ) -> BookingQuota:
        async def attempt() -> BookingQuota | None:
            quota = await self._quotas.get_by_id(db, quota_id)
            if quota is None:
                raise QuotaNotFoundError(quota_id)
            now = utc_now()
            quota.check_valid(now)
            if quota.user_id != user_id:
                raise QuotaAccessDeniedError()
            consumed = quota.consume(now)
            return await self._quotas.compare_and_set_remaining(
                db, quota.id, quota.remaining, consumed.remaining
            )

        return await retry_on_conflict(
            attempt, self._max_retries, lambda: QuotaConflictError(quota_id)
        )

    async def _refund_quota(self, db: AsyncSession, quota_id: str) -> BookingQuota:
        async def attempt() -> BookingQuota | None:
            quota = await self._quotas.get_by_id(db, quota_id)
            if quota is None:
                raise QuotaNotFoundError(quota_id)
            refunded = quota.refund()
            return await self._quotas.compare_and_set_remaining(
                db, quota.id, quota.remaining, refunded.remaining
            )

        return await retry_on_conflict(
            attempt, self._max_retries, lambda: QuotaConflictError(quota_id)
        )

    # ------------------------------------------------------------------
    # Use cases
    # ------------------------------------------------------------------

    async def create_booking(
        self,
        db: AsyncSession,
        user_id: str,
        trainer_id: str | None,
        gym_id: str,
        date: datetime,
        quota_id: str,
    ) -> CreateBookingResponse:
        """Consume one unit of ``quota_id`` and create a pending booking.

        Raises:
            QuotaNotFoundError: unknown quota.
            QuotaExhaustedError / QuotaExpiredError / QuotaNotYetValidError:
                the quota is not valid now.
            QuotaAccessDeniedError: the quota belongs to another user.
            QuotaConflictError: every compare-and-swap attempt lost its race.
        """
        try:
            quota = await self._consume_quota(db, quota_id, user_id)
            booking = await self._bookings.create(
                db, Booking.create(user_id, trainer_id, gym_id, ensure_utc(date), quota.id)
            )
            await self._publisher.publish(
                db, EventPattern.BOOKING_CREATED, _booking_payload(booking)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Booking %s created for user %s (quota %s remaining %d)",
            booking.id,
            user_id,
            quota.id,
            quota.remaining,
        )
        return CreateBookingResponse(
            booking=BookingResponse.from_domain(booking),
            quota_remaining=quota.remaining,
        )

    async def cancel_booking(
        self, db: AsyncSession, booking_id: str, user_id: str, is_admin: bool = False
    ) -> CancelBookingResponse:
        """Cancel a pending/confirmed booking and return its unit to the quota.

        The refund ignores quota expiry. A quota that no longer exists is
        logged and the booking is still cancelled.
        """
        booking = await self._bookings.get_by_id(db, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if booking.user_id != user_id and not is_admin:
            raise BookingAccessDeniedError()
        cancelled = booking.cancel()

        refunded: BookingQuota | None = None
        try:
            updated = await self._bookings.update_status(
                db, booking.id, booking.status, cancelled.status
            )
            if updated is None:
                await self._raise_stale_transition(db, booking, cancelled.status)

            if await self._quotas.get_by_id(db, booking.quota_id) is None:
                logger.warning(
                    "Quota %s of booking %s no longer exists, nothing to refund",
                    booking.quota_id,
                    booking.id,
                )
            else:
                try:
                    refunded = await self._refund_quota(db, booking.quota_id)
                except QuotaOverRefundError:
                    logger.warning(
                        "Quota %s is already full, booking %s cancelled without refund",
                        booking.quota_id,
                        booking.id,
                    )

            payload = _booking_payload(updated)
            payload["quotaRefunded"] = refunded is not None
            await self._publisher.publish(db, EventPattern.BOOKING_CANCELLED, payload)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Booking %s cancelled by %s", booking_id, user_id)
        return CancelBookingResponse(
            booking=BookingResponse.from_domain(updated),
            quota_refunded=refunded is not None,
            quota_remaining=refunded.remaining if refunded else None,
        )

    async def confirm_booking(
        self, db: AsyncSession, booking_id: str, actor_id: str, is_admin: bool = False
    ) -> BookingResponse:
        booking = await self._get_for_trainer(db, booking_id, actor_id, is_admin)
        return await self._advance(db, booking, booking.confirm())

    async def complete_booking(
        self, db: AsyncSession, booking_id: str, actor_id: str, is_admin: bool = False
    ) -> BookingResponse:
        booking = await self._get_for_trainer(db, booking_id, actor_id, is_admin)
        return await self._advance(db, booking, booking.complete())

    async def get_booking(
        self, db: AsyncSession, booking_id: str, actor_id: str, is_admin: bool = False
    ) -> BookingResponse:
        booking = await self._bookings.get_by_id(db, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if actor_id not in (booking.user_id, booking.trainer_id) and not is_admin:
            raise BookingAccessDeniedError()
        return BookingResponse.from_domain(booking)

    async def list_bookings(
        self,
        db: AsyncSession,
        user_id: str | None,
        trainer_id: str | None,
        gym_id: str | None,
        status: BookingStatus | None,
        cursor: str | None,
        limit: int,
    ) -> BookingListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without COUNT(*)
        bookings = await self._bookings.list_bookings(
            db, user_id, trainer_id, gym_id, status, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(bookings) > limit
        page = bookings[:limit]

        last = page[-1] if page else None
        next_cursor = (
            cursor_encode(last.created_at, last.id)
            if has_more and last is not None and last.created_at is not None
            else None
        )
        return BookingListResponse(
            items=[BookingResponse.from_domain(b) for b in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_for_trainer(
        self, db: AsyncSession, booking_id: str, actor_id: str, is_admin: bool
    ) -> Booking:
        booking = await self._bookings.get_by_id(db, booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        if booking.trainer_id != actor_id and not is_admin:
            raise BookingAccessDeniedError()
        return booking

    async def _advance(self, db: AsyncSession, booking: Booking, target: Booking) -> BookingResponse:
        try:
            updated = await self._bookings.update_status(
                db, booking.id, booking.status, target.status
            )
            if updated is None:
                await self._raise_stale_transition(db, booking, target.status)
            await self._publisher.publish(
                db, _STATUS_EVENTS[target.status], _booking_payload(updated)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Booking %s → %s", booking.id, target.status.value)
        return BookingResponse.from_domain(updated)

    async def _raise_stale_transition(
        self, db: AsyncSession, booking: Booking, target: BookingStatus
    ) -> NoReturn:
        # The status changed between read and conditional write
        current = await self._bookings.get_by_id(db, booking.id)
        status = current.status if current else booking.status
        raise InvalidBookingTransitionError(booking.id, status.value, target.value)
