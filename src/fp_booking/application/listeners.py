"""Event listeners of the bookings consumer group.

payment.status.changed  (completed, purpose booking_quota) → quota batch
subscription.created    (bookingQuota > 0)                 → quota batch

Both are keyed by paymentId: a redelivered event hits
QuotaAlreadyProvisionedError, which is logged and treated as handled so the
message is acknowledged. Any other exception propagates to the consumer,
which leaves the message pending for redelivery or dead-letters it.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.fp_booking.application.quota_service import QuotaApplicationService
from src.fp_common.database import async_session_factory
from src.fp_common.datetime_utils import add_days, utc_now
from src.fp_common.enums import PaymentPurpose, PaymentStatus
from src.fp_common.errors import QuotaAlreadyProvisionedError
from src.fp_events.domain.events import DomainEvent, EventPattern
from src.fp_events.infrastructure.consumer import EventHandler

logger = logging.getLogger(__name__)

CONSUMER_GROUP = "bookings"


class BookingEventListener:
    def __init__(
        self,
        quota_service: QuotaApplicationService | None = None,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
    ) -> None:
        self._quotas = quota_service or QuotaApplicationService()
        self._session_factory = session_factory

    def handlers(self) -> dict[str, EventHandler]:
        return {
            EventPattern.PAYMENT_STATUS_CHANGED.value: self.on_payment_status_changed,
            EventPattern.SUBSCRIPTION_CREATED.value: self.on_subscription_created,
        }

    async def on_payment_status_changed(self, event: DomainEvent) -> None:
        payload = event.payload
        if payload.get("status") != PaymentStatus.COMPLETED.value:
            return
        if payload.get("purpose") != PaymentPurpose.BOOKING_QUOTA.value:
            return

        metadata = payload.get("metadata") or {}
        valid_from = utc_now()
        valid_days = int(metadata.get("validDays") or settings.DEFAULT_QUOTA_VALIDITY_DAYS)
        await self._provision(
            user_id=payload["userId"],
            payment_id=payload["paymentId"],
            total=int(metadata["quotaTotal"]),
            valid_from=valid_from,
            valid_until=add_days(valid_from, valid_days),
        )

    async def on_subscription_created(self, event: DomainEvent) -> None:
        payload = event.payload
        booking_quota = int(payload.get("bookingQuota") or 0)
        if booking_quota <= 0:
            return
        await self._provision(
            user_id=payload["userId"],
            payment_id=payload["paymentId"],
            total=booking_quota,
            valid_from=datetime.fromisoformat(payload["validFrom"]),
            valid_until=datetime.fromisoformat(payload["validUntil"]),
        )

    async def _provision(
        self,
        user_id: str,
        payment_id: str,
        total: int,
        valid_from: datetime,
        valid_until: datetime,
    ) -> None:
        async with self._session_factory() as db:
            try:
                await self._quotas.generate_booking_quotas(
                    db, user_id, payment_id, total, valid_from, valid_until
                )
            except QuotaAlreadyProvisionedError:
                logger.info("Quotas for payment %s already provisioned, skipping", payment_id)
