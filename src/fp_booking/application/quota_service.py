"""QuotaApplicationService — booking quota ledger.

A payment provisions at most one quota batch. The pre-check gives a clean
domain error; the unique payment_id constraint (ON CONFLICT DO NOTHING)
closes the window between two concurrent deliveries of the same event.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_booking.application.schemas import QuotaListResponse, QuotaResponse
from src.fp_booking.domain.models import BookingQuota
from src.fp_booking.domain.repository import BookingQuotaRepositoryProtocol
from src.fp_booking.infrastructure.persistence import BookingQuotaRepository
from src.fp_common.datetime_utils import ensure_utc, utc_now
from src.fp_common.errors import (
    InvalidQuotaError,
    QuotaAccessDeniedError,
    QuotaAlreadyProvisionedError,
    QuotaNotFoundError,
)
from src.fp_events.domain.events import EventPattern
from src.fp_events.domain.publisher import EventPublisherProtocol
from src.fp_events.infrastructure.outbox import OutboxEventPublisher

logger = logging.getLogger(__name__)


class QuotaApplicationService:
    def __init__(
        self,
        repo: BookingQuotaRepositoryProtocol | None = None,
        publisher: EventPublisherProtocol | None = None,
    ) -> None:
        self._repo: BookingQuotaRepositoryProtocol = repo or BookingQuotaRepository()
        self._publisher: EventPublisherProtocol = publisher or OutboxEventPublisher()

    async def generate_booking_quotas(
        self,
        db: AsyncSession,
        user_id: str,
        payment_id: str,
        total_quotas: int,
        valid_from: datetime,
        valid_until: datetime,
    ) -> QuotaResponse:
        """Provision the quota batch bought by ``payment_id``.

        Raises:
            QuotaAlreadyProvisionedError: a batch already exists for the payment.
            InvalidQuotaError: non-positive total or inverted validity window.
        """
        existing = await self._repo.list_by_payment_id(db, payment_id)
        if existing:
            raise QuotaAlreadyProvisionedError(payment_id)

        quota = BookingQuota.create(
            user_id=user_id,
            total=total_quotas,
            valid_from=ensure_utc(valid_from),
            valid_until=ensure_utc(valid_until),
            payment_id=payment_id,
        )
        try:
            created = await self._repo.create(db, quota)
            if created is None:
                raise QuotaAlreadyProvisionedError(payment_id)
            await self._publisher.publish(
                db,
                EventPattern.QUOTA_PROVISIONED,
                {
                    "quotaId": created.id,
                    "userId": created.user_id,
                    "paymentId": created.payment_id,
                    "total": created.total,
                    "validFrom": created.valid_from,
                    "validUntil": created.valid_until,
                },
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Provisioned %d booking quotas for user %s (payment %s)",
            created.total,
            user_id,
            payment_id,
        )
        return QuotaResponse.from_domain(created)

    async def get_quota(
        self, db: AsyncSession, quota_id: str, user_id: str, is_admin: bool = False
    ) -> QuotaResponse:
        quota = await self._repo.get_by_id(db, quota_id)
        if quota is None:
            raise QuotaNotFoundError(quota_id)
        if quota.user_id != user_id and not is_admin:
            raise QuotaAccessDeniedError()
        return QuotaResponse.from_domain(quota)

    async def list_user_quotas(
        self, db: AsyncSession, user_id: str, valid_only: bool = False
    ) -> QuotaListResponse:
        now = utc_now()
        quotas = await self._repo.list_by_user(db, user_id, now if valid_only else None)
        return QuotaListResponse(items=[QuotaResponse.from_domain(q, now) for q in quotas])

    async def purge_quota(self, db: AsyncSession, quota_id: str) -> None:
        """Delete a quota batch nobody has drawn from (admin correction)."""
        quota = await self._repo.get_by_id(db, quota_id)
        if quota is None:
            raise QuotaNotFoundError(quota_id)
        if quota.remaining != quota.total:
            raise InvalidQuotaError(f"quota {quota_id} has bookings drawn against it")
        try:
            deleted = await self._repo.delete(db, quota_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if not deleted:
            raise InvalidQuotaError(f"quota {quota_id} has bookings drawn against it")
        logger.warning("Quota %s (payment %s) purged", quota_id, quota.payment_id)
