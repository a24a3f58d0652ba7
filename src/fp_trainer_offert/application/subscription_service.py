"""SubscriptionApplicationService — trainer subscription ledger.

A completed payment creates at most one subscription (unique payment_id).
subscription.created carries the bundled booking quota so the bookings
service can provision it under the same paymentId key.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_common.datetime_utils import add_days, utc_now
from src.fp_common.errors import (
    InvalidSubscriptionTransitionError,
    OffertNotAvailableError,
    OffertNotFoundError,
    SubscriptionAccessDeniedError,
    SubscriptionAlreadyProvisionedError,
    SubscriptionNotFoundError,
)
from src.fp_events.domain.events import EventPattern
from src.fp_events.domain.publisher import EventPublisherProtocol
from src.fp_events.infrastructure.outbox import OutboxEventPublisher
from src.fp_trainer_offert.application.schemas import (
    SubscriptionListResponse,
    SubscriptionResponse,
)
from src.fp_trainer_offert.domain.models import TrainerSubscription
from src.fp_trainer_offert.domain.repository import (
    TrainerOffertRepositoryProtocol,
    TrainerSubscriptionRepositoryProtocol,
)
from src.fp_trainer_offert.infrastructure.persistence import (
    TrainerOffertRepository,
    TrainerSubscriptionRepository,
)

logger = logging.getLogger(__name__)

_EXPIRY_BATCH_SIZE = 100


def _subscription_payload(subscription: TrainerSubscription) -> dict[str, Any]:
    return {
        "subscriptionId": subscription.id,
        "userId": subscription.user_id,
        "offertId": subscription.offert_id,
        "paymentId": subscription.payment_id,
        "validFrom": subscription.valid_from,
        "validUntil": subscription.valid_until,
        "status": subscription.status.value,
    }


class SubscriptionApplicationService:
    def __init__(
        self,
        repo: TrainerSubscriptionRepositoryProtocol | None = None,
        offert_repo: TrainerOffertRepositoryProtocol | None = None,
        publisher: EventPublisherProtocol | None = None,
    ) -> None:
        self._repo: TrainerSubscriptionRepositoryProtocol = repo or TrainerSubscriptionRepository()
        self._offerts: TrainerOffertRepositoryProtocol = offert_repo or TrainerOffertRepository()
        self._publisher: EventPublisherProtocol = publisher or OutboxEventPublisher()

    async def create_subscription_from_payment(
        self, db: AsyncSession, user_id: str, offert_id: str, payment_id: str
    ) -> SubscriptionResponse:
        """Provision the subscription bought by ``payment_id``.

        Raises:
            SubscriptionAlreadyProvisionedError: the payment already has one.
            OffertNotFoundError / OffertNotAvailableError: missing or inactive offert.
        """
        if await self._repo.get_by_payment_id(db, payment_id) is not None:
            raise SubscriptionAlreadyProvisionedError(payment_id)

        offert = await self._offerts.get_by_id(db, offert_id)
        if offert is None:
            raise OffertNotFoundError(offert_id)
        if not offert.is_active:
            raise OffertNotAvailableError(offert_id)

        valid_from = utc_now()
        subscription = TrainerSubscription.create(
            user_id=user_id,
            offert_id=offert.id,
            valid_from=valid_from,
            valid_until=add_days(valid_from, offert.duration_in_days),
            payment_id=payment_id,
        )
        try:
            created = await self._repo.create(db, subscription)
            if created is None:
                raise SubscriptionAlreadyProvisionedError(payment_id)
            payload = _subscription_payload(created)
            payload["trainerId"] = offert.trainer_id
            payload["bookingQuota"] = offert.bundled_quota
            await self._publisher.publish(db, EventPattern.SUBSCRIPTION_CREATED, payload)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Subscription %s to offert %s created for user %s (payment %s)",
            created.id,
            offert.id,
            user_id,
            payment_id,
        )
        return SubscriptionResponse.from_domain(created)

    async def cancel_subscription(
        self, db: AsyncSession, subscription_id: str, user_id: str, is_admin: bool = False
    ) -> SubscriptionResponse:
        subscription = await self._repo.get_by_id(db, subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(subscription_id)
        if subscription.user_id != user_id and not is_admin:
            raise SubscriptionAccessDeniedError()
        cancelled = subscription.cancel()

        try:
            updated = await self._repo.update_status(
                db, subscription.id, subscription.status, cancelled.status
            )
            if updated is None:
                # Expired or cancelled concurrently
                raise InvalidSubscriptionTransitionError(
                    subscription_id, "stale", cancelled.status.value
                )
            await self._publisher.publish(
                db, EventPattern.SUBSCRIPTION_CANCELLED, _subscription_payload(updated)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Subscription %s cancelled by %s", subscription_id, user_id)
        return SubscriptionResponse.from_domain(updated)

    async def list_user_subscriptions(
        self, db: AsyncSession, user_id: str, active_only: bool = False
    ) -> SubscriptionListResponse:
        subscriptions = await self._repo.list_by_user(db, user_id, active_only)
        return SubscriptionListResponse(
            items=[SubscriptionResponse.from_domain(s) for s in subscriptions]
        )

    async def expire_due_subscriptions(
        self, db: AsyncSession, now: datetime | None = None
    ) -> int:
        """Move active subscriptions past valid_until to expired. Returns the count."""
        now = now or utc_now()
        expired = 0
        try:
            due = await self._repo.list_due_for_expiry(db, now, _EXPIRY_BATCH_SIZE)
            for subscription in due:
                target = subscription.expire()
                updated = await self._repo.update_status(
                    db, subscription.id, subscription.status, target.status
                )
                if updated is None:
                    continue
                await self._publisher.publish(
                    db, EventPattern.SUBSCRIPTION_EXPIRED, _subscription_payload(updated)
                )
                expired += 1
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if expired:
            logger.info("Expired %d subscriptions", expired)
        return expired
