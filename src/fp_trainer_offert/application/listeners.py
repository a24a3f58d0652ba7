"""Event listeners of the trainer-offert consumer group.

payment.status.changed (completed, purpose trainer_subscription) → subscription

Redelivery hits SubscriptionAlreadyProvisionedError (unique paymentId) and is
acknowledged. Offert lookup failures propagate so the message ends up in the
dead-letter stream instead of being dropped silently.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.fp_common.database import async_session_factory
from src.fp_common.enums import PaymentPurpose, PaymentStatus
from src.fp_common.errors import SubscriptionAlreadyProvisionedError
from src.fp_events.domain.events import DomainEvent, EventPattern
from src.fp_events.infrastructure.consumer import EventHandler
from src.fp_trainer_offert.application.subscription_service import (
    SubscriptionApplicationService,
)

logger = logging.getLogger(__name__)

CONSUMER_GROUP = "trainer-offert"


class TrainerOffertEventListener:
    def __init__(
        self,
        subscription_service: SubscriptionApplicationService | None = None,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
    ) -> None:
        self._subscriptions = subscription_service or SubscriptionApplicationService()
        self._session_factory = session_factory

    def handlers(self) -> dict[str, EventHandler]:
        return {
            EventPattern.PAYMENT_STATUS_CHANGED.value: self.on_payment_status_changed,
        }

    async def on_payment_status_changed(self, event: DomainEvent) -> None:
        payload = event.payload
        if payload.get("status") != PaymentStatus.COMPLETED.value:
            return
        if payload.get("purpose") != PaymentPurpose.TRAINER_SUBSCRIPTION.value:
            return

        metadata = payload.get("metadata") or {}
        payment_id = payload["paymentId"]
        async with self._session_factory() as db:
            try:
                await self._subscriptions.create_subscription_from_payment(
                    db,
                    user_id=payload["userId"],
                    offert_id=metadata["offertId"],
                    payment_id=payment_id,
                )
            except SubscriptionAlreadyProvisionedError:
                logger.info("Subscription for payment %s already exists, skipping", payment_id)
