"""PaymentApplicationService — payment ledger use cases.

Every write runs in the caller's session and emits its event through the
outbox in the same transaction: commit on success, rollback and re-raise on
failure. Webhook handling is idempotent; a terminal payment never changes
status again.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.fp_common.cents import validate_currency
from src.fp_common.datetime_utils import utc_now
from src.fp_common.enums import PaymentStatus
from src.fp_common.errors import (
    AppError,
    PaymentAccessDeniedError,
    PaymentNotCancellableError,
    PaymentNotFoundError,
    PaymentProviderError,
)
from src.fp_common.id_generator import new_id
from src.fp_common.pagination import cursor_decode, cursor_encode
from src.fp_events.domain.events import EventPattern
from src.fp_events.domain.publisher import EventPublisherProtocol
from src.fp_events.infrastructure.outbox import OutboxEventPublisher
from src.fp_payment.application.schemas import (
    CreatePaymentResponse,
    PaymentListResponse,
    PaymentResponse,
)
from src.fp_payment.domain.models import Payment, validate_purpose_metadata
from src.fp_payment.domain.provider import PaymentProviderProtocol
from src.fp_payment.domain.repository import PaymentRepositoryProtocol
from src.fp_payment.infrastructure.persistence import PaymentRepository
from src.fp_payment.infrastructure.simulated_provider import SimulatedPaymentProvider

logger = logging.getLogger(__name__)

# Provider-supplied webhook fields live under this key so they never shadow
# the purchase terms validated at creation.
PROVIDER_METADATA_KEY = "provider"


def _status_changed_payload(payment: Payment) -> dict[str, Any]:
    purpose = payment.purpose
    return {
        "paymentId": payment.id,
        "userId": payment.user_id,
        "gymId": payment.gym_id,
        "amount": payment.amount_cents,
        "currency": payment.currency,
        "status": payment.status.value,
        "providerRef": payment.provider_ref,
        "purpose": purpose.value if purpose else None,
        "metadata": payment.metadata,
    }


class PaymentApplicationService:
    def __init__(
        self,
        repo: PaymentRepositoryProtocol | None = None,
        provider: PaymentProviderProtocol | None = None,
        publisher: EventPublisherProtocol | None = None,
    ) -> None:
        self._repo: PaymentRepositoryProtocol = repo or PaymentRepository()
        self._provider: PaymentProviderProtocol = provider or SimulatedPaymentProvider()
        self._publisher: EventPublisherProtocol = publisher or OutboxEventPublisher()

    @property
    def provider(self) -> PaymentProviderProtocol:
        return self._provider

    async def create_payment(
        self,
        db: AsyncSession,
        user_id: str,
        gym_id: str | None,
        amount_cents: int,
        currency: str,
        metadata: dict[str, Any],
        provider: str | None = None,
    ) -> CreatePaymentResponse:
        currency = validate_currency(currency)
        validate_purpose_metadata(metadata)
        payment_id = new_id()

        # Provider first: a failed intent leaves nothing behind
        try:
            intent = await self._provider.create_payment_intent(
                amount_cents, currency, payment_id
            )
        except AppError:
            raise
        except Exception as exc:
            logger.exception("Payment intent failed for payment %s", payment_id)
            raise PaymentProviderError(str(exc)) from exc

        payment = Payment(
            id=payment_id,
            user_id=user_id,
            gym_id=gym_id,
            amount_cents=amount_cents,
            currency=currency,
            provider=provider or settings.PAYMENT_PROVIDER,
            status=PaymentStatus.PENDING,
            provider_ref=intent.reference,
            metadata=dict(metadata),
        )
        try:
            payment = await self._repo.create(db, payment)
            await self._publisher.publish(
                db,
                EventPattern.PAYMENT_CREATED,
                {
                    "paymentId": payment.id,
                    "userId": payment.user_id,
                    "gymId": payment.gym_id,
                    "amount": payment.amount_cents,
                    "currency": payment.currency,
                    "provider": payment.provider,
                    "status": payment.status.value,
                },
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Payment %s created for user %s", payment.id, user_id)
        return CreatePaymentResponse(
            payment=PaymentResponse.from_domain(payment),
            payment_url=intent.payment_url,
        )

    async def handle_webhook(
        self,
        db: AsyncSession,
        payment_id: str,
        status: PaymentStatus,
        provider_ref: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> PaymentResponse:
        """Apply a provider status notification exactly once.

        Redelivered or late notifications for a terminal payment succeed
        without changing anything or emitting an event.
        """
        payment = await self._repo.get_by_id(db, payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)

        if status is PaymentStatus.PENDING:
            return PaymentResponse.from_domain(payment)

        if payment.is_terminal:
            if payment.status is status:
                logger.info("Duplicate webhook for payment %s (%s)", payment_id, status.value)
            else:
                logger.warning(
                    "Ignoring webhook %s for payment %s already %s",
                    status.value,
                    payment_id,
                    payment.status.value,
                )
            return PaymentResponse.from_domain(payment)

        try:
            updated = await self._repo.transition_status(
                db,
                payment_id,
                status,
                provider_ref,
                {PROVIDER_METADATA_KEY: metadata} if metadata else {},
            )
            if updated is not None:
                await self._publisher.publish(
                    db, EventPattern.PAYMENT_STATUS_CHANGED, _status_changed_payload(updated)
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if updated is None:
            # A concurrent notification reached a terminal status first
            current = await self._repo.get_by_id(db, payment_id)
            logger.info("Payment %s already transitioned concurrently", payment_id)
            return PaymentResponse.from_domain(current or payment)

        logger.info("Payment %s → %s", payment_id, status.value)
        return PaymentResponse.from_domain(updated)

    async def handle_provider_webhook(
        self, db: AsyncSession, raw_body: bytes, signature: str | None
    ) -> PaymentResponse:
        notification = await self._provider.handle_webhook(raw_body, signature)
        return await self.handle_webhook(
            db,
            notification.payment_id,
            notification.status,
            notification.provider_ref,
            notification.metadata,
        )

    async def cancel_payment(
        self,
        db: AsyncSession,
        payment_id: str,
        user_id: str,
        reason: str | None = None,
    ) -> PaymentResponse:
        payment = await self._repo.get_by_id(db, payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        if payment.user_id != user_id:
            raise PaymentAccessDeniedError()
        if not payment.can_be_cancelled:
            raise PaymentNotCancellableError(payment_id, payment.status.value)

        if payment.provider_ref:
            try:
                await self._provider.cancel_payment(payment.provider_ref)
            except AppError:
                raise
            except Exception as exc:
                logger.exception("Provider cancellation failed for payment %s", payment_id)
                raise PaymentProviderError(str(exc)) from exc

        cancellation: dict[str, Any] = {"cancelledAt": utc_now().isoformat()}
        if reason:
            cancellation["cancellationReason"] = reason

        try:
            updated = await self._repo.transition_status(
                db, payment_id, PaymentStatus.CANCELLED, payment.provider_ref, cancellation
            )
            if updated is None:
                current = await self._repo.get_by_id(db, payment_id)
                status = current.status.value if current else payment.status.value
                raise PaymentNotCancellableError(payment_id, status)
            await self._publisher.publish(
                db, EventPattern.PAYMENT_STATUS_CHANGED, _status_changed_payload(updated)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Payment %s cancelled by user %s", payment_id, user_id)
        return PaymentResponse.from_domain(updated)

    async def get_payment(
        self, db: AsyncSession, payment_id: str, user_id: str, is_admin: bool = False
    ) -> PaymentResponse:
        payment = await self._repo.get_by_id(db, payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        if payment.user_id != user_id and not is_admin:
            raise PaymentAccessDeniedError()
        return PaymentResponse.from_domain(payment)

    async def list_user_payments(
        self,
        db: AsyncSession,
        user_id: str,
        status: PaymentStatus | None,
        start_date: datetime | None,
        end_date: datetime | None,
        cursor: str | None,
        limit: int,
    ) -> PaymentListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without COUNT(*)
        payments = await self._repo.list_by_user(
            db, user_id, status, start_date, end_date, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(payments) > limit
        page = payments[:limit]

        last = page[-1] if page else None
        next_cursor = (
            cursor_encode(last.created_at, last.id)
            if has_more and last is not None and last.created_at is not None
            else None
        )
        return PaymentListResponse(
            items=[PaymentResponse.from_domain(p) for p in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )
