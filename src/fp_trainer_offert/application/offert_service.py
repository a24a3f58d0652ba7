"""OffertApplicationService — trainer offert catalog.

Offerts are immutable values: every change builds a new TrainerOffert via
update()/activate()/deactivate() and persists it whole. Only the trainer who
owns an offert may change it.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_common.cents import validate_currency
from src.fp_common.errors import OffertAccessDeniedError, OffertNotFoundError
from src.fp_common.pagination import cursor_decode, cursor_encode
from src.fp_events.domain.events import EventPattern
from src.fp_events.domain.publisher import EventPublisherProtocol
from src.fp_events.infrastructure.outbox import OutboxEventPublisher
from src.fp_trainer_offert.application.schemas import OffertListResponse, OffertResponse
from src.fp_trainer_offert.domain.models import TrainerOffert
from src.fp_trainer_offert.domain.repository import TrainerOffertRepositoryProtocol
from src.fp_trainer_offert.infrastructure.persistence import TrainerOffertRepository

logger = logging.getLogger(__name__)


def _offert_payload(offert: TrainerOffert) -> dict[str, Any]:
    return {
        "offertId": offert.id,
        "trainerId": offert.trainer_id,
        "title": offert.title,
        "price": offert.price_cents,
        "currency": offert.currency,
        "durationInDays": offert.duration_in_days,
        "bookingQuota": offert.bundled_quota,
        "isActive": offert.is_active,
    }


class OffertApplicationService:
    def __init__(
        self,
        repo: TrainerOffertRepositoryProtocol | None = None,
        publisher: EventPublisherProtocol | None = None,
    ) -> None:
        self._repo: TrainerOffertRepositoryProtocol = repo or TrainerOffertRepository()
        self._publisher: EventPublisherProtocol = publisher or OutboxEventPublisher()

    async def create_offert(
        self,
        db: AsyncSession,
        trainer_id: str,
        title: str,
        description: str,
        price_cents: int,
        currency: str,
        duration_in_days: int,
        includes_bookings: bool = False,
        booking_quota: int | None = None,
    ) -> OffertResponse:
        offert = TrainerOffert.create(
            trainer_id=trainer_id,
            title=title,
            description=description,
            price_cents=price_cents,
            currency=validate_currency(currency),
            duration_in_days=duration_in_days,
            includes_bookings=includes_bookings,
            booking_quota=booking_quota,
        )
        try:
            created = await self._repo.create(db, offert)
            await self._publisher.publish(
                db, EventPattern.OFFERT_CREATED, _offert_payload(created)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Offert %s created by trainer %s", created.id, trainer_id)
        return OffertResponse.from_domain(created)

    async def update_offert(
        self, db: AsyncSession, offert_id: str, trainer_id: str, changes: dict[str, Any]
    ) -> OffertResponse:
        offert = await self._get_owned(db, offert_id, trainer_id)
        if changes.get("currency") is not None:
            changes = {**changes, "currency": validate_currency(changes["currency"])}
        return await self._save(db, offert.update(**changes), EventPattern.OFFERT_UPDATED)

    async def activate_offert(
        self, db: AsyncSession, offert_id: str, trainer_id: str
    ) -> OffertResponse:
        offert = await self._get_owned(db, offert_id, trainer_id)
        return await self._save(db, offert.activate(), EventPattern.OFFERT_UPDATED)

    async def deactivate_offert(
        self, db: AsyncSession, offert_id: str, trainer_id: str
    ) -> OffertResponse:
        offert = await self._get_owned(db, offert_id, trainer_id)
        return await self._save(db, offert.deactivate(), EventPattern.OFFERT_DEACTIVATED)

    async def get_offert(self, db: AsyncSession, offert_id: str) -> OffertResponse:
        offert = await self._repo.get_by_id(db, offert_id)
        if offert is None:
            raise OffertNotFoundError(offert_id)
        return OffertResponse.from_domain(offert)

    async def list_offerts(
        self,
        db: AsyncSession,
        trainer_id: str | None,
        active_only: bool,
        cursor: str | None,
        limit: int,
    ) -> OffertListResponse:
        cursor_ts, cursor_id = cursor_decode(cursor)
        offerts = await self._repo.list_offerts(
            db, trainer_id, active_only, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(offerts) > limit
        page = offerts[:limit]

        last = page[-1] if page else None
        next_cursor = (
            cursor_encode(last.created_at, last.id)
            if has_more and last is not None and last.created_at is not None
            else None
        )
        return OffertListResponse(
            items=[OffertResponse.from_domain(o) for o in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def _get_owned(
        self, db: AsyncSession, offert_id: str, trainer_id: str
    ) -> TrainerOffert:
        offert = await self._repo.get_by_id(db, offert_id)
        if offert is None:
            raise OffertNotFoundError(offert_id)
        if offert.trainer_id != trainer_id:
            raise OffertAccessDeniedError()
        return offert

    async def _save(
        self, db: AsyncSession, offert: TrainerOffert, pattern: EventPattern
    ) -> OffertResponse:
        try:
            saved = await self._repo.update(db, offert)
            if saved is None:
                raise OffertNotFoundError(offert.id)
            await self._publisher.publish(db, pattern, _offert_payload(saved))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Offert %s saved (%s)", saved.id, pattern.value)
        return OffertResponse.from_domain(saved)
