"""Repository Protocols — dependency inversion for testability.

Unit tests inject in-memory fakes that conform to these Protocols.
Infrastructure layer provides the raw-SQL implementations.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_booking.domain.models import Booking, BookingQuota
from src.fp_common.enums import BookingStatus


class BookingQuotaRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, quota: BookingQuota) -> BookingQuota | None:
        """Insert a quota batch; None if one already exists for its payment_id."""
        ...

    async def get_by_id(self, db: AsyncSession, quota_id: str) -> BookingQuota | None: ...

    async def list_by_payment_id(
        self, db: AsyncSession, payment_id: str
    ) -> list[BookingQuota]: ...

    async def list_by_user(
        self, db: AsyncSession, user_id: str, valid_at: datetime | None
    ) -> list[BookingQuota]:
        """All quotas of a user, or only those valid at ``valid_at`` when given."""
        ...

    async def compare_and_set_remaining(
        self, db: AsyncSession, quota_id: str, expected: int, new_remaining: int
    ) -> BookingQuota | None:
        """Write ``new_remaining`` only if the stored value is still ``expected``."""
        ...

    async def delete(self, db: AsyncSession, quota_id: str) -> bool:
        """Delete an untouched quota (remaining == total); False otherwise."""
        ...


class BookingRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, booking: Booking) -> Booking: ...

    async def get_by_id(self, db: AsyncSession, booking_id: str) -> Booking | None: ...

    async def update_status(
        self,
        db: AsyncSession,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
    ) -> Booking | None:
        """Conditional status write; None if the stored status is no longer ``expected``."""
        ...

    async def list_bookings(
        self,
        db: AsyncSession,
        user_id: str | None,
        trainer_id: str | None,
        gym_id: str | None,
        status: BookingStatus | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Booking]: ...
