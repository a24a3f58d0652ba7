"""PaymentRepository Protocol — interface contract for persistence layer."""

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_common.enums import PaymentStatus
from src.fp_payment.domain.models import Payment


class PaymentRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, payment: Payment) -> Payment: ...

    async def get_by_id(self, db: AsyncSession, payment_id: str) -> Payment | None: ...

    async def transition_status(
        self,
        db: AsyncSession,
        payment_id: str,
        status: PaymentStatus,
        provider_ref: str | None,
        metadata: dict[str, Any],
    ) -> Payment | None:
        """Move a pending payment to ``status``; None if it was no longer pending."""
        ...

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: PaymentStatus | None,
        start_date: datetime | None,
        end_date: datetime | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Payment]: ...
