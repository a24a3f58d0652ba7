"""Repository Protocols for trainer offerts and subscriptions."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_common.enums import SubscriptionStatus
from src.fp_trainer_offert.domain.models import TrainerOffert, TrainerSubscription


class TrainerOffertRepositoryProtocol(Protocol):
    async def create(self, db: AsyncSession, offert: TrainerOffert) -> TrainerOffert: ...

    async def get_by_id(self, db: AsyncSession, offert_id: str) -> TrainerOffert | None: ...

    async def update(self, db: AsyncSession, offert: TrainerOffert) -> TrainerOffert | None: ...

    async def list_offerts(
        self,
        db: AsyncSession,
        trainer_id: str | None,
        active_only: bool,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[TrainerOffert]: ...


class TrainerSubscriptionRepositoryProtocol(Protocol):
    async def create(
        self, db: AsyncSession, subscription: TrainerSubscription
    ) -> TrainerSubscription | None:
        """Insert a subscription; None if one already exists for its payment_id."""
        ...

    async def get_by_id(
        self, db: AsyncSession, subscription_id: str
    ) -> TrainerSubscription | None: ...

    async def get_by_payment_id(
        self, db: AsyncSession, payment_id: str
    ) -> TrainerSubscription | None: ...

    async def list_by_user(
        self, db: AsyncSession, user_id: str, active_only: bool
    ) -> list[TrainerSubscription]: ...

    async def update_status(
        self,
        db: AsyncSession,
        subscription_id: str,
        expected: SubscriptionStatus,
        new_status: SubscriptionStatus,
    ) -> TrainerSubscription | None:
        """Conditional status write; None if the stored status is no longer ``expected``."""
        ...

    async def list_due_for_expiry(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[TrainerSubscription]:
        """Active subscriptions whose valid_until has passed."""
        ...
