"""In-memory repositories and collaborators for service-level unit tests.

The fakes keep the storage contracts the services rely on:
  - quota remaining is written with compare-and-swap on the previous value
  - status writes are conditional on the expected status
  - one quota batch / one subscription per payment_id
get_by_id yields to the event loop so concurrent use cases interleave the
way they would against a real database.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.fp_booking.domain.models import Booking, BookingQuota
from src.fp_common.datetime_utils import add_days, utc_now
from src.fp_common.enums import BookingStatus, PaymentStatus, SubscriptionStatus
from src.fp_events.domain.events import DomainEvent, EventPattern
from src.fp_payment.domain.models import Payment
from src.fp_payment.domain.provider import PaymentIntent
from src.fp_trainer_offert.domain.models import TrainerOffert, TrainerSubscription


def _page(items: list[Any], cursor_ts: datetime | None, cursor_id: str | None, limit: int) -> list[Any]:
    items = sorted(items, key=lambda e: (e.created_at, e.id), reverse=True)
    if cursor_ts is not None:
        items = [e for e in items if (e.created_at, e.id) < (cursor_ts, cursor_id)]
    return items[:limit]


class FakeQuotaRepository:
    def __init__(self) -> None:
        self.quotas: dict[str, BookingQuota] = {}
        self.cas_calls = 0

    def add(self, quota: BookingQuota) -> BookingQuota:
        self.quotas[quota.id] = quota
        return quota

    async def create(self, db: Any, quota: BookingQuota) -> BookingQuota | None:
        if any(q.payment_id == quota.payment_id for q in self.quotas.values()):
            return None
        stored = replace(quota, created_at=utc_now())
        self.quotas[stored.id] = stored
        return stored

    async def get_by_id(self, db: Any, quota_id: str) -> BookingQuota | None:
        await asyncio.sleep(0)
        return self.quotas.get(quota_id)

    async def list_by_payment_id(self, db: Any, payment_id: str) -> list[BookingQuota]:
        return [q for q in self.quotas.values() if q.payment_id == payment_id]

    async def list_by_user(
        self, db: Any, user_id: str, valid_at: datetime | None
    ) -> list[BookingQuota]:
        quotas = [q for q in self.quotas.values() if q.user_id == user_id]
        if valid_at is not None:
            quotas = [q for q in quotas if q.is_valid(valid_at)]
        return quotas

    async def compare_and_set_remaining(
        self, db: Any, quota_id: str, expected: int, new_remaining: int
    ) -> BookingQuota | None:
        self.cas_calls += 1
        current = self.quotas.get(quota_id)
        if current is None or current.remaining != expected:
            return None
        updated = replace(current, remaining=new_remaining)
        self.quotas[quota_id] = updated
        return updated

    async def delete(self, db: Any, quota_id: str) -> bool:
        quota = self.quotas.get(quota_id)
        if quota is None or quota.remaining != quota.total:
            return False
        del self.quotas[quota_id]
        return True


class FakeBookingRepository:
    def __init__(self) -> None:
        self.bookings: dict[str, Booking] = {}

    def add(self, booking: Booking) -> Booking:
        self.bookings[booking.id] = booking
        return booking

    async def create(self, db: Any, booking: Booking) -> Booking:
        now = utc_now()
        stored = replace(booking, created_at=now, updated_at=now)
        self.bookings[stored.id] = stored
        return stored

    async def get_by_id(self, db: Any, booking_id: str) -> Booking | None:
        await asyncio.sleep(0)
        return self.bookings.get(booking_id)

    async def update_status(
        self, db: Any, booking_id: str, expected: BookingStatus, new_status: BookingStatus
    ) -> Booking | None:
        current = self.bookings.get(booking_id)
        if current is None or current.status is not expected:
            return None
        updated = replace(current, status=new_status, updated_at=utc_now())
        self.bookings[booking_id] = updated
        return updated

    async def list_bookings(
        self,
        db: Any,
        user_id: str | None,
        trainer_id: str | None,
        gym_id: str | None,
        status: BookingStatus | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Booking]:
        items = [
            b
            for b in self.bookings.values()
            if (user_id is None or b.user_id == user_id)
            and (trainer_id is None or b.trainer_id == trainer_id)
            and (gym_id is None or b.gym_id == gym_id)
            and (status is None or b.status is status)
        ]
        return _page(items, cursor_ts, cursor_id, limit)


class FakePaymentRepository:
    def __init__(self) -> None:
        self.payments: dict[str, Payment] = {}

    def add(self, payment: Payment) -> Payment:
        self.payments[payment.id] = payment
        return payment

    async def create(self, db: Any, payment: Payment) -> Payment:
        now = utc_now()
        stored = replace(payment, created_at=now, updated_at=now)
        self.payments[stored.id] = stored
        return replace(stored)

    async def get_by_id(self, db: Any, payment_id: str) -> Payment | None:
        await asyncio.sleep(0)
        payment = self.payments.get(payment_id)
        return replace(payment) if payment else None

    async def transition_status(
        self,
        db: Any,
        payment_id: str,
        status: PaymentStatus,
        provider_ref: str | None,
        metadata: dict[str, Any],
    ) -> Payment | None:
        current = self.payments.get(payment_id)
        if current is None or current.status is not PaymentStatus.PENDING:
            return None
        updated = replace(
            current,
            status=status,
            provider_ref=provider_ref or current.provider_ref,
            metadata={**current.metadata, **metadata},
            updated_at=utc_now(),
        )
        self.payments[payment_id] = updated
        return replace(updated)

    async def list_by_user(
        self,
        db: Any,
        user_id: str,
        status: PaymentStatus | None,
        start_date: datetime | None,
        end_date: datetime | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Payment]:
        items = [
            p
            for p in self.payments.values()
            if p.user_id == user_id and (status is None or p.status is status)
        ]
        return _page(items, cursor_ts, cursor_id, limit)


class FakeOffertRepository:
    def __init__(self) -> None:
        self.offerts: dict[str, TrainerOffert] = {}

    def add(self, offert: TrainerOffert) -> TrainerOffert:
        self.offerts[offert.id] = offert
        return offert

    async def create(self, db: Any, offert: TrainerOffert) -> TrainerOffert:
        now = utc_now()
        stored = replace(offert, created_at=now, updated_at=now)
        self.offerts[stored.id] = stored
        return stored

    async def get_by_id(self, db: Any, offert_id: str) -> TrainerOffert | None:
        return self.offerts.get(offert_id)

    async def update(self, db: Any, offert: TrainerOffert) -> TrainerOffert | None:
        if offert.id not in self.offerts:
            return None
        stored = replace(offert, updated_at=utc_now())
        self.offerts[offert.id] = stored
        return stored

    async def list_offerts(
        self,
        db: Any,
        trainer_id: str | None,
        active_only: bool,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[TrainerOffert]:
        items = [
            o
            for o in self.offerts.values()
            if (trainer_id is None or o.trainer_id == trainer_id)
            and (not active_only or o.is_active)
        ]
        return _page(items, cursor_ts, cursor_id, limit)


class FakeSubscriptionRepository:
    def __init__(self) -> None:
        self.subscriptions: dict[str, TrainerSubscription] = {}

    def add(self, subscription: TrainerSubscription) -> TrainerSubscription:
        self.subscriptions[subscription.id] = subscription
        return subscription

    async def create(
        self, db: Any, subscription: TrainerSubscription
    ) -> TrainerSubscription | None:
        if any(s.payment_id == subscription.payment_id for s in self.subscriptions.values()):
            return None
        stored = replace(subscription, created_at=utc_now())
        self.subscriptions[stored.id] = stored
        return stored

    async def get_by_id(self, db: Any, subscription_id: str) -> TrainerSubscription | None:
        return self.subscriptions.get(subscription_id)

    async def get_by_payment_id(self, db: Any, payment_id: str) -> TrainerSubscription | None:
        return next(
            (s for s in self.subscriptions.values() if s.payment_id == payment_id), None
        )

    async def list_by_user(
        self, db: Any, user_id: str, active_only: bool
    ) -> list[TrainerSubscription]:
        return [
            s
            for s in self.subscriptions.values()
            if s.user_id == user_id and (not active_only or s.is_active)
        ]

    async def update_status(
        self,
        db: Any,
        subscription_id: str,
        expected: SubscriptionStatus,
        new_status: SubscriptionStatus,
    ) -> TrainerSubscription | None:
        current = self.subscriptions.get(subscription_id)
        if current is None or current.status is not expected:
            return None
        updated = replace(current, status=new_status)
        self.subscriptions[subscription_id] = updated
        return updated

    async def list_due_for_expiry(
        self, db: Any, now: datetime, limit: int
    ) -> list[TrainerSubscription]:
        due = [s for s in self.subscriptions.values() if s.is_active and s.valid_until < now]
        return sorted(due, key=lambda s: s.valid_until)[:limit]


class RecordingPublisher:
    """Captures events instead of writing outbox rows."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def publish(
        self, db: Any, pattern: EventPattern, payload: dict[str, Any]
    ) -> DomainEvent:
        event = DomainEvent(pattern=EventPattern(pattern).value, payload=dict(payload))
        self.events.append(event)
        return event

    def of(self, pattern: EventPattern) -> list[DomainEvent]:
        return [e for e in self.events if e.pattern == pattern.value]

    def delivered(self, pattern: EventPattern) -> list[DomainEvent]:
        """Events as a consumer receives them: serialized through the stream format."""
        return [DomainEvent.from_fields(e.to_fields()) for e in self.of(pattern)]


class FakeProvider:
    name = "fake"

    def __init__(self) -> None:
        self.create_payment_intent = AsyncMock(
            side_effect=lambda amount, currency, payment_id: PaymentIntent(
                payment_url=f"https://pay.test/{payment_id}", reference=f"ref-{payment_id}"
            )
        )
        self.cancel_payment = AsyncMock(return_value=None)
        self.handle_webhook = AsyncMock()


class FakeSessionFactory:
    """Stands in for async_sessionmaker: each call opens a new mock session."""

    def __init__(self) -> None:
        self.sessions: list[AsyncMock] = []

    def __call__(self) -> Any:
        session = AsyncMock()
        self.sessions.append(session)

        @asynccontextmanager
        async def _open() -> AsyncIterator[AsyncMock]:
            yield session

        return _open()


@pytest.fixture
def db() -> AsyncMock:
    """A session whose commit/rollback are awaitable no-ops."""
    return AsyncMock()


@pytest.fixture
def quota_repo() -> FakeQuotaRepository:
    return FakeQuotaRepository()


@pytest.fixture
def booking_repo() -> FakeBookingRepository:
    return FakeBookingRepository()


@pytest.fixture
def payment_repo() -> FakePaymentRepository:
    return FakePaymentRepository()


@pytest.fixture
def offert_repo() -> FakeOffertRepository:
    return FakeOffertRepository()


@pytest.fixture
def subscription_repo() -> FakeSubscriptionRepository:
    return FakeSubscriptionRepository()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def make_quota(quota_repo: FakeQuotaRepository) -> Callable[..., BookingQuota]:
    """Store a quota valid from yesterday for a week unless told otherwise."""

    def _make(
        user_id: str = "user-1",
        total: int = 5,
        remaining: int | None = None,
        valid_from: datetime | None = None,
        valid_until: datetime | None = None,
        payment_id: str | None = None,
    ) -> BookingQuota:
        now = utc_now()
        quota = BookingQuota.create(
            user_id=user_id,
            total=total,
            valid_from=valid_from or add_days(now, -1),
            valid_until=valid_until or add_days(now, 7),
            payment_id=payment_id or f"pay-{len(quota_repo.quotas) + 1}",
        )
        if remaining is not None:
            quota = replace(quota, remaining=remaining)
        return quota_repo.add(replace(quota, created_at=now))

    return _make
