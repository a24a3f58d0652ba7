"""Unit tests for OffertApplicationService and SubscriptionApplicationService."""

from dataclasses import replace
from datetime import timedelta

import pytest

from src.fp_common.datetime_utils import utc_now
from src.fp_common.enums import SubscriptionStatus
from src.fp_common.errors import (
    InvalidStateError,
    InvalidSubscriptionTransitionError,
    OffertAccessDeniedError,
    OffertNotAvailableError,
    OffertNotFoundError,
    SubscriptionAccessDeniedError,
    SubscriptionAlreadyProvisionedError,
    UnsupportedCurrencyError,
)
from src.fp_events.domain.events import EventPattern
from src.fp_trainer_offert.application.offert_service import OffertApplicationService
from src.fp_trainer_offert.application.subscription_service import (
    SubscriptionApplicationService,
)
from src.fp_trainer_offert.domain.models import TrainerOffert, TrainerSubscription


@pytest.fixture
def offerts(offert_repo, publisher) -> OffertApplicationService:
    return OffertApplicationService(repo=offert_repo, publisher=publisher)


@pytest.fixture
def subscriptions(subscription_repo, offert_repo, publisher) -> SubscriptionApplicationService:
    return SubscriptionApplicationService(
        repo=subscription_repo, offert_repo=offert_repo, publisher=publisher
    )


def _stored_offert(offert_repo, **kwargs) -> TrainerOffert:
    defaults = dict(
        trainer_id="trainer-1",
        title="Coaching",
        description="",
        price_cents=9900,
        currency="USD",
        duration_in_days=30,
    )
    defaults.update(kwargs)
    return offert_repo.add(replace(TrainerOffert.create(**defaults), created_at=utc_now()))


class TestOffertService:
    async def test_create(self, offerts, offert_repo, publisher, db) -> None:
        result = await offerts.create_offert(
            db, "trainer-1", "Coaching", "Weekly sessions", 9900, "USD", 30, True, 4
        )

        assert result.trainer_id == "trainer-1"
        assert result.price_display == "USD 99.00"
        assert result.is_active is True
        assert result.id in offert_repo.offerts
        [event] = publisher.of(EventPattern.OFFERT_CREATED)
        assert event.payload["bookingQuota"] == 4

    async def test_create_unsupported_currency(self, offerts, db) -> None:
        with pytest.raises(UnsupportedCurrencyError):
            await offerts.create_offert(db, "trainer-1", "Coaching", "", 9900, "XYZ", 30)

    async def test_update_by_owner(self, offerts, offert_repo, publisher, db) -> None:
        offert = _stored_offert(offert_repo)

        result = await offerts.update_offert(
            db, offert.id, "trainer-1", {"title": "Premium coaching", "price_cents": 14900}
        )

        assert result.title == "Premium coaching"
        assert offert_repo.offerts[offert.id].price_cents == 14900
        assert len(publisher.of(EventPattern.OFFERT_UPDATED)) == 1

    async def test_update_by_other_trainer(self, offerts, offert_repo, db) -> None:
        offert = _stored_offert(offert_repo)
        with pytest.raises(OffertAccessDeniedError):
            await offerts.update_offert(db, offert.id, "trainer-2", {"title": "Mine now"})

    async def test_deactivate_and_activate(self, offerts, offert_repo, publisher, db) -> None:
        offert = _stored_offert(offert_repo)

        deactivated = await offerts.deactivate_offert(db, offert.id, "trainer-1")
        assert deactivated.is_active is False
        assert len(publisher.of(EventPattern.OFFERT_DEACTIVATED)) == 1

        activated = await offerts.activate_offert(db, offert.id, "trainer-1")
        assert activated.is_active is True

    async def test_get_missing(self, offerts, db) -> None:
        with pytest.raises(OffertNotFoundError):
            await offerts.get_offert(db, "nope")

    async def test_list_active_only(self, offerts, offert_repo, db) -> None:
        _stored_offert(offert_repo)
        offert_repo.add(_stored_offert(offert_repo).deactivate())
        _stored_offert(offert_repo, trainer_id="trainer-2")

        active = await offerts.list_offerts(db, None, True, None, 20)
        mine = await offerts.list_offerts(db, "trainer-1", False, None, 20)

        assert len(active.items) == 2
        assert len(mine.items) == 2


class TestCreateSubscriptionFromPayment:
    async def test_creates_active_subscription(self, subscriptions, offert_repo, subscription_repo, publisher, db) -> None:
        offert = _stored_offert(offert_repo, duration_in_days=30, includes_bookings=True, booking_quota=8)

        result = await subscriptions.create_subscription_from_payment(db, "user-1", offert.id, "pay-1")

        assert result.status is SubscriptionStatus.ACTIVE
        assert result.valid_until - result.valid_from == timedelta(days=30)
        assert len(subscription_repo.subscriptions) == 1
        [event] = publisher.of(EventPattern.SUBSCRIPTION_CREATED)
        assert event.payload["bookingQuota"] == 8
        assert event.payload["trainerId"] == "trainer-1"
        assert event.payload["paymentId"] == "pay-1"

    async def test_booking_quota_zero_without_bundle(self, subscriptions, offert_repo, publisher, db) -> None:
        offert = _stored_offert(offert_repo, includes_bookings=False, booking_quota=8)
        await subscriptions.create_subscription_from_payment(db, "user-1", offert.id, "pay-1")
        [event] = publisher.of(EventPattern.SUBSCRIPTION_CREATED)
        assert event.payload["bookingQuota"] == 0

    async def test_same_payment_twice(self, subscriptions, offert_repo, subscription_repo, db) -> None:
        offert = _stored_offert(offert_repo)
        await subscriptions.create_subscription_from_payment(db, "user-1", offert.id, "pay-1")

        with pytest.raises(SubscriptionAlreadyProvisionedError) as exc_info:
            await subscriptions.create_subscription_from_payment(db, "user-1", offert.id, "pay-1")

        assert isinstance(exc_info.value, InvalidStateError)
        matching = [s for s in subscription_repo.subscriptions.values() if s.payment_id == "pay-1"]
        assert len(matching) == 1

    async def test_missing_offert(self, subscriptions, db) -> None:
        with pytest.raises(OffertNotFoundError):
            await subscriptions.create_subscription_from_payment(db, "user-1", "nope", "pay-1")

    async def test_inactive_offert(self, subscriptions, offert_repo, db) -> None:
        offert = offert_repo.add(_stored_offert(offert_repo).deactivate())
        with pytest.raises(OffertNotAvailableError):
            await subscriptions.create_subscription_from_payment(db, "user-1", offert.id, "pay-1")


class TestSubscriptionLifecycle:
    def _stored(self, subscription_repo, user_id: str = "user-1", days_left: int = 10) -> TrainerSubscription:
        now = utc_now()
        sub = TrainerSubscription.create(
            user_id,
            "off-1",
            now - timedelta(days=30),
            now + timedelta(days=days_left),
            f"pay-{len(subscription_repo.subscriptions)}",
        )
        return subscription_repo.add(replace(sub, created_at=now))

    async def test_cancel(self, subscriptions, subscription_repo, publisher, db) -> None:
        sub = self._stored(subscription_repo)
        result = await subscriptions.cancel_subscription(db, sub.id, "user-1")
        assert result.status is SubscriptionStatus.CANCELLED
        assert len(publisher.of(EventPattern.SUBSCRIPTION_CANCELLED)) == 1

    async def test_cancel_twice(self, subscriptions, subscription_repo, db) -> None:
        sub = self._stored(subscription_repo)
        await subscriptions.cancel_subscription(db, sub.id, "user-1")
        with pytest.raises(InvalidSubscriptionTransitionError):
            await subscriptions.cancel_subscription(db, sub.id, "user-1")

    async def test_cancel_other_user(self, subscriptions, subscription_repo, db) -> None:
        sub = self._stored(subscription_repo)
        with pytest.raises(SubscriptionAccessDeniedError):
            await subscriptions.cancel_subscription(db, sub.id, "user-2")

    async def test_list_active_only(self, subscriptions, subscription_repo, db) -> None:
        self._stored(subscription_repo)
        cancelled = self._stored(subscription_repo)
        subscription_repo.add(cancelled.cancel())

        assert len((await subscriptions.list_user_subscriptions(db, "user-1")).items) == 2
        assert len((await subscriptions.list_user_subscriptions(db, "user-1", True)).items) == 1

    async def test_expire_due(self, subscriptions, subscription_repo, publisher, db) -> None:
        lapsed = self._stored(subscription_repo, days_left=-1)
        current = self._stored(subscription_repo, days_left=5)

        count = await subscriptions.expire_due_subscriptions(db)

        assert count == 1
        assert subscription_repo.subscriptions[lapsed.id].status is SubscriptionStatus.EXPIRED
        assert subscription_repo.subscriptions[current.id].status is SubscriptionStatus.ACTIVE
        [event] = publisher.of(EventPattern.SUBSCRIPTION_EXPIRED)
        assert event.payload["subscriptionId"] == lapsed.id
        assert await subscriptions.expire_due_subscriptions(db) == 0
