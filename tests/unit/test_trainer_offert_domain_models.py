"""Unit tests for TrainerOffert and TrainerSubscription."""

from dataclasses import replace
from datetime import timedelta

import pytest

from src.fp_common.datetime_utils import utc_now
from src.fp_common.enums import SubscriptionStatus
from src.fp_common.errors import InvalidOffertError, InvalidSubscriptionTransitionError
from src.fp_trainer_offert.domain.models import TrainerOffert, TrainerSubscription

NOW = utc_now()


def _offert(**kwargs) -> TrainerOffert:
    defaults = dict(
        trainer_id="trainer-1",
        title="Strength block",
        description="Four weeks of coached lifting",
        price_cents=12000,
        currency="USD",
        duration_in_days=30,
    )
    defaults.update(kwargs)
    return TrainerOffert.create(**defaults)


class TestTrainerOffert:
    def test_create_is_active(self) -> None:
        offert = _offert()
        assert offert.is_active is True
        assert offert.bundled_quota == 0

    def test_bundled_quota_only_when_bookings_included(self) -> None:
        assert _offert(includes_bookings=True, booking_quota=8).bundled_quota == 8
        assert _offert(includes_bookings=False, booking_quota=8).bundled_quota == 0

    def test_includes_bookings_requires_quota(self) -> None:
        with pytest.raises(InvalidOffertError):
            _offert(includes_bookings=True, booking_quota=None)
        with pytest.raises(InvalidOffertError):
            _offert(includes_bookings=True, booking_quota=0)

    @pytest.mark.parametrize(
        "kwargs",
        [{"title": "  "}, {"price_cents": -1}, {"duration_in_days": 0}, {"booking_quota": -2}],
    )
    def test_invalid_fields(self, kwargs: dict) -> None:
        with pytest.raises(InvalidOffertError):
            _offert(**kwargs)

    def test_update_returns_new_value(self) -> None:
        offert = _offert()
        updated = offert.update(title="Hypertrophy block", price_cents=15000)
        assert updated.title == "Hypertrophy block"
        assert updated.price_cents == 15000
        assert offert.title == "Strength block"
        assert updated.id == offert.id

    def test_update_ignores_none(self) -> None:
        offert = _offert()
        assert offert.update(title=None) == offert

    def test_update_rejects_unknown_fields(self) -> None:
        with pytest.raises(InvalidOffertError, match="trainer_id"):
            _offert().update(trainer_id="someone-else")

    def test_update_revalidates(self) -> None:
        with pytest.raises(InvalidOffertError):
            _offert().update(includes_bookings=True)

    def test_activation_toggle(self) -> None:
        offert = _offert().deactivate()
        assert offert.is_active is False
        assert offert.activate().is_active is True


class TestTrainerSubscription:
    def _subscription(self, status: SubscriptionStatus = SubscriptionStatus.ACTIVE) -> TrainerSubscription:
        sub = TrainerSubscription.create(
            "user-1", "off-1", NOW, NOW + timedelta(days=30), "pay-1"
        )
        return replace(sub, status=status)

    def test_create_is_active(self) -> None:
        sub = self._subscription()
        assert sub.is_active
        assert not sub.is_expired(NOW)

    def test_is_expired_after_window(self) -> None:
        assert self._subscription().is_expired(NOW + timedelta(days=31))

    def test_cancel_and_expire_from_active(self) -> None:
        assert self._subscription().cancel().status is SubscriptionStatus.CANCELLED
        assert self._subscription().expire().status is SubscriptionStatus.EXPIRED

    @pytest.mark.parametrize(
        "status", [SubscriptionStatus.CANCELLED, SubscriptionStatus.EXPIRED]
    )
    def test_leaving_active_only_once(self, status: SubscriptionStatus) -> None:
        sub = self._subscription(status)
        with pytest.raises(InvalidSubscriptionTransitionError):
            sub.cancel()
        with pytest.raises(InvalidSubscriptionTransitionError):
            sub.expire()
