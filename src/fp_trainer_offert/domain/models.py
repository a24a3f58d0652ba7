"""Trainer offert domain models — frozen dataclasses, copy-on-write.

TrainerOffert: a purchasable package (price, duration, optional bundled
booking quota). Subscriptions: entitlements created from completed payments.

Subscription state machine:
    active ──► cancelled
       └─────► expired
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from src.fp_common.datetime_utils import utc_now
from src.fp_common.enums import SubscriptionStatus
from src.fp_common.errors import InvalidOffertError, InvalidSubscriptionTransitionError
from src.fp_common.id_generator import new_id

_UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "price_cents",
        "currency",
        "duration_in_days",
        "includes_bookings",
        "booking_quota",
    }
)


@dataclass(frozen=True)
class TrainerOffert:
    id: str
    trainer_id: str
    title: str
    description: str
    price_cents: int
    currency: str
    duration_in_days: int
    includes_bookings: bool = False
    booking_quota: int | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.title.strip():
            raise InvalidOffertError("title must not be blank")
        if self.price_cents < 0:
            raise InvalidOffertError("price must not be negative")
        if self.duration_in_days < 1:
            raise InvalidOffertError("duration_in_days must be at least 1")
        if self.includes_bookings and not (self.booking_quota and self.booking_quota > 0):
            raise InvalidOffertError("booking_quota must be positive when bookings are included")
        if self.booking_quota is not None and self.booking_quota < 0:
            raise InvalidOffertError("booking_quota must not be negative")

    @classmethod
    def create(
        cls,
        trainer_id: str,
        title: str,
        description: str,
        price_cents: int,
        currency: str,
        duration_in_days: int,
        includes_bookings: bool = False,
        booking_quota: int | None = None,
    ) -> "TrainerOffert":
        return cls(
            id=new_id(),
            trainer_id=trainer_id,
            title=title,
            description=description,
            price_cents=price_cents,
            currency=currency,
            duration_in_days=duration_in_days,
            includes_bookings=includes_bookings,
            booking_quota=booking_quota,
            is_active=True,
        )

    @property
    def bundled_quota(self) -> int:
        """Booking quota granted with each subscription (0 when none)."""
        return (self.booking_quota or 0) if self.includes_bookings else 0

    def update(self, **changes: Any) -> "TrainerOffert":
        """Return a copy with the given fields replaced; None values are ignored."""
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise InvalidOffertError(f"cannot update {', '.join(sorted(unknown))}")
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def activate(self) -> "TrainerOffert":
        return replace(self, is_active=True)

    def deactivate(self) -> "TrainerOffert":
        return replace(self, is_active=False)


@dataclass(frozen=True)
class TrainerSubscription:
    id: str
    user_id: str
    offert_id: str
    valid_from: datetime
    valid_until: datetime
    payment_id: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    created_at: datetime | None = None

    @classmethod
    def create(
        cls,
        user_id: str,
        offert_id: str,
        valid_from: datetime,
        valid_until: datetime,
        payment_id: str,
    ) -> "TrainerSubscription":
        return cls(
            id=new_id(),
            user_id=user_id,
            offert_id=offert_id,
            valid_from=valid_from,
            valid_until=valid_until,
            payment_id=payment_id,
            status=SubscriptionStatus.ACTIVE,
        )

    @property
    def is_active(self) -> bool:
        return self.status is SubscriptionStatus.ACTIVE

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.status is SubscriptionStatus.EXPIRED or (now or utc_now()) > self.valid_until

    def _leave_active(self, target: SubscriptionStatus) -> "TrainerSubscription":
        if not self.is_active:
            raise InvalidSubscriptionTransitionError(self.id, self.status.value, target.value)
        return replace(self, status=target)

    def cancel(self) -> "TrainerSubscription":
        return self._leave_active(SubscriptionStatus.CANCELLED)

    def expire(self) -> "TrainerSubscription":
        return self._leave_active(SubscriptionStatus.EXPIRED)
