"""Booking domain models — frozen dataclasses, no SQLAlchemy dependency.

Entities are immutable: consume()/refund()/confirm()/... return a new value.
The repository persists the new value conditioned on the previously read
one (compare-and-swap), so the domain never mutates shared state.

BookingQuota invariant: 0 <= remaining <= total, total > 0.

Booking state machine:
    pending ──► confirmed ──► completed
       │            │
       └────────────┴──► cancelled
"""

from dataclasses import dataclass, replace
from datetime import datetime

from src.fp_common.datetime_utils import utc_now
from src.fp_common.enums import BookingStatus
from src.fp_common.errors import (
    InvalidBookingTransitionError,
    InvalidQuotaError,
    QuotaExhaustedError,
    QuotaExpiredError,
    QuotaNotYetValidError,
    QuotaOverRefundError,
)
from src.fp_common.id_generator import new_id


@dataclass(frozen=True)
class BookingQuota:
    id: str
    user_id: str
    total: int
    remaining: int
    valid_from: datetime
    valid_until: datetime
    payment_id: str
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.total <= 0:
            raise InvalidQuotaError("total must be positive")
        if not 0 <= self.remaining <= self.total:
            raise InvalidQuotaError(f"remaining {self.remaining} outside [0, {self.total}]")
        if self.valid_until < self.valid_from:
            raise InvalidQuotaError("valid_until precedes valid_from")

    @classmethod
    def create(
        cls,
        user_id: str,
        total: int,
        valid_from: datetime,
        valid_until: datetime,
        payment_id: str,
    ) -> "BookingQuota":
        return cls(
            id=new_id(),
            user_id=user_id,
            total=total,
            remaining=total,
            valid_from=valid_from,
            valid_until=valid_until,
            payment_id=payment_id,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) > self.valid_until

    def is_valid(self, now: datetime | None = None) -> bool:
        now = now or utc_now()
        return self.valid_from <= now <= self.valid_until and self.remaining > 0

    def check_valid(self, now: datetime | None = None) -> None:
        """Raise the specific InvalidState error explaining why is_valid() is False."""
        now = now or utc_now()
        if self.remaining <= 0:
            raise QuotaExhaustedError(self.id)
        if now > self.valid_until:
            raise QuotaExpiredError(self.id)
        if now < self.valid_from:
            raise QuotaNotYetValidError(self.id)

    def consume(self, now: datetime | None = None) -> "BookingQuota":
        if self.remaining <= 0:
            raise QuotaExhaustedError(self.id)
        if self.is_expired(now):
            raise QuotaExpiredError(self.id)
        return replace(self, remaining=self.remaining - 1)

    def refund(self) -> "BookingQuota":
        # Ledger correction: allowed after expiry
        if self.remaining >= self.total:
            raise QuotaOverRefundError(self.id)
        return replace(self, remaining=self.remaining + 1)


@dataclass(frozen=True)
class Booking:
    id: str
    user_id: str
    gym_id: str
    date: datetime
    quota_id: str
    status: BookingStatus = BookingStatus.PENDING
    trainer_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def create(
        cls,
        user_id: str,
        trainer_id: str | None,
        gym_id: str,
        date: datetime,
        quota_id: str,
    ) -> "Booking":
        return cls(
            id=new_id(),
            user_id=user_id,
            trainer_id=trainer_id,
            gym_id=gym_id,
            date=date,
            quota_id=quota_id,
            status=BookingStatus.PENDING,
        )

    @property
    def is_cancellable(self) -> bool:
        return self.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)

    def _transition(self, target: BookingStatus, allowed_from: tuple[BookingStatus, ...]) -> "Booking":
        if self.status not in allowed_from:
            raise InvalidBookingTransitionError(self.id, self.status.value, target.value)
        return replace(self, status=target)

    def confirm(self) -> "Booking":
        return self._transition(BookingStatus.CONFIRMED, (BookingStatus.PENDING,))

    def complete(self) -> "Booking":
        return self._transition(BookingStatus.COMPLETED, (BookingStatus.CONFIRMED,))

    def cancel(self) -> "Booking":
        return self._transition(
            BookingStatus.CANCELLED, (BookingStatus.PENDING, BookingStatus.CONFIRMED)
        )
