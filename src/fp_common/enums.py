"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class PaymentPurpose(str, Enum):
    """What a payment buys; stored as metadata["purpose"]."""
    BOOKING_QUOTA = "booking_quota"
    TRAINER_SUBSCRIPTION = "trainer_subscription"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class UserRole(str, Enum):
    USER = "user"
    TRAINER = "trainer"
    GYM_OWNER = "gym_owner"
    ADMIN = "admin"
