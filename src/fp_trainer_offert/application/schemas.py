"""Pydantic schemas for fp_trainer_offert API."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.fp_common.cents import cents_to_display
from src.fp_common.enums import SubscriptionStatus
from src.fp_trainer_offert.domain.models import TrainerOffert, TrainerSubscription

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateOffertRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    price_cents: int = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    duration_in_days: int = Field(..., ge=1)
    includes_bookings: bool = False
    booking_quota: int | None = Field(None, ge=0)


class UpdateOffertRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    price_cents: int | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    duration_in_days: int | None = Field(None, ge=1)
    includes_bookings: bool | None = None
    booking_quota: int | None = Field(None, ge=0)


class ProvisionSubscriptionRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    offert_id: str = Field(..., min_length=1, max_length=36)
    payment_id: str = Field(..., min_length=1, max_length=36)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OffertResponse(BaseModel):
    id: str
    trainer_id: str
    title: str
    description: str
    price_cents: int
    price_display: str
    currency: str
    duration_in_days: int
    includes_bookings: bool
    booking_quota: int | None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, offert: TrainerOffert) -> "OffertResponse":
        return cls(
            id=offert.id,
            trainer_id=offert.trainer_id,
            title=offert.title,
            description=offert.description,
            price_cents=offert.price_cents,
            price_display=cents_to_display(offert.price_cents, offert.currency),
            currency=offert.currency,
            duration_in_days=offert.duration_in_days,
            includes_bookings=offert.includes_bookings,
            booking_quota=offert.booking_quota,
            is_active=offert.is_active,
            created_at=offert.created_at,
            updated_at=offert.updated_at,
        )


class OffertListResponse(BaseModel):
    items: list[OffertResponse]
    next_cursor: str | None
    has_more: bool


class SubscriptionResponse(BaseModel):
    id: str
    user_id: str
    offert_id: str
    valid_from: datetime
    valid_until: datetime
    status: SubscriptionStatus
    payment_id: str
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, subscription: TrainerSubscription) -> "SubscriptionResponse":
        return cls(
            id=subscription.id,
            user_id=subscription.user_id,
            offert_id=subscription.offert_id,
            valid_from=subscription.valid_from,
            valid_until=subscription.valid_until,
            status=subscription.status,
            payment_id=subscription.payment_id,
            created_at=subscription.created_at,
        )


class SubscriptionListResponse(BaseModel):
    items: list[SubscriptionResponse]
