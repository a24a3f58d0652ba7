"""Pydantic schemas for fp_booking API."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from src.fp_booking.domain.models import Booking, BookingQuota
from src.fp_common.enums import BookingStatus

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateBookingRequest(BaseModel):
    quota_id: str = Field(..., min_length=1, max_length=36)
    gym_id: str = Field(..., min_length=1, max_length=64)
    trainer_id: str | None = Field(None, max_length=64)
    date: datetime


class GenerateQuotasRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    payment_id: str = Field(..., min_length=1, max_length=36)
    total_quotas: int = Field(..., gt=0)
    valid_from: datetime
    valid_until: datetime

    @model_validator(mode="after")
    def window_is_ordered(self) -> "GenerateQuotasRequest":
        if self.valid_until < self.valid_from:
            raise ValueError("valid_until must not precede valid_from")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class QuotaResponse(BaseModel):
    id: str
    user_id: str
    total: int
    remaining: int
    valid_from: datetime
    valid_until: datetime
    payment_id: str
    is_valid: bool
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, quota: BookingQuota, now: datetime | None = None) -> "QuotaResponse":
        return cls(
            id=quota.id,
            user_id=quota.user_id,
            total=quota.total,
            remaining=quota.remaining,
            valid_from=quota.valid_from,
            valid_until=quota.valid_until,
            payment_id=quota.payment_id,
            is_valid=quota.is_valid(now),
            created_at=quota.created_at,
        )


class QuotaListResponse(BaseModel):
    items: list[QuotaResponse]


class BookingResponse(BaseModel):
    id: str
    user_id: str
    trainer_id: str | None
    gym_id: str
    date: datetime
    status: BookingStatus
    quota_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            trainer_id=booking.trainer_id,
            gym_id=booking.gym_id,
            date=booking.date,
            status=booking.status,
            quota_id=booking.quota_id,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class CreateBookingResponse(BaseModel):
    booking: BookingResponse
    quota_remaining: int


class CancelBookingResponse(BaseModel):
    booking: BookingResponse
    quota_refunded: bool
    quota_remaining: int | None


class BookingListResponse(BaseModel):
    items: list[BookingResponse]
    next_cursor: str | None
    has_more: bool
