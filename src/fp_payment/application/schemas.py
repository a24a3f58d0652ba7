"""Pydantic schemas for fp_payment API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.fp_common.cents import cents_to_display
from src.fp_common.enums import PaymentStatus
from src.fp_payment.domain.models import Payment

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreatePaymentRequest(BaseModel):
    gym_id: str | None = Field(None, max_length=64)
    amount_cents: int = Field(..., gt=0, description="Amount in minor currency units")
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 code")
    provider: str | None = Field(None, max_length=32)
    metadata: dict[str, Any] = Field(
        ..., description='Entitlement bought, e.g. {"purpose": "booking_quota", "quotaTotal": 10}'
    )


class CancelPaymentRequest(BaseModel):
    reason: str | None = Field(None, max_length=255)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PaymentResponse(BaseModel):
    id: str
    user_id: str
    gym_id: str | None
    amount_cents: int
    amount_display: str
    currency: str
    provider: str
    status: PaymentStatus
    provider_ref: str | None
    purpose: str | None
    metadata: dict[str, Any]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, payment: Payment) -> "PaymentResponse":
        return cls(
            id=payment.id,
            user_id=payment.user_id,
            gym_id=payment.gym_id,
            amount_cents=payment.amount_cents,
            amount_display=cents_to_display(payment.amount_cents, payment.currency),
            currency=payment.currency,
            provider=payment.provider,
            status=payment.status,
            provider_ref=payment.provider_ref,
            purpose=payment.purpose.value if payment.purpose else None,
            metadata=payment.metadata,
            created_at=payment.created_at,
            updated_at=payment.updated_at,
        )


class CreatePaymentResponse(BaseModel):
    payment: PaymentResponse
    payment_url: str


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]
    next_cursor: str | None
    has_more: bool
