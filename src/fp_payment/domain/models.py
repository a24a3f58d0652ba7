"""Payment domain model — pure dataclass, no SQLAlchemy dependency.

Status machine:
    pending ──► completed | failed | cancelled
Terminal statuses never change again.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.fp_common.enums import PaymentPurpose, PaymentStatus
from src.fp_common.errors import InvalidPaymentPurposeError


@dataclass
class Payment:
    id: str
    user_id: str
    amount_cents: int
    currency: str
    provider: str
    status: PaymentStatus = PaymentStatus.PENDING
    gym_id: str | None = None
    provider_ref: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def can_be_cancelled(self) -> bool:
        return self.status is PaymentStatus.PENDING

    @property
    def purpose(self) -> PaymentPurpose | None:
        try:
            return PaymentPurpose(self.metadata.get("purpose"))
        except ValueError:
            return None


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_purpose_metadata(metadata: dict[str, Any]) -> PaymentPurpose:
    """Check that metadata names exactly one entitlement the payment buys.

    booking_quota        requires quotaTotal (int > 0), optional validDays (int > 0)
    trainer_subscription requires offertId (non-empty string)
    """
    try:
        purpose = PaymentPurpose(metadata.get("purpose"))
    except ValueError:
        allowed = ", ".join(p.value for p in PaymentPurpose)
        raise InvalidPaymentPurposeError(f"metadata.purpose must be one of: {allowed}") from None

    if purpose is PaymentPurpose.BOOKING_QUOTA:
        if not _positive_int(metadata.get("quotaTotal")):
            raise InvalidPaymentPurposeError("quotaTotal must be a positive integer")
        if "validDays" in metadata and not _positive_int(metadata["validDays"]):
            raise InvalidPaymentPurposeError("validDays must be a positive integer")
    else:
        offert_id = metadata.get("offertId")
        if not isinstance(offert_id, str) or not offert_id:
            raise InvalidPaymentPurposeError("offertId is required for trainer subscriptions")
    return purpose
