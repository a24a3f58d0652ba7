"""Unit tests for fp_payment domain model and purpose metadata."""

import pytest

from src.fp_common.enums import PaymentPurpose, PaymentStatus
from src.fp_common.errors import InvalidPaymentPurposeError
from src.fp_payment.domain.models import Payment, validate_purpose_metadata


def _payment(status: PaymentStatus = PaymentStatus.PENDING, **metadata) -> Payment:
    return Payment(
        id="pay-1",
        user_id="user-1",
        amount_cents=5000,
        currency="USD",
        provider="simulated",
        status=status,
        metadata=metadata,
    )


class TestPaymentStatus:
    def test_pending_is_not_terminal(self) -> None:
        payment = _payment()
        assert payment.is_terminal is False
        assert payment.can_be_cancelled is True

    @pytest.mark.parametrize(
        "status", [PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED]
    )
    def test_terminal_statuses(self, status: PaymentStatus) -> None:
        payment = _payment(status)
        assert payment.is_terminal is True
        assert payment.can_be_cancelled is False


class TestPurpose:
    def test_reads_purpose_from_metadata(self) -> None:
        payment = _payment(purpose="booking_quota", quotaTotal=5)
        assert payment.purpose is PaymentPurpose.BOOKING_QUOTA

    def test_unknown_purpose_is_none(self) -> None:
        assert _payment(purpose="gift_card").purpose is None
        assert _payment().purpose is None


class TestValidatePurposeMetadata:
    def test_booking_quota(self) -> None:
        purpose = validate_purpose_metadata({"purpose": "booking_quota", "quotaTotal": 10})
        assert purpose is PaymentPurpose.BOOKING_QUOTA

    def test_booking_quota_with_valid_days(self) -> None:
        validate_purpose_metadata(
            {"purpose": "booking_quota", "quotaTotal": 10, "validDays": 60}
        )

    def test_trainer_subscription(self) -> None:
        purpose = validate_purpose_metadata(
            {"purpose": "trainer_subscription", "offertId": "off-1"}
        )
        assert purpose is PaymentPurpose.TRAINER_SUBSCRIPTION

    @pytest.mark.parametrize(
        "metadata",
        [
            {},
            {"purpose": "unknown"},
            {"purpose": "booking_quota"},
            {"purpose": "booking_quota", "quotaTotal": 0},
            {"purpose": "booking_quota", "quotaTotal": "5"},
            {"purpose": "booking_quota", "quotaTotal": True},
            {"purpose": "booking_quota", "quotaTotal": 5, "validDays": -1},
            {"purpose": "trainer_subscription"},
            {"purpose": "trainer_subscription", "offertId": ""},
        ],
    )
    def test_rejects_incomplete_metadata(self, metadata: dict) -> None:
        with pytest.raises(InvalidPaymentPurposeError) as exc_info:
            validate_purpose_metadata(metadata)
        assert exc_info.value.http_status == 422
