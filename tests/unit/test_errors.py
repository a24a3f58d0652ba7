"""Tests for fp_common.errors taxonomy and fp_common.response."""

import pytest

from src.fp_common.errors import (
    AppError,
    BookingNotFoundError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    OffertNotAvailableError,
    PaymentAccessDeniedError,
    PaymentNotCancellableError,
    PaymentProviderError,
    QuotaAlreadyProvisionedError,
    QuotaConflictError,
    QuotaExhaustedError,
    SubscriptionAlreadyProvisionedError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from src.fp_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500
        assert isinstance(err, Exception)


class TestTaxonomy:
    @pytest.mark.parametrize(
        ("err", "category", "status"),
        [
            (BookingNotFoundError("b-1"), NotFoundError, 404),
            (PaymentAccessDeniedError(), UnauthorizedError, 403),
            (QuotaExhaustedError("q-1"), InvalidStateError, 422),
            (PaymentNotCancellableError("p-1", "completed"), InvalidStateError, 422),
            (QuotaAlreadyProvisionedError("p-1"), InvalidStateError, 422),
            (SubscriptionAlreadyProvisionedError("p-1"), InvalidStateError, 422),
            (OffertNotAvailableError("o-1"), InvalidStateError, 422),
            (QuotaConflictError("q-1"), ConflictError, 409),
            (PaymentProviderError("timeout"), UpstreamUnavailableError, 502),
        ],
    )
    def test_category_and_status(self, err: AppError, category: type, status: int) -> None:
        assert isinstance(err, category)
        assert err.http_status == status

    def test_codes_are_unique(self) -> None:
        errors = [
            BookingNotFoundError("b"),
            PaymentAccessDeniedError(),
            QuotaExhaustedError("q"),
            QuotaAlreadyProvisionedError("p"),
            SubscriptionAlreadyProvisionedError("p"),
            QuotaConflictError("q"),
            PaymentProviderError("x"),
        ]
        assert len({e.code for e in errors}) == len(errors)

    def test_message_names_entity(self) -> None:
        err = PaymentNotCancellableError("pay-9", "completed")
        assert "pay-9" in err.message
        assert "completed" in err.message


class TestApiResponse:
    def test_success_response(self) -> None:
        resp = success_response({"id": "x"})
        assert isinstance(resp, ApiResponse)
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"id": "x"}
        assert resp.request_id.startswith("req_")

    def test_error_response(self) -> None:
        resp = error_response(3003, "No remaining quotas")
        assert resp.code == 3003
        assert resp.data is None
