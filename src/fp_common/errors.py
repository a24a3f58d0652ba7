"""Unified error codes and custom exceptions.

Categories (HTTP status):
  NotFoundError            404  entity missing
  UnauthorizedError        403  caller does not own the entity / lacks the role
  InvalidStateError        422  state-machine violation, never retried automatically
  ConflictError            409  optimistic write lost the race, safe to retry
  UpstreamUnavailableError 502  payment provider call failed

Error code ranges:
  1xxx: Auth
  2xxx: Payment
  3xxx: Booking / Quota
  4xxx: Trainer offert / Subscription
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 404)


class UnauthorizedError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 403)


class InvalidStateError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 422)


class ConflictError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 409)


class UpstreamUnavailableError(AppError):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(code, message, 502)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class RoleRequiredError(UnauthorizedError):
    def __init__(self, roles: list[str]) -> None:
        super().__init__(1002, f"Requires one of roles: {', '.join(roles)}")


# --- 2xxx: Payment ---

class PaymentNotFoundError(NotFoundError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(2001, f"Payment {payment_id} not found")


class PaymentAccessDeniedError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(2002, "Unauthorized to access this payment")


class PaymentNotCancellableError(InvalidStateError):
    def __init__(self, payment_id: str, status: str) -> None:
        super().__init__(2003, f"Payment {payment_id} in status {status} cannot be cancelled")


class UnsupportedCurrencyError(InvalidStateError):
    def __init__(self, currency: str) -> None:
        super().__init__(2004, f"Unsupported currency: {currency}")


class InvalidPaymentPurposeError(InvalidStateError):
    def __init__(self, detail: str) -> None:
        super().__init__(2005, f"Invalid payment purpose: {detail}")


class InvalidWebhookSignatureError(AppError):
    def __init__(self) -> None:
        super().__init__(2006, "Webhook signature verification failed", 400)


class InvalidWebhookPayloadError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2007, f"Invalid webhook payload: {detail}", 400)


class PaymentProviderError(UpstreamUnavailableError):
    def __init__(self, detail: str) -> None:
        super().__init__(2008, f"Payment provider unavailable: {detail}")


# --- 3xxx: Booking / Quota ---

class QuotaNotFoundError(NotFoundError):
    def __init__(self, quota_id: str) -> None:
        super().__init__(3001, f"Quota {quota_id} not found")


class QuotaAccessDeniedError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(3002, "Quota does not belong to the user")


class QuotaExhaustedError(InvalidStateError):
    def __init__(self, quota_id: str) -> None:
        super().__init__(3003, f"No remaining quotas available in {quota_id}")


class QuotaExpiredError(InvalidStateError):
    def __init__(self, quota_id: str) -> None:
        super().__init__(3004, f"Quota {quota_id} has expired")


class QuotaNotYetValidError(InvalidStateError):
    def __init__(self, quota_id: str) -> None:
        super().__init__(3005, f"Quota {quota_id} is not valid yet")


class QuotaOverRefundError(InvalidStateError):
    def __init__(self, quota_id: str) -> None:
        super().__init__(3006, f"Cannot refund more quotas than the total in {quota_id}")


class QuotaAlreadyProvisionedError(InvalidStateError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(3007, f"Quotas already exist for payment {payment_id}")


class QuotaConflictError(ConflictError):
    def __init__(self, quota_id: str) -> None:
        super().__init__(
            3008, f"Concurrent update on quota {quota_id}, please retry the request"
        )


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(3009, f"Booking {booking_id} not found")


class BookingAccessDeniedError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(3010, "User is not authorized to modify this booking")


class InvalidBookingTransitionError(InvalidStateError):
    def __init__(self, booking_id: str, current: str, target: str) -> None:
        super().__init__(
            3011, f"Booking {booking_id} cannot move from {current} to {target}"
        )


class InvalidQuotaError(InvalidStateError):
    def __init__(self, detail: str) -> None:
        super().__init__(3012, f"Invalid quota: {detail}")


# --- 4xxx: Trainer offert / Subscription ---

class OffertNotFoundError(NotFoundError):
    def __init__(self, offert_id: str) -> None:
        super().__init__(4001, f"Offert {offert_id} not found")


class OffertNotAvailableError(InvalidStateError):
    def __init__(self, offert_id: str) -> None:
        super().__init__(4002, f"Offert {offert_id} is not active")


class OffertAccessDeniedError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(4003, "Only the owning trainer can modify this offert")


class InvalidOffertError(InvalidStateError):
    def __init__(self, detail: str) -> None:
        super().__init__(4004, f"Invalid offert: {detail}")


class SubscriptionNotFoundError(NotFoundError):
    def __init__(self, subscription_id: str) -> None:
        super().__init__(4005, f"Subscription {subscription_id} not found")


class SubscriptionAccessDeniedError(UnauthorizedError):
    def __init__(self) -> None:
        super().__init__(4006, "Subscription does not belong to the user")


class SubscriptionAlreadyProvisionedError(InvalidStateError):
    def __init__(self, payment_id: str) -> None:
        super().__init__(4007, f"Subscription already exists for payment {payment_id}")


class InvalidSubscriptionTransitionError(InvalidStateError):
    def __init__(self, subscription_id: str, current: str, target: str) -> None:
        super().__init__(
            4008, f"Subscription {subscription_id} cannot move from {current} to {target}"
        )

