"""SimulatedPaymentProvider — in-process stand-in for a card processor.

Checkout URLs point at PAYMENT_CHECKOUT_BASE_URL. Webhooks are JSON bodies
signed with HMAC-SHA256 over the raw bytes using PAYMENT_WEBHOOK_SECRET, hex
digest in the X-Signature header:

    {"paymentId": "...", "status": "completed", "providerRef": "...", "metadata": {}}
"""

import hashlib
import hmac
import json
import logging
import uuid

from config.settings import settings
from src.fp_common.enums import PaymentStatus
from src.fp_common.errors import InvalidWebhookPayloadError, InvalidWebhookSignatureError
from src.fp_payment.domain.provider import PaymentIntent, WebhookNotification

logger = logging.getLogger(__name__)


class SimulatedPaymentProvider:
    name = "simulated"

    def __init__(
        self,
        webhook_secret: str = settings.PAYMENT_WEBHOOK_SECRET,
        checkout_base_url: str = settings.PAYMENT_CHECKOUT_BASE_URL,
    ) -> None:
        self._secret = webhook_secret.encode()
        self._checkout_base_url = checkout_base_url.rstrip("/")

    def sign(self, raw_body: bytes) -> str:
        return hmac.new(self._secret, raw_body, hashlib.sha256).hexdigest()

    async def create_payment_intent(
        self, amount_cents: int, currency: str, payment_id: str
    ) -> PaymentIntent:
        reference = f"sim_{uuid.uuid4().hex}"
        logger.info(
            "Simulated intent %s for payment %s (%d %s)",
            reference,
            payment_id,
            amount_cents,
            currency,
        )
        return PaymentIntent(
            payment_url=f"{self._checkout_base_url}/{reference}",
            reference=reference,
        )

    async def handle_webhook(
        self, raw_body: bytes, signature: str | None
    ) -> WebhookNotification:
        if not signature or not hmac.compare_digest(self.sign(raw_body), signature):
            raise InvalidWebhookSignatureError()

        try:
            body = json.loads(raw_body)
        except ValueError:
            raise InvalidWebhookPayloadError("body is not valid JSON") from None
        if not isinstance(body, dict):
            raise InvalidWebhookPayloadError("body must be a JSON object")

        payment_id = body.get("paymentId")
        provider_ref = body.get("providerRef")
        if not payment_id or not provider_ref:
            raise InvalidWebhookPayloadError("paymentId and providerRef are required")
        try:
            status = PaymentStatus(body.get("status"))
        except ValueError:
            raise InvalidWebhookPayloadError(f"unknown status {body.get('status')!r}") from None
        metadata = body.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise InvalidWebhookPayloadError("metadata must be an object")

        return WebhookNotification(
            payment_id=str(payment_id),
            status=status,
            provider_ref=str(provider_ref),
            metadata=metadata,
        )

    async def cancel_payment(self, reference: str) -> None:
        logger.info("Simulated cancellation of intent %s", reference)
