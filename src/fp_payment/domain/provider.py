"""Payment provider port.

Adapters translate between the ledger and an external processor. The ledger
never trusts a webhook body before the adapter has verified its signature.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from src.fp_common.enums import PaymentStatus


@dataclass(frozen=True)
class PaymentIntent:
    payment_url: str
    reference: str


@dataclass(frozen=True)
class WebhookNotification:
    payment_id: str
    status: PaymentStatus
    provider_ref: str
    metadata: dict[str, Any] = field(default_factory=dict)


class PaymentProviderProtocol(Protocol):
    name: str

    async def create_payment_intent(
        self, amount_cents: int, currency: str, payment_id: str
    ) -> PaymentIntent: ...

    async def handle_webhook(
        self, raw_body: bytes, signature: str | None
    ) -> WebhookNotification: ...

    async def cancel_payment(self, reference: str) -> None: ...
