"""Domain event envelope and pattern names for the event channel.

Wire format (one Redis Stream entry, all values are strings):
  event_id     UUID, stable across redeliveries of the same event
  pattern      e.g. "payment.status.changed"
  payload      JSON object, flat, camelCase keys
  occurred_at  ISO8601 UTC

Delivery is at-least-once with no ordering across patterns, so consumers
de-duplicate on business keys (paymentId), never on event_id alone.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from config.settings import settings
from src.fp_common.datetime_utils import utc_now
from src.fp_common.id_generator import new_id


class EventPattern(str, Enum):
    PAYMENT_CREATED = "payment.created"
    PAYMENT_STATUS_CHANGED = "payment.status.changed"
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_CANCELLED = "subscription.cancelled"
    SUBSCRIPTION_EXPIRED = "subscription.expired"
    BOOKING_CREATED = "booking.created"
    BOOKING_CONFIRMED = "booking.confirmed"
    BOOKING_CANCELLED = "booking.cancelled"
    BOOKING_COMPLETED = "booking.completed"
    QUOTA_PROVISIONED = "quota.provisioned"
    OFFERT_CREATED = "offert.created"
    OFFERT_UPDATED = "offert.updated"
    OFFERT_DEACTIVATED = "offert.deactivated"


def _json_default(value: object) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dump_payload(payload: dict[str, Any]) -> str:
    return json.dumps(payload, default=_json_default, sort_keys=True)


def stream_key(pattern: str) -> str:
    """Redis Stream key carrying one event pattern."""
    return f"{settings.EVENT_STREAM_PREFIX}:{pattern}"


def dead_letter_key() -> str:
    return f"{settings.EVENT_STREAM_PREFIX}:dead-letter"


@dataclass(frozen=True)
class DomainEvent:
    pattern: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=new_id)
    occurred_at: datetime = field(default_factory=utc_now)

    def to_fields(self) -> dict[str, str]:
        return {
            "event_id": self.event_id,
            "pattern": self.pattern,
            "payload": dump_payload(self.payload),
            "occurred_at": self.occurred_at.isoformat(),
        }

    @classmethod
    def from_fields(cls, fields: dict[str, str]) -> "DomainEvent":
        """Parse a stream entry. Raises KeyError/ValueError on malformed input."""
        payload = json.loads(fields["payload"])
        if not isinstance(payload, dict):
            raise ValueError("payload must be a JSON object")
        return cls(
            pattern=fields["pattern"],
            payload=payload,
            event_id=fields["event_id"],
            occurred_at=datetime.fromisoformat(fields["occurred_at"]),
        )
