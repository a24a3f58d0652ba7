"""Transactional outbox — events are rows in outbox_events until relayed.

Called from application services within their transaction. OutboxRelay later
copies unpublished rows onto the Redis Streams event channel.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_events.domain.events import DomainEvent, EventPattern, dump_payload

_INSERT_OUTBOX_SQL = text("""
    INSERT INTO outbox_events (event_id, pattern, payload, occurred_at)
    VALUES (:event_id, :pattern, CAST(:payload AS JSONB), :occurred_at)
""")


class OutboxEventPublisher:
    """Concrete EventPublisherProtocol backed by the outbox_events table."""

    async def publish(
        self, db: AsyncSession, pattern: EventPattern, payload: dict[str, Any]
    ) -> DomainEvent:
        event = DomainEvent(pattern=EventPattern(pattern).value, payload=payload)
        await db.execute(
            _INSERT_OUTBOX_SQL,
            {
                "event_id": event.event_id,
                "pattern": event.pattern,
                "payload": dump_payload(event.payload),
                "occurred_at": event.occurred_at,
            },
        )
        return event
