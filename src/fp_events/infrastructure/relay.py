"""OutboxRelay — moves committed outbox rows onto Redis Streams.

One pass locks a batch of unpublished rows (FOR UPDATE SKIP LOCKED, so several
relays can run side by side), XADDs each row to its pattern's stream and marks
the batch published in the same transaction. A crash between XADD and COMMIT
re-sends the batch later: delivery is at-least-once, never at-most-once.
"""

import asyncio
import json
import logging
from typing import Any

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.fp_events.domain.events import DomainEvent, stream_key

logger = logging.getLogger(__name__)

_FETCH_UNPUBLISHED_SQL = text("""
    SELECT id, event_id, pattern, payload, occurred_at
    FROM outbox_events
    WHERE published_at IS NULL
    ORDER BY id
    LIMIT :limit
    FOR UPDATE SKIP LOCKED
""")

_MARK_PUBLISHED_SQL = text("""
    UPDATE outbox_events
    SET published_at = NOW()
    WHERE id = ANY(:ids)
""")


def _row_to_event(row: Any) -> DomainEvent:
    payload = row.payload
    if isinstance(payload, str):
        payload = json.loads(payload)
    return DomainEvent(
        pattern=row.pattern,
        payload=payload,
        event_id=str(row.event_id),
        occurred_at=row.occurred_at,
    )


class OutboxRelay:
    def __init__(
        self,
        redis: aioredis.Redis,
        batch_size: int = settings.EVENT_BATCH_SIZE,
        stream_maxlen: int = settings.EVENT_STREAM_MAXLEN,
    ) -> None:
        self._redis = redis
        self._batch_size = batch_size
        self._stream_maxlen = stream_maxlen

    async def relay_once(self, db: AsyncSession) -> int:
        """Publish one batch. Returns the number of events relayed."""
        try:
            result = await db.execute(_FETCH_UNPUBLISHED_SQL, {"limit": self._batch_size})
            rows = result.fetchall()
            for row in rows:
                event = _row_to_event(row)
                await self._redis.xadd(
                    stream_key(event.pattern),
                    event.to_fields(),
                    maxlen=self._stream_maxlen,
                    approximate=True,
                )
            if rows:
                await db.execute(_MARK_PUBLISHED_SQL, {"ids": [row.id for row in rows]})
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if rows:
            logger.debug("Relayed %d outbox events", len(rows))
        return len(rows)

    async def run(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        stop: asyncio.Event,
        poll_interval: float = settings.OUTBOX_POLL_INTERVAL_SECONDS,
    ) -> None:
        """Relay until ``stop`` is set; idle passes wait ``poll_interval``."""
        while not stop.is_set():
            relayed = 0
            try:
                async with session_factory() as db:
                    relayed = await self.relay_once(db)
            except Exception:
                logger.exception("Outbox relay pass failed, retrying")
            if relayed < self._batch_size:
                try:
                    await asyncio.wait_for(stop.wait(), timeout=poll_interval)
                except TimeoutError:
                    pass
