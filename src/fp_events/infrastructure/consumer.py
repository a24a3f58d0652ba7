"""StreamConsumer — one logical worker (consumer group) per service.

Per poll:
  1. XAUTOCLAIM messages left pending longer than EVENT_CLAIM_IDLE_MS
     (handler failed or a worker died mid-message) and process them again.
  2. XREADGROUP new messages on every subscribed pattern stream.

A message is XACKed only after its handler returns. A handler exception is
logged and the message stays pending for redelivery; once it has been
delivered EVENT_MAX_DELIVERIES times it is copied to the dead-letter stream
and acknowledged. Handlers must therefore be idempotent.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from redis.exceptions import ResponseError

from config.settings import settings
from src.fp_events.domain.events import DomainEvent, dead_letter_key, stream_key

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class StreamConsumer:
    def __init__(
        self,
        redis: aioredis.Redis,
        group: str,
        handlers: dict[str, EventHandler],
        consumer_name: str = settings.EVENT_CONSUMER_NAME,
        max_deliveries: int = settings.EVENT_MAX_DELIVERIES,
        claim_idle_ms: int = settings.EVENT_CLAIM_IDLE_MS,
        block_ms: int = settings.EVENT_BLOCK_MS,
        batch_size: int = settings.EVENT_BATCH_SIZE,
    ) -> None:
        self._redis = redis
        self._group = group
        self._handlers = handlers
        self._consumer = consumer_name
        self._max_deliveries = max_deliveries
        self._claim_idle_ms = claim_idle_ms
        self._block_ms = block_ms
        self._batch_size = batch_size

    @property
    def group(self) -> str:
        return self._group

    @property
    def stream_keys(self) -> list[str]:
        return [stream_key(pattern) for pattern in self._handlers]

    async def ensure_groups(self) -> None:
        """Create the consumer group on every stream (idempotent)."""
        for key in self.stream_keys:
            try:
                await self._redis.xgroup_create(key, self._group, id="0", mkstream=True)
            except ResponseError as exc:
                if "BUSYGROUP" not in str(exc):
                    raise

    async def poll_once(self) -> int:
        """Process reclaimed and new messages once. Returns messages handled."""
        handled = 0
        for key in self.stream_keys:
            claimed = await self._redis.xautoclaim(
                key,
                self._group,
                self._consumer,
                min_idle_time=self._claim_idle_ms,
                start_id="0-0",
                count=self._batch_size,
            )
            for message_id, fields in claimed[1]:
                await self.process_message(key, message_id, fields)
                handled += 1

        response = await self._redis.xreadgroup(
            self._group,
            self._consumer,
            {key: ">" for key in self.stream_keys},
            count=self._batch_size,
            block=self._block_ms,
        )
        for key, messages in response or []:
            for message_id, fields in messages:
                await self.process_message(key, message_id, fields)
                handled += 1
        return handled

    async def process_message(
        self, key: str, message_id: str, fields: dict[str, str] | None
    ) -> None:
        if not fields:
            # Entry trimmed from the stream while pending
            await self._redis.xack(key, self._group, message_id)
            return

        try:
            event = DomainEvent.from_fields(fields)
        except (KeyError, ValueError) as exc:
            await self._dead_letter(key, message_id, fields, f"malformed message: {exc}")
            return

        handler = self._handlers.get(event.pattern)
        if handler is None:
            await self._redis.xack(key, self._group, message_id)
            return

        try:
            await handler(event)
        except Exception as exc:
            deliveries = await self._delivery_count(key, message_id)
            logger.exception(
                "Handler failed: group=%s pattern=%s event=%s delivery=%d/%d",
                self._group,
                event.pattern,
                event.event_id,
                deliveries,
                self._max_deliveries,
            )
            if deliveries >= self._max_deliveries:
                await self._dead_letter(key, message_id, fields, repr(exc))
            return

        await self._redis.xack(key, self._group, message_id)

    async def _delivery_count(self, key: str, message_id: str) -> int:
        pending = await self._redis.xpending_range(
            key, self._group, min=message_id, max=message_id, count=1
        )
        return int(pending[0]["times_delivered"]) if pending else 1

    async def _dead_letter(
        self, key: str, message_id: str, fields: dict[str, str], error: str
    ) -> None:
        await self._redis.xadd(
            dead_letter_key(),
            {
                **fields,
                "source_stream": key,
                "source_id": message_id,
                "group": self._group,
                "error": error[:500],
            },
            maxlen=settings.EVENT_STREAM_MAXLEN,
            approximate=True,
        )
        await self._redis.xack(key, self._group, message_id)
        logger.error(
            "Dead-lettered message %s from %s (group=%s): %s",
            message_id,
            key,
            self._group,
            error,
        )

    async def run(self, stop: asyncio.Event) -> None:
        """Consume until ``stop`` is set. Transport errors never end the loop."""
        await self.ensure_groups()
        logger.info("Consumer group %s listening on %s", self._group, self.stream_keys)
        while not stop.is_set():
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Consumer group %s poll failed, backing off", self._group)
                await asyncio.sleep(1)
