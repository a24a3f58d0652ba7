"""Background worker: outbox relay, consumer groups and the subscription sweeper.

Run with: python -m src.fp_events.worker
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import logging
import signal

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import settings
from src.fp_booking.application.listeners import CONSUMER_GROUP as BOOKINGS_GROUP
from src.fp_booking.application.listeners import BookingEventListener
from src.fp_common.database import async_session_factory, engine
from src.fp_common.redis_client import close_redis, get_redis
from src.fp_events.infrastructure.consumer import StreamConsumer
from src.fp_events.infrastructure.relay import OutboxRelay
from src.fp_trainer_offert.application.listeners import CONSUMER_GROUP as TRAINER_OFFERT_GROUP
from src.fp_trainer_offert.application.listeners import TrainerOffertEventListener
from src.fp_trainer_offert.application.subscription_service import (
    SubscriptionApplicationService,
)

logger = logging.getLogger(__name__)


def build_consumers(redis: aioredis.Redis) -> list[StreamConsumer]:
    """One consumer group per service; each group sees every event once."""
    return [
        StreamConsumer(redis, BOOKINGS_GROUP, BookingEventListener().handlers()),
        StreamConsumer(redis, TRAINER_OFFERT_GROUP, TrainerOffertEventListener().handlers()),
    ]


async def sweep_subscriptions(
    session_factory: async_sessionmaker[AsyncSession],
    stop: asyncio.Event,
    service: SubscriptionApplicationService | None = None,
    interval: float = settings.SUBSCRIPTION_SWEEP_INTERVAL_SECONDS,
) -> None:
    """Expire lapsed subscriptions every ``interval`` seconds until ``stop``."""
    service = service or SubscriptionApplicationService()
    while not stop.is_set():
        try:
            async with session_factory() as db:
                await service.expire_due_subscriptions(db)
        except Exception:
            logger.exception("Subscription sweep failed, retrying next interval")
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval)
        except TimeoutError:
            pass


async def run_worker(stop: asyncio.Event) -> None:
    redis = await get_redis()
    relay = OutboxRelay(redis)
    tasks = [
        asyncio.create_task(relay.run(async_session_factory, stop), name="outbox-relay"),
        asyncio.create_task(
            sweep_subscriptions(async_session_factory, stop), name="subscription-sweeper"
        ),
    ]
    for consumer in build_consumers(redis):
        tasks.append(
            asyncio.create_task(consumer.run(stop), name=f"consumer-{consumer.group}")
        )
    logger.info("Worker started: %s", [task.get_name() for task in tasks])

    try:
        await stop.wait()
    finally:
        # Consumers may be blocked in XREADGROUP; cancel rather than wait out the block
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await close_redis()
        await engine.dispose()
        logger.info("Worker stopped")


async def _main() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    await run_worker(stop)


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    asyncio.run(_main())


if __name__ == "__main__":
    main()
