"""EventPublisher Protocol — how use cases emit domain events.

The publisher takes the caller's session: an event is recorded in the same
transaction as the state change it describes, and is only visible to other
services once that transaction commits.
"""

from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_events.domain.events import DomainEvent, EventPattern


class EventPublisherProtocol(Protocol):
    async def publish(
        self, db: AsyncSession, pattern: EventPattern, payload: dict[str, Any]
    ) -> DomainEvent: ...
