"""Raw-SQL repositories for trainer offerts and subscriptions.

Subscription status changes use UPDATE ... WHERE status = :expected RETURNING;
0 rows means a concurrent cancel/expire already moved it.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_common.enums import SubscriptionStatus
from src.fp_trainer_offert.domain.models import TrainerOffert, TrainerSubscription

# ---------------------------------------------------------------------------
# SQL: trainer_offerts
# ---------------------------------------------------------------------------

_OFFERT_COLUMNS = """
    id, trainer_id, title, description, price_cents, currency, duration_in_days,
    includes_bookings, booking_quota, is_active, created_at, updated_at
"""

_INSERT_OFFERT_SQL = text(f"""
    INSERT INTO trainer_offerts (id, trainer_id, title, description, price_cents,
                                 currency, duration_in_days, includes_bookings,
                                 booking_quota, is_active)
    VALUES (:id, :trainer_id, :title, :description, :price_cents,
            :currency, :duration_in_days, :includes_bookings,
            :booking_quota, :is_active)
    RETURNING {_OFFERT_COLUMNS}
""")

_GET_OFFERT_SQL = text(f"""
    SELECT {_OFFERT_COLUMNS}
    FROM trainer_offerts
    WHERE id = :id
""")

_UPDATE_OFFERT_SQL = text(f"""
    UPDATE trainer_offerts
    SET title = :title,
        description = :description,
        price_cents = :price_cents,
        currency = :currency,
        duration_in_days = :duration_in_days,
        includes_bookings = :includes_bookings,
        booking_quota = :booking_quota,
        is_active = :is_active,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_OFFERT_COLUMNS}
""")

_LIST_OFFERTS_SQL = text(f"""
    SELECT {_OFFERT_COLUMNS}
    FROM trainer_offerts
    WHERE (CAST(:trainer_id AS TEXT) IS NULL OR trainer_id = CAST(:trainer_id AS TEXT))
      AND (NOT :active_only OR is_active)
      AND (
          CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
          OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
          OR (
              created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
              AND id < CAST(:cursor_id AS TEXT)
          )
      )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: trainer_subscriptions
# ---------------------------------------------------------------------------

_SUBSCRIPTION_COLUMNS = """
    id, user_id, offert_id, valid_from, valid_until, status, payment_id, created_at
"""

_INSERT_SUBSCRIPTION_SQL = text(f"""
    INSERT INTO trainer_subscriptions (id, user_id, offert_id, valid_from,
                                       valid_until, status, payment_id)
    VALUES (:id, :user_id, :offert_id, :valid_from, :valid_until, :status, :payment_id)
    ON CONFLICT (payment_id) DO NOTHING
    RETURNING {_SUBSCRIPTION_COLUMNS}
""")

_GET_SUBSCRIPTION_SQL = text(f"""
    SELECT {_SUBSCRIPTION_COLUMNS}
    FROM trainer_subscriptions
    WHERE id = :id
""")

_GET_SUBSCRIPTION_BY_PAYMENT_SQL = text(f"""
    SELECT {_SUBSCRIPTION_COLUMNS}
    FROM trainer_subscriptions
    WHERE payment_id = :payment_id
""")

_LIST_SUBSCRIPTIONS_BY_USER_SQL = text(f"""
    SELECT {_SUBSCRIPTION_COLUMNS}
    FROM trainer_subscriptions
    WHERE user_id = :user_id
      AND (NOT :active_only OR status = 'active')
    ORDER BY created_at DESC, id DESC
""")

_UPDATE_SUBSCRIPTION_STATUS_SQL = text(f"""
    UPDATE trainer_subscriptions
    SET status = :new_status,
        updated_at = NOW()
    WHERE id = :id AND status = :expected
    RETURNING {_SUBSCRIPTION_COLUMNS}
""")

_LIST_DUE_FOR_EXPIRY_SQL = text(f"""
    SELECT {_SUBSCRIPTION_COLUMNS}
    FROM trainer_subscriptions
    WHERE status = 'active' AND valid_until < :now
    ORDER BY valid_until ASC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_offert(row: Any) -> TrainerOffert:
    return TrainerOffert(
        id=str(row.id),
        trainer_id=row.trainer_id,
        title=row.title,
        description=row.description,
        price_cents=row.price_cents,
        currency=row.currency,
        duration_in_days=row.duration_in_days,
        includes_bookings=row.includes_bookings,
        booking_quota=row.booking_quota,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_subscription(row: Any) -> TrainerSubscription:
    return TrainerSubscription(
        id=str(row.id),
        user_id=row.user_id,
        offert_id=str(row.offert_id),
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        status=SubscriptionStatus(row.status),
        payment_id=str(row.payment_id),
        created_at=row.created_at,
    )


def _offert_params(offert: TrainerOffert) -> dict[str, Any]:
    return {
        "id": offert.id,
        "trainer_id": offert.trainer_id,
        "title": offert.title,
        "description": offert.description,
        "price_cents": offert.price_cents,
        "currency": offert.currency,
        "duration_in_days": offert.duration_in_days,
        "includes_bookings": offert.includes_bookings,
        "booking_quota": offert.booking_quota,
        "is_active": offert.is_active,
    }


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class TrainerOffertRepository:
    """Concrete implementation of TrainerOffertRepositoryProtocol."""

    async def create(self, db: AsyncSession, offert: TrainerOffert) -> TrainerOffert:
        result = await db.execute(_INSERT_OFFERT_SQL, _offert_params(offert))
        return _row_to_offert(result.fetchone())

    async def get_by_id(self, db: AsyncSession, offert_id: str) -> TrainerOffert | None:
        result = await db.execute(_GET_OFFERT_SQL, {"id": offert_id})
        row = result.fetchone()
        return _row_to_offert(row) if row else None

    async def update(self, db: AsyncSession, offert: TrainerOffert) -> TrainerOffert | None:
        params = _offert_params(offert)
        params.pop("trainer_id")
        result = await db.execute(_UPDATE_OFFERT_SQL, params)
        row = result.fetchone()
        return _row_to_offert(row) if row else None

    async def list_offerts(
        self,
        db: AsyncSession,
        trainer_id: str | None,
        active_only: bool,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[TrainerOffert]:
        result = await db.execute(
            _LIST_OFFERTS_SQL,
            {
                "trainer_id": trainer_id,
                "active_only": active_only,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_offert(row) for row in result.fetchall()]


class TrainerSubscriptionRepository:
    """Concrete implementation of TrainerSubscriptionRepositoryProtocol."""

    async def create(
        self, db: AsyncSession, subscription: TrainerSubscription
    ) -> TrainerSubscription | None:
        result = await db.execute(
            _INSERT_SUBSCRIPTION_SQL,
            {
                "id": subscription.id,
                "user_id": subscription.user_id,
                "offert_id": subscription.offert_id,
                "valid_from": subscription.valid_from,
                "valid_until": subscription.valid_until,
                "status": subscription.status.value,
                "payment_id": subscription.payment_id,
            },
        )
        row = result.fetchone()
        return _row_to_subscription(row) if row else None

    async def get_by_id(
        self, db: AsyncSession, subscription_id: str
    ) -> TrainerSubscription | None:
        result = await db.execute(_GET_SUBSCRIPTION_SQL, {"id": subscription_id})
        row = result.fetchone()
        return _row_to_subscription(row) if row else None

    async def get_by_payment_id(
        self, db: AsyncSession, payment_id: str
    ) -> TrainerSubscription | None:
        result = await db.execute(_GET_SUBSCRIPTION_BY_PAYMENT_SQL, {"payment_id": payment_id})
        row = result.fetchone()
        return _row_to_subscription(row) if row else None

    async def list_by_user(
        self, db: AsyncSession, user_id: str, active_only: bool
    ) -> list[TrainerSubscription]:
        result = await db.execute(
            _LIST_SUBSCRIPTIONS_BY_USER_SQL, {"user_id": user_id, "active_only": active_only}
        )
        return [_row_to_subscription(row) for row in result.fetchall()]

    async def update_status(
        self,
        db: AsyncSession,
        subscription_id: str,
        expected: SubscriptionStatus,
        new_status: SubscriptionStatus,
    ) -> TrainerSubscription | None:
        result = await db.execute(
            _UPDATE_SUBSCRIPTION_STATUS_SQL,
            {"id": subscription_id, "expected": expected.value, "new_status": new_status.value},
        )
        row = result.fetchone()
        return _row_to_subscription(row) if row else None

    async def list_due_for_expiry(
        self, db: AsyncSession, now: datetime, limit: int
    ) -> list[TrainerSubscription]:
        result = await db.execute(_LIST_DUE_FOR_EXPIRY_SQL, {"now": now, "limit": limit})
        return [_row_to_subscription(row) for row in result.fetchall()]
