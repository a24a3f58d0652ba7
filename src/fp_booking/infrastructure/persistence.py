"""Raw-SQL repositories for booking quotas and bookings.

Quota counters and booking statuses are only ever written with a conditional
UPDATE ... WHERE <previously read value> RETURNING. A result of 0 rows means
another writer got there first; the caller re-reads and retries.

Transaction ownership: the CALLER (application service) commits or rolls back.
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_booking.domain.models import Booking, BookingQuota
from src.fp_common.enums import BookingStatus

# ---------------------------------------------------------------------------
# SQL: booking_quotas
# ---------------------------------------------------------------------------

_QUOTA_COLUMNS = """
    id, user_id, total, remaining, valid_from, valid_until, payment_id, created_at
"""

_INSERT_QUOTA_SQL = text(f"""
    INSERT INTO booking_quotas (id, user_id, total, remaining,
                                valid_from, valid_until, payment_id)
    VALUES (:id, :user_id, :total, :remaining, :valid_from, :valid_until, :payment_id)
    ON CONFLICT (payment_id) DO NOTHING
    RETURNING {_QUOTA_COLUMNS}
""")

_GET_QUOTA_SQL = text(f"""
    SELECT {_QUOTA_COLUMNS}
    FROM booking_quotas
    WHERE id = :id
""")

_LIST_QUOTAS_BY_PAYMENT_SQL = text(f"""
    SELECT {_QUOTA_COLUMNS}
    FROM booking_quotas
    WHERE payment_id = :payment_id
""")

_LIST_QUOTAS_BY_USER_SQL = text(f"""
    SELECT {_QUOTA_COLUMNS}
    FROM booking_quotas
    WHERE user_id = :user_id
      AND (
          CAST(:valid_at AS TIMESTAMPTZ) IS NULL
          OR (
              remaining > 0
              AND valid_from <= CAST(:valid_at AS TIMESTAMPTZ)
              AND valid_until >= CAST(:valid_at AS TIMESTAMPTZ)
          )
      )
    ORDER BY valid_until ASC, id ASC
""")

_CAS_REMAINING_SQL = text(f"""
    UPDATE booking_quotas
    SET remaining = :new_remaining,
        updated_at = NOW()
    WHERE id = :id AND remaining = :expected
    RETURNING {_QUOTA_COLUMNS}
""")

_DELETE_QUOTA_SQL = text("""
    DELETE FROM booking_quotas
    WHERE id = :id AND remaining = total
    RETURNING id
""")

# ---------------------------------------------------------------------------
# SQL: bookings
# ---------------------------------------------------------------------------

_BOOKING_COLUMNS = """
    id, user_id, trainer_id, gym_id, date, status, quota_id, created_at, updated_at
"""

_INSERT_BOOKING_SQL = text(f"""
    INSERT INTO bookings (id, user_id, trainer_id, gym_id, date, status, quota_id)
    VALUES (:id, :user_id, :trainer_id, :gym_id, :date, :status, :quota_id)
    RETURNING {_BOOKING_COLUMNS}
""")

_GET_BOOKING_SQL = text(f"""
    SELECT {_BOOKING_COLUMNS}
    FROM bookings
    WHERE id = :id
""")

_UPDATE_BOOKING_STATUS_SQL = text(f"""
    UPDATE bookings
    SET status = :new_status,
        updated_at = NOW()
    WHERE id = :id AND status = :expected
    RETURNING {_BOOKING_COLUMNS}
""")

_LIST_BOOKINGS_SQL = text(f"""
    SELECT {_BOOKING_COLUMNS}
    FROM bookings
    WHERE (CAST(:user_id AS TEXT) IS NULL OR user_id = CAST(:user_id AS TEXT))
      AND (CAST(:trainer_id AS TEXT) IS NULL OR trainer_id = CAST(:trainer_id AS TEXT))
      AND (CAST(:gym_id AS TEXT) IS NULL OR gym_id = CAST(:gym_id AS TEXT))
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
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
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_quota(row: Any) -> BookingQuota:
    return BookingQuota(
        id=str(row.id),
        user_id=row.user_id,
        total=row.total,
        remaining=row.remaining,
        valid_from=row.valid_from,
        valid_until=row.valid_until,
        payment_id=str(row.payment_id),
        created_at=row.created_at,
    )


def _row_to_booking(row: Any) -> Booking:
    return Booking(
        id=str(row.id),
        user_id=row.user_id,
        trainer_id=row.trainer_id,
        gym_id=row.gym_id,
        date=row.date,
        status=BookingStatus(row.status),
        quota_id=str(row.quota_id),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class BookingQuotaRepository:
    """Concrete implementation of BookingQuotaRepositoryProtocol."""

    async def create(self, db: AsyncSession, quota: BookingQuota) -> BookingQuota | None:
        result = await db.execute(
            _INSERT_QUOTA_SQL,
            {
                "id": quota.id,
                "user_id": quota.user_id,
                "total": quota.total,
                "remaining": quota.remaining,
                "valid_from": quota.valid_from,
                "valid_until": quota.valid_until,
                "payment_id": quota.payment_id,
            },
        )
        row = result.fetchone()
        return _row_to_quota(row) if row else None

    async def get_by_id(self, db: AsyncSession, quota_id: str) -> BookingQuota | None:
        result = await db.execute(_GET_QUOTA_SQL, {"id": quota_id})
        row = result.fetchone()
        return _row_to_quota(row) if row else None

    async def list_by_payment_id(
        self, db: AsyncSession, payment_id: str
    ) -> list[BookingQuota]:
        result = await db.execute(_LIST_QUOTAS_BY_PAYMENT_SQL, {"payment_id": payment_id})
        return [_row_to_quota(row) for row in result.fetchall()]

    async def list_by_user(
        self, db: AsyncSession, user_id: str, valid_at: datetime | None
    ) -> list[BookingQuota]:
        result = await db.execute(
            _LIST_QUOTAS_BY_USER_SQL, {"user_id": user_id, "valid_at": valid_at}
        )
        return [_row_to_quota(row) for row in result.fetchall()]

    async def compare_and_set_remaining(
        self, db: AsyncSession, quota_id: str, expected: int, new_remaining: int
    ) -> BookingQuota | None:
        result = await db.execute(
            _CAS_REMAINING_SQL,
            {"id": quota_id, "expected": expected, "new_remaining": new_remaining},
        )
        row = result.fetchone()
        return _row_to_quota(row) if row else None

    async def delete(self, db: AsyncSession, quota_id: str) -> bool:
        result = await db.execute(_DELETE_QUOTA_SQL, {"id": quota_id})
        return result.fetchone() is not None


class BookingRepository:
    """Concrete implementation of BookingRepositoryProtocol."""

    async def create(self, db: AsyncSession, booking: Booking) -> Booking:
        result = await db.execute(
            _INSERT_BOOKING_SQL,
            {
                "id": booking.id,
                "user_id": booking.user_id,
                "trainer_id": booking.trainer_id,
                "gym_id": booking.gym_id,
                "date": booking.date,
                "status": booking.status.value,
                "quota_id": booking.quota_id,
            },
        )
        return _row_to_booking(result.fetchone())

    async def get_by_id(self, db: AsyncSession, booking_id: str) -> Booking | None:
        result = await db.execute(_GET_BOOKING_SQL, {"id": booking_id})
        row = result.fetchone()
        return _row_to_booking(row) if row else None

    async def update_status(
        self,
        db: AsyncSession,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
    ) -> Booking | None:
        result = await db.execute(
            _UPDATE_BOOKING_STATUS_SQL,
            {"id": booking_id, "expected": expected.value, "new_status": new_status.value},
        )
        row = result.fetchone()
        return _row_to_booking(row) if row else None

    async def list_bookings(
        self,
        db: AsyncSession,
        user_id: str | None,
        trainer_id: str | None,
        gym_id: str | None,
        status: BookingStatus | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Booking]:
        result = await db.execute(
            _LIST_BOOKINGS_SQL,
            {
                "user_id": user_id,
                "trainer_id": trainer_id,
                "gym_id": gym_id,
                "status": status.value if status else None,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_booking(row) for row in result.fetchall()]
