"""PaymentRepository — concrete implementation of PaymentRepositoryProtocol.

Status transitions use an atomic UPDATE ... WHERE status = 'pending' RETURNING.
A result of 0 rows means the payment already reached a terminal status
(a concurrent webhook or cancellation won).

asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.
"""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.fp_common.enums import PaymentStatus
from src.fp_payment.domain.models import Payment

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_COLUMNS = """
    id, user_id, gym_id, amount_cents, currency, provider, status,
    provider_ref, metadata, created_at, updated_at
"""

_INSERT_PAYMENT_SQL = text(f"""
    INSERT INTO payments (id, user_id, gym_id, amount_cents, currency, provider,
                          status, provider_ref, metadata)
    VALUES (:id, :user_id, :gym_id, :amount_cents, :currency, :provider,
            :status, :provider_ref, CAST(:metadata AS JSONB))
    RETURNING {_COLUMNS}
""")

_GET_PAYMENT_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM payments
    WHERE id = :id
""")

_TRANSITION_STATUS_SQL = text(f"""
    UPDATE payments
    SET status = :status,
        provider_ref = COALESCE(CAST(:provider_ref AS TEXT), provider_ref),
        metadata = metadata || CAST(:metadata AS JSONB),
        updated_at = NOW()
    WHERE id = :id AND status = 'pending'
    RETURNING {_COLUMNS}
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM payments
    WHERE user_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
      AND (CAST(:start_date AS TIMESTAMPTZ) IS NULL
           OR created_at >= CAST(:start_date AS TIMESTAMPTZ))
      AND (CAST(:end_date AS TIMESTAMPTZ) IS NULL
           OR created_at <= CAST(:end_date AS TIMESTAMPTZ))
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
# Row mapper
# ---------------------------------------------------------------------------


def _load_json(value: Any) -> dict[str, Any]:
    # asyncpg hands JSONB back as text unless a codec is registered
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _row_to_payment(row: Any) -> Payment:
    return Payment(
        id=str(row.id),
        user_id=row.user_id,
        gym_id=row.gym_id,
        amount_cents=row.amount_cents,
        currency=row.currency,
        provider=row.provider,
        status=PaymentStatus(row.status),
        provider_ref=row.provider_ref,
        metadata=_load_json(row.metadata),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PaymentRepository:
    """Concrete implementation of PaymentRepositoryProtocol using raw SQL."""

    async def create(self, db: AsyncSession, payment: Payment) -> Payment:
        result = await db.execute(
            _INSERT_PAYMENT_SQL,
            {
                "id": payment.id,
                "user_id": payment.user_id,
                "gym_id": payment.gym_id,
                "amount_cents": payment.amount_cents,
                "currency": payment.currency,
                "provider": payment.provider,
                "status": payment.status.value,
                "provider_ref": payment.provider_ref,
                "metadata": json.dumps(payment.metadata),
            },
        )
        return _row_to_payment(result.fetchone())

    async def get_by_id(self, db: AsyncSession, payment_id: str) -> Payment | None:
        result = await db.execute(_GET_PAYMENT_SQL, {"id": payment_id})
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def transition_status(
        self,
        db: AsyncSession,
        payment_id: str,
        status: PaymentStatus,
        provider_ref: str | None,
        metadata: dict[str, Any],
    ) -> Payment | None:
        result = await db.execute(
            _TRANSITION_STATUS_SQL,
            {
                "id": payment_id,
                "status": status.value,
                "provider_ref": provider_ref,
                "metadata": json.dumps(metadata),
            },
        )
        row = result.fetchone()
        return _row_to_payment(row) if row else None

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: str,
        status: PaymentStatus | None,
        start_date: datetime | None,
        end_date: datetime | None,
        cursor_ts: datetime | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Payment]:
        result = await db.execute(
            _LIST_BY_USER_SQL,
            {
                "user_id": user_id,
                "status": status.value if status else None,
                "start_date": start_date,
                "end_date": end_date,
                "cursor_ts": cursor_ts,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_payment(row) for row in result.fetchall()]
