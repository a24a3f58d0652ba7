"""Admin application service — entitlement ledger reconciliation."""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_QUOTA_RANGE_SQL = text("""
    SELECT id, total, remaining
    FROM booking_quotas
    WHERE remaining < 0 OR remaining > total
""")

# Every non-cancelled booking holds one unit of its quota
_QUOTA_USAGE_SQL = text("""
    SELECT q.id, q.total, q.remaining, COUNT(b.id) AS held
    FROM booking_quotas q
    LEFT JOIN bookings b ON b.quota_id = q.id AND b.status <> 'cancelled'
    GROUP BY q.id, q.total, q.remaining
    HAVING q.remaining <> q.total - COUNT(b.id)
""")

_DUPLICATE_QUOTAS_SQL = text("""
    SELECT payment_id, COUNT(*) AS n
    FROM booking_quotas
    GROUP BY payment_id
    HAVING COUNT(*) > 1
""")

_DUPLICATE_SUBSCRIPTIONS_SQL = text("""
    SELECT payment_id, COUNT(*) AS n
    FROM trainer_subscriptions
    GROUP BY payment_id
    HAVING COUNT(*) > 1
""")

_ORPHAN_QUOTAS_SQL = text("""
    SELECT q.id, q.payment_id, p.status AS payment_status
    FROM booking_quotas q
    LEFT JOIN payments p ON p.id = q.payment_id
    WHERE p.id IS NULL OR p.status <> 'completed'
""")

_ORPHAN_SUBSCRIPTIONS_SQL = text("""
    SELECT s.id, s.payment_id, p.status AS payment_status
    FROM trainer_subscriptions s
    LEFT JOIN payments p ON p.id = s.payment_id
    WHERE p.id IS NULL OR p.status <> 'completed'
""")


class AdminService:
    async def verify_ledger_invariants(self, db: AsyncSession) -> dict[str, Any]:
        """Cross-check quotas, bookings, subscriptions and payments.

        Returns ``{"ok": bool, "violations": [str, ...]}``; never raises on a
        violation so the report lists all of them at once.
        """
        violations: list[str] = []

        for row in (await db.execute(_QUOTA_RANGE_SQL)).fetchall():
            violations.append(
                f"quota {row.id}: remaining {row.remaining} outside [0, {row.total}]"
            )
        for row in (await db.execute(_QUOTA_USAGE_SQL)).fetchall():
            violations.append(
                f"quota {row.id}: remaining {row.remaining} != "
                f"total {row.total} - active bookings {row.held}"
            )
        for row in (await db.execute(_DUPLICATE_QUOTAS_SQL)).fetchall():
            violations.append(f"payment {row.payment_id}: {row.n} quotas provisioned")
        for row in (await db.execute(_DUPLICATE_SUBSCRIPTIONS_SQL)).fetchall():
            violations.append(f"payment {row.payment_id}: {row.n} subscriptions provisioned")
        for row in (await db.execute(_ORPHAN_QUOTAS_SQL)).fetchall():
            violations.append(
                f"quota {row.id}: payment {row.payment_id} is "
                f"{row.payment_status or 'missing'}, expected completed"
            )
        for row in (await db.execute(_ORPHAN_SUBSCRIPTIONS_SQL)).fetchall():
            violations.append(
                f"subscription {row.id}: payment {row.payment_id} is "
                f"{row.payment_status or 'missing'}, expected completed"
            )

        for violation in violations:
            logger.error("Ledger invariant violated: %s", violation)
        return {"ok": len(violations) == 0, "violations": violations}
