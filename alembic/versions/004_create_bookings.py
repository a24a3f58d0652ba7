"""004: create bookings table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bookings (
            id              VARCHAR(36)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            trainer_id      VARCHAR(64),
            gym_id          VARCHAR(64)     NOT NULL,
            date            TIMESTAMPTZ     NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'pending',
            quota_id        VARCHAR(36)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_bookings_status CHECK (
                status IN ('pending', 'confirmed', 'cancelled', 'completed')
            )
        );
    """)
    op.execute("CREATE INDEX idx_bookings_user_created ON bookings (user_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_bookings_trainer_created ON bookings (trainer_id, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_bookings_quota ON bookings (quota_id);")
    op.execute("""
        CREATE TRIGGER trg_bookings_updated_at
            BEFORE UPDATE ON bookings
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bookings CASCADE;")
