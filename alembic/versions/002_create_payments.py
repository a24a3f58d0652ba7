"""002: create payments table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE payments (
            id              VARCHAR(36)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            gym_id          VARCHAR(64),
            amount_cents    BIGINT          NOT NULL,
            currency        VARCHAR(3)      NOT NULL,
            provider        VARCHAR(32)     NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'pending',
            provider_ref    VARCHAR(128),
            metadata        JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_payments_amount_positive CHECK (amount_cents > 0),
            CONSTRAINT ck_payments_status CHECK (
                status IN ('pending', 'completed', 'failed', 'cancelled')
            )
        );
    """)
    op.execute("CREATE INDEX idx_payments_user_created ON payments (user_id, created_at DESC, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_payments_updated_at
            BEFORE UPDATE ON payments
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE payments IS 'Payment records; status leaves pending exactly once';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS payments CASCADE;")
