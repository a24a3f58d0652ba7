"""006: create trainer_subscriptions table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trainer_subscriptions (
            id              VARCHAR(36)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            offert_id       VARCHAR(36)     NOT NULL REFERENCES trainer_offerts (id),
            valid_from      TIMESTAMPTZ     NOT NULL,
            valid_until     TIMESTAMPTZ     NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'active',
            payment_id      VARCHAR(36)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_trainer_subscriptions_payment_id UNIQUE (payment_id),
            CONSTRAINT ck_trainer_subscriptions_status CHECK (
                status IN ('active', 'cancelled', 'expired')
            ),
            CONSTRAINT ck_trainer_subscriptions_window CHECK (valid_until >= valid_from)
        );
    """)
    op.execute("CREATE INDEX idx_trainer_subscriptions_user ON trainer_subscriptions (user_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_trainer_subscriptions_due
        ON trainer_subscriptions (valid_until)
        WHERE status = 'active';
    """)
    op.execute("""
        CREATE TRIGGER trg_trainer_subscriptions_updated_at
            BEFORE UPDATE ON trainer_subscriptions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trainer_subscriptions CASCADE;")
