"""003: create booking_quotas table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE booking_quotas (
            id              VARCHAR(36)     PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL,
            total           INT             NOT NULL,
            remaining       INT             NOT NULL,
            valid_from      TIMESTAMPTZ     NOT NULL,
            valid_until     TIMESTAMPTZ     NOT NULL,
            payment_id      VARCHAR(36)     NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_booking_quotas_payment_id UNIQUE (payment_id),
            CONSTRAINT ck_booking_quotas_total_positive CHECK (total > 0),
            CONSTRAINT ck_booking_quotas_remaining CHECK (remaining >= 0 AND remaining <= total),
            CONSTRAINT ck_booking_quotas_window CHECK (valid_until >= valid_from)
        );
    """)
    op.execute("CREATE INDEX idx_booking_quotas_user ON booking_quotas (user_id, valid_until);")
    op.execute("""
        CREATE TRIGGER trg_booking_quotas_updated_at
            BEFORE UPDATE ON booking_quotas
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE booking_quotas IS 'Prepaid booking credits, one batch per payment';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS booking_quotas CASCADE;")
