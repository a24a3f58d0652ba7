"""005: create trainer_offerts table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE trainer_offerts (
            id                  VARCHAR(36)     PRIMARY KEY,
            trainer_id          VARCHAR(64)     NOT NULL,
            title               VARCHAR(200)    NOT NULL,
            description         TEXT            NOT NULL DEFAULT '',
            price_cents         BIGINT          NOT NULL,
            currency            VARCHAR(3)      NOT NULL,
            duration_in_days    INT             NOT NULL,
            includes_bookings   BOOLEAN         NOT NULL DEFAULT FALSE,
            booking_quota       INT,
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trainer_offerts_price CHECK (price_cents >= 0),
            CONSTRAINT ck_trainer_offerts_duration CHECK (duration_in_days >= 1),
            CONSTRAINT ck_trainer_offerts_booking_quota CHECK (
                NOT includes_bookings OR booking_quota > 0
            )
        );
    """)
    op.execute("CREATE INDEX idx_trainer_offerts_trainer ON trainer_offerts (trainer_id, created_at DESC);")
    op.execute("""
        CREATE TRIGGER trg_trainer_offerts_updated_at
            BEFORE UPDATE ON trainer_offerts
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trainer_offerts CASCADE;")
