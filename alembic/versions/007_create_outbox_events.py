"""007: create outbox_events table

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE outbox_events (
            id              BIGSERIAL       PRIMARY KEY,
            event_id        VARCHAR(36)     NOT NULL,
            pattern         VARCHAR(64)     NOT NULL,
            payload         JSONB           NOT NULL,
            occurred_at     TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            published_at    TIMESTAMPTZ,
            CONSTRAINT uq_outbox_events_event_id UNIQUE (event_id)
        );
    """)
    op.execute("""
        CREATE INDEX idx_outbox_events_unpublished
        ON outbox_events (id)
        WHERE published_at IS NULL;
    """)
    op.execute("COMMENT ON TABLE outbox_events IS 'Transactional outbox, drained onto Redis Streams by the worker';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS outbox_events CASCADE;")
