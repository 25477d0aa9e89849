"""007: create system_logs table

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
        CREATE TABLE system_logs (
            id          BIGSERIAL       PRIMARY KEY,
            level       VARCHAR(10)     NOT NULL,
            service     VARCHAR(64)     NOT NULL,
            message     TEXT            NOT NULL,
            error       TEXT,
            metadata    JSONB           NOT NULL DEFAULT '{}'::jsonb,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_system_logs_level CHECK (level IN ('INFO', 'WARN', 'ERROR', 'CRITICAL'))
        );
    """)
    op.execute("CREATE INDEX idx_system_logs_created ON system_logs (created_at DESC);")
    op.execute(
        "CREATE INDEX idx_system_logs_order ON system_logs ((metadata->>'order_id'));"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS system_logs CASCADE;")
