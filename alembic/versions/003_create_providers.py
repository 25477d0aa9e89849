"""003: create providers table

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
    # name is the adapter key; credentials live in settings, never here
    op.execute("""
        CREATE TABLE providers (
            id                      VARCHAR(64)     PRIMARY KEY,
            name                    VARCHAR(64)     NOT NULL,
            display_name            VARCHAR(128)    NOT NULL,
            api_url                 VARCHAR(255)    NOT NULL,
            is_active               BOOLEAN         NOT NULL DEFAULT TRUE,
            priority                INT             NOT NULL DEFAULT 0,
            health_status           VARCHAR(16)     NOT NULL DEFAULT 'HEALTHY',
            rate_limit              INT,
            last_health_check_at    TIMESTAMPTZ,
            created_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_providers_name    UNIQUE (name),
            CONSTRAINT ck_providers_health  CHECK (health_status IN ('HEALTHY', 'DEGRADED', 'DOWN'))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_providers_updated_at
            BEFORE UPDATE ON providers
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS providers CASCADE;")
