"""004: create pricing_rules table

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
    # NULL service_code / country = wildcard
    op.execute("""
        CREATE TABLE pricing_rules (
            id              VARCHAR(32)     PRIMARY KEY,
            service_code    VARCHAR(64),
            country         VARCHAR(2),
            profit_type     VARCHAR(16)     NOT NULL,
            profit_value    NUMERIC(12,2)   NOT NULL,
            priority        INT             NOT NULL DEFAULT 0,
            is_active       BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_pricing_rules_type    CHECK (profit_type IN ('PERCENTAGE', 'FIXED')),
            CONSTRAINT ck_pricing_rules_value   CHECK (profit_value >= 0)
        );
    """)
    op.execute(
        "CREATE INDEX idx_pricing_rules_match ON pricing_rules (service_code, country) "
        "WHERE is_active = TRUE;"
    )
    op.execute("""
        CREATE TRIGGER trg_pricing_rules_updated_at
            BEFORE UPDATE ON pricing_rules
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS pricing_rules CASCADE;")
