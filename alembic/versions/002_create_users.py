"""002: create users table

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
    # Rows are provisioned by the auth service; this service only moves balance.
    # Non-negative balance is enforced by the guarded debit, not a CHECK.
    op.execute("""
        CREATE TABLE users (
            id              VARCHAR(64)     PRIMARY KEY,
            email           VARCHAR(255)    NOT NULL,
            balance         NUMERIC(18,2)   NOT NULL DEFAULT 0,
            currency        VARCHAR(3)      NOT NULL DEFAULT 'NGN',
            status          VARCHAR(16)     NOT NULL DEFAULT 'ACTIVE',
            role            VARCHAR(16)     NOT NULL DEFAULT 'USER',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_email       UNIQUE (email),
            CONSTRAINT ck_users_status      CHECK (status IN ('ACTIVE', 'SUSPENDED')),
            CONSTRAINT ck_users_role        CHECK (role IN ('USER', 'ADMIN'))
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Wallet owners; balance written only by WalletLedger';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
