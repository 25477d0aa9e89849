"""006: create transactions table

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
    # Append-only: no updated_at, no UPDATE trigger
    op.execute("""
        CREATE TABLE transactions (
            id                  VARCHAR(32)     PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL,
            transaction_number  VARCHAR(48)     NOT NULL,
            type                VARCHAR(20)     NOT NULL,
            amount              NUMERIC(18,2)   NOT NULL,
            currency            VARCHAR(3)      NOT NULL,
            balance_before      NUMERIC(18,2)   NOT NULL,
            balance_after       NUMERIC(18,2)   NOT NULL,
            status              VARCHAR(16)     NOT NULL DEFAULT 'COMPLETED',
            order_id            VARCHAR(32),
            description         TEXT,
            reference           VARCHAR(128),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_transactions_number   UNIQUE (transaction_number),
            CONSTRAINT uq_transactions_reference UNIQUE (reference),
            CONSTRAINT ck_transactions_amount   CHECK (amount > 0),
            CONSTRAINT ck_transactions_type     CHECK (type IN (
                'ORDER_PAYMENT', 'REFUND', 'DEPOSIT', 'WITHDRAWAL',
                'ADMIN_ADJUSTMENT', 'BONUS', 'REFERRAL_REWARD'
            ))
        );
    """)
    op.execute(
        "CREATE INDEX idx_transactions_user_created "
        "ON transactions (user_id, created_at DESC, id DESC);"
    )
    op.execute("CREATE INDEX idx_transactions_order ON transactions (order_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
