"""005: create orders table

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
        CREATE TABLE orders (
            id              VARCHAR(32)     PRIMARY KEY,
            order_number    VARCHAR(48)     NOT NULL,
            user_id         VARCHAR(64)     NOT NULL,
            provider_id     VARCHAR(64)     NOT NULL,
            service_code    VARCHAR(64)     NOT NULL,
            country         VARCHAR(2)      NOT NULL,
            base_cost       NUMERIC(18,2)   NOT NULL,
            profit          NUMERIC(18,2)   NOT NULL,
            final_price     NUMERIC(18,2)   NOT NULL,
            currency        VARCHAR(3)      NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'PENDING',
            external_id     VARCHAR(512),
            phone_number    VARCHAR(32),
            sms_code        VARCHAR(32),
            sms_message     TEXT,
            provider_cost   NUMERIC(18,4),
            cancel_reason   VARCHAR(32),
            expires_at      TIMESTAMPTZ     NOT NULL,
            transaction_id  VARCHAR(32),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_orders_number     UNIQUE (order_number),
            CONSTRAINT ck_orders_status     CHECK (status IN (
                'PENDING', 'PROCESSING', 'WAITING_FOR_SMS', 'COMPLETED',
                'CANCELLED', 'FAILED', 'EXPIRED', 'REFUNDED'
            )),
            CONSTRAINT ck_orders_price      CHECK (final_price = base_cost + profit)
        );
    """)
    op.execute(
        "CREATE INDEX idx_orders_user_created ON orders (user_id, created_at DESC, id DESC);"
    )
    op.execute("""
        CREATE INDEX idx_orders_live_expiry ON orders (expires_at)
        WHERE status IN ('PENDING', 'PROCESSING', 'WAITING_FOR_SMS');
    """)
    op.execute("""
        CREATE TRIGGER trg_orders_updated_at
            BEFORE UPDATE ON orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS orders CASCADE;")
