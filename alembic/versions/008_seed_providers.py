"""008: seed providers

Revision ID: 008
Revises: 007
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "008"
down_revision: Union[str, None] = "007"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        INSERT INTO providers (id, name, display_name, api_url, priority, rate_limit)
        VALUES
            ('sms-man', 'sms-man', 'Lion SMS', 'https://api.sms-man.com/control', 10, 60),
            ('textverified', 'textverified', 'Panda Verify',
             'https://www.textverified.com/api/pub/v2', 5, 60);
    """)
    # Platform-wide fallback, identical to DEFAULT_MARKUP_PERCENT
    op.execute("""
        INSERT INTO pricing_rules (id, service_code, country, profit_type, profit_value, priority)
        VALUES ('1', NULL, NULL, 'PERCENTAGE', 20.00, 0);
    """)


def downgrade() -> None:
    op.execute("DELETE FROM pricing_rules WHERE id = '1';")
    op.execute("DELETE FROM providers WHERE id IN ('sms-man', 'textverified');")
