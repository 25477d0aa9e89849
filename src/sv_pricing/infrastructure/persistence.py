"""PricingRuleRepository — concrete implementation of PricingRuleRepositoryProtocol."""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import ProfitType
from src.sv_pricing.domain.models import PricingRule

_RULE_COLUMNS = """
    id, service_code, country, profit_type, profit_value, priority,
    is_active, created_at, updated_at
"""

# NULL columns are wildcards; selection among candidates happens in Python
_LIST_CANDIDATES_SQL = text(f"""
    SELECT {_RULE_COLUMNS}
    FROM pricing_rules
    WHERE is_active = TRUE
      AND (service_code = :service_code OR service_code IS NULL)
      AND (country = :country OR country IS NULL)
""")

_LIST_ACTIVE_SQL = text(f"""
    SELECT {_RULE_COLUMNS}
    FROM pricing_rules
    WHERE is_active = TRUE
""")

_LIST_ALL_SQL = text(f"""
    SELECT {_RULE_COLUMNS}
    FROM pricing_rules
    ORDER BY priority DESC, created_at DESC
""")

_GET_RULE_SQL = text(f"""
    SELECT {_RULE_COLUMNS}
    FROM pricing_rules
    WHERE id = :id
""")

_INSERT_RULE_SQL = text(f"""
    INSERT INTO pricing_rules
        (id, service_code, country, profit_type, profit_value, priority, is_active)
    VALUES
        (:id, :service_code, :country, :profit_type, :profit_value, :priority, :is_active)
    RETURNING {_RULE_COLUMNS}
""")

_UPDATE_RULE_SQL = text(f"""
    UPDATE pricing_rules
    SET profit_type = COALESCE(:profit_type, profit_type),
        profit_value = COALESCE(:profit_value, profit_value),
        priority = COALESCE(:priority, priority),
        is_active = COALESCE(:is_active, is_active)
    WHERE id = :id
    RETURNING {_RULE_COLUMNS}
""")

_DELETE_RULE_SQL = text("""
    DELETE FROM pricing_rules WHERE id = :id RETURNING id
""")


def _row_to_rule(row: object) -> PricingRule:
    return PricingRule(
        id=row.id,  # type: ignore[attr-defined]
        service_code=row.service_code,  # type: ignore[attr-defined]
        country=row.country,  # type: ignore[attr-defined]
        profit_type=ProfitType(row.profit_type),  # type: ignore[attr-defined]
        profit_value=Decimal(row.profit_value),  # type: ignore[attr-defined]
        priority=row.priority,  # type: ignore[attr-defined]
        is_active=row.is_active,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class PricingRuleRepository:
    async def list_candidate_rules(
        self, db: AsyncSession, service_code: str, country: str
    ) -> list[PricingRule]:
        result = await db.execute(
            _LIST_CANDIDATES_SQL, {"service_code": service_code, "country": country}
        )
        return [_row_to_rule(row) for row in result.fetchall()]

    async def list_active_rules(self, db: AsyncSession) -> list[PricingRule]:
        result = await db.execute(_LIST_ACTIVE_SQL)
        return [_row_to_rule(row) for row in result.fetchall()]

    async def list_rules(self, db: AsyncSession) -> list[PricingRule]:
        result = await db.execute(_LIST_ALL_SQL)
        return [_row_to_rule(row) for row in result.fetchall()]

    async def get_rule(self, db: AsyncSession, rule_id: str) -> PricingRule | None:
        result = await db.execute(_GET_RULE_SQL, {"id": rule_id})
        row = result.fetchone()
        return _row_to_rule(row) if row else None

    async def create_rule(self, db: AsyncSession, rule: PricingRule) -> PricingRule:
        result = await db.execute(
            _INSERT_RULE_SQL,
            {
                "id": rule.id,
                "service_code": rule.service_code,
                "country": rule.country,
                "profit_type": rule.profit_type.value,
                "profit_value": rule.profit_value,
                "priority": rule.priority,
                "is_active": rule.is_active,
            },
        )
        return _row_to_rule(result.fetchone())

    async def update_rule(
        self,
        db: AsyncSession,
        rule_id: str,
        profit_type: ProfitType | None,
        profit_value: Decimal | None,
        priority: int | None,
        is_active: bool | None,
    ) -> PricingRule | None:
        result = await db.execute(
            _UPDATE_RULE_SQL,
            {
                "id": rule_id,
                "profit_type": profit_type.value if profit_type else None,
                "profit_value": profit_value,
                "priority": priority,
                "is_active": is_active,
            },
        )
        row = result.fetchone()
        return _row_to_rule(row) if row else None

    async def delete_rule(self, db: AsyncSession, rule_id: str) -> bool:
        result = await db.execute(_DELETE_RULE_SQL, {"id": rule_id})
        return result.fetchone() is not None
