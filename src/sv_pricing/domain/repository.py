"""Repository Protocol for pricing rules."""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_common.enums import ProfitType
from src.sv_pricing.domain.models import PricingRule


class PricingRuleRepositoryProtocol(Protocol):
    async def list_candidate_rules(
        self, db: AsyncSession, service_code: str, country: str
    ) -> list[PricingRule]: ...

    async def list_active_rules(self, db: AsyncSession) -> list[PricingRule]: ...

    async def list_rules(self, db: AsyncSession) -> list[PricingRule]: ...

    async def get_rule(self, db: AsyncSession, rule_id: str) -> PricingRule | None: ...

    async def create_rule(self, db: AsyncSession, rule: PricingRule) -> PricingRule: ...

    async def update_rule(
        self,
        db: AsyncSession,
        rule_id: str,
        profit_type: ProfitType | None,
        profit_value: Decimal | None,
        priority: int | None,
        is_active: bool | None,
    ) -> PricingRule | None: ...

    async def delete_rule(self, db: AsyncSession, rule_id: str) -> bool: ...
