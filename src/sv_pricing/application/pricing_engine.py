"""PricingEngine — loads rules and applies the pure selection in domain.engine.

Read-only: never commits, safe to call inside the caller's transaction.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.sv_pricing.domain.engine import price_with_rules
from src.sv_pricing.domain.models import PriceQuote, PriceRequest
from src.sv_pricing.domain.repository import PricingRuleRepositoryProtocol
from src.sv_pricing.infrastructure.persistence import PricingRuleRepository


class PricingEngine:
    def __init__(
        self,
        repo: PricingRuleRepositoryProtocol | None = None,
        default_markup_percent: Decimal | int = 20,
    ) -> None:
        self._repo: PricingRuleRepositoryProtocol = repo or PricingRuleRepository()
        self._default_markup = Decimal(default_markup_percent)

    async def calculate_price(
        self, db: AsyncSession, base_cost: Decimal, service_code: str, country: str
    ) -> PriceQuote:
        rules = await self._repo.list_candidate_rules(db, service_code, country)
        return price_with_rules(
            rules, PriceRequest(base_cost, service_code, country), self._default_markup
        )

    async def calculate_prices(
        self, db: AsyncSession, items: list[PriceRequest]
    ) -> list[PriceQuote]:
        """Batch form: one rule fetch, same selection as calculate_price."""
        if not items:
            return []
        rules = await self._repo.list_active_rules(db)
        return [price_with_rules(rules, item, self._default_markup) for item in items]
