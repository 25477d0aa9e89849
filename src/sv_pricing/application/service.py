"""PricingApplicationService — price preview, service catalog and admin rule management."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sv_common.errors import (
    PricingRuleNotFoundError,
    ProviderError,
    ProviderRequestFailedError,
    ServiceNotSupportedError,
)
from src.sv_common.id_generator import generate_id
from src.sv_common.money import money_to_display
from src.sv_pricing.application.pricing_engine import PricingEngine
from src.sv_pricing.application.schemas import (
    PricingRuleCreateRequest,
    PricingRuleItem,
    PricingRuleUpdateRequest,
    QuoteResponse,
    ServiceCatalogItem,
    ServiceCatalogResponse,
)
from src.sv_pricing.domain.models import PriceRequest, PricingRule
from src.sv_pricing.domain.repository import PricingRuleRepositoryProtocol
from src.sv_pricing.infrastructure.persistence import PricingRuleRepository
from src.sv_provider.application.registry import ProviderRegistry
from src.sv_provider.domain.models import ServiceOffer

logger = logging.getLogger(__name__)


class PricingApplicationService:
    def __init__(
        self,
        registry: ProviderRegistry,
        engine: PricingEngine | None = None,
        repo: PricingRuleRepositoryProtocol | None = None,
    ) -> None:
        self._registry = registry
        self._repo: PricingRuleRepositoryProtocol = repo or PricingRuleRepository()
        self._engine = engine or PricingEngine(self._repo, settings.DEFAULT_MARKUP_PERCENT)

    async def quote(
        self,
        db: AsyncSession,
        service_code: str,
        country: str,
        preferred_provider: str | None = None,
    ) -> QuoteResponse:
        provider, adapter = await self._registry.select_provider(
            db, service_code, country, preferred_provider
        )
        try:
            base_cost = await adapter.quote_price(service_code, country)
        except ServiceNotSupportedError:
            raise
        except ProviderError as exc:
            logger.warning("Quote from %s failed: %s", provider.name, exc.message)
            raise ProviderRequestFailedError(exc.message) from exc
        price = await self._engine.calculate_price(db, base_cost, service_code, country)
        return QuoteResponse(
            service_code=service_code,
            country=country,
            provider=provider.name,
            base_cost=price.base_cost,
            profit=price.profit,
            final_price=price.final_price,
            currency=settings.DEFAULT_CURRENCY,
            price_display=money_to_display(price.final_price, settings.DEFAULT_CURRENCY),
            rule_applied=price.rule_applied,
        )

    async def list_services(
        self, db: AsyncSession, country: str | None = None
    ) -> ServiceCatalogResponse:
        """Merged service catalog across usable providers, priced in one engine pass.

        A (service, country) pair offered by several vendors is listed once,
        priced from the highest-priority vendor that reports a cost. A vendor
        whose listing fails is skipped; if every one fails the call fails.
        """
        usable = await self._registry.usable_providers(db, country)
        merged: dict[tuple[str, str], list[ServiceOffer]] = {}
        failures = 0
        for provider, adapter in usable:
            try:
                offers = await adapter.list_services()
            except ProviderError as exc:
                failures += 1
                logger.warning("Service listing from %s failed: %s", provider.name, exc.message)
                continue
            for offer in offers:
                if country is None or offer.country == country:
                    merged.setdefault((offer.service_code, offer.country), []).append(offer)
        if usable and failures == len(usable):
            raise ProviderRequestFailedError("No provider returned a service list")

        priced: dict[tuple[str, str], ServiceOffer] = {}
        requests: list[PriceRequest] = []
        for key, offers in merged.items():
            for offer in offers:
                if offer.base_cost is not None:
                    priced[key] = offer
                    requests.append(PriceRequest(offer.base_cost, key[0], key[1]))
                    break
        quotes = await self._engine.calculate_prices(db, requests)
        prices = dict(zip(priced, quotes, strict=True))

        currency = settings.DEFAULT_CURRENCY
        items: list[ServiceCatalogItem] = []
        for key in sorted(merged, key=lambda k: (k[1], k[0])):
            offers = merged[key]
            quote = prices.get(key)
            source = priced.get(key)
            items.append(
                ServiceCatalogItem(
                    service_code=key[0],
                    country=key[1],
                    providers=[o.provider for o in offers],
                    stock=source.stock if source else None,
                    base_cost=quote.base_cost if quote else None,
                    final_price=quote.final_price if quote else None,
                    price_display=(
                        money_to_display(quote.final_price, currency) if quote else None
                    ),
                    rule_applied=quote.rule_applied if quote else None,
                )
            )
        return ServiceCatalogResponse(items=items, currency=currency)

    # ------------------------------------------------------------------
    # Rule administration
    # ------------------------------------------------------------------

    async def list_rules(self, db: AsyncSession) -> list[PricingRuleItem]:
        rules = await self._repo.list_rules(db)
        return [PricingRuleItem.from_domain(r) for r in rules]

    async def get_rule(self, db: AsyncSession, rule_id: str) -> PricingRuleItem:
        rule = await self._repo.get_rule(db, rule_id)
        if rule is None:
            raise PricingRuleNotFoundError(rule_id)
        return PricingRuleItem.from_domain(rule)

    async def create_rule(
        self, db: AsyncSession, body: PricingRuleCreateRequest
    ) -> PricingRuleItem:
        rule = PricingRule(
            id=generate_id(),
            service_code=body.service_code,
            country=body.country,
            profit_type=body.profit_type,
            profit_value=body.profit_value,
            priority=body.priority,
            is_active=body.is_active,
        )
        try:
            created = await self._repo.create_rule(db, rule)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Pricing rule %s created", created.id)
        return PricingRuleItem.from_domain(created)

    async def update_rule(
        self, db: AsyncSession, rule_id: str, body: PricingRuleUpdateRequest
    ) -> PricingRuleItem:
        try:
            updated = await self._repo.update_rule(
                db, rule_id, body.profit_type, body.profit_value, body.priority, body.is_active
            )
            if updated is None:
                raise PricingRuleNotFoundError(rule_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return PricingRuleItem.from_domain(updated)

    async def delete_rule(self, db: AsyncSession, rule_id: str) -> None:
        try:
            if not await self._repo.delete_rule(db, rule_id):
                raise PricingRuleNotFoundError(rule_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Pricing rule %s deleted", rule_id)
