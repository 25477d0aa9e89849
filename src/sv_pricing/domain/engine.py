"""Pure pricing functions — no I/O, shared by single and batch pricing.

Scoring: ``priority * 100 + specificity`` where specificity is
1000 (service and country), 500 (service only), 250 (country only) or
0 (global). Highest score wins; equal scores go to the smallest rule id.
"""

from decimal import Decimal

from src.sv_common.enums import ProfitType
from src.sv_common.money import percent_of, to_money
from src.sv_pricing.domain.models import PriceQuote, PriceRequest, PricingRule

_SPECIFICITY_BOTH = 1000
_SPECIFICITY_SERVICE = 500
_SPECIFICITY_COUNTRY = 250


def rule_matches(rule: PricingRule, service_code: str, country: str) -> bool:
    return (
        rule.is_active
        and (rule.service_code is None or rule.service_code == service_code)
        and (rule.country is None or rule.country == country)
    )


def score_rule(rule: PricingRule) -> int:
    if rule.service_code is not None and rule.country is not None:
        bonus = _SPECIFICITY_BOTH
    elif rule.service_code is not None:
        bonus = _SPECIFICITY_SERVICE
    elif rule.country is not None:
        bonus = _SPECIFICITY_COUNTRY
    else:
        bonus = 0
    return rule.priority * 100 + bonus


def _id_key(rule_id: str) -> tuple[int, int | str]:
    # Numeric ids (snowflake strings) compare numerically, others lexically
    return (0, int(rule_id)) if rule_id.isdigit() else (1, rule_id)


def select_best_rule(
    rules: list[PricingRule], service_code: str, country: str
) -> PricingRule | None:
    candidates = [r for r in rules if rule_matches(r, service_code, country)]
    if not candidates:
        return None
    return min(candidates, key=lambda r: (-score_rule(r), _id_key(r.id)))


def apply_profit(
    base_cost: Decimal, profit_type: ProfitType, profit_value: Decimal
) -> tuple[Decimal, Decimal]:
    """Return (profit, final_price), both quantized to 0.01 half-up."""
    base = to_money(base_cost)
    if profit_type == ProfitType.PERCENTAGE:
        profit = percent_of(base, profit_value)
    else:
        profit = to_money(profit_value)
    return profit, to_money(base + profit)


def price_with_rules(
    rules: list[PricingRule], request: PriceRequest, default_markup_percent: Decimal
) -> PriceQuote:
    rule = select_best_rule(rules, request.service_code, request.country)
    if rule is None:
        profit, final_price = apply_profit(
            request.base_cost, ProfitType.PERCENTAGE, default_markup_percent
        )
        rule_id = None
    else:
        profit, final_price = apply_profit(request.base_cost, rule.profit_type, rule.profit_value)
        rule_id = rule.id
    return PriceQuote(
        base_cost=to_money(request.base_cost),
        profit=profit,
        final_price=final_price,
        rule_applied=rule_id,
    )
