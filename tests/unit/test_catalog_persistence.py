"""Unit tests for PricingRuleRepository and ProviderRepository using MagicMock AsyncSession."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.sv_common.enums import HealthStatus, ProfitType
from src.sv_pricing.infrastructure.persistence import PricingRuleRepository
from src.sv_provider.infrastructure.persistence import ProviderRepository
from tests.unit.fakes import make_rule


def _db_returning(one: Any = None, many: list[Any] | None = None) -> AsyncMock:
    db = AsyncMock()
    result = MagicMock()
    result.fetchone.return_value = one
    result.fetchall.return_value = many or []
    db.execute.return_value = result
    return db


def _rule_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "1")
    row.service_code = kwargs.get("service_code")
    row.country = kwargs.get("country")
    row.profit_type = kwargs.get("profit_type", "PERCENTAGE")
    row.profit_value = kwargs.get("profit_value", Decimal("20.00"))
    row.priority = kwargs.get("priority", 0)
    row.is_active = kwargs.get("is_active", True)
    row.created_at = datetime(2026, 3, 1, tzinfo=UTC)
    row.updated_at = datetime(2026, 3, 1, tzinfo=UTC)
    return row


def _provider_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "sms-man")
    row.name = kwargs.get("name", "sms-man")
    row.display_name = "Lion SMS"
    row.api_url = "https://api.sms-man.com/control"
    row.is_active = kwargs.get("is_active", True)
    row.priority = kwargs.get("priority", 10)
    row.health_status = kwargs.get("health_status", "HEALTHY")
    row.rate_limit = 60
    row.last_health_check_at = None
    row.created_at = datetime(2026, 3, 1, tzinfo=UTC)
    row.updated_at = datetime(2026, 3, 1, tzinfo=UTC)
    return row


class TestPricingRuleRepository:
    async def test_candidates_map_wildcards(self) -> None:
        db = _db_returning(many=[_rule_row(), _rule_row(id="2", service_code="wa", country="US")])

        rules = await PricingRuleRepository().list_candidate_rules(db, "wa", "US")

        assert rules[0].service_code is None
        assert rules[0].profit_type == ProfitType.PERCENTAGE
        assert rules[1].country == "US"
        assert db.execute.call_args.args[1] == {"service_code": "wa", "country": "US"}

    async def test_create_rule(self) -> None:
        db = _db_returning(one=_rule_row(id="9", profit_type="FIXED", profit_value="0.50"))
        rule = make_rule("9", profit_type=ProfitType.FIXED, profit_value="0.50")

        created = await PricingRuleRepository().create_rule(db, rule)

        assert created.profit_value == Decimal("0.50")
        assert db.execute.call_args.args[1]["profit_type"] == "FIXED"

    async def test_update_rule_passes_nulls_for_omitted_fields(self) -> None:
        db = _db_returning(one=_rule_row(priority=3))

        rule = await PricingRuleRepository().update_rule(db, "1", None, None, 3, None)

        assert rule is not None
        params = db.execute.call_args.args[1]
        assert params["profit_type"] is None
        assert params["priority"] == 3

    async def test_get_missing_rule(self) -> None:
        assert await PricingRuleRepository().get_rule(_db_returning(), "nope") is None

    async def test_delete_rule(self) -> None:
        repo = PricingRuleRepository()
        assert await repo.delete_rule(_db_returning(one=_rule_row()), "1") is True
        assert await repo.delete_rule(_db_returning(), "nope") is False


class TestProviderRepository:
    async def test_list_providers(self) -> None:
        db = _db_returning(many=[_provider_row(health_status="DEGRADED")])

        providers = await ProviderRepository().list_providers(db, active_only=True)

        assert providers[0].health_status == HealthStatus.DEGRADED
        assert providers[0].rate_limit == 60
        assert db.execute.call_args.args[1] == {"active_only": True}

    async def test_update_health(self) -> None:
        db = AsyncMock()
        checked = datetime(2026, 3, 1, 12, tzinfo=UTC)

        await ProviderRepository().update_health(db, "sms-man", HealthStatus.DOWN, checked)

        params = db.execute.call_args.args[1]
        assert params == {"id": "sms-man", "health_status": "DOWN", "checked_at": checked}

    async def test_update_provider(self) -> None:
        db = _db_returning(one=_provider_row(is_active=False))

        provider = await ProviderRepository().update_provider(db, "sms-man", False, None, None)

        assert provider is not None
        assert provider.is_active is False
        assert db.execute.call_args.args[1]["health_status"] is None

    async def test_update_missing_provider(self) -> None:
        result = await ProviderRepository().update_provider(_db_returning(), "ghost", True, 1, None)
        assert result is None
