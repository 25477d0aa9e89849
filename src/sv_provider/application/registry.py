"""ProviderRegistry — adapter lookup and provider selection.

Built once in the app lifespan (``build_default_registry``) and injected;
tests construct one around fake adapters.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import Settings
from src.sv_common.errors import NoProviderAvailableError, ProviderNotFoundError
from src.sv_provider.domain.adapter import ProviderAdapter
from src.sv_provider.domain.models import Provider
from src.sv_provider.domain.repository import ProviderRepositoryProtocol
from src.sv_provider.infrastructure.http_retry import RetryingHttpClient, RetryPolicy
from src.sv_provider.infrastructure.persistence import ProviderRepository
from src.sv_provider.infrastructure.sms_man import SmsManAdapter
from src.sv_provider.infrastructure.textverified import TextVerifiedAdapter

logger = logging.getLogger(__name__)


class ProviderRegistry:
    def __init__(
        self,
        adapters: list[ProviderAdapter] | None = None,
        repo: ProviderRepositoryProtocol | None = None,
    ) -> None:
        self._adapters: dict[str, ProviderAdapter] = {}
        self._repo: ProviderRepositoryProtocol = repo or ProviderRepository()
        for adapter in adapters or []:
            self.register(adapter)

    @property
    def repo(self) -> ProviderRepositoryProtocol:
        return self._repo

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.name] = adapter

    def find(self, name: str) -> ProviderAdapter | None:
        return self._adapters.get(name)

    def get(self, name: str) -> ProviderAdapter:
        adapter = self._adapters.get(name)
        if adapter is None:
            raise ProviderNotFoundError(name)
        return adapter

    def names(self) -> list[str]:
        return sorted(self._adapters)

    async def usable_providers(
        self, db: AsyncSession, country: str | None = None
    ) -> list[tuple[Provider, ProviderAdapter]]:
        """Active, not DOWN and backed by an adapter; highest priority first, ties by name.

        ``country`` further keeps only adapters that serve it.
        """
        providers = await self._repo.list_providers(db, active_only=True)
        usable = [
            (p, self._adapters[p.name])
            for p in providers
            if p.is_selectable
            and p.name in self._adapters
            and (country is None or self._adapters[p.name].supports_country(country))
        ]
        usable.sort(key=lambda pair: (-pair[0].priority, pair[0].name))
        return usable

    async def select_provider(
        self,
        db: AsyncSession,
        service_code: str,
        country: str,
        preferred: str | None = None,
    ) -> tuple[Provider, ProviderAdapter]:
        """First usable provider for ``country``, matching ``preferred`` when one is given."""
        candidates = [
            pair for pair in await self.usable_providers(db, country)
            if preferred is None or pair[0].name == preferred
        ]
        if not candidates:
            logger.warning(
                "No provider for service=%s country=%s preferred=%s",
                service_code, country, preferred,
            )
            raise NoProviderAvailableError(service_code, country)
        return candidates[0]

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()


def _retry_policy(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.PROVIDER_MAX_RETRIES,
        base_backoff=settings.PROVIDER_RETRY_BACKOFF_SECONDS,
        default_retry_after=settings.PROVIDER_DEFAULT_RETRY_AFTER_SECONDS,
    )


def build_default_registry(settings: Settings) -> ProviderRegistry:
    """One adapter per vendor, each with its own HTTP client and retry policy."""
    policy = _retry_policy(settings)
    timeout = settings.PROVIDER_HTTP_TIMEOUT_SECONDS
    sms_man = SmsManAdapter(
        api_key=settings.SMSMAN_API_KEY,
        http=RetryingHttpClient(SmsManAdapter.name, settings.SMSMAN_API_URL, policy, timeout),
    )
    textverified = TextVerifiedAdapter(
        api_key=settings.TEXTVERIFIED_API_KEY,
        username=settings.TEXTVERIFIED_USERNAME,
        http=RetryingHttpClient(
            TextVerifiedAdapter.name, settings.TEXTVERIFIED_API_URL, policy, timeout
        ),
        refresh_margin=settings.TOKEN_REFRESH_MARGIN_SECONDS,
    )
    return ProviderRegistry([sms_man, textverified])
