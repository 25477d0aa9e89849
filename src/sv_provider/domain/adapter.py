"""ProviderAdapter Protocol — the only surface the orchestrator sees.

Adapters translate one vendor's HTTP API into these calls and raise the
shared provider errors from ``src.sv_common.errors``:

  ProviderUnavailableError   non-2xx, non-JSON or vendor error body, or
                             transport retries exhausted
  ServiceNotSupportedError   no service / country mapping at this vendor
  ProviderRateLimitedError   HTTP 429 persisted through every retry
"""

from decimal import Decimal
from typing import Protocol

from src.sv_provider.domain.models import NumberReservation, ServiceOffer, SmsResult


class ProviderAdapter(Protocol):
    name: str

    def supports_country(self, country: str) -> bool: ...

    async def quote_price(self, service_code: str, country: str) -> Decimal: ...

    async def request_number(self, service_code: str, country: str) -> NumberReservation: ...

    async def cancel_number(self, external_id: str) -> None: ...

    async def list_services(self) -> list[ServiceOffer]:
        """Everything orderable at this vendor, for the service catalog."""
        ...

    async def poll_for_code(self, external_id: str) -> SmsResult | None:
        """Return the received code, or None while the vendor is still waiting."""
        ...

    async def check_health(self) -> None:
        """Cheap authenticated call; raises on any failure."""
        ...

    async def aclose(self) -> None: ...
