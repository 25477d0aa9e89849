"""SMS-Man adapter (https://api.sms-man.com/control).

Auth is a ``token`` query parameter. Every endpoint answers JSON; failures
come back as ``{"success": false, "error_code": ..., "error_msg": ...}``,
sometimes with HTTP 200.

Vendor ids are numeric: ISO country codes and our service codes are mapped
through the ``countries`` and ``applications`` endpoints, cached for a day.
"""

import logging
import time
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from src.sv_common.errors import ProviderUnavailableError, ServiceNotSupportedError
from src.sv_common.money import parse_decimal
from src.sv_provider.domain.models import NumberReservation, ServiceOffer, SmsResult
from src.sv_provider.infrastructure.http_retry import RetryingHttpClient, decode_json
from src.sv_provider.infrastructure.lookup_cache import TimedLookup
from src.sv_provider.infrastructure.sms_parsing import first_code

logger = logging.getLogger(__name__)

_LOOKUP_TTL_SECONDS = 24 * 60 * 60

# Countries we sell through SMS-Man; the numeric ids come from the API
SUPPORTED_COUNTRIES = frozenset(
    {"US", "GB", "CA", "AU", "DE", "FR", "IN", "BR", "NG", "KE", "ZA", "GH"}
)

_NO_SMS_YET = "wait_sms"
_ALREADY_CLOSED = "wrong_status"


class SmsManAdapter:
    name = "sms-man"

    def __init__(
        self,
        api_key: str,
        http: RetryingHttpClient,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_key = api_key
        self._http = http
        self._applications = TimedLookup(self._load_applications, _LOOKUP_TTL_SECONDS, clock)
        self._countries = TimedLookup(self._load_countries, _LOOKUP_TTL_SECONDS, clock)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _call(
        self, endpoint: str, tolerated: frozenset[str] = frozenset(), **params: Any
    ) -> Any:
        if not self._api_key:
            raise ProviderUnavailableError(self.name, "API key not configured")
        response = await self._http.request(
            "GET", f"/{endpoint}", params={"token": self._api_key, **params}
        )
        data = decode_json(response, self.name)
        if isinstance(data, dict) and (data.get("success") is False or data.get("error_code")):
            error_code = str(data.get("error_code") or "")
            if error_code in tolerated:
                return data
            detail = data.get("error_msg") or data.get("error") or error_code or "unknown error"
            raise ProviderUnavailableError(self.name, f"{endpoint}: {detail}")
        return data

    async def _load_applications(self) -> dict[str, str]:
        data = await self._call("applications")
        table: dict[str, str] = {}
        for app in _records(data):
            code = app.get("code") or app.get("slug")
            if code and app.get("id") is not None:
                table[str(code).lower()] = str(app["id"])
        logger.info("sms-man: cached %d applications", len(table))
        return table

    async def _load_countries(self) -> dict[str, str]:
        data = await self._call("countries")
        table: dict[str, str] = {}
        for country in _records(data):
            code = country.get("code")
            if code and country.get("id") is not None:
                table[str(code).upper()] = str(country["id"])
        logger.info("sms-man: cached %d countries", len(table))
        return table

    async def _resolve(self, service_code: str, country: str) -> tuple[str, str]:
        if not self.supports_country(country):
            raise ServiceNotSupportedError(self.name, service_code, country)
        country_id = await self._countries.get(country.upper())
        application_id = await self._applications.get(service_code.lower())
        if country_id is None or application_id is None:
            raise ServiceNotSupportedError(self.name, service_code, country)
        return country_id, application_id

    # ------------------------------------------------------------------
    # ProviderAdapter
    # ------------------------------------------------------------------

    def supports_country(self, country: str) -> bool:
        return country.upper() in SUPPORTED_COUNTRIES

    async def quote_price(self, service_code: str, country: str) -> Decimal:
        country_id, application_id = await self._resolve(service_code, country)
        data = await self._call(
            "get-prices", country_id=country_id, application_id=application_id
        )
        # Either {country_id: {application_id: {...}}} or already narrowed to the country
        prices = data.get(country_id, data) if isinstance(data, dict) else {}
        entry = prices.get(application_id) if isinstance(prices, dict) else None
        if not isinstance(entry, dict):
            raise ServiceNotSupportedError(self.name, service_code, country)
        if int(entry.get("count") or 0) <= 0:
            raise ProviderUnavailableError(
                self.name, f"no {service_code} numbers in stock for {country}"
            )
        cost = parse_decimal(entry.get("cost"))
        if cost is None:
            raise ProviderUnavailableError(self.name, "get-prices returned no cost")
        return cost

    async def request_number(self, service_code: str, country: str) -> NumberReservation:
        country_id, application_id = await self._resolve(service_code, country)
        data = await self._call(
            "get-number", country_id=country_id, application_id=application_id
        )
        if not isinstance(data, dict):
            raise ProviderUnavailableError(self.name, "get-number returned a non-object body")
        request_id = data.get("request_id")
        number = data.get("number")
        if request_id is None or not number:
            raise ProviderUnavailableError(
                self.name, "get-number response missing request_id/number"
            )
        return NumberReservation(
            external_id=str(request_id),
            phone_number=str(number),
            cost=parse_decimal(data.get("cost")),
        )

    async def cancel_number(self, external_id: str) -> None:
        data = await self._call(
            "cancel-request", tolerated=frozenset({_ALREADY_CLOSED}), request_id=external_id
        )
        if isinstance(data, dict) and data.get("error_code") == _ALREADY_CLOSED:
            logger.warning("sms-man: request %s already closed", external_id)
            return
        logger.info("sms-man: cancelled request %s", external_id)

    async def list_services(self) -> list[ServiceOffer]:
        countries = {
            vendor_id: code
            for code, vendor_id in (await self._countries.table()).items()
            if code in SUPPORTED_COUNTRIES
        }
        applications = {
            vendor_id: code for code, vendor_id in (await self._applications.table()).items()
        }
        # Unfiltered get-prices: {country_id: {application_id: {cost, count}}}
        data = await self._call("get-prices")
        offers: list[ServiceOffer] = []
        for country_id, entries in data.items() if isinstance(data, dict) else []:
            country = countries.get(str(country_id))
            if country is None or not isinstance(entries, dict):
                continue
            for application_id, entry in entries.items():
                service_code = applications.get(str(application_id))
                if service_code is None or not isinstance(entry, dict):
                    continue
                stock = int(entry.get("count") or 0)
                cost = parse_decimal(entry.get("cost"))
                if stock <= 0 or cost is None:
                    continue
                offers.append(ServiceOffer(self.name, service_code, country, cost, stock))
        logger.info("sms-man: %d services in stock", len(offers))
        return offers

    async def poll_for_code(self, external_id: str) -> SmsResult | None:
        data = await self._call(
            "get-sms", tolerated=frozenset({_NO_SMS_YET}), request_id=external_id
        )
        if not isinstance(data, dict) or data.get("error_code") == _NO_SMS_YET:
            return None
        found = first_code(
            data.get("sms_code"), data.get("sms"), data.get("message"), data.get("code")
        )
        if found is None:
            return None
        code, text = found
        return SmsResult(code=code, message=text)

    async def check_health(self) -> None:
        await self._call("get-balance")

    async def aclose(self) -> None:
        await self._http.aclose()


def _records(data: Any) -> list[dict[str, Any]]:
    """SMS-Man lists come as {id: {...}} objects or plain arrays."""
    values = data.values() if isinstance(data, dict) else data
    return [item for item in values if isinstance(item, dict)]
