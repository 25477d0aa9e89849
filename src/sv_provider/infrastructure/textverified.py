"""TextVerified adapter (https://www.textverified.com/api/pub/v2). US numbers only.

Auth: ``POST /auth`` with X-API-KEY / X-API-USERNAME returns a bearer token,
cached by BearerTokenCache and dropped on the first 401.

A verification is identified by the ``href`` returned from
``POST /verifications``; that absolute URL is our external id.
"""

import logging
import time
from collections.abc import Callable
from decimal import Decimal
from typing import Any

import httpx

from src.sv_common.errors import ProviderUnavailableError, ServiceNotSupportedError
from src.sv_common.money import parse_decimal
from src.sv_provider.domain.models import NumberReservation, ServiceOffer, SmsResult
from src.sv_provider.infrastructure.http_retry import RetryingHttpClient, decode_json
from src.sv_provider.infrastructure.lookup_cache import TimedLookup
from src.sv_provider.infrastructure.sms_parsing import find_code, first_code
from src.sv_provider.infrastructure.token_cache import BearerTokenCache

logger = logging.getLogger(__name__)

_SERVICES_TTL_SECONDS = 60 * 60
_DEFAULT_TOKEN_LIFETIME_SECONDS = 60 * 60
_NUMBER_TYPE = "mobile"


class TextVerifiedAdapter:
    name = "textverified"

    def __init__(
        self,
        api_key: str,
        username: str,
        http: RetryingHttpClient,
        refresh_margin: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_key = api_key
        self._username = username
        self._http = http
        self._tokens = BearerTokenCache(self._authenticate, refresh_margin, clock)
        self._capabilities = TimedLookup(self._load_services, _SERVICES_TTL_SECONDS, clock)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _authenticate(self) -> tuple[str, float]:
        if not self._api_key or not self._username:
            raise ProviderUnavailableError(self.name, "API credentials not configured")
        response = await self._http.request(
            "POST",
            "/auth",
            headers={"X-API-KEY": self._api_key, "X-API-USERNAME": self._username},
        )
        data = decode_json(response, self.name)
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ProviderUnavailableError(self.name, "auth response carried no token")
        lifetime = float(data.get("expiresIn") or _DEFAULT_TOKEN_LIFETIME_SECONDS)
        return str(token), lifetime

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Authenticated request; one re-auth when the cached token is rejected."""
        token = await self._tokens.get_token()
        response = await self._http.request(
            method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs
        )
        if response.status_code == 401:
            logger.warning("textverified: token rejected, re-authenticating")
            self._tokens.invalidate()
            token = await self._tokens.get_token()
            response = await self._http.request(
                method, url, headers={"Authorization": f"Bearer {token}"}, **kwargs
            )
        return response

    async def _load_services(self) -> dict[str, str]:
        response = await self._send(
            "GET",
            "/services",
            params={"numberType": _NUMBER_TYPE, "reservationType": "verification"},
        )
        data = decode_json(response, self.name)
        table: dict[str, str] = {}
        for service in data if isinstance(data, list) else []:
            if isinstance(service, dict) and service.get("serviceName"):
                table[str(service["serviceName"]).lower()] = str(
                    service.get("capability") or "sms"
                )
        logger.info("textverified: cached %d services", len(table))
        return table

    async def _resolve(self, service_code: str, country: str) -> tuple[str, str]:
        if not self.supports_country(country):
            raise ServiceNotSupportedError(self.name, service_code, country)
        capability = await self._capabilities.get(service_code.lower())
        if capability is None:
            raise ServiceNotSupportedError(self.name, service_code, country)
        return service_code.lower(), capability

    # ------------------------------------------------------------------
    # ProviderAdapter
    # ------------------------------------------------------------------

    def supports_country(self, country: str) -> bool:
        return country.upper() == "US"

    async def quote_price(self, service_code: str, country: str) -> Decimal:
        service_name, capability = await self._resolve(service_code, country)
        response = await self._send(
            "POST",
            "/pricing/verifications",
            json={
                "serviceName": service_name,
                "areaCode": False,
                "carrier": False,
                "numberType": _NUMBER_TYPE,
                "capability": capability,
            },
        )
        if response.status_code == 400:
            raise ServiceNotSupportedError(self.name, service_code, country)
        data = decode_json(response, self.name)
        price = parse_decimal(data.get("price") if isinstance(data, dict) else None)
        if price is None:
            raise ProviderUnavailableError(self.name, "pricing response carried no price")
        return price

    async def request_number(self, service_code: str, country: str) -> NumberReservation:
        service_name, capability = await self._resolve(service_code, country)
        response = await self._send(
            "POST",
            "/verifications",
            json={"serviceName": service_name, "capability": capability},
        )
        if response.status_code == 400:
            raise ServiceNotSupportedError(self.name, service_code, country)
        data = decode_json(response, self.name)
        href = data.get("href") if isinstance(data, dict) else None
        if not href:
            raise ProviderUnavailableError(self.name, "verification response carried no href")
        number = data.get("number")
        price = data.get("price")
        if not number:
            # Creation sometimes returns only the link; the details carry the number
            details = decode_json(await self._send("GET", href), self.name)
            number = details.get("number") if isinstance(details, dict) else None
            if isinstance(details, dict):
                price = price or details.get("totalCost")
        if not number:
            raise ProviderUnavailableError(self.name, f"no number assigned for {href}")
        return NumberReservation(
            external_id=str(href), phone_number=str(number), cost=parse_decimal(price)
        )

    async def cancel_number(self, external_id: str) -> None:
        verification_id = external_id.rstrip("/").rsplit("/", 1)[-1]
        response = await self._send("DELETE", f"/verifications/{verification_id}")
        if response.status_code == 404:
            logger.warning("textverified: verification %s already gone", verification_id)
            return
        if not response.is_success:
            raise ProviderUnavailableError(
                self.name, f"cancel {verification_id}: HTTP {response.status_code}"
            )
        logger.info("textverified: cancelled verification %s", verification_id)

    async def list_services(self) -> list[ServiceOffer]:
        # Prices are quoted per request, so catalog rows carry no base cost
        services = await self._capabilities.table()
        return [ServiceOffer(self.name, name, "US") for name in sorted(services)]

    async def poll_for_code(self, external_id: str) -> SmsResult | None:
        href = external_id.rstrip("/")
        response = await self._send("GET", f"{href}/messages")
        if not response.is_success:
            response = await self._send("GET", href)
        data = decode_json(response, self.name)
        return _extract_sms(data)

    async def check_health(self) -> None:
        decode_json(await self._send("GET", "/account/me"), self.name)

    async def aclose(self) -> None:
        await self._http.aclose()


def _extract_sms(data: Any) -> SmsResult | None:
    """Find a code in a messages list or a verification details body."""
    nested = data.get("data") if isinstance(data, dict) else None
    if isinstance(data, list):
        messages = data
    elif isinstance(nested, list):
        messages = nested
    elif isinstance(nested, dict) and isinstance(nested.get("messages"), list):
        messages = nested["messages"]
    elif isinstance(data, dict) and isinstance(data.get("messages"), list):
        messages = data["messages"]
    else:
        messages = []

    for msg in messages:
        if not isinstance(msg, dict):
            continue
        text = msg.get("message") or msg.get("smsContent")
        parsed = msg.get("parsed_code") or msg.get("parsedCode")
        code = find_code(parsed) or find_code(text)
        if code is not None:
            return SmsResult(code=code, message=str(text or parsed))

    if isinstance(data, dict):
        inner = nested if isinstance(nested, dict) else {}
        found = first_code(
            data.get("code"), data.get("sms"), inner.get("code"), inner.get("sms"),
            data.get("parsed_code"),
        )
        if found is not None:
            return SmsResult(code=found[0], message=found[1])
    return None
