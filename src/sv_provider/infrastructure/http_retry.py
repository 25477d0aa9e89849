"""Shared retrying HTTP layer for every provider adapter.

One decorator, ``with_retry``, wraps ``RetryingHttpClient.request``:

  transport error (timeout, reset, protocol) -> sleep base_backoff * 2**attempt
  HTTP 429                                   -> sleep Retry-After, else default_retry_after
  anything else                              -> returned to the adapter to classify

After ``max_retries`` retries a transport failure becomes ProviderUnavailableError
and a persisting 429 becomes ProviderRateLimitedError.
"""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from src.sv_common.datetime_utils import utc_now
from src.sv_common.errors import (
    ProviderRateLimitedError,
    ProviderUnavailableError,
)

logger = logging.getLogger(__name__)

_RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_backoff: float = 0.3
    default_retry_after: float = 1.0
    max_delay: float = 30.0

    def backoff_delay(self, attempt: int) -> float:
        return min(self.base_backoff * (2 ** attempt), self.max_delay)

    def rate_limit_delay(self, retry_after: float | None) -> float:
        delay = self.default_retry_after if retry_after is None else retry_after
        return min(delay, self.max_delay)


def parse_retry_after(value: str | None) -> float | None:
    """Retry-After as seconds: "3" -> 3.0, an HTTP date -> seconds until it, junk -> None."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(float(value), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        return None
    return max((when - utc_now()).total_seconds(), 0.0)


RequestFunc = Callable[..., Awaitable[httpx.Response]]


def with_retry(policy: RetryPolicy | None = None) -> Callable[[RequestFunc], RequestFunc]:
    """Decorate an async ``request(self, method, url, **kwargs)`` method.

    The bound instance must expose ``provider_name``; when ``policy`` is None
    its ``retry_policy`` attribute is used, so each adapter carries its own
    settings-derived policy.
    """

    def decorator(func: RequestFunc) -> RequestFunc:
        @functools.wraps(func)
        async def wrapper(self: Any, method: str, url: str, **kwargs: Any) -> httpx.Response:
            active = policy or self.retry_policy
            provider = self.provider_name
            attempt = 0
            while True:
                try:
                    response = await func(self, method, url, **kwargs)
                except _RETRYABLE_ERRORS as exc:
                    if attempt >= active.max_retries:
                        logger.error(
                            "%s %s %s failed after %d attempts: %r",
                            provider, method, url, attempt + 1, exc,
                        )
                        raise ProviderUnavailableError(
                            provider, f"{type(exc).__name__} after {attempt + 1} attempts"
                        ) from exc
                    delay = active.backoff_delay(attempt)
                    logger.warning(
                        "%s %s %s transport error %r, retry %d in %.2fs",
                        provider, method, url, exc, attempt + 1, delay,
                    )
                else:
                    if response.status_code != 429:
                        return response
                    retry_after = parse_retry_after(response.headers.get("Retry-After"))
                    if attempt >= active.max_retries:
                        logger.error(
                            "%s %s %s still rate limited after %d attempts",
                            provider, method, url, attempt + 1,
                        )
                        raise ProviderRateLimitedError(provider, retry_after)
                    delay = active.rate_limit_delay(retry_after)
                    logger.warning(
                        "%s %s %s rate limited, retry %d in %.2fs",
                        provider, method, url, attempt + 1, delay,
                    )
                attempt += 1
                await asyncio.sleep(delay)

        return wrapper

    return decorator


class RetryingHttpClient:
    """Thin wrapper over ``httpx.AsyncClient`` that every adapter talks through."""

    def __init__(
        self,
        provider_name: str,
        base_url: str,
        retry_policy: RetryPolicy,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.provider_name = provider_name
        self.retry_policy = retry_policy
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, read=timeout * 2),
            headers=headers,
            transport=transport,
        )

    @with_retry()
    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return await self._client.request(method, url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()


def decode_json(response: httpx.Response, provider: str) -> Any:
    """Return the JSON body of a 2xx response; anything else is ProviderUnavailableError."""
    if not response.is_success:
        raise ProviderUnavailableError(
            provider, f"HTTP {response.status_code}: {response.text[:200]}"
        )
    try:
        return response.json()
    except ValueError:
        raise ProviderUnavailableError(provider, "response body is not JSON") from None
