"""Per-adapter bearer token cache.

A token is served until ``refresh_margin`` seconds before it expires. Refresh
is serialized by an asyncio.Lock with a second freshness check inside it, so
N concurrent callers trigger one fetch and never see a known-expired token.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Returns (token, lifetime in seconds)
TokenFetcher = Callable[[], Awaitable[tuple[str, float]]]


@dataclass(frozen=True)
class CachedToken:
    value: str
    expires_at: float   # monotonic clock


class BearerTokenCache:
    def __init__(
        self,
        fetch: TokenFetcher,
        refresh_margin: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._refresh_margin = refresh_margin
        self._clock = clock
        self._token: CachedToken | None = None
        self._lock = asyncio.Lock()

    def _fresh(self) -> CachedToken | None:
        token = self._token
        if token is not None and self._clock() < token.expires_at - self._refresh_margin:
            return token
        return None

    async def get_token(self) -> str:
        token = self._fresh()
        if token is not None:
            return token.value
        async with self._lock:
            # Another waiter may have refreshed while we queued on the lock
            token = self._fresh()
            if token is not None:
                return token.value
            value, lifetime = await self._fetch()
            self._token = CachedToken(value=value, expires_at=self._clock() + lifetime)
            logger.info("Bearer token refreshed, valid for %.0fs", lifetime)
            return value

    def invalidate(self) -> None:
        self._token = None
