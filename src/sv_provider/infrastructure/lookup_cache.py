"""In-process TTL cache for vendor lookup tables (applications, countries, services)."""

import asyncio
import time
from collections.abc import Awaitable, Callable


class TimedLookup:
    def __init__(
        self,
        loader: Callable[[], Awaitable[dict[str, str]]],
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._table: dict[str, str] | None = None
        self._loaded_at = 0.0
        self._lock = asyncio.Lock()

    def _expired(self) -> bool:
        return self._table is None or self._clock() - self._loaded_at >= self._ttl

    async def _loaded(self) -> dict[str, str]:
        if self._expired():
            async with self._lock:
                if self._expired():
                    self._table = await self._loader()
                    self._loaded_at = self._clock()
        assert self._table is not None
        return self._table

    async def get(self, key: str) -> str | None:
        return (await self._loaded()).get(key)

    async def table(self) -> dict[str, str]:
        """A copy of the whole table, for catalog listings."""
        return dict(await self._loaded())
