"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.sv_admin.api.router import router as admin_router
from src.sv_cache.status_cache import StatusCache
from src.sv_common.database import async_session_factory, engine
from src.sv_common.errors import AppError
from src.sv_common.redis_client import close_redis, get_redis
from src.sv_common.response import error_response
from src.sv_gateway.middleware.request_log import RequestLogMiddleware
from src.sv_jobs.scheduler import BackgroundJobs
from src.sv_order.api.router import router as order_router
from src.sv_order.application.orchestrator import OrderOrchestrator
from src.sv_pricing.application.pricing_engine import PricingEngine
from src.sv_pricing.application.service import PricingApplicationService
from src.sv_provider.application.health import ProviderHealthMonitor
from src.sv_provider.application.registry import build_default_registry
from src.sv_wallet.api.router import router as wallet_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, wire services, start jobs. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()

    registry = build_default_registry(settings)
    pricing = PricingEngine(default_markup_percent=settings.DEFAULT_MARKUP_PERCENT)
    orchestrator = OrderOrchestrator(
        registry,
        pricing=pricing,
        cache=StatusCache(default_ttl_seconds=settings.STATUS_CACHE_TTL_SECONDS),
        order_ttl_minutes=settings.ORDER_TTL_MINUTES,
        poll_interval_seconds=settings.STATUS_POLL_INTERVAL_SECONDS,
    )
    health_monitor = ProviderHealthMonitor(
        registry,
        down_after=settings.HEALTH_DOWN_AFTER_FAILURES,
        timeout=settings.PROVIDER_HTTP_TIMEOUT_SECONDS,
    )
    app.state.registry = registry
    app.state.orchestrator = orchestrator
    app.state.pricing_service = PricingApplicationService(registry, engine=pricing)
    app.state.health_monitor = health_monitor

    jobs: BackgroundJobs | None = None
    if settings.SCHEDULER_ENABLED:
        jobs = BackgroundJobs(
            orchestrator,
            health_monitor,
            async_session_factory,
            sweep_interval_seconds=settings.EXPIRY_SWEEP_INTERVAL_SECONDS,
            sweep_batch_size=settings.EXPIRY_SWEEP_BATCH_SIZE,
            health_interval_seconds=settings.HEALTH_CHECK_INTERVAL_SECONDS,
        )
        jobs.start()
    logger.info("%s started with providers %s", settings.APP_NAME, registry.names())
    yield
    if jobs is not None:
        jobs.shutdown()
    await registry.aclose()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(order_router, prefix="/api/v1")
app.include_router(wallet_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
