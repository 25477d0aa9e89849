"""FastAPI dependencies for objects built once in the app lifespan.

``src.main.lifespan`` stores them on ``app.state``; route tests override
these dependencies with fakes.
"""

from fastapi import Request

from src.sv_order.application.orchestrator import OrderOrchestrator
from src.sv_pricing.application.service import PricingApplicationService
from src.sv_provider.application.health import ProviderHealthMonitor
from src.sv_provider.application.registry import ProviderRegistry


def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry


def get_orchestrator(request: Request) -> OrderOrchestrator:
    return request.app.state.orchestrator


def get_pricing_service(request: Request) -> PricingApplicationService:
    return request.app.state.pricing_service


def get_health_monitor(request: Request) -> ProviderHealthMonitor:
    return request.app.state.health_monitor
