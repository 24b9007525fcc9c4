"""
FastAPI Dependency Injection Module
===================================

Route handlers receive the guard components through FastAPI's ``Depends``
instead of reaching for module-level globals.

HOW IT WORKS:
-------------
The lifespan (``src.application.app.lifespan``) builds ONE ``GuardServices``
container and stores it on ``app.state.services``. The providers below read
it back from the request, so every request shares the same breaker, cache
and aggregator, and tests can swap the container on ``app.state``.

Example:
    @router.get("/circuit-breaker")
    async def status(breaker: BreakerDep):
        return breaker.get_state().to_dict()
"""

from typing import Annotated

from fastapi import Depends, Request

from src.admission.gatekeeper import AdmissionGatekeeper
from src.application.services.guard_services import GuardServices
from src.core.config.settings import Settings, get_settings
from src.core.resilience.circuit_breaker import RequestCircuitBreaker
from src.infrastructure.cache.ttl_cache import TTLCache
from src.presence.aggregator import PresenceAggregator

# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_services(request: Request) -> GuardServices:
    """
    Retrieve the GuardServices container from application state.

    TEST ENVIRONMENT SUPPORT:
    -------------------------
    When the lifespan did not run (e.g. ``TestClient`` used without a
    ``with`` block), a container is built from settings on first use. Its
    background tasks are not started; route handlers only read state.

    Raises:
        RuntimeError: If the container can't be created
    """
    if hasattr(request.app.state, "services"):
        return request.app.state.services

    try:
        services = GuardServices.from_settings(get_settings())
    except Exception as e:
        raise RuntimeError(
            f"GuardServices not initialized in app.state and fallback creation failed: {e}. "
            "This indicates the application lifespan startup didn't complete properly."
        ) from e

    request.app.state.services = services
    return services


ServicesDep = Annotated[GuardServices, Depends(get_services)]


def get_breaker(services: ServicesDep) -> RequestCircuitBreaker:
    return services.breaker


def get_cache(services: ServicesDep) -> TTLCache:
    return services.cache


def get_aggregator(services: ServicesDep) -> PresenceAggregator:
    return services.aggregator


def get_gatekeeper(services: ServicesDep) -> AdmissionGatekeeper:
    return services.gatekeeper


# ============================================================================
# TYPE ALIASES FOR CLEANER ROUTE SIGNATURES
# ============================================================================
# Annotated[Type, Depends(provider)] keeps the real type visible to type
# checkers while telling FastAPI how to resolve the parameter.

SettingsDep = Annotated[Settings, Depends(get_settings)]
BreakerDep = Annotated[RequestCircuitBreaker, Depends(get_breaker)]
CacheDep = Annotated[TTLCache, Depends(get_cache)]
AggregatorDep = Annotated[PresenceAggregator, Depends(get_aggregator)]
GatekeeperDep = Annotated[AdmissionGatekeeper, Depends(get_gatekeeper)]
