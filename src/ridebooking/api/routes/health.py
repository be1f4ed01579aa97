from fastapi import APIRouter

from ridebooking.api.dependencies import ResolverDep, SweeperDep
from ridebooking.api.models.health import HealthResponse, RoutingStatsResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(status="healthy")


@router.get("/routing/stats", response_model=RoutingStatsResponse)
async def routing_stats(resolver: ResolverDep, sweeper: SweeperDep) -> RoutingStatsResponse:
    """Route cache and provider call counters."""
    return RoutingStatsResponse(
        **resolver.stats(),
        sweeper_running=bool(sweeper and sweeper.running),
    )
