"""Health and routing statistics models."""

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: Literal["healthy"]


class RoutingStatsResponse(BaseModel):
    requests: int
    hits: int
    misses: int
    hit_rate: float
    cache_size: int
    max_size: int
    ttl_seconds: float
    in_flight: int
    provider_calls: int
    sweeper_running: bool
