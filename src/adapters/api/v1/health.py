import time
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.core.config.settings import settings
from src.core.dependencies.governance import get_counter_store
from src.core.logging import logger
from src.domain.rate_limiting import CounterStore

router = APIRouter()

_PROCESS_STARTED = time.monotonic()


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    uptime: float
    checks: Dict[str, str]
    response_time_ms: int = Field(serialization_alias="responseTimeMs")


@router.get("", response_model=HealthResponse)
async def health_check(store: CounterStore = Depends(get_counter_store)):
    """
    Health check for load balancers and uptime monitors.

    Returns 200 when the rate limit store is reachable and 503 otherwise.
    """
    started = time.monotonic()
    store_health = await store.health_check()
    healthy = store_health.get("status") == "healthy"
    if not healthy:
        logger.error("health_check_failed", rate_limit_store=store_health)

    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.VERSION,
        uptime=round(time.monotonic() - _PROCESS_STARTED, 3),
        checks={"rate_limit_store": "connected" if healthy else "disconnected"},
        response_time_ms=int((time.monotonic() - started) * 1000),
    )
    return JSONResponse(
        status_code=200 if healthy else 503,
        content=body.model_dump(mode="json", by_alias=True),
    )
