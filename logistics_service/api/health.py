"""
Logistics Service — Health endpoint

Probes the database and the inventory cache; one failing dependency marks the
service "degraded" and answers 503.
"""
import asyncio
from typing import Awaitable, Callable

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from logistics_service.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


async def _probe(check: Callable[[], Awaitable[None]], timeout: float) -> str:
    try:
        await asyncio.wait_for(check(), timeout=timeout)
    except Exception as e:
        return f"error: {str(e)[:100]}"
    return "ok"


@router.get("/health")
async def health_check(request: Request):
    state = request.app.state
    timeout = state.settings.HEALTH_CHECK_TIMEOUT
    deps = {
        "database": await _probe(state.db.ping, timeout),
        "redis": await _probe(state.cache.ping, timeout),
    }
    healthy = all(result == "ok" for result in deps.values())
    body = HealthResponse(
        status="healthy" if healthy else "degraded",
        service=state.settings.SERVICE_NAME,
        version=state.settings.SERVICE_VERSION,
        dependencies=deps,
    )
    return JSONResponse(content=body.model_dump(), status_code=200 if healthy else 503)
