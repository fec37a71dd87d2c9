"""
ZipMetro Backend — Health Check Route
=======================================

What:  Health endpoint for container health checks and load balancer probes.
How:   Asks the active store adapter for a lightweight ping and reports the
       document store's circuit-breaker state.

Status levels:
    - healthy:   Store answered (HTTP 200)
    - degraded:  Store did not answer, circuit still closed: likely transient (HTTP 200)
    - unhealthy: Store did not answer and the circuit is open, or SQLite is
                 unusable (HTTP 503, stop routing traffic)
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from zipmetro import __version__
from zipmetro.dependencies import get_store
from zipmetro.schemas.common import HealthResponse
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Store unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(store: StoreFacade = Depends(get_store)):
    connected = await store.health_check()
    circuit = store.circuit_state

    if connected:
        overall = "healthy"
    elif store.backend == "document" and circuit != "open":
        overall = "degraded"
    else:
        overall = "unhealthy"

    body = HealthResponse(
        status=overall,
        version=__version__,
        store_backend=store.backend,
        database="connected" if connected else "disconnected",
        circuit_breaker=circuit,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
