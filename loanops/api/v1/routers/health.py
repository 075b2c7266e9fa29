from fastapi import APIRouter

from loanops.core.health import health_payload, live_payload, ready_payload
from loanops.core.limiter import limiter
from loanops.core.response_envelope import success_envelope

router = APIRouter(tags=["health"])


@router.get("/health/live", summary="Service liveness check")
@limiter.exempt
async def health_live() -> dict:
    return success_envelope(await live_payload())


@router.get("/health/ready", summary="Service readiness check")
@limiter.exempt
async def health_ready() -> dict:
    return success_envelope(await ready_payload())


@router.get("/health", summary="Readiness check including the database")
@limiter.exempt
async def read_health() -> dict:
    return success_envelope(await health_payload())
