# /helpdesk_bot/routes/public.py

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from datetime import datetime

from helpdesk_bot.config.settings import settings
from helpdesk_bot.utils.dependencies import verify_metrics_access
from helpdesk_bot.models.api import APIResponse
from helpdesk_bot.services.session_store import session_store
from helpdesk_bot.services.intent_service import intent_service
from helpdesk_bot.services.search_service import search_service
from helpdesk_bot.services.ticket_service import ticket_service

# This file defines public-facing endpoints that do not require channel
# credentials: health checks and the root endpoint. The /metrics endpoint is
# conditionally protected by an API key.

router = APIRouter()

@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Help Desk Bot",
        "version": "1.0.0",
        "status": "operational",
        "environment": settings.environment
    }

@router.get("/health", summary="Basic Health Check")
async def health_check():
    """Basic health check for load balancers."""
    return {"status": "healthy", "timestamp": datetime.utcnow()}

@router.get("/health/ready", summary="Readiness Probe")
async def readiness_check():
    """Readiness check: the session store must answer."""
    try:
        ready = await session_store.ping()
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Service not ready: {type(e).__name__}")
    if not ready:
        raise HTTPException(status_code=503, detail="Service not ready: session store")
    return {"status": "ready"}

@router.get("/health/live", summary="Liveness Probe")
async def liveness_check():
    """Liveness check."""
    return {"status": "alive"}

@router.get("/health/detailed", response_model=APIResponse, tags=["Monitoring"])
async def detailed_health_check(_: bool = Depends(verify_metrics_access)):
    """Session store reachability plus the circuit state of each collaborator."""
    services = {
        "classifier": intent_service.circuit_breaker.snapshot(),
        "search": search_service.circuit_breaker.snapshot(),
        "tickets": ticket_service.circuit_breaker.snapshot(),
    }
    try:
        store_ok = await session_store.ping()
    except Exception:
        store_ok = False
    services["session_store"] = {"state": "connected" if store_ok else "unreachable"}

    degraded = not store_ok or any(s["state"] != "closed" for name, s in services.items() if name != "session_store")
    return APIResponse(
        success=not degraded,
        message="degraded" if degraded else "healthy",
        data={"services": services, "session_backend": settings.session_backend},
        version=settings.api_version,
    )

@router.get("/metrics", tags=["Monitoring"])
async def metrics(request: Request, _: bool = Depends(verify_metrics_access)):
    """Prometheus metrics endpoint."""
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)
