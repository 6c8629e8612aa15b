"""
Health check endpoints.

Provides endpoints for monitoring application health and status.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from config.settings import get_settings
from core.errors import StorageUnavailable
from matching.service import MatchingService, get_matching_service


router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns:
        Health status with basic info
    """
    return {
        "status": "healthy",
        "service": "matching-api",
    }


@router.get("/health/detailed")
def detailed_health_check(
    service: MatchingService = Depends(get_matching_service),
) -> Dict[str, Any]:
    """
    Detailed health check with store status.

    Checks:
    - Configuration loaded
    - Posting-list store reachable

    Returns:
        Detailed health status
    """
    settings = get_settings()

    store_status = "unknown"
    store_error = None
    stats: Dict[str, Any] = {}
    try:
        store_status = "connected" if service.store.ping() else "unreachable"
        stats = service.store.get_stats()
    except StorageUnavailable as e:
        store_status = "error"
        store_error = str(e)

    return {
        "status": "healthy" if store_status == "connected" else "degraded",
        "service": "matching-api",
        "environment": settings.environment,
        "checks": {
            "config": "ok",
            "store": {
                "status": store_status,
                "backend": service.store.backend_name,
                "error": store_error,
                "stats": stats,
            },
        },
    }


@router.get("/ready")
def readiness_check(
    service: MatchingService = Depends(get_matching_service),
) -> Dict[str, str]:
    """
    Kubernetes-style readiness probe.

    Returns 200 if the service is ready to accept traffic.
    """
    try:
        service.store.ping()
    except StorageUnavailable:
        return {"status": "not_ready", "reason": "store_unavailable"}

    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """
    Kubernetes-style liveness probe.

    Returns 200 if the service is alive.
    """
    return {"status": "alive"}
