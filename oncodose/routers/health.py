"""
Health and basic status endpoints.
"""
from datetime import datetime

from fastapi import APIRouter

from oncodose.config import SERVICE_VERSION, get_service_config
from oncodose.services.service_monitor import get_service_monitor

router = APIRouter(prefix="", tags=["health"])


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Oncology dose calculation backend",
        "status": "operational",
        "version": SERVICE_VERSION,
    }


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    health = get_service_monitor().get_health_status()
    all_healthy = all(status.get("healthy", False) for status in health.values())
    return {
        "status": "healthy" if all_healthy else "degraded",
        "services": health,
        "timestamp": datetime.now().isoformat(),
    }


@router.get("/metrics")
async def metrics():
    """Per-service request counters and resolved configuration."""
    return {
        "metrics": get_service_monitor().get_metrics(),
        "config": get_service_config(),
        "timestamp": datetime.now().isoformat(),
    }
