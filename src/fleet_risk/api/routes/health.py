"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_forecast_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.weather.client import check_health as forecast_health_check
    return forecast_health_check


@router.get("/health/forecast", status_code=status.HTTP_200_OK)
def health_forecast() -> dict:
    """Check forecast service health."""
    if not settings.openweathermap_api_key:
        return {
            "service": "forecast",
            "configured": False,
            "healthy": False,
            "message": "Forecast service not configured. Set FRA_OPENWEATHERMAP_API_KEY.",
        }
    try:
        forecast_health_check = _get_forecast_health_check()
        return {"service": "forecast", "configured": True, "healthy": forecast_health_check()}
    except Exception as e:
        return {"service": "forecast", "configured": True, "healthy": False, "error": str(e)}
