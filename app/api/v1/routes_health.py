# app/api/v1/routes_health.py
from fastapi import APIRouter, Depends

from app.api.dependencies import get_engine
from app.core.config import settings
from app.services.trip_engine import TripEngine

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("/", summary="Health check")
async def health_check(engine: TripEngine = Depends(get_engine)):
    """
    Liveness plus which geocoding providers this instance will use.
    """
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "providers": {
            "primary_geocoder": "mappls" if engine.geocoder.primary.configured else None,
            "secondary_geocoder": "nominatim",
            "routing": "osrm",
        },
    }
