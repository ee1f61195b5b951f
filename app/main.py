# app/main.py

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.api.v1 import routes_health, routes_places, routes_trips
from app.core.config import settings
from app.core.exceptions import (
    FareEngineError,
    InvalidInput,
    LocationNotFound,
    RideTypeUnavailable,
    UnresolvableLocation,
)
from app.core.logger import logger
from app.services.trip_engine import TripEngine, build_engine

ERROR_STATUS = {
    InvalidInput: status.HTTP_400_BAD_REQUEST,
    LocationNotFound: status.HTTP_404_NOT_FOUND,
    UnresolvableLocation: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RideTypeUnavailable: status.HTTP_403_FORBIDDEN,
}


async def fare_engine_error_handler(request: Request, exc: FareEngineError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__, **exc.details},
    )


def create_app(engine: TripEngine | None = None) -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Trip distance and fare resolution over geocoding/routing providers.",
    )

    app.state.engine = engine or build_engine()

    # Routers
    app.include_router(routes_health.router, prefix="", tags=["health"])
    app.include_router(routes_places.router, prefix="", tags=["places"])
    app.include_router(routes_trips.router, prefix="", tags=["trips"])

    app.add_exception_handler(FareEngineError, fare_engine_error_handler)

    return app


app = create_app()
