# app/api/v1/routes_trips.py
from fastapi import APIRouter, Depends

from app.api.dependencies import get_engine
from app.models.trip import RouteMetrics, RouteRequest, TripQuoteRequest, TripQuoteResponse
from app.services.trip_engine import TripEngine

router = APIRouter(
    prefix="/trips",
    tags=["trips"],
)


@router.post(
    "/route",
    response_model=RouteMetrics,
    summary="Distance and duration between pickup and drop",
)
async def resolve_route(
    request: RouteRequest,
    engine: TripEngine = Depends(get_engine),
) -> RouteMetrics:
    """
    Pickup and drop may each be an address or a {lat, lon} pin.

    When the routing provider is unavailable the response is a straight-line
    estimate with `is_estimate=true`.
    """
    return await engine.resolver.resolve(request.pickup, request.drop)


@router.post(
    "/quote",
    response_model=TripQuoteResponse,
    summary="Route metrics plus billable distance and fare",
)
async def quote_trip(
    request: TripQuoteRequest,
    engine: TripEngine = Depends(get_engine),
) -> TripQuoteResponse:
    return await engine.quote(request)
