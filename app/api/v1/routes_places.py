# app/api/v1/routes_places.py
from typing import List

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_engine
from app.models.trip import GeocodeResult, Suggestion
from app.services.trip_engine import TripEngine

router = APIRouter(
    prefix="/places",
    tags=["places"],
)


@router.get(
    "/suggest",
    response_model=List[Suggestion],
    summary="Address suggestions for a partially typed query",
)
async def suggest(
    q: str = Query("", description="Partially typed address"),
    engine: TripEngine = Depends(get_engine),
) -> List[Suggestion]:
    """
    Autocomplete candidates. Always succeeds; an unavailable provider
    yields an empty list.
    """
    return await engine.geocoder.suggest(q)


@router.get(
    "/geocode",
    response_model=GeocodeResult,
    summary="Resolve an address to coordinates",
)
async def geocode(
    address: str = Query(..., description="Free-text address"),
    engine: TripEngine = Depends(get_engine),
) -> GeocodeResult:
    return await engine.geocoder.geocode(address)
