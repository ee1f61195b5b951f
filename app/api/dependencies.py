# app/api/dependencies.py
from fastapi import Request

from app.services.trip_engine import TripEngine


def get_engine(request: Request) -> TripEngine:
    """Retrieve the shared TripEngine from app state."""
    return request.app.state.engine
