# app/models/trip.py

from datetime import date
from enum import Enum
from typing import Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class Coordinate(BaseModel):
    """
    Simple latitude/longitude coordinate. Immutable once resolved.
    """
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)


class GeocodeResult(BaseModel):
    """
    Result of resolving a free-text address.
    """
    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    formatted_address: str


class Suggestion(BaseModel):
    """
    One autocomplete candidate for a partially typed address.
    """
    model_config = ConfigDict(frozen=True)

    label: str
    lat: float
    lon: float
    display_name: str
    source: str


class RouteMetrics(BaseModel):
    """
    Distance/duration between two points.

    `is_estimate=True` marks a straight-line fallback computed while the
    routing provider was unavailable; `path` is then None.
    """
    model_config = ConfigDict(frozen=True)

    distance_km: float
    duration_minutes: int
    distance_label: str
    duration_label: str
    from_coordinate: Coordinate
    to_coordinate: Coordinate
    path: Optional[List[Coordinate]] = None
    is_estimate: bool = False


class CacheEntry(BaseModel, Generic[T]):
    value: T
    stored_at_epoch_ms: int


class RideType(str, Enum):
    ONEWAY = "oneway"
    ROUNDTRIP = "roundtrip"
    AIRPORT = "airport"


class PricingSettings(BaseModel):
    """
    Global pricing settings managed from the admin dashboard.
    """
    model_config = ConfigDict(frozen=True)

    min_km_threshold: float = 0.0
    min_km_airport_apply: bool = False
    min_km_oneway_apply: bool = False
    min_km_roundtrip_apply: bool = False
    price_per_km: float = 0.0

    service_oneway_enabled: bool = True
    service_roundtrip_enabled: bool = True
    service_airport_enabled: bool = True

    # Unset switches in the admin table mean "not configured yet".
    @field_validator(
        "min_km_airport_apply", "min_km_oneway_apply", "min_km_roundtrip_apply", mode="before"
    )
    @classmethod
    def unset_rule_is_off(cls, value):
        return False if value is None else value

    @field_validator(
        "service_oneway_enabled", "service_roundtrip_enabled", "service_airport_enabled", mode="before"
    )
    @classmethod
    def unset_service_is_on(cls, value):
        return True if value is None else value

    def applies_min_km(self, ride_type: RideType) -> bool:
        return {
            RideType.ONEWAY: self.min_km_oneway_apply,
            RideType.ROUNDTRIP: self.min_km_roundtrip_apply,
            RideType.AIRPORT: self.min_km_airport_apply,
        }[ride_type]

    def is_enabled(self, ride_type: RideType) -> bool:
        return {
            RideType.ONEWAY: self.service_oneway_enabled,
            RideType.ROUNDTRIP: self.service_roundtrip_enabled,
            RideType.AIRPORT: self.service_airport_enabled,
        }[ride_type]


class FareQuote(BaseModel):
    model_config = ConfigDict(frozen=True)

    billable_distance_km: float
    total_fare: int


# A route endpoint is either a free-text address or an already known point.
Location = Union[Coordinate, str]


class RouteRequest(BaseModel):
    """
    Request body for the /trips/route endpoint.
    """
    pickup: Location
    drop: Location


class TripQuoteRequest(RouteRequest):
    """
    Request body for the /trips/quote endpoint.

    Dates are local calendar dates; unparseable values count as absent.
    """
    ride_type: RideType = RideType.ONEWAY
    pickup_date: Optional[Union[date, str]] = None
    return_date: Optional[Union[date, str]] = None
    # Per-vehicle rate; falls back to the global pricing settings when omitted.
    price_per_km: Optional[float] = Field(default=None, gt=0)


class TripQuoteResponse(BaseModel):
    route: RouteMetrics
    fare: FareQuote
