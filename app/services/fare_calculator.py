# app/services/fare_calculator.py
"""
Fare computation. Pure functions: no I/O and no caching.

Minimum billable distance ("300 km rule"): when a trip is longer than
`min_km_threshold` and the rule is switched on for its ride type, at least
300 km per day is billed. Round trips bill the there-and-back distance and
count the pickup day and the return day inclusively.
"""
from datetime import date, datetime
from typing import Optional, Union

from app.models.trip import FareQuote, PricingSettings, RideType
from app.services.geo import round_half_up

RULE_MIN_KM_PER_DAY = 300.0

DateLike = Union[date, datetime, str, None]


def parse_calendar_date(value: DateLike) -> Optional[date]:
    """
    Local calendar date of `value`; None when absent or unparseable.
    Datetimes are reduced to their date part without timezone conversion.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip()[:10])
    except (AttributeError, ValueError):
        return None


def trip_days(pickup_date: DateLike, return_date: DateLike) -> int:
    """
    Calendar days covered by a round trip, pickup and return day included.
    Missing or invalid dates count as a single day.
    """
    start = parse_calendar_date(pickup_date)
    end = parse_calendar_date(return_date)
    if start is None or end is None:
        return 1
    return abs((end - start).days) + 1


def compute_fare(
    ride_type: Union[RideType, str],
    distance_km: Optional[float],
    pickup_date: DateLike = None,
    return_date: DateLike = None,
    price_per_km: Optional[float] = None,
    settings: Optional[PricingSettings] = None,
) -> FareQuote:
    """
    Billable distance and rounded total fare for a trip.

    A zero/missing distance or missing pricing settings yields a zero quote
    instead of an error: settings may not have loaded yet when a screen
    first renders.
    """
    if not distance_km or settings is None:
        return FareQuote(billable_distance_km=0, total_fare=0)

    ride_type = RideType(ride_type)

    apply_rule = distance_km > settings.min_km_threshold and settings.applies_min_km(ride_type)
    effective_min_km_per_day = RULE_MIN_KM_PER_DAY if apply_rule else 0.0

    if ride_type is RideType.ROUNDTRIP:
        days = trip_days(pickup_date, return_date)
        billable_distance = max(days * effective_min_km_per_day, distance_km * 2)
    else:
        billable_distance = max(effective_min_km_per_day, distance_km)

    rate = price_per_km if price_per_km is not None else settings.price_per_km
    total = int(round_half_up(billable_distance * rate))

    return FareQuote(billable_distance_km=billable_distance, total_fare=total)
