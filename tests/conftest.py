# tests/conftest.py
import os
import sys

# Add the project root directory to sys.path so that "import app" works
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from app.models.trip import GeocodeResult, PricingSettings, RouteMetrics
from app.services.cache import LayeredCache, MemoryTier, SessionStore, SessionTier
from app.services.geocoder import Geocoder
from app.services.pricing import PricingSettingsProvider
from app.services.rate_limiter import RateLimiter
from app.services.route_resolver import RouteResolver
from app.services.trip_engine import TripEngine
from tests.doubles import PUNE, FakeClock, FakePrimary, FakeRouter, FakeSecondary, place


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore(max_bytes=1024 * 1024)


@pytest.fixture
def primary() -> FakePrimary:
    return FakePrimary()


@pytest.fixture
def secondary() -> FakeSecondary:
    return FakeSecondary(
        places=[place("MG Road, Pune, Maharashtra, India", PUNE.lat, PUNE.lon)]
    )


@pytest.fixture
def router() -> FakeRouter:
    return FakeRouter()


@pytest.fixture
def geocoder(primary, secondary, session_store, clock) -> Geocoder:
    return Geocoder(
        primary=primary,
        secondary=secondary,
        rate_limiter=RateLimiter(0.0),
        cache=LayeredCache(
            "rc_geo",
            [MemoryTier(), SessionTier(GeocodeResult, 24 * 3600, store=session_store, clock=clock)],
        ),
        suggestion_cache=LayeredCache("rc_suggest", [MemoryTier()]),
    )


@pytest.fixture
def route_cache(session_store, clock) -> LayeredCache:
    return LayeredCache(
        "rc_route",
        [MemoryTier(), SessionTier(RouteMetrics, 12 * 3600, store=session_store, clock=clock)],
    )


@pytest.fixture
def resolver(geocoder, router, route_cache) -> RouteResolver:
    return RouteResolver(geocoder=geocoder, router=router, cache=route_cache)


@pytest.fixture
def pricing_settings() -> PricingSettings:
    return PricingSettings(
        min_km_threshold=100,
        min_km_oneway_apply=True,
        min_km_roundtrip_apply=True,
        min_km_airport_apply=False,
        price_per_km=12,
    )


@pytest.fixture
def engine(geocoder, resolver, pricing_settings) -> TripEngine:
    return TripEngine(
        geocoder=geocoder,
        resolver=resolver,
        pricing=PricingSettingsProvider(defaults=pricing_settings),
    )
