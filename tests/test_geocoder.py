# tests/test_geocoder.py
import asyncio

import pytest

from app.core.exceptions import InvalidInput, LocationNotFound
from app.models.trip import Coordinate, GeocodeResult, Suggestion
from app.services.providers import ProviderErrorKind
from tests.doubles import FakePrimary, FakeSecondary, RecordingRateLimiter, place


async def test_empty_address_is_invalid(geocoder):
    with pytest.raises(InvalidInput):
        await geocoder.geocode("   ")


async def test_falls_back_to_secondary_when_primary_has_no_result(geocoder, primary, secondary):
    result = await geocoder.geocode("MG Road, Pune")

    assert primary.geocode_calls == ["MG Road, Pune"]
    assert secondary.calls == ["MG Road, Pune"]
    assert result.coordinate == Coordinate(lat=18.5204, lon=73.8567)
    assert result.formatted_address == "MG Road, Pune, Maharashtra, India"


async def test_primary_hit_skips_secondary(geocoder, primary, secondary):
    primary.result = GeocodeResult(
        coordinate=Coordinate(lat=18.53, lon=73.85),
        formatted_address="MG Road, Camp, Pune",
    )

    result = await geocoder.geocode("MG Road, Pune")

    assert result.formatted_address == "MG Road, Camp, Pune"
    assert secondary.calls == []


async def test_same_normalized_address_hits_provider_once(geocoder, secondary):
    first = await geocoder.geocode("  MG Road, Pune  ")
    second = await geocoder.geocode("mg road, pune")

    assert first == second
    assert len(secondary.calls) == 1


async def test_concurrent_lookups_share_one_upstream_call(geocoder, secondary):
    results = await asyncio.gather(
        geocoder.geocode("MG Road, Pune"),
        geocoder.geocode("mg road, pune"),
        geocoder.geocode("MG ROAD, PUNE "),
    )

    assert len(set(results)) == 1
    assert len(secondary.calls) == 1


async def test_not_found_when_all_providers_exhausted(geocoder, secondary):
    secondary.places = []

    with pytest.raises(LocationNotFound):
        await geocoder.geocode("Nowhere Lane")


async def test_secondary_network_error_is_not_found(geocoder, secondary):
    secondary.error = ProviderErrorKind.NETWORK

    with pytest.raises(LocationNotFound) as excinfo:
        await geocoder.geocode("MG Road, Pune")

    assert excinfo.value.details["secondary"] == "network"


async def test_geocode_result_persisted_to_session_store(geocoder, session_store):
    await geocoder.geocode("MG Road, Pune")

    assert "rc_geo_mg road, pune" in session_store


# ---------------------------------------------------------------------- #
# Suggestions
# ---------------------------------------------------------------------- #


async def test_short_query_returns_nothing(geocoder, primary, secondary):
    assert await geocoder.suggest("p") == []
    assert primary.suggest_calls == []
    assert secondary.calls == []


async def test_primary_suggestions_are_returned(geocoder, primary, secondary):
    primary.suggestions = [
        Suggestion(label="Pune Station, Pune", lat=18.52, lon=73.87, display_name="Pune Station, Pune", source="mappls")
    ]

    suggestions = await geocoder.suggest("pune st")

    assert [s.source for s in suggestions] == ["mappls"]
    assert secondary.calls == []


async def test_secondary_suggestions_filter_unnamed_roads(geocoder, secondary):
    secondary.places = [
        place(
            "Unnamed Road, Hinjewadi, Pune, Maharashtra, India",
            18.59, 73.73,
        ),
        place(
            "Phoenix Marketcity, Viman Nagar Road, Viman Nagar, Pune, Maharashtra, 411014, India",
            18.56, 73.91,
            name="Phoenix Marketcity",
            road="Viman Nagar Road",
            suburb="Viman Nagar",
            city="Pune",
            state="Maharashtra",
        ),
    ]

    suggestions = await geocoder.suggest("phoenix")

    assert len(suggestions) == 1
    assert suggestions[0].label == (
        "Phoenix Marketcity, Viman Nagar Road, Viman Nagar, Pune, Maharashtra, India"
    )
    assert suggestions[0].source == "nominatim"


async def test_sparse_address_uses_display_name_prefix(geocoder, secondary):
    secondary.places = [
        place("Lonavala, Pune District, Maharashtra, 410401, India", 18.75, 73.40, name="Lonavala", town="Lonavala"),
    ]

    suggestions = await geocoder.suggest("lonavala")

    assert suggestions[0].label == "Lonavala, Pune District, Maharashtra, 410401, India"


async def test_suggestions_capped_at_limit(geocoder, secondary):
    geocoder.suggestion_limit = 3
    secondary.places = [
        place(f"Place {i}, Pune, Maharashtra, India", 18.5, 73.8, name=f"Place {i}", city="Pune", state="Maharashtra")
        for i in range(6)
    ]

    suggestions = await geocoder.suggest("place")

    assert len(suggestions) == 3


async def test_suggestions_cached_separately_from_geocodes(geocoder, secondary):
    await geocoder.geocode("MG Road, Pune")
    await geocoder.suggest("MG Road, Pune")
    await geocoder.suggest("mg road, pune")

    # one geocode + one suggestion lookup; the repeated suggestion is cached
    assert len(secondary.calls) == 2


async def test_suggestion_provider_error_yields_empty_list(geocoder, secondary):
    secondary.error = ProviderErrorKind.TIMEOUT

    assert await geocoder.suggest("pune") == []


# ---------------------------------------------------------------------- #
# Secondary provider rate gate
# ---------------------------------------------------------------------- #

GATE_INTERVAL_S = 0.05


async def test_concurrent_secondary_geocodes_are_spaced(geocoder, secondary):
    geocoder.rate_limiter = RecordingRateLimiter(GATE_INTERVAL_S)

    await asyncio.gather(
        *(geocoder.geocode(f"Street {i}, Pune") for i in range(4))
    )

    assert len(secondary.call_times) == 4
    gaps = [b - a for a, b in zip(secondary.call_times, secondary.call_times[1:])]
    assert all(gap >= GATE_INTERVAL_S - 0.005 for gap in gaps)
    assert geocoder.rate_limiter.acquired == 4


async def test_concurrent_secondary_suggestions_are_spaced(geocoder, secondary):
    geocoder.rate_limiter = RecordingRateLimiter(GATE_INTERVAL_S)

    await asyncio.gather(geocoder.suggest("koregaon"), geocoder.suggest("kothrud"))

    assert len(secondary.call_times) == 2
    assert secondary.call_times[1] - secondary.call_times[0] >= GATE_INTERVAL_S - 0.005


async def test_primary_hit_never_waits_on_rate_gate(geocoder, primary, secondary):
    geocoder.rate_limiter = RecordingRateLimiter(GATE_INTERVAL_S)
    primary.result = GeocodeResult(
        coordinate=Coordinate(lat=18.53, lon=73.85),
        formatted_address="MG Road, Camp, Pune",
    )
    primary.suggestions = [
        Suggestion(label="Camp, Pune", lat=18.51, lon=73.88, display_name="Camp, Pune", source="mappls")
    ]

    await asyncio.gather(geocoder.geocode("MG Road, Pune"), geocoder.geocode("Camp, Pune"))
    await geocoder.suggest("camp")

    assert geocoder.rate_limiter.acquired == 0
    assert secondary.calls == []
