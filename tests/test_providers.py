# tests/test_providers.py
import httpx
import pytest
import respx
from httpx import Response

from app.models.trip import Coordinate
from app.services.providers import (
    MapplsClient,
    NominatimClient,
    OSRMClient,
    ProviderErrorKind,
)

PUNE = Coordinate(lat=18.5204, lon=73.8567)
MUMBAI = Coordinate(lat=19.0760, lon=72.8777)


@pytest.fixture
def osrm_client() -> OSRMClient:
    return OSRMClient(base_url="http://osrm.test")


@pytest.fixture
def nominatim_client() -> NominatimClient:
    return NominatimClient(base_url="http://nominatim.test", user_agent="UrbanCabz/1.0")


@pytest.fixture
def mappls_client() -> MapplsClient:
    return MapplsClient(base_url="http://mappls.test/api/places", access_token="token")


@pytest.fixture
def valid_osrm_response() -> dict:
    return {
        "code": "Ok",
        "routes": [
            {
                "distance": 148234.1,
                "duration": 12320.4,
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[73.8567, 18.5204], [73.3, 18.8], [72.8777, 19.076]],
                },
            }
        ],
    }


async def test_osrm_route_parsed(osrm_client, valid_osrm_response):
    async with respx.mock:
        route = respx.get(
            "http://osrm.test/route/v1/driving/73.8567,18.5204;72.8777,19.076"
        ).mock(return_value=Response(200, json=valid_osrm_response))

        result = await osrm_client.get_route(PUNE, MUMBAI)

        assert route.called
        assert route.calls.last.request.url.params["geometries"] == "geojson"
        assert result.ok
        assert result.value.distance_meters == 148234.1
        assert result.value.geometry[0] == PUNE
        assert result.value.geometry[-1] == Coordinate(lat=19.076, lon=72.8777)


async def test_osrm_no_route(osrm_client):
    async with respx.mock:
        respx.route(path__regex=r".*/route/v1/driving/.*").mock(
            return_value=Response(200, json={"code": "NoRoute", "routes": []})
        )

        result = await osrm_client.get_route(PUNE, MUMBAI)

        assert result.error is ProviderErrorKind.NO_RESULT


async def test_osrm_empty_route_list(osrm_client):
    async with respx.mock:
        respx.route(path__regex=r".*/route/v1/driving/.*").mock(
            return_value=Response(200, json={"code": "Ok", "routes": []})
        )

        result = await osrm_client.get_route(PUNE, MUMBAI)

        assert result.error is ProviderErrorKind.NO_RESULT


async def test_osrm_server_error(osrm_client):
    async with respx.mock:
        respx.route(path__regex=r".*/route/v1/driving/.*").mock(
            return_value=Response(502, text="Bad Gateway")
        )

        result = await osrm_client.get_route(PUNE, MUMBAI)

        assert result.error is ProviderErrorKind.BAD_STATUS


async def test_osrm_timeout(osrm_client):
    async with respx.mock:
        respx.route(path__regex=r".*/route/v1/driving/.*").mock(
            side_effect=httpx.ReadTimeout("Request timed out")
        )

        result = await osrm_client.get_route(PUNE, MUMBAI)

        assert result.error is ProviderErrorKind.TIMEOUT


async def test_osrm_connection_error(osrm_client):
    async with respx.mock:
        respx.route(path__regex=r".*/route/v1/driving/.*").mock(
            side_effect=httpx.ConnectError("Connection refused")
        )

        result = await osrm_client.get_route(PUNE, MUMBAI)

        assert result.error is ProviderErrorKind.NETWORK


async def test_osrm_malformed_payload(osrm_client):
    async with respx.mock:
        respx.route(path__regex=r".*/route/v1/driving/.*").mock(
            return_value=Response(200, json={"code": "Ok", "routes": [{"distance": 1}]})
        )

        result = await osrm_client.get_route(PUNE, MUMBAI)

        assert result.error is ProviderErrorKind.MALFORMED


async def test_nominatim_search(nominatim_client):
    payload = [
        {
            "name": "MG Road",
            "display_name": "MG Road, Camp, Pune, Maharashtra, India",
            "lat": "18.5167",
            "lon": "73.8766",
            "address": {"road": "MG Road", "city": "Pune", "state": "Maharashtra"},
        }
    ]
    async with respx.mock:
        route = respx.get("http://nominatim.test/search").mock(
            return_value=Response(200, json=payload)
        )

        result = await nominatim_client.search("MG Road, Pune", "in", 1)

        request = route.calls.last.request
        assert request.headers["User-Agent"] == "UrbanCabz/1.0"
        assert request.url.params["countrycodes"] == "in"
        assert request.url.params["limit"] == "1"
        assert result.ok
        assert result.value[0].lat == 18.5167
        assert result.value[0].address["city"] == "Pune"


async def test_nominatim_empty_result(nominatim_client):
    async with respx.mock:
        respx.get("http://nominatim.test/search").mock(return_value=Response(200, json=[]))

        result = await nominatim_client.search("Nowhere Lane", "in", 1)

        assert result.error is ProviderErrorKind.NO_RESULT


async def test_mappls_unconfigured_makes_no_request():
    client = MapplsClient(base_url="http://mappls.test/api/places", access_token=None)

    async with respx.mock:
        result = await client.geocode("MG Road, Pune")

    assert result.error is ProviderErrorKind.UNCONFIGURED


async def test_mappls_geocode(mappls_client):
    payload = {
        "copResults": {
            "latitude": "18.5167",
            "longitude": "73.8766",
            "formattedAddress": "MG Road, Camp, Pune, Maharashtra",
        }
    }
    async with respx.mock:
        route = respx.get("http://mappls.test/api/places/geocode").mock(
            return_value=Response(200, json=payload)
        )

        result = await mappls_client.geocode("MG Road, Pune")

        assert route.calls.last.request.headers["Authorization"] == "Bearer token"
        assert result.value.coordinate == Coordinate(lat=18.5167, lon=73.8766)
        assert result.value.formatted_address == "MG Road, Camp, Pune, Maharashtra"


async def test_mappls_suggest_skips_entries_without_position(mappls_client):
    payload = {
        "suggestedLocations": [
            {"placeName": "Pune Station", "placeAddress": "Agarkar Nagar, Pune"},
            {
                "placeName": "Pune Airport",
                "placeAddress": "Lohegaon, Pune",
                "latitude": 18.5821,
                "longitude": 73.9197,
            },
        ]
    }
    async with respx.mock:
        respx.get("http://mappls.test/api/places/search/json").mock(
            return_value=Response(200, json=payload)
        )

        result = await mappls_client.suggest("pune", limit=10)

        assert [s.label for s in result.value] == ["Pune Airport, Lohegaon, Pune"]
