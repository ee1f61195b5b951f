# app/services/providers.py
"""
HTTP adapters for the external mapping providers.

Each adapter talks to exactly one provider and returns a ProviderResult:
either a normalized value or a ProviderErrorKind describing why there is
none. Transport errors are never raised to callers, which branch on the
error kind instead.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

import httpx
from pydantic import BaseModel, Field

from app.core.logger import logger
from app.models.trip import Coordinate, GeocodeResult, Suggestion

T = TypeVar("T")


class ProviderErrorKind(str, Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    BAD_STATUS = "bad_status"
    NO_RESULT = "no_result"
    MALFORMED = "malformed"
    UNCONFIGURED = "unconfigured"


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[ProviderErrorKind] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ProviderResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ProviderErrorKind, message: str = "") -> "ProviderResult[T]":
        return cls(error=kind, message=message)


async def get_json(
    provider: str,
    url: str,
    *,
    params: Dict[str, Any],
    timeout: float,
    headers: Optional[Dict[str, str]] = None,
) -> ProviderResult[Any]:
    """
    GET `url` and decode its JSON body, mapping every transport problem to
    a ProviderErrorKind.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url, params=params, headers=headers)
    except httpx.TimeoutException as e:
        logger.warning(f"[{provider}] request timed out after {timeout}s: {e}")
        return ProviderResult.failure(ProviderErrorKind.TIMEOUT, str(e))
    except httpx.HTTPError as e:
        logger.warning(f"[{provider}] network error: {e}")
        return ProviderResult.failure(ProviderErrorKind.NETWORK, str(e))

    if response.status_code >= 400:
        logger.warning(f"[{provider}] HTTP {response.status_code}")
        return ProviderResult.failure(
            ProviderErrorKind.BAD_STATUS, f"HTTP {response.status_code}"
        )

    try:
        return ProviderResult.success(response.json())
    except ValueError as e:
        logger.warning(f"[{provider}] response is not valid JSON: {e}")
        return ProviderResult.failure(ProviderErrorKind.MALFORMED, str(e))


# ---------------------------------------------------------------------- #
# Primary geocoder: Mappls (MapmyIndia)
# ---------------------------------------------------------------------- #


class MapplsClient:
    """
    Region-specialised geocoder for India. Not rate limited by us; it has
    its own quota contract tied to the access token.
    """

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str],
        timeout: float = 5.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.access_token)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def geocode(self, address: str) -> ProviderResult[GeocodeResult]:
        if not self.configured:
            return ProviderResult.failure(ProviderErrorKind.UNCONFIGURED)

        result = await get_json(
            "Mappls",
            f"{self.base_url}/geocode",
            params={"address": address, "itemCount": 1},
            headers=self._headers(),
            timeout=self.timeout,
        )
        if not result.ok:
            return ProviderResult.failure(result.error, result.message)

        try:
            matches = result.value.get("copResults") or []
            if isinstance(matches, dict):
                matches = [matches]
            for match in matches:
                if match.get("latitude") is None or match.get("longitude") is None:
                    continue
                return ProviderResult.success(
                    GeocodeResult(
                        coordinate=Coordinate(
                            lat=float(match["latitude"]),
                            lon=float(match["longitude"]),
                        ),
                        formatted_address=match.get("formattedAddress") or address,
                    )
                )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Mappls] could not parse geocode response: {e}")
            return ProviderResult.failure(ProviderErrorKind.MALFORMED, str(e))

        return ProviderResult.failure(ProviderErrorKind.NO_RESULT)

    async def suggest(self, query: str, limit: int) -> ProviderResult[List[Suggestion]]:
        if not self.configured:
            return ProviderResult.failure(ProviderErrorKind.UNCONFIGURED)

        result = await get_json(
            "Mappls",
            f"{self.base_url}/search/json",
            params={"query": query},
            headers=self._headers(),
            timeout=self.timeout,
        )
        if not result.ok:
            return ProviderResult.failure(result.error, result.message)

        suggestions: List[Suggestion] = []
        try:
            for item in result.value.get("suggestedLocations") or []:
                # Autosuggest entries without a position cannot be routed to.
                if item.get("latitude") is None or item.get("longitude") is None:
                    continue
                name = item.get("placeName") or ""
                address = item.get("placeAddress") or ""
                label = ", ".join(part for part in (name, address) if part)
                suggestions.append(
                    Suggestion(
                        label=label,
                        lat=float(item["latitude"]),
                        lon=float(item["longitude"]),
                        display_name=label,
                        source="mappls",
                    )
                )
                if len(suggestions) >= limit:
                    break
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Mappls] could not parse autosuggest response: {e}")
            return ProviderResult.failure(ProviderErrorKind.MALFORMED, str(e))

        if not suggestions:
            return ProviderResult.failure(ProviderErrorKind.NO_RESULT)
        return ProviderResult.success(suggestions)


# ---------------------------------------------------------------------- #
# Secondary geocoder: Nominatim (OSM)
# ---------------------------------------------------------------------- #


class NominatimPlace(BaseModel):
    name: str = ""
    display_name: str
    lat: float
    lon: float
    address: Dict[str, str] = Field(default_factory=dict)


class NominatimClient:
    """
    General-purpose OSM geocoder. Callers must respect the usage policy
    (about one request per second); see RateLimiter.
    """

    def __init__(self, base_url: str, user_agent: str, timeout: float = 5.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout

    async def search(
        self,
        text: str,
        country_filter: Optional[str],
        limit: int,
    ) -> ProviderResult[List[NominatimPlace]]:
        params: Dict[str, Any] = {
            "format": "json",
            "q": text,
            "addressdetails": 1,
            "limit": limit,
        }
        if country_filter:
            params["countrycodes"] = country_filter

        result = await get_json(
            "Nominatim",
            f"{self.base_url}/search",
            params=params,
            headers={"User-Agent": self.user_agent},
            timeout=self.timeout,
        )
        if not result.ok:
            return ProviderResult.failure(result.error, result.message)

        try:
            places = [NominatimPlace.model_validate(item) for item in result.value]
        except (TypeError, ValueError) as e:
            logger.warning(f"[Nominatim] could not parse search response: {e}")
            return ProviderResult.failure(ProviderErrorKind.MALFORMED, str(e))

        if not places:
            return ProviderResult.failure(ProviderErrorKind.NO_RESULT)
        return ProviderResult.success(places)


# ---------------------------------------------------------------------- #
# Routing: OSRM
# ---------------------------------------------------------------------- #


class OSRMRoute(BaseModel):
    distance_meters: float
    duration_seconds: float
    geometry: List[Coordinate]


class OSRMClient:
    def __init__(self, base_url: str, profile: str = "driving", timeout: float = 5.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout = timeout

    async def get_route(
        self, origin: Coordinate, destination: Coordinate
    ) -> ProviderResult[OSRMRoute]:
        """Driving route between two coordinates with full GeoJSON geometry."""
        # OSRM expects lon,lat
        url = (
            f"{self.base_url}/route/v1/{self.profile}/"
            f"{origin.lon},{origin.lat};{destination.lon},{destination.lat}"
        )
        result = await get_json(
            "OSRM",
            url,
            params={"overview": "full", "geometries": "geojson"},
            timeout=self.timeout,
        )
        if not result.ok:
            return ProviderResult.failure(result.error, result.message)

        data = result.value
        try:
            code = data.get("code")
            if code != "Ok":
                logger.warning(f"[OSRM] status {code}: {data.get('message', '')}")
                kind = (
                    ProviderErrorKind.NO_RESULT
                    if code == "NoRoute"
                    else ProviderErrorKind.BAD_STATUS
                )
                return ProviderResult.failure(kind, str(code))

            routes = data.get("routes") or []
            if not routes:
                return ProviderResult.failure(ProviderErrorKind.NO_RESULT)

            route = routes[0]
            path = [
                Coordinate(lat=lat, lon=lon)
                for lon, lat in route["geometry"]["coordinates"]
            ]
            return ProviderResult.success(
                OSRMRoute(
                    distance_meters=float(route["distance"]),
                    duration_seconds=float(route["duration"]),
                    geometry=path,
                )
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[OSRM] could not parse route response: {e}")
            return ProviderResult.failure(ProviderErrorKind.MALFORMED, str(e))
