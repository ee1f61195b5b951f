# app/services/route_resolver.py

import time
from typing import Callable, Dict, Optional

from app.core.exceptions import FareEngineError, InvalidInput, UnresolvableLocation
from app.core.logger import logger
from app.models.trip import Coordinate, Location, RouteMetrics
from app.services.address import normalize_address
from app.services.cache import LayeredCache
from app.services.geo import (
    format_distance,
    format_duration,
    haversine_distance_km,
    round_half_up,
)
from app.services.geocoder import Geocoder
from app.services.providers import OSRMClient, OSRMRoute

ESTIMATE_SUFFIX = " (est.)"


class RouteResolver:
    """
    Distance/duration between two locations.

    Never fails once both endpoints have coordinates: if the routing
    provider is unavailable, a straight-line estimate is returned instead
    (is_estimate=True).
    """

    # Straight-line fallback parameters
    FALLBACK_SPEED_KMH: float = 45.0
    FALLBACK_MIN_DURATION_MIN: int = 15
    FALLBACK_MIN_DISTANCE_KM: float = 1.0
    ESTIMATE_TTL_SECONDS: float = 300.0

    def __init__(
        self,
        geocoder: Geocoder,
        router: OSRMClient,
        cache: LayeredCache[RouteMetrics],
        fallback_speed_kmh: Optional[float] = None,
        fallback_min_duration_min: Optional[int] = None,
        estimate_ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.geocoder = geocoder
        self.router = router
        self.cache = cache
        self.fallback_speed_kmh = fallback_speed_kmh or self.FALLBACK_SPEED_KMH
        self.fallback_min_duration_min = (
            fallback_min_duration_min
            if fallback_min_duration_min is not None
            else self.FALLBACK_MIN_DURATION_MIN
        )
        self.estimate_ttl_seconds = (
            estimate_ttl_seconds
            if estimate_ttl_seconds is not None
            else self.ESTIMATE_TTL_SECONDS
        )
        self._clock = clock
        # When each cached estimate was made, so a recovered provider gets retried
        self._estimated_at: Dict[str, float] = {}

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def resolve(self, origin: Location, destination: Location) -> RouteMetrics:
        """
        1. Build the cache key from the given addresses / coordinates.
        2. Geocode address endpoints.
        3. Ask the routing provider for a driving route.
        4. Fall back to a haversine estimate when that fails.
        5. Cache the result (estimates only until estimate_ttl_seconds passes).
        """
        cache_key = self._cache_key(origin, destination)

        cached = self.cache.get(cache_key)
        if cached is not None and not self._estimate_is_stale(cache_key, cached):
            logger.debug(f"Route cache hit for '{cache_key}'")
            return cached

        from_coord = await self._to_coordinate(origin)
        to_coord = await self._to_coordinate(destination)

        t0 = time.perf_counter()
        result = await self.router.get_route(from_coord, to_coord)
        logger.info(
            "Routing provider answered in {:.2f} ms ({})",
            (time.perf_counter() - t0) * 1000.0,
            "ok" if result.ok else result.error.value,
        )

        if result.ok:
            metrics = self._build_metrics(result.value, from_coord, to_coord)
        else:
            logger.warning(
                f"Route lookup failed ({result.error.value}); "
                f"using straight-line estimate for '{cache_key}'"
            )
            metrics = self.build_fallback_metrics(from_coord, to_coord)

        # Manual pins are one-off, keep them (and estimates) out of the session store.
        persist = (
            isinstance(origin, str)
            and isinstance(destination, str)
            and not metrics.is_estimate
        )
        if metrics.is_estimate:
            self._estimated_at[cache_key] = self._clock()
        else:
            self._estimated_at.pop(cache_key, None)
        self.cache.set(cache_key, metrics, persist=persist)
        return metrics

    def get_cached(self, origin: str, destination: str) -> Optional[RouteMetrics]:
        """
        Cache-only lookup for two addresses; None on a miss or empty input.
        """
        normalized_from = normalize_address(origin)
        normalized_to = normalize_address(destination)
        if not normalized_from or not normalized_to:
            return None
        return self.cache.get(f"{normalized_from}|{normalized_to}")

    def build_fallback_metrics(self, from_coord: Coordinate, to_coord: Coordinate) -> RouteMetrics:
        """
        Straight-line estimate: haversine distance (>= 1 km) at a constant
        average speed, with a minimum duration.
        """
        distance_km = max(
            round_half_up(haversine_distance_km(from_coord, to_coord), 1),
            self.FALLBACK_MIN_DISTANCE_KM,
        )
        duration_min = max(
            self.fallback_min_duration_min,
            int(round_half_up(distance_km / self.fallback_speed_kmh * 60)),
        )

        return RouteMetrics(
            distance_km=distance_km,
            duration_minutes=duration_min,
            distance_label=format_distance(distance_km, fixed=False) + ESTIMATE_SUFFIX,
            duration_label=format_duration(duration_min) + ESTIMATE_SUFFIX,
            from_coordinate=from_coord,
            to_coordinate=to_coord,
            path=None,
            is_estimate=True,
        )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _estimate_is_stale(self, cache_key: str, metrics: RouteMetrics) -> bool:
        if not metrics.is_estimate:
            return False
        made_at = self._estimated_at.get(cache_key)
        return made_at is not None and self._clock() - made_at >= self.estimate_ttl_seconds

    @staticmethod
    def _key_part(location: Location) -> str:
        if isinstance(location, Coordinate):
            return f"lat:{location.lat},lng:{location.lon}"
        return normalize_address(location)

    def _cache_key(self, origin: Location, destination: Location) -> str:
        normalized_from = self._key_part(origin)
        normalized_to = self._key_part(destination)
        if not normalized_from or not normalized_to:
            raise InvalidInput("Valid locations are required")
        return f"{normalized_from}|{normalized_to}"

    async def _to_coordinate(self, location: Location) -> Coordinate:
        if isinstance(location, Coordinate):
            return location
        try:
            result = await self.geocoder.geocode(location)
        except InvalidInput:
            raise
        except FareEngineError as e:
            raise UnresolvableLocation(
                f"Could not resolve location '{location}'",
                details={"reason": e.message, **e.details},
            ) from e
        return result.coordinate

    @staticmethod
    def _build_metrics(
        route: OSRMRoute, from_coord: Coordinate, to_coord: Coordinate
    ) -> RouteMetrics:
        distance_km = round_half_up(route.distance_meters / 1000.0, 1)
        duration_min = int(round_half_up(route.duration_seconds / 60.0))

        return RouteMetrics(
            distance_km=distance_km,
            duration_minutes=duration_min,
            distance_label=format_distance(distance_km),
            duration_label=format_duration(duration_min),
            from_coordinate=from_coord,
            to_coordinate=to_coord,
            path=list(route.geometry),
            is_estimate=False,
        )
