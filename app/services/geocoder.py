# app/services/geocoder.py
import asyncio
from typing import Dict, List, Optional

from app.core.exceptions import InvalidInput, LocationNotFound
from app.core.logger import logger
from app.models.trip import Coordinate, GeocodeResult, Suggestion
from app.services.address import normalize_address
from app.services.cache import LayeredCache
from app.services.providers import (
    MapplsClient,
    NominatimClient,
    NominatimPlace,
    ProviderErrorKind,
)
from app.services.rate_limiter import RateLimiter

LOW_QUALITY_MARKERS = ("unnamed road", "unnamed way")
MIN_SUGGESTION_QUERY_LENGTH = 2


class Geocoder:
    """
    Resolves addresses to coordinates:
    - cache (memory, then session store)
    - primary provider (Mappls), not rate limited
    - secondary provider (Nominatim), behind a shared minimum-interval gate
    """

    def __init__(
        self,
        primary: MapplsClient,
        secondary: NominatimClient,
        rate_limiter: RateLimiter,
        cache: LayeredCache[GeocodeResult],
        suggestion_cache: LayeredCache[List[Suggestion]],
        country_filter: Optional[str] = "in",
        country_name: Optional[str] = "India",
        suggestion_limit: int = 10,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.suggestion_cache = suggestion_cache
        self.country_filter = country_filter
        self.country_name = country_name
        self.suggestion_limit = suggestion_limit
        # Lookups currently talking to a provider, keyed by normalized address
        self._inflight: Dict[str, "asyncio.Future[GeocodeResult]"] = {}

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    async def geocode(self, address: str) -> GeocodeResult:
        """
        Resolve a free-text address.

        Raises InvalidInput for an empty address and LocationNotFound when
        neither provider has a match. Concurrent calls for the same address
        share a single upstream lookup.
        """
        normalized = normalize_address(address)
        if not normalized:
            raise InvalidInput("Address is required")

        cached = self.cache.get(normalized)
        if cached is not None:
            logger.debug(f"Geocode cache hit for '{normalized}'")
            return cached

        pending = self._inflight.get(normalized)
        if pending is None:
            pending = asyncio.ensure_future(self._lookup(address.strip(), normalized))
            self._inflight[normalized] = pending
            pending.add_done_callback(lambda _: self._inflight.pop(normalized, None))

        return await asyncio.shield(pending)

    async def suggest(self, query: str) -> List[Suggestion]:
        """
        Autocomplete candidates for a partially typed address. Never raises:
        provider problems degrade to an empty list.
        """
        normalized = normalize_address(query)
        if len(normalized) < MIN_SUGGESTION_QUERY_LENGTH:
            return []

        cached = self.suggestion_cache.get(normalized)
        if cached is not None:
            return cached

        text = query.strip()
        primary = await self.primary.suggest(text, self.suggestion_limit)
        if primary.ok:
            suggestions = primary.value[: self.suggestion_limit]
        else:
            logger.debug(
                f"Primary suggestions unavailable for '{text}' ({primary.error.value}), "
                "falling back to Nominatim"
            )
            await self.rate_limiter.acquire()
            secondary = await self.secondary.search(
                text, self.country_filter, self.suggestion_limit
            )
            if secondary.error is ProviderErrorKind.NO_RESULT:
                suggestions = []
            elif not secondary.ok:
                logger.warning(
                    f"Suggestion lookup for '{text}' failed: {secondary.error.value}"
                )
                return []
            else:
                suggestions = [
                    self._to_suggestion(place)
                    for place in secondary.value
                    if not self._is_low_quality(place)
                ][: self.suggestion_limit]

        self.suggestion_cache.set(normalized, suggestions)
        return suggestions

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    async def _lookup(self, query: str, normalized: str) -> GeocodeResult:
        primary = await self.primary.geocode(query)
        if primary.ok:
            result = primary.value
            logger.info(f"Geocoded '{query}' via Mappls")
        else:
            if primary.error is not ProviderErrorKind.UNCONFIGURED:
                logger.info(
                    f"Mappls could not geocode '{query}' ({primary.error.value}), "
                    "falling back to Nominatim"
                )
            await self.rate_limiter.acquire()
            secondary = await self.secondary.search(query, self.country_filter, 1)
            if not secondary.ok:
                raise LocationNotFound(
                    f"Location not found: {query}",
                    details={
                        "primary": primary.error.value,
                        "secondary": secondary.error.value,
                    },
                )
            place = secondary.value[0]
            result = GeocodeResult(
                coordinate=Coordinate(lat=place.lat, lon=place.lon),
                formatted_address=place.display_name,
            )
            logger.info(f"Geocoded '{query}' via Nominatim")

        self.cache.set(normalized, result)
        return result

    @staticmethod
    def _is_low_quality(place: NominatimPlace) -> bool:
        lower = place.display_name.lower()
        return any(marker in lower for marker in LOW_QUALITY_MARKERS)

    def _to_suggestion(self, place: NominatimPlace) -> Suggestion:
        addr = place.address
        building = (
            addr.get("building")
            or addr.get("house_name")
            or addr.get("apartment")
            or addr.get("residential")
            or ""
        )
        road = addr.get("road", "")
        area = addr.get("neighbourhood") or addr.get("suburb") or addr.get("subdistrict") or ""
        city = addr.get("city") or addr.get("town") or addr.get("village") or addr.get("district") or ""
        state = addr.get("state", "")

        # Place name and building first, then road -> state, without repeats
        components: List[str] = []
        name = place.name if place.name != city else ""
        for value in (name, building, road, area, city, state):
            if value and len(value) > 1 and value not in components:
                components.append(value)

        label = ", ".join(components)
        if len(components) < 3:
            label = ", ".join(place.display_name.split(", ")[:4])

        if self.country_name and self.country_name.lower() not in label.lower():
            label += f", {self.country_name}"

        return Suggestion(
            label=label,
            lat=place.lat,
            lon=place.lon,
            display_name=place.display_name,
            source="nominatim",
        )
