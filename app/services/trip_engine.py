# app/services/trip_engine.py
from typing import List, Optional

from app.core.config import Settings, settings
from app.core.exceptions import RideTypeUnavailable
from app.core.logger import logger
from app.models.trip import (
    GeocodeResult,
    PricingSettings,
    RouteMetrics,
    Suggestion,
    TripQuoteRequest,
    TripQuoteResponse,
)
from app.services.cache import LayeredCache, MemoryTier, SessionStore, SessionTier
from app.services.fare_calculator import compute_fare
from app.services.geocoder import Geocoder
from app.services.pricing import PricingSettingsProvider
from app.services.providers import MapplsClient, NominatimClient, OSRMClient
from app.services.rate_limiter import RateLimiter
from app.services.route_resolver import RouteResolver


class TripEngine:
    """
    Entry point used by the booking screens:
    route metrics first, then the fare for those metrics.
    """

    def __init__(
        self,
        geocoder: Geocoder,
        resolver: RouteResolver,
        pricing: PricingSettingsProvider,
    ) -> None:
        self.geocoder = geocoder
        self.resolver = resolver
        self.pricing = pricing

    async def quote(self, request: TripQuoteRequest) -> TripQuoteResponse:
        pricing_settings = await self.pricing.get()
        if pricing_settings is not None and not pricing_settings.is_enabled(request.ride_type):
            raise RideTypeUnavailable(
                f"{request.ride_type.value} rides are currently unavailable",
                details={"ride_type": request.ride_type.value},
            )

        route = await self.resolver.resolve(request.pickup, request.drop)
        fare = compute_fare(
            request.ride_type,
            route.distance_km,
            request.pickup_date,
            request.return_date,
            request.price_per_km,
            pricing_settings,
        )
        logger.info(
            f"Quote {request.ride_type.value}: {route.distance_label} -> "
            f"{fare.billable_distance_km} km billable, fare {fare.total_fare}"
        )
        return TripQuoteResponse(route=route, fare=fare)


def build_engine(
    config: Settings = settings,
    session_store: Optional[SessionStore] = None,
) -> TripEngine:
    """
    Wire providers, caches and the rate gate from configuration.
    """
    store = session_store if session_store is not None else SessionStore(
        max_bytes=config.SESSION_STORE_MAX_BYTES
    )

    geocode_cache: LayeredCache[GeocodeResult] = LayeredCache(
        "rc_geo",
        [
            MemoryTier(),
            SessionTier(GeocodeResult, config.GEOCODE_CACHE_TTL_SECONDS, store=store),
        ],
    )
    suggestion_cache: LayeredCache[List[Suggestion]] = LayeredCache(
        "rc_suggest", [MemoryTier()]
    )
    route_cache: LayeredCache[RouteMetrics] = LayeredCache(
        "rc_route",
        [
            MemoryTier(),
            SessionTier(RouteMetrics, config.ROUTE_CACHE_TTL_SECONDS, store=store),
        ],
    )

    geocoder = Geocoder(
        primary=MapplsClient(
            config.MAPPLS_BASE_URL,
            config.MAPPLS_ACCESS_TOKEN,
            timeout=config.PROVIDER_TIMEOUT_SECONDS,
        ),
        secondary=NominatimClient(
            config.NOMINATIM_BASE_URL,
            config.NOMINATIM_USER_AGENT,
            timeout=config.PROVIDER_TIMEOUT_SECONDS,
        ),
        rate_limiter=RateLimiter(config.SECONDARY_MIN_INTERVAL_MS / 1000.0),
        cache=geocode_cache,
        suggestion_cache=suggestion_cache,
        country_filter=config.COUNTRY_CODE,
        country_name=config.COUNTRY_NAME,
        suggestion_limit=config.SUGGESTION_LIMIT,
    )

    resolver = RouteResolver(
        geocoder=geocoder,
        router=OSRMClient(config.OSRM_BASE_URL, timeout=config.PROVIDER_TIMEOUT_SECONDS),
        cache=route_cache,
        fallback_speed_kmh=config.FALLBACK_SPEED_KMH,
        fallback_min_duration_min=config.FALLBACK_MIN_DURATION_MIN,
        estimate_ttl_seconds=config.ESTIMATE_CACHE_TTL_SECONDS,
    )

    pricing = PricingSettingsProvider(
        defaults=PricingSettings(
            min_km_threshold=config.MIN_KM_THRESHOLD,
            min_km_airport_apply=config.MIN_KM_AIRPORT_APPLY,
            min_km_oneway_apply=config.MIN_KM_ONEWAY_APPLY,
            min_km_roundtrip_apply=config.MIN_KM_ROUNDTRIP_APPLY,
            price_per_km=config.DEFAULT_PRICE_PER_KM,
        ),
        url=config.PRICING_SETTINGS_URL,
        timeout=config.PROVIDER_TIMEOUT_SECONDS,
        ttl_seconds=config.PRICING_SETTINGS_TTL_SECONDS,
    )

    logger.info(
        f"Trip engine initialised (Mappls {'on' if geocoder.primary.configured else 'off'}, "
        f"Nominatim gate {config.SECONDARY_MIN_INTERVAL_MS} ms)"
    )
    return TripEngine(geocoder=geocoder, resolver=resolver, pricing=pricing)
