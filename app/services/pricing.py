# app/services/pricing.py
import time
from typing import Callable, Optional

from pydantic import ValidationError

from app.core.logger import logger
from app.models.trip import PricingSettings
from app.services.providers import get_json


class PricingSettingsProvider:
    """
    Read-only source of the global pricing settings.

    With a URL configured, settings are fetched from the booking backend
    (`{"success": true, "data": {...}}`) and memoized for `ttl_seconds`.
    Without one, the locally configured defaults are used.
    """

    def __init__(
        self,
        defaults: PricingSettings,
        url: Optional[str] = None,
        timeout: float = 5.0,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.defaults = defaults
        self.url = url
        self.timeout = timeout
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cached: Optional[PricingSettings] = None
        self._fetched_at: float = 0.0

    async def get(self) -> Optional[PricingSettings]:
        """
        Current settings, or None when the backend could not be reached and
        nothing was fetched before.
        """
        if not self.url:
            return self.defaults

        if self._cached is not None and self._clock() - self._fetched_at < self.ttl_seconds:
            return self._cached

        result = await get_json("Pricing", self.url, params={}, timeout=self.timeout)
        if not result.ok:
            logger.warning(f"Pricing settings unavailable ({result.error.value})")
            return self._cached

        payload = result.value
        if not isinstance(payload, dict) or not payload.get("success"):
            logger.warning("Pricing settings endpoint reported failure")
            return self._cached

        try:
            fetched = PricingSettings.model_validate(
                {"price_per_km": self.defaults.price_per_km, **payload.get("data", {})}
            )
        except (TypeError, ValidationError) as e:
            logger.warning(f"Pricing settings payload is invalid: {e}")
            return self._cached

        self._cached = fetched
        self._fetched_at = self._clock()
        return fetched
