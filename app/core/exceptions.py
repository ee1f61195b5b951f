# app/core/exceptions.py
"""Domain exceptions raised by the fare engine."""

from typing import Any, Dict, Optional


class FareEngineError(Exception):
    """Base exception for all fare engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInput(FareEngineError):
    """Empty or malformed address / location input."""


class LocationNotFound(FareEngineError):
    """Every geocoding provider was tried and none yielded a result."""


class UnresolvableLocation(FareEngineError):
    """A route endpoint could not be turned into a coordinate."""


class RideTypeUnavailable(FareEngineError):
    """The requested ride type is switched off in the pricing settings."""
