# app/services/address.py
from typing import Optional


def normalize_address(address: Optional[str]) -> str:
    """
    Canonical form of a free-text address, used as a cache key.

    "  MG Road, Pune  " and "mg road, pune" normalize to the same string.
    Whitespace-only input normalizes to "", which lookups reject as invalid.
    """
    if address is None:
        return ""
    return address.strip().lower()
