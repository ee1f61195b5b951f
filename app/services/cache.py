# app/services/cache.py
"""
Two-level cache for geocoding and routing lookups.

Tier 1 (MemoryTier) lives for the process lifetime and has no TTL.
Tier 2 (SessionTier) is a session-scoped string store whose entries carry a
write timestamp and expire after a TTL. LayeredCache reads the tiers in order,
promotes lower-tier hits upward and writes through to every tier.
"""
import time
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    Iterator,
    MutableMapping,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
)

from pydantic import TypeAdapter, ValidationError

from app.core.logger import logger
from app.models.trip import CacheEntry

T = TypeVar("T")


def epoch_ms() -> int:
    return int(time.time() * 1000)


class CacheTier(Protocol[T]):
    def get(self, key: str) -> Optional[T]: ...

    def set(self, key: str, value: T) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryTier(Generic[T]):
    """Unbounded in-process tier, cleared only on restart."""

    def __init__(self) -> None:
        self._entries: Dict[str, T] = {}

    def get(self, key: str) -> Optional[T]:
        return self._entries.get(key)

    def set(self, key: str, value: T) -> None:
        self._entries[key] = value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)


class StoreQuotaExceeded(OSError):
    """Raised by SessionStore when a write would exceed its byte quota."""


class SessionStore(MutableMapping[str, str]):
    """
    String key/value store with a total size quota, the server-side
    counterpart of browser session storage. One instance is shared by every
    SessionTier of a session.
    """

    def __init__(self, max_bytes: int) -> None:
        self.max_bytes = max_bytes
        self._data: Dict[str, str] = {}
        self._used_bytes = 0

    @staticmethod
    def _size(key: str, value: str) -> int:
        return len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        previous = self._size(key, self._data[key]) if key in self._data else 0
        used = self._used_bytes - previous + self._size(key, value)
        if used > self.max_bytes:
            raise StoreQuotaExceeded(
                f"Session store quota of {self.max_bytes} bytes exceeded"
            )
        self._data[key] = value
        self._used_bytes = used

    def __delitem__(self, key: str) -> None:
        value = self._data.pop(key)
        self._used_bytes -= self._size(key, value)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    @property
    def used_bytes(self) -> int:
        return self._used_bytes


class SessionTier(Generic[T]):
    """
    Persisted tier over a string store. Entries are JSON-encoded CacheEntry
    objects; an entry older than the TTL is deleted on read, and the tier's
    expired entries are purged when the store runs out of room.
    """

    def __init__(
        self,
        value_type: Any,
        ttl_seconds: float,
        store: Optional[MutableMapping[str, str]] = None,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self.ttl_ms = int(ttl_seconds * 1000)
        self._store: MutableMapping[str, str] = store if store is not None else {}
        self._clock = clock
        self._entry_type = CacheEntry[value_type]
        self._adapter = TypeAdapter(self._entry_type)

    def get(self, key: str) -> Optional[T]:
        raw = self._store.get(key)
        if raw is None:
            return None

        try:
            entry = self._adapter.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Dropping unreadable session cache entry {}: {}", key, exc)
            self.delete(key)
            return None

        if self._clock() - entry.stored_at_epoch_ms > self.ttl_ms:
            logger.debug("Session cache entry {} expired", key)
            self.delete(key)
            return None

        return entry.value

    def set(self, key: str, value: T) -> None:
        # Best effort: the memory tier stays authoritative if this write fails.
        try:
            entry = self._entry_type(value=value, stored_at_epoch_ms=self._clock())
            raw = self._adapter.dump_json(entry).decode("utf-8")
        except (ValueError, TypeError) as exc:
            logger.warning("Session cache write for {} failed: {}", key, exc)
            return

        try:
            self._store[key] = raw
        except StoreQuotaExceeded:
            if not self.purge_expired():
                logger.warning("Session cache write for {} failed: store is full", key)
                return
            try:
                self._store[key] = raw
            except OSError as exc:
                logger.warning("Session cache write for {} failed: {}", key, exc)
        except OSError as exc:
            logger.warning("Session cache write for {} failed: {}", key, exc)

    def delete(self, key: str) -> None:
        self._store.pop(key, None)

    def purge_expired(self) -> int:
        """
        Delete this tier's expired entries from the store and return how many
        were removed. Entries written by other tiers (or unreadable as this
        tier's type) are left alone.
        """
        now = self._clock()
        expired = []
        for key, raw in list(self._store.items()):
            try:
                entry = self._adapter.validate_json(raw)
            except ValidationError:
                continue
            if now - entry.stored_at_epoch_ms > self.ttl_ms:
                expired.append(key)

        for key in expired:
            self.delete(key)
        if expired:
            logger.debug("Purged {} expired session cache entries", len(expired))
        return len(expired)


class LayeredCache(Generic[T]):
    """
    Cache composed of tiers tried in order. Keys are prefixed with the
    namespace so different lookup kinds never collide in a shared store.
    """

    def __init__(self, namespace: str, tiers: Sequence[CacheTier[T]]) -> None:
        if not tiers:
            raise ValueError("LayeredCache needs at least one tier")
        self.namespace = namespace
        self.tiers = list(tiers)

    def _key(self, key: str) -> str:
        return f"{self.namespace}_{key}"

    def get(self, key: str) -> Optional[T]:
        full_key = self._key(key)
        for index, tier in enumerate(self.tiers):
            value = tier.get(full_key)
            if value is None:
                continue
            for upper in self.tiers[:index]:
                upper.set(full_key, value)
            return value
        return None

    def set(self, key: str, value: T, persist: bool = True) -> None:
        """
        Write through to every tier, or only to the first one when
        `persist` is False.
        """
        full_key = self._key(key)
        tiers = self.tiers if persist else self.tiers[:1]
        for tier in tiers:
            tier.set(full_key, value)

    def delete(self, key: str) -> None:
        full_key = self._key(key)
        for tier in self.tiers:
            tier.delete(full_key)
