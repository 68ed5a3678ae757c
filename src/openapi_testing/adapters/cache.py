"""Bridging of external cache objects to the engine's cache contract."""
from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any, Optional


class CacheStore(ABC):
    """Key/value store contract expected by the validation engine."""

    @abstractmethod
    def has(self, key: str) -> bool:
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Store *value*; *ttl* is a lifetime in seconds, None for no expiry."""
        pass


class CacheAdapter(ABC):
    """Abstract converter from an external cache object to a CacheStore."""

    @abstractmethod
    def convert(self, cache: Any) -> CacheStore:
        pass


@dataclass(frozen=True)
class _Entry:
    value: Any
    expires_at: Optional[float]


class MappingCacheStore(CacheStore):
    """CacheStore over a mutable mapping; expiry is checked on read."""

    def __init__(self, mapping: MutableMapping[str, Any]) -> None:
        self._mapping = mapping

    def _live_entry(self, key: str) -> Optional[_Entry]:
        entry = self._mapping.get(key)
        if not isinstance(entry, _Entry):
            return None
        if entry.expires_at is not None and entry.expires_at <= time.monotonic():
            self._mapping.pop(key, None)
            return None
        return entry

    def has(self, key: str) -> bool:
        return self._live_entry(key) is not None

    def get(self, key: str) -> Optional[Any]:
        entry = self._live_entry(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = time.monotonic() + ttl if ttl is not None else None
        self._mapping[key] = _Entry(value=value, expires_at=expires_at)


class MappingCacheAdapter(CacheAdapter):
    """Default adapter: accepts any MutableMapping (dict, cachetools caches)."""

    def convert(self, cache: Any) -> CacheStore:
        if not isinstance(cache, MutableMapping):
            raise TypeError(
                f"{type(self).__name__} expects a MutableMapping, "
                f"got {type(cache).__name__}"
            )
        return MappingCacheStore(cache)


class KeyValueCacheStore(CacheStore):
    """CacheStore over a string key/value client (the redis-py call shape)."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def has(self, key: str) -> bool:
        return bool(self._client.exists(key))

    def get(self, key: str) -> Optional[Any]:
        raw = self._client.get(key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        self._client.set(key, json.dumps(value), ex=ttl)


class KeyValueCacheAdapter(CacheAdapter):
    """Adapter for clients exposing ``get``, ``set(..., ex=)`` and ``exists``.

    Values are JSON-encoded, so only JSON-compatible values round-trip.
    """

    _REQUIRED = ("get", "set", "exists")

    def convert(self, cache: Any) -> CacheStore:
        missing = [name for name in self._REQUIRED if not callable(getattr(cache, name, None))]
        if missing:
            raise TypeError(
                f"{type(self).__name__} expects a client with "
                f"{', '.join(self._REQUIRED)}; {type(cache).__name__} lacks "
                f"{', '.join(missing)}"
            )
        return KeyValueCacheStore(cache)
