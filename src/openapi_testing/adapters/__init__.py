"""Message and cache adapters."""
from openapi_testing.adapters.cache import (
    CacheAdapter,
    CacheStore,
    KeyValueCacheAdapter,
    MappingCacheAdapter,
)
from openapi_testing.adapters.message import HttpxAdapter, MessageAdapter

__all__ = [
    "CacheAdapter",
    "CacheStore",
    "HttpxAdapter",
    "KeyValueCacheAdapter",
    "MappingCacheAdapter",
    "MessageAdapter",
]
