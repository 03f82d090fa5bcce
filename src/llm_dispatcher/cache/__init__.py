"""Response caching."""

from .cache_key_generator import KEY_VERSION, fingerprint_for, generate_fingerprint
from .response_cache import CacheEntry, ResponseCache

__all__ = [
    "KEY_VERSION",
    "CacheEntry",
    "ResponseCache",
    "fingerprint_for",
    "generate_fingerprint",
]
