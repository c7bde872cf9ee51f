"""In-memory caching for vendor lookups"""

from functools import wraps
from datetime import datetime, timedelta
import hashlib
import json
import threading
from typing import Any, Optional, Dict

class InMemoryCache:
    """Simple in-memory cache with TTL support"""

    def __init__(self):
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._access_count = 0
        self._hit_count = 0

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired"""
        with self._lock:
            self._access_count += 1

            entry = self._cache.get(key)
            if entry is None:
                return None

            if datetime.now() < entry['expires_at']:
                self._hit_count += 1
                return entry['value']

            # Expired, remove it
            del self._cache[key]
            return None

    def set(self, key: str, value: Any, ttl_seconds: int = 3600):
        """Set value in cache with TTL"""
        with self._lock:
            self._cache[key] = {
                'value': value,
                'expires_at': datetime.now() + timedelta(seconds=ttl_seconds),
            }

    def clear(self):
        with self._lock:
            self._cache.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        with self._lock:
            return {
                'total_entries': len(self._cache),
                'access_count': self._access_count,
                'hit_count': self._hit_count,
                'hit_rate': self._hit_count / self._access_count if self._access_count > 0 else 0,
            }

# Global cache instances
geocode_cache = InMemoryCache()

def cache_key(*args, **kwargs) -> str:
    """Generate cache key from arguments"""
    key_data = {
        'args': [str(a) for a in args],
        'kwargs': sorted((k, str(v)) for k, v in kwargs.items())
    }
    key_string = json.dumps(key_data, sort_keys=True)
    return hashlib.md5(key_string.encode()).hexdigest()

def cached_geocode(ttl_seconds: int = 3600):
    """Decorator for caching geocoding responses keyed by normalized address"""
    def decorator(func):
        @wraps(func)
        def wrapper(self, address: str, *args, **kwargs):
            key = cache_key(address.strip().lower(), *args, **kwargs)

            cached_value = geocode_cache.get(key)
            if cached_value is not None:
                return cached_value

            result = func(self, address, *args, **kwargs)
            # Only successful lookups are worth keeping
            if result and result.get('status') in ('OK', 'ZERO_RESULTS'):
                geocode_cache.set(key, result, ttl_seconds)

            return result
        return wrapper
    return decorator

def get_cache_statistics():
    """Get statistics for all caches"""
    return {
        'geocode_cache': geocode_cache.get_stats(),
    }
