"""Key/value cache with per-key TTL.

Redis backs the cache when ``REDIS_URL`` is configured; otherwise an
in-process store is used (single worker, tests, local development).
"""
import fnmatch
import json
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass

import redis


@dataclass
class _Entry:
    value: str
    expires_at: float


class MemoryBackend:
    """Bounded LRU store; expired entries are swept on every write."""

    def __init__(self, max_entries=1024):
        self._data: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = threading.Lock()
        self.max_entries = max_entries

    def __len__(self):
        return len(self._data)

    def _sweep(self, now):
        for key in [k for k, e in self._data.items() if e.expires_at <= now]:
            del self._data[key]

    def get(self, key):
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            if entry.expires_at <= time.monotonic():
                del self._data[key]
                return None
            self._data.move_to_end(key)
            return entry.value

    def set(self, key, value, ttl):
        with self._lock:
            now = time.monotonic()
            self._sweep(now)
            self._data[key] = _Entry(value, now + ttl)
            self._data.move_to_end(key)
            while len(self._data) > self.max_entries:
                self._data.popitem(last=False)

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

    def delete_pattern(self, pattern):
        with self._lock:
            for key in [k for k in self._data if fnmatch.fnmatchcase(k, pattern)]:
                del self._data[key]


class RedisBackend:
    def __init__(self, url):
        self.client = redis.Redis.from_url(url, decode_responses=True)

    def get(self, key):
        return self.client.get(key)

    def set(self, key, value, ttl):
        self.client.set(key, value, ex=ttl)

    def delete(self, key):
        self.client.delete(key)

    def delete_pattern(self, pattern):
        keys = list(self.client.scan_iter(match=pattern))
        if keys:
            self.client.delete(*keys)


class CacheService:
    def __init__(self, app=None):
        self.backend = None
        self.default_ttl = 3600
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.default_ttl = app.config.get("CACHE_DEFAULT_TTL", 3600)
        url = app.config.get("REDIS_URL")
        if url:
            self.backend = RedisBackend(url)
            app.logger.info("cache: using redis at %s", url.split("@")[-1])
        else:
            self.backend = MemoryBackend(app.config.get("CACHE_MAX_ENTRIES", 1024))
            app.logger.info("cache: using in-process store")
        app.extensions["blissora_cache"] = self

    def get(self, key):
        return self.backend.get(key)

    def set(self, key, value, expiration=None):
        self.backend.set(key, value, expiration or self.default_ttl)

    def delete(self, key):
        self.backend.delete(key)

    def delete_pattern(self, pattern):
        self.backend.delete_pattern(pattern)

    # JSON helpers
    def get_json(self, key):
        raw = self.get(key)
        return json.loads(raw) if raw is not None else None

    def set_json(self, key, value, expiration=None):
        self.set(key, json.dumps(value, default=str), expiration)
