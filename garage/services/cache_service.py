"""
Redis read cache for invoice list statistics.

Entries live under {prefix}:entry:{key}. Every entry is also registered in
the set {prefix}:tag:{tag} of each tag it depends on, so invalidating a tag
deletes exactly the entries stored under it. When Redis is unreachable
reads miss and writes are skipped; the database stays the source of truth.
"""

import logging
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, Optional

import redis
from redis.exceptions import RedisError, ConnectionError, TimeoutError
from flask import Flask

from garage.signals import invoice_mutated, invoice_visibility_changed, INVOICE_CACHE_TAGS

logger = logging.getLogger(__name__)

# invoice_stats() amounts, stored as strings to keep cents exact
STATS_AMOUNT_FIELDS = ('total_paid', 'total_pending')


def _encode_stats(stats: Dict[str, Any]) -> str:
    payload = {key: str(value) if key in STATS_AMOUNT_FIELDS else value for key, value in stats.items()}
    return json.dumps(payload)


def _decode_stats(raw: str) -> Dict[str, Any]:
    payload = json.loads(raw)
    for field in STATS_AMOUNT_FIELDS:
        if field in payload:
            payload[field] = Decimal(payload[field])
    return payload


class CacheService:
    """Tag-invalidated Redis cache; a client can be injected for tests."""

    def __init__(self, app: Optional[Flask] = None, client=None):
        self.client = client
        self._enabled: bool = client is not None
        self._prefix: str = 'garage'
        self._default_ttl: int = 60
        self._stats_ttl: int = 30

        if app:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        """Read TTLs and prefix, then connect unless a client was injected."""
        self._prefix = app.config.get('CACHE_KEY_PREFIX', 'garage')
        self._default_ttl = int(app.config.get('CACHE_DEFAULT_TTL', 60))
        self._stats_ttl = int(app.config.get('CACHE_INVOICES_TTL', 30))

        if self.client is not None:
            return

        self._enabled = app.config.get('CACHE_ENABLED', True)
        if not self._enabled:
            logger.info("[CACHE] Cache is DISABLED via config")
            return

        redis_url = app.config.get('REDIS_URL', 'redis://redis:6379/0')
        try:
            self.client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=3,
                retry_on_timeout=True,
                health_check_interval=30
            )
            self.client.ping()
            logger.info(f"[CACHE] Redis connected: {redis_url}")
        except (ConnectionError, TimeoutError, RedisError) as e:
            logger.warning(f"[CACHE] Redis connection failed: {e}. Cache DISABLED.")
            self._enabled = False
            self.client = None

    @property
    def enabled(self) -> bool:
        return self._enabled and self.client is not None

    def entry_key(self, key: str) -> str:
        return f"{self._prefix}:entry:{key}"

    def tag_key(self, tag: str) -> str:
        return f"{self._prefix}:tag:{tag}"

    def get(self, key: str) -> Optional[str]:
        """Raw cached string, None on miss or Redis failure."""
        if not self.enabled:
            return None
        try:
            return self.client.get(self.entry_key(key))
        except RedisError as e:
            logger.warning(f"[CACHE] Get error on {key}: {e}")
            return None

    def store(self, key: str, raw: str, tags: Iterable[str], ttl: Optional[int] = None) -> bool:
        """
        Store raw under key and register it in each tag set, atomically.

        Tag sets never expire before the entries they list: NX sets a TTL on a
        fresh set, GT only ever extends it.
        """
        if not self.enabled:
            return False
        ttl = ttl or self._default_ttl
        entry = self.entry_key(key)
        try:
            pipeline = self.client.pipeline(transaction=True)
            pipeline.setex(entry, ttl, raw)
            for tag in tags:
                pipeline.sadd(self.tag_key(tag), entry)
                pipeline.expire(self.tag_key(tag), ttl, nx=True)
                pipeline.expire(self.tag_key(tag), ttl, gt=True)
            pipeline.execute()
            return True
        except RedisError as e:
            logger.warning(f"[CACHE] Store error on {key}: {e}")
            return False

    def invalidate_tags(self, tags: Iterable[str]) -> int:
        """Delete every entry registered under the tags, and the tag sets. Returns entries dropped."""
        if not self.enabled:
            return 0
        dropped = 0
        for tag in tags:
            tag_key = self.tag_key(tag)
            try:
                entries = list(self.client.smembers(tag_key))
                self.client.delete(*entries, tag_key)
            except RedisError as e:
                logger.warning(f"[CACHE] Invalidate error on tag {tag}: {e}")
                continue
            if entries:
                logger.info(f"[CACHE] INVALIDATE tag {tag} ({len(entries)} keys)")
            dropped += len(entries)
        return dropped

    def cached_invoice_stats(self, user_id: int, loader: Callable[[], Dict[str, Any]],
                             ttl: Optional[int] = None) -> Dict[str, Any]:
        """Per-user invoice_stats(), loaded and stored on a miss."""
        key = f"invoice-stats:user:{user_id}"
        raw = self.get(key)
        if raw is not None:
            try:
                return _decode_stats(raw)
            except (ValueError, InvalidOperation) as e:
                logger.warning(f"[CACHE] Dropping unreadable entry {key}: {e}")

        stats = loader()
        self.store(key, _encode_stats(stats), INVOICE_CACHE_TAGS, ttl or self._stats_ttl)
        return stats


_cache_service: Optional[CacheService] = None


def _invalidate_tagged_entries(sender, **kwargs) -> None:
    """Receiver for invoice_mutated and invoice_visibility_changed."""
    if _cache_service is None:
        return
    _cache_service.invalidate_tags(kwargs.get('tags', ()))


def init_cache(app: Flask, client=None) -> CacheService:
    """Initialize cache service singleton."""
    global _cache_service
    _cache_service = CacheService(app, client=client)
    if not hasattr(app, 'extensions'):
        app.extensions = {}
    app.extensions['cache'] = _cache_service
    invoice_mutated.connect(_invalidate_tagged_entries)
    invoice_visibility_changed.connect(_invalidate_tagged_entries)
    return _cache_service


def get_cache() -> CacheService:
    """Get cache service instance."""
    if _cache_service is None:
        raise RuntimeError("Cache not initialized.")
    return _cache_service
