"""
Unit tests for the Redis cache wrapper (FakeRedis, no server needed).
"""

from decimal import Decimal

from flask import Flask

from garage.services.cache_service import CacheService


def _app(**config):
    app = Flask(__name__)
    app.config.update(CACHE_KEY_PREFIX='test', CACHE_INVOICES_TTL=30, **config)
    return app


def _stats(total=1):
    return {'total': total, 'draft': 0, 'issued': 1, 'paid': 0, 'canceled': 0,
            'total_paid': Decimal('0'), 'total_pending': Decimal('170.40')}


class _Loader:

    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


class TestDisabledCache:

    def test_always_loads(self):
        cache = CacheService(_app(CACHE_ENABLED=False))
        loader = _Loader(_stats())

        assert cache.cached_invoice_stats(1, loader) == _stats()
        assert cache.cached_invoice_stats(1, loader) == _stats()
        assert loader.calls == 2
        assert not cache.enabled
        assert cache.invalidate_tags(['invoices', 'dashboard']) == 0


class TestCacheService:

    def test_keys_are_namespaced(self, fake_redis):
        cache = CacheService(_app(), client=fake_redis)
        assert cache.entry_key('invoice-stats:user:7') == 'test:entry:invoice-stats:user:7'
        assert cache.tag_key('invoices') == 'test:tag:invoices'

    def test_stats_are_served_from_cache_with_exact_amounts(self, fake_redis):
        cache = CacheService(_app(), client=fake_redis)
        loader = _Loader(_stats())

        cache.cached_invoice_stats(7, loader)
        cached = cache.cached_invoice_stats(7, loader)

        assert loader.calls == 1
        assert cached == _stats()
        assert isinstance(cached['total_pending'], Decimal)
        assert fake_redis.ttls['test:entry:invoice-stats:user:7'] == 30

    def test_stats_are_per_user(self, fake_redis):
        cache = CacheService(_app(), client=fake_redis)
        cache.cached_invoice_stats(1, _Loader(_stats(total=1)))
        assert cache.cached_invoice_stats(2, _Loader(_stats(total=5)))['total'] == 5

    def test_invalidation_drops_only_tagged_entries(self, fake_redis):
        cache = CacheService(_app(), client=fake_redis)
        cache.store('invoice-stats:user:1', '{}', ['invoices', 'dashboard'])
        cache.store('parts:list', '[]', ['parts'])

        assert cache.invalidate_tags(['invoices']) == 1
        assert cache.get('invoice-stats:user:1') is None
        assert cache.get('parts:list') == '[]'
        assert 'test:tag:invoices' not in fake_redis.sets

    def test_tag_set_outlives_its_entries(self, fake_redis):
        cache = CacheService(_app(), client=fake_redis)
        cache.store('a', '1', ['invoices'], ttl=30)
        cache.store('b', '2', ['invoices'], ttl=120)
        cache.store('c', '3', ['invoices'], ttl=10)
        assert fake_redis.ttls['test:tag:invoices'] == 120

    def test_unreadable_entry_is_reloaded(self, fake_redis):
        cache = CacheService(_app(), client=fake_redis)
        fake_redis.values['test:entry:invoice-stats:user:3'] = '{"total_paid": "n/a"}'
        loader = _Loader(_stats())

        assert cache.cached_invoice_stats(3, loader) == _stats()
        assert loader.calls == 1

    def test_redis_outage_degrades_to_loader(self, fake_redis):
        cache = CacheService(_app(), client=fake_redis)
        fake_redis.down = True
        loader = _Loader(_stats())

        assert cache.cached_invoice_stats(1, loader) == _stats()
        assert cache.store('k', 'v', ['invoices']) is False
        assert cache.invalidate_tags(['invoices']) == 0
