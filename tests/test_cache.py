"""
Tests for utils/cache.py: TTL expiry, caching policy hook, corrupt entries.
"""
import sqlite3
from datetime import timedelta

import pytest

from utils.cache import TTLCache

TTL = timedelta(days=7)


class Ticker:
    def __init__(self, start=1_000_000.0):
        self.t = start

    def __call__(self):
        return self.t


class CountingFetch:
    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    def __call__(self):
        value = self.values[min(self.calls, len(self.values) - 1)]
        self.calls += 1
        return value


@pytest.fixture()
def ticker():
    return Ticker()


@pytest.fixture()
def cache(store, ticker):
    return TTLCache(store, ttl=TTL, clock=ticker)


def _corrupt(store, key, data='{not json', created_at=1_000_000.0):
    conn = sqlite3.connect(store.path)
    conn.execute(
        'INSERT OR REPLACE INTO _cache (cache_key, data, created_at) VALUES (?, ?, ?)',
        (key, data, created_at)
    )
    conn.commit()
    conn.close()


class TestTTL:
    def test_miss_calls_fetch(self, cache):
        fetch = CountingFetch({'v': 1})
        assert cache.get('k', fetch) == {'v': 1}
        assert fetch.calls == 1

    def test_hit_within_ttl_ignores_new_data(self, cache, ticker):
        fetch = CountingFetch({'v': 1}, {'v': 2})
        cache.get('k', fetch)
        ticker.t += TTL.total_seconds() - 1
        assert cache.get('k', fetch) == {'v': 1}
        assert fetch.calls == 1

    def test_expired_entry_refetches(self, cache, ticker):
        fetch = CountingFetch({'v': 1}, {'v': 2})
        cache.get('k', fetch)
        ticker.t += TTL.total_seconds()
        assert cache.get('k', fetch) == {'v': 2}
        assert fetch.calls == 2

    def test_refresh_restarts_ttl(self, cache, ticker):
        fetch = CountingFetch({'v': 1}, {'v': 2}, {'v': 3})
        cache.get('k', fetch)
        ticker.t += TTL.total_seconds() + 10
        cache.get('k', fetch)
        ticker.t += TTL.total_seconds() - 10
        assert cache.get('k', fetch) == {'v': 2}

    def test_keys_are_independent(self, cache):
        assert cache.get('a', CountingFetch('A')) == 'A'
        assert cache.get('b', CountingFetch('B')) == 'B'
        assert cache.get('a', CountingFetch('other')) == 'A'

    def test_peek_hides_expired(self, cache, ticker):
        cache.put('k', [1, 2])
        assert cache.peek('k') == [1, 2]
        ticker.t += TTL.total_seconds()
        assert cache.peek('k') is None

    def test_persists_across_instances(self, store, ticker):
        TTLCache(store, ttl=TTL, clock=ticker).put('k', {'v': 1})
        assert TTLCache(store, ttl=TTL, clock=ticker).peek('k') == {'v': 1}


class TestShouldCache:
    def test_rejected_values_are_not_stored(self, cache):
        fetch = CountingFetch({'ok': False}, {'ok': True})
        keep = lambda value: value['ok']
        assert cache.get('k', fetch, should_cache=keep) == {'ok': False}
        assert cache.get('k', fetch, should_cache=keep) == {'ok': True}
        assert cache.get('k', fetch, should_cache=keep) == {'ok': True}
        assert fetch.calls == 2


class TestCorruption:
    def test_undecodable_entry_is_a_miss(self, store, cache):
        _corrupt(store, 'k')
        fetch = CountingFetch({'v': 1})
        assert cache.get('k', fetch) == {'v': 1}
        assert fetch.calls == 1
        assert cache.peek('k') == {'v': 1}

    def test_undecodable_entry_is_discarded_even_if_not_recached(self, store, cache):
        _corrupt(store, 'k')
        cache.get('k', CountingFetch({'v': 1}), should_cache=lambda _: False)
        conn = sqlite3.connect(store.path)
        rows = conn.execute("SELECT * FROM _cache WHERE cache_key = 'k'").fetchall()
        conn.close()
        assert rows == []

    def test_bad_timestamp_is_a_miss(self, store, cache):
        _corrupt(store, 'k', data='{"v": 0}', created_at='yesterday')
        assert cache.get('k', CountingFetch({'v': 1})) == {'v': 1}


class TestMaintenance:
    def test_invalidate(self, cache):
        cache.put('k', 1)
        cache.invalidate('k')
        assert cache.peek('k') is None

    def test_purge_expired(self, cache, ticker):
        cache.put('old', 1)
        ticker.t += TTL.total_seconds()
        cache.put('new', 2)
        assert cache.purge_expired() == 1
        assert cache.peek('new') == 2


class TestValidate:
    def test_wrong_shape_is_a_miss(self, store, cache):
        _corrupt(store, 'k', data='42')
        fetch = CountingFetch({'v': 1})
        assert cache.get('k', fetch, validate=lambda entry: isinstance(entry, dict)) == {'v': 1}
        assert fetch.calls == 1
        assert cache.peek('k') == {'v': 1}

    def test_right_shape_is_a_hit(self, cache):
        cache.put('k', {'v': 1})
        fetch = CountingFetch({'v': 2})
        assert cache.get('k', fetch, validate=lambda entry: isinstance(entry, dict)) == {'v': 1}
        assert fetch.calls == 0
