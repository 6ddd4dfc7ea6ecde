"""
TTL cache kept in the store's sqlite file.

Entries are JSON documents stamped with their creation time. An entry older
than the TTL is treated exactly like a missing one. An entry that cannot be
decoded is deleted and treated as a miss.
"""

import json
import logging
import time
from datetime import timedelta
from typing import Any, Callable

from database.schema import CACHE_TABLE, cache_schema
from database.store import TabularStore, quote
from utils.errors import CacheCorruption

logger = logging.getLogger(__name__)


class TTLCache:
    def __init__(
        self,
        store: TabularStore,
        ttl: timedelta,
        clock: Callable[[], float] = time.time,
        table: str = CACHE_TABLE,
    ):
        self._store = store
        self.ttl = ttl
        self._clock = clock
        self._table = table
        with store.transaction() as conn:
            conn.execute(cache_schema.replace(CACHE_TABLE, quote(table), 1))

    def get(
        self,
        key: str,
        fetch: Callable[[], Any],
        should_cache: Callable[[Any], bool] | None = None,
        validate: Callable[[Any], bool] | None = None,
    ) -> Any:
        """
        Return the cached value for key, or call fetch() and maybe cache it.

        should_cache decides whether a freshly fetched value is stored; by
        default every value is. validate rejects a stored value that decodes
        but has the wrong shape; it is then handled like a corrupt entry.
        """
        try:
            hit = self.peek(key, validate)
        except CacheCorruption as e:
            logger.warning(f"Discarding unreadable cache entry {key!r}: {e}")
            self.invalidate(key)
            hit = None

        if hit is not None:
            logger.info(f"Cache hit: {key!r}")
            return hit

        logger.info(f"Cache miss: {key!r}")
        data = fetch()
        if should_cache is None or should_cache(data):
            self.put(key, data)
        return data

    def peek(self, key: str, validate: Callable[[Any], bool] | None = None) -> Any | None:
        """Non-expired value for key, or None. Raises CacheCorruption on a bad entry."""
        with self._store.transaction(immediate=False) as conn:
            row = conn.execute(
                f'SELECT data, created_at FROM {quote(self._table)} WHERE cache_key = ?',
                (key,)
            ).fetchone()
        if row is None:
            return None

        data, created_at = row
        try:
            age = self._clock() - float(created_at)
            entry = json.loads(data)
        except (TypeError, ValueError) as e:
            raise CacheCorruption(str(e)) from e
        if validate is not None and not validate(entry):
            raise CacheCorruption(f"unexpected {type(entry).__name__} payload")

        if age >= self.ttl.total_seconds():
            logger.info(f"Cache entry expired: {key!r}")
            return None
        return entry

    def put(self, key: str, data: Any) -> None:
        payload = json.dumps(data)
        with self._store.transaction() as conn:
            conn.execute(
                f'INSERT OR REPLACE INTO {quote(self._table)} (cache_key, data, created_at) VALUES (?, ?, ?)',
                (key, payload, self._clock())
            )

    def invalidate(self, key: str) -> None:
        with self._store.transaction() as conn:
            conn.execute(f'DELETE FROM {quote(self._table)} WHERE cache_key = ?', (key,))

    def purge_expired(self) -> int:
        cutoff = self._clock() - self.ttl.total_seconds()
        with self._store.transaction() as conn:
            cursor = conn.execute(f'DELETE FROM {quote(self._table)} WHERE created_at <= ?', (cutoff,))
            return cursor.rowcount
