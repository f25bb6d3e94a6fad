"""Time-limited file cache in front of a fetcher."""
from __future__ import annotations

import hashlib
import json
import logging
import time
from datetime import date
from pathlib import Path

from liqmon.alignment import IndicatorSeries

from .catalog import IndicatorDefinition
from .fetch import BaseFetcher

logger = logging.getLogger(__name__)


class ResponseCache:
    """Store JSON payloads on disk and expire them after ``ttl`` seconds."""

    def __init__(self, directory: Path, ttl: int = 300) -> None:
        self.directory = directory
        self.ttl = ttl

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def get(self, key: str):
        path = self._path(key)
        if not path.exists():
            return None
        age = time.time() - path.stat().st_mtime
        if age > self.ttl:
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable cache entry %s: %s", path.name, exc)
            return None

    def put(self, key: str, payload: object) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(json.dumps(payload), encoding="utf-8")

    def clear(self) -> int:
        removed = 0
        if not self.directory.exists():
            return removed
        for path in self.directory.glob("*.json"):
            path.unlink()
            removed += 1
        return removed


class CachingFetcher(BaseFetcher):
    """Wrap *inner* so repeated reads within the TTL skip the network.

    Only successful fetches are cached; failures propagate to the fail-soft
    wrappers of :class:`BaseFetcher` on every call.
    """

    def __init__(self, inner: BaseFetcher, cache: ResponseCache) -> None:
        self.inner = inner
        self.cache = cache

    @staticmethod
    def cache_key(definition: IndicatorDefinition, start: date | None) -> str:
        return f"{definition.provider}:{definition.series_id}:{start.isoformat() if start else 'all'}"

    def fetch_series(self, definition: IndicatorDefinition, start: date | None = None) -> IndicatorSeries:
        key = self.cache_key(definition, start)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return IndicatorSeries(((day, value) for day, value in cached), symbol=definition.key)
        series = self.inner.fetch_series(definition, start)
        self.cache.put(key, [[day.isoformat(), value] for day, value in series.items()])
        return series


__all__ = ["CachingFetcher", "ResponseCache"]
