"""In-session memoization of classification results."""

from __future__ import annotations

from dataclasses import dataclass, field

from refview.classify.base import Classifier
from refview.models import Classification, Location


@dataclass(slots=True)
class ClassificationCache:
    """Classification results keyed by `path#line,column`."""

    _entries: dict[str, Classification] = field(default_factory=dict)
    _epoch: int = 0

    def get(self, key: str) -> Classification | None:
        """Return a cached classification, if any."""
        return self._entries.get(key)

    def set(self, key: str, value: Classification) -> None:
        """Store a classification for a key."""
        self._entries[key] = value

    @property
    def epoch(self) -> int:
        """Number of times the cache has been cleared."""
        return self._epoch

    def clear(self) -> None:
        """Drop every cached entry and start a new epoch."""
        self._entries.clear()
        self._epoch += 1

    def __len__(self) -> int:
        return len(self._entries)


class CachedClassifier:
    """Consult the cache before delegating to the wrapped classifier."""

    def __init__(self, inner: Classifier, cache: ClassificationCache) -> None:
        self._inner = inner
        self._cache = cache
        self.name = inner.name

    @property
    def cache(self) -> ClassificationCache:
        return self._cache

    async def classify(self, location: Location) -> Classification:
        key = location.cache_key
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        epoch = self._cache.epoch
        result = await self._inner.classify(location)
        # A clear while awaiting means the result belongs to a replaced reference set.
        if self._cache.epoch == epoch:
            self._cache.set(key, result)
        return result
