"""Classifier protocol and strategy composition."""

from __future__ import annotations

from typing import Protocol

from refview.models import Classification, Location


class Classifier(Protocol):
    """Protocol implemented by classification strategies."""

    name: str

    async def classify(self, location: Location) -> Classification:
        """Return the classification for one location."""


class DocumentReader(Protocol):
    """Protocol for reading a single source line."""

    async def read_line(self, path: str, line: int) -> str | None:
        """Return the 0-based line of a document, or None when unavailable."""


class FallbackClassifier:
    """Ask the primary strategy first and the fallback when it is unresolved."""

    def __init__(self, primary: Classifier, fallback: Classifier) -> None:
        self._primary = primary
        self._fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    async def classify(self, location: Location) -> Classification:
        result = await self._primary.classify(location)
        if result is not Classification.UNKNOWN:
            return result
        return await self._fallback.classify(location)


class UnresolvedPolicyClassifier:
    """Map a final UNKNOWN result to the configured unresolved policy."""

    def __init__(self, inner: Classifier, unresolved: Classification) -> None:
        self._inner = inner
        self._unresolved = unresolved
        self.name = inner.name

    async def classify(self, location: Location) -> Classification:
        result = await self._inner.classify(location)
        if result is Classification.UNKNOWN:
            return self._unresolved
        return result
