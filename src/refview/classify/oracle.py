"""Adapter from an authoritative document-highlight service to classifications."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

from refview.models import Classification, Location, Position, Range

logger = logging.getLogger(__name__)


class HighlightKind(IntEnum):
    """Highlight kinds reported by the oracle."""

    TEXT = 0
    READ = 1
    WRITE = 2


@dataclass(slots=True, frozen=True)
class DocumentHighlight:
    """One highlighted occurrence returned by the oracle."""

    range: Range
    kind: HighlightKind


class HighlightProvider(Protocol):
    """External per-position symbol usage service."""

    async def document_highlights(
        self, path: str, position: Position
    ) -> Sequence[DocumentHighlight] | None:
        """Return highlights for the symbol at position."""


_KIND_TO_CLASSIFICATION = {
    HighlightKind.TEXT: Classification.TEXT,
    HighlightKind.READ: Classification.READ,
    HighlightKind.WRITE: Classification.WRITE,
}


def select_highlight(
    location: Location, highlights: Sequence[DocumentHighlight]
) -> DocumentHighlight | None:
    """Pick the exact-range highlight, else the first one containing the start."""
    for highlight in highlights:
        if highlight.range == location.range:
            return highlight
    for highlight in highlights:
        if highlight.range.contains(location.range.start):
            return highlight
    return None


class OracleClassifier:
    """Classifier backed by a HighlightProvider; failures map to UNKNOWN."""

    name = "oracle"

    def __init__(self, provider: HighlightProvider) -> None:
        self._provider = provider

    async def classify(self, location: Location) -> Classification:
        try:
            highlights = await self._provider.document_highlights(
                location.path, location.range.start
            )
        except Exception as error:
            logger.warning(
                "OracleUnavailable: highlight request failed for %s: %s",
                location.cache_key,
                error,
            )
            return Classification.UNKNOWN
        if not highlights:
            logger.debug("OracleUnavailable: no highlights for %s", location.cache_key)
            return Classification.UNKNOWN
        selected = select_highlight(location, highlights)
        if selected is None:
            return Classification.UNKNOWN
        return _KIND_TO_CLASSIFICATION.get(selected.kind, Classification.UNKNOWN)
