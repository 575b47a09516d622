"""Classification-flag and scope filtering over stored locations."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from refview.classify.base import Classifier
from refview.models import FilterState, Location, ScopePath

logger = logging.getLogger(__name__)


def apply_scope(locations: Sequence[Location], scope: ScopePath | None) -> list[Location]:
    """Keep locations inside the scope, preserving input order."""
    if scope is None:
        return list(locations)
    return [location for location in locations if scope.matches(location.path)]


async def filter_locations(
    locations: Sequence[Location],
    filter_state: FilterState,
    classifier: Classifier,
    scope: ScopePath | None = None,
) -> list[Location]:
    """Return the in-scope locations whose classification flag is enabled."""
    if filter_state.is_empty():
        return []
    kept: list[Location] = []
    for location in apply_scope(locations, scope):
        classification = await classifier.classify(location)
        if filter_state.allows(classification):
            kept.append(location)
    logger.debug("Filtered %d references down to %d", len(locations), len(kept))
    return kept
