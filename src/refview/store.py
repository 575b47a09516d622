"""Reference store: owns view state and sequences filtering, tree and preview updates."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from refview.classify.base import Classifier
from refview.classify.cache import CachedClassifier, ClassificationCache
from refview.errors import UnknownEventError
from refview.events import (
    ClassificationRequested,
    ErrorReported,
    Event,
    FiltersChanged,
    ReferenceLeafSelected,
    ReferencesReplaced,
    ScopeSelected,
    WebviewReady,
)
from refview.filtering import apply_scope, filter_locations
from refview.models import (
    Classification,
    FilterState,
    Location,
    Origin,
    ScopePath,
    TreeNode,
)
from refview.tree import build_tree

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], Awaitable[None]]


class ReferenceView(Protocol):
    """UI collaborator that renders the tree."""

    async def update_refs(self, tree: list[TreeNode]) -> None:
        """Replace the rendered tree."""

    async def classification_result(
        self, location: Location, classification: Classification
    ) -> None:
        """Deliver an on-demand classification."""

    async def show_error(self, text: str) -> None:
        """Show a user-visible error notification."""


class PreviewPresenter(Protocol):
    """Collaborator that shows locations in context."""

    async def show_preview(
        self, origin: Origin, locations: Sequence[Location], mode: str
    ) -> None:
        """Show the given locations relative to the origin."""

    async def close_preview(self) -> None:
        """Close any open preview."""


class Navigator(Protocol):
    """Collaborator that opens a document at a location."""

    async def open_location(self, location: Location) -> None:
        """Open and focus the location."""


@dataclass(slots=True)
class StoreState:
    """Mutable state owned by one ReferenceStore."""

    locations: tuple[Location, ...] = ()
    origin: Origin | None = None
    filters: FilterState = field(default_factory=FilterState)
    scope: ScopePath | None = None
    generation: int = 0
    tree_dirty: bool = False
    tree: list[TreeNode] = field(default_factory=list)
    filtered: tuple[Location, ...] = ()
    preview: tuple[Location, ...] = ()


class ReferenceStore:
    """Single ingestion point for view events."""

    def __init__(
        self,
        classifier: Classifier,
        view: ReferenceView,
        preview: PreviewPresenter,
        navigator: Navigator,
        *,
        filters: FilterState | None = None,
        preview_mode: str = "peek",
        cache: ClassificationCache | None = None,
    ) -> None:
        self._cache = cache if cache is not None else ClassificationCache()
        self._classifier = CachedClassifier(classifier, self._cache)
        self._view = view
        self._preview = preview
        self._navigator = navigator
        self._preview_mode = preview_mode
        self._state = StoreState(filters=filters or FilterState())
        self._handlers: dict[type, EventHandler] = {}
        self.register(ReferencesReplaced, self._on_references_replaced)
        self.register(FiltersChanged, self._on_filters_changed)
        self.register(ScopeSelected, self._on_scope_selected)
        self.register(ReferenceLeafSelected, self._on_leaf_selected)
        self.register(WebviewReady, self._on_webview_ready)
        self.register(ClassificationRequested, self._on_classification_requested)
        self.register(ErrorReported, self._on_error_reported)

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def cache(self) -> ClassificationCache:
        return self._cache

    def register(self, event_type: type, handler: EventHandler) -> None:
        """Register the handler for one event type."""
        self._handlers[event_type] = handler

    def event_types(self) -> tuple[type, ...]:
        """Return registered event types in registration order."""
        return tuple(self._handlers.keys())

    async def dispatch(self, event: Event) -> None:
        """Route one event to its handler and run it to completion."""
        handler = self._handlers.get(type(event))
        if handler is None:
            raise UnknownEventError(f"No handler registered for {type(event).__name__}")
        await handler(event)

    async def _on_references_replaced(self, event: ReferencesReplaced) -> None:
        self._state.locations = event.locations
        self._state.origin = event.origin
        self._cache.clear()
        self._state.tree_dirty = True
        await self._recompute()

    async def _on_filters_changed(self, event: FiltersChanged) -> None:
        if event.filters == self._state.filters:
            logger.debug("Filter state unchanged; skipping recompute")
            return
        self._state.filters = event.filters
        self._state.tree_dirty = True
        await self._recompute()

    async def _on_scope_selected(self, event: ScopeSelected) -> None:
        self._state.scope = event.scope
        await self._recompute()

    async def _on_leaf_selected(self, event: ReferenceLeafSelected) -> None:
        await self._preview.close_preview()
        try:
            await self._navigator.open_location(event.location)
        except Exception as error:
            logger.warning("Navigation to %s failed: %s", event.location.ref_key, error)
            await self._view.show_error(f"Error navigating to reference: {error}")

    async def _on_webview_ready(self, event: WebviewReady) -> None:
        if not self._state.locations:
            return
        self._state.tree_dirty = True
        await self._recompute()

    async def _on_classification_requested(self, event: ClassificationRequested) -> None:
        try:
            classification = await self._classifier.classify(event.location)
        except Exception as error:
            logger.warning("Classification of %s failed: %s", event.location.cache_key, error)
            classification = Classification.UNKNOWN
        await self._view.classification_result(event.location, classification)

    async def _on_error_reported(self, event: ErrorReported) -> None:
        await self._view.show_error(event.text)

    async def _recompute(self) -> None:
        self._state.generation += 1
        generation = self._state.generation
        locations = self._state.locations
        filters = self._state.filters
        scope = self._state.scope
        emit_tree = self._state.tree_dirty

        try:
            filtered = await filter_locations(locations, filters, self._classifier)
            if not self._is_current(generation):
                return
            tree = build_tree(filtered) if emit_tree else self._state.tree
            self._state.filtered = tuple(filtered)
            if emit_tree:
                self._state.tree = tree
                self._state.tree_dirty = False
                await self._view.update_refs(tree)
                if not self._is_current(generation):
                    return
            await self._show_preview(apply_scope(filtered, scope))
        except Exception as error:
            if not self._is_current(generation):
                return
            logger.warning("Reference recompute failed: %s", error)
            await self._clear_after_failure(error)

    def _is_current(self, generation: int) -> bool:
        if generation == self._state.generation:
            return True
        logger.debug(
            "Discarding stale recompute %d (current %d)", generation, self._state.generation
        )
        return False

    async def _clear_after_failure(self, error: Exception) -> None:
        self._state.tree = []
        self._state.filtered = ()
        self._state.preview = ()
        self._state.tree_dirty = False
        try:
            await self._view.show_error(f"Error filtering references: {error}")
            await self._view.update_refs([])
            await self._preview.close_preview()
        except Exception:
            logger.exception("Failed to clear the view after a recompute failure")

    async def _show_preview(self, locations: list[Location]) -> None:
        origin = self._state.origin
        if origin is None:
            logger.warning("MissingOriginContext: cannot show preview without an origin")
            return
        self._state.preview = tuple(locations)
        if not locations:
            await self._preview.close_preview()
            return
        await self._preview.show_preview(origin, locations, self._preview_mode)
