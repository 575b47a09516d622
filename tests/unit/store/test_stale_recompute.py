from __future__ import annotations

import asyncio
from collections.abc import Sequence

import pytest

from refview.events import FiltersChanged, ReferencesReplaced, ScopeSelected
from refview.models import (
    Classification,
    FilterState,
    Location,
    Origin,
    Position,
    Range,
    ScopePath,
    TreeNode,
)
from refview.store import ReferenceStore
from refview.tree import iter_file_nodes


def _loc(path: str, line: int = 0) -> Location:
    start = Position(line=line, column=0)
    return Location(path=path, range=Range(start=start, end=start))


ORIGIN = Origin(path="/ws/a.go", position=Position(line=0, column=0))
SLOW_LOC = _loc("/ws/slow/a.go", 1)
FAST_LOC = _loc("/ws/fast/b.go", 2)


class _GatedClassifier:
    """Blocks the first classification of selected keys until released."""

    name = "gated"

    def __init__(self, blocked: set[str]) -> None:
        self.blocked = set(blocked)
        self.gate = asyncio.Event()
        self.waiting = asyncio.Event()

    async def classify(self, location: Location) -> Classification:
        if location.cache_key in self.blocked:
            self.blocked.discard(location.cache_key)
            self.waiting.set()
            await self.gate.wait()
        return Classification.READ


class _RecordingHost:
    def __init__(self) -> None:
        self.trees: list[list[TreeNode]] = []
        self.previews: list[list[Location]] = []
        self.errors: list[str] = []
        self.closed = 0

    async def update_refs(self, tree: list[TreeNode]) -> None:
        self.trees.append(tree)

    async def classification_result(
        self, location: Location, classification: Classification
    ) -> None:
        raise AssertionError("not expected")

    async def show_error(self, text: str) -> None:
        self.errors.append(text)

    async def show_preview(
        self, origin: Origin, locations: Sequence[Location], mode: str
    ) -> None:
        self.previews.append(list(locations))

    async def close_preview(self) -> None:
        self.closed += 1

    async def open_location(self, location: Location) -> None:
        raise AssertionError("not expected")


class _SnapshotClassifier:
    """Reads the current answer, then blocks the first call until released."""

    name = "snapshot"

    def __init__(self, answers: dict[str, Classification]) -> None:
        self.answers = answers
        self.first = True
        self.gate = asyncio.Event()
        self.waiting = asyncio.Event()

    async def classify(self, location: Location) -> Classification:
        answer = self.answers[location.cache_key]
        if self.first:
            self.first = False
            self.waiting.set()
            await self.gate.wait()
        return answer


def _store(
    host: _RecordingHost, classifier: _GatedClassifier | _SnapshotClassifier
) -> ReferenceStore:
    return ReferenceStore(classifier, view=host, preview=host, navigator=host)


def _file_paths(tree: list[TreeNode]) -> list[str]:
    return [node.path for _, node in iter_file_nodes(tree)]


@pytest.mark.asyncio
async def test_older_replacement_result_is_discarded() -> None:
    host = _RecordingHost()
    classifier = _GatedClassifier({SLOW_LOC.cache_key})
    store = _store(host, classifier)

    slow = asyncio.create_task(
        store.dispatch(ReferencesReplaced(locations=(SLOW_LOC,), origin=ORIGIN))
    )
    await classifier.waiting.wait()

    await store.dispatch(ReferencesReplaced(locations=(FAST_LOC,), origin=ORIGIN))
    classifier.gate.set()
    await slow

    assert [_file_paths(tree) for tree in host.trees] == [["/ws/fast/b.go"]]
    assert host.previews == [[FAST_LOC]]
    assert store.state.locations == (FAST_LOC,)
    assert _file_paths(store.state.tree) == ["/ws/fast/b.go"]
    assert host.errors == []


@pytest.mark.asyncio
async def test_scope_event_superseding_pending_tree_still_emits_tree() -> None:
    host = _RecordingHost()
    classifier = _GatedClassifier({SLOW_LOC.cache_key})
    store = _store(host, classifier)

    pending = asyncio.create_task(
        store.dispatch(ReferencesReplaced(locations=(SLOW_LOC, FAST_LOC), origin=ORIGIN))
    )
    await classifier.waiting.wait()

    await store.dispatch(ScopeSelected(scope=ScopePath(path="/ws/fast", is_directory=True)))
    classifier.gate.set()
    await pending

    assert [_file_paths(tree) for tree in host.trees] == [["/ws/fast/b.go", "/ws/slow/a.go"]]
    assert host.previews == [[FAST_LOC]]
    assert store.state.tree_dirty is False


@pytest.mark.asyncio
async def test_generation_increases_for_every_recompute() -> None:
    host = _RecordingHost()
    store = _store(host, _GatedClassifier(set()))

    await store.dispatch(ReferencesReplaced(locations=(FAST_LOC,), origin=ORIGIN))
    first = store.state.generation
    await store.dispatch(ScopeSelected(scope=None))

    assert store.state.generation == first + 1


@pytest.mark.asyncio
async def test_older_classification_does_not_overwrite_newer_cache_entry() -> None:
    host = _RecordingHost()
    classifier = _SnapshotClassifier({SLOW_LOC.cache_key: Classification.WRITE})
    store = _store(host, classifier)

    stale = asyncio.create_task(
        store.dispatch(ReferencesReplaced(locations=(SLOW_LOC,), origin=ORIGIN))
    )
    await classifier.waiting.wait()

    classifier.answers[SLOW_LOC.cache_key] = Classification.READ
    await store.dispatch(ReferencesReplaced(locations=(SLOW_LOC,), origin=ORIGIN))
    classifier.gate.set()
    await stale

    assert store.cache.get(SLOW_LOC.cache_key) is Classification.READ

    await store.dispatch(FiltersChanged(filters=FilterState(read=True, write=False, text=False)))

    assert host.previews[-1] == [SLOW_LOC]
