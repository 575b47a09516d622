from __future__ import annotations

from collections.abc import Sequence

import pytest

from refview.events import ClassificationRequested, FiltersChanged, ReferencesReplaced
from refview.models import (
    Classification,
    FilterState,
    Location,
    Origin,
    Position,
    Range,
    TreeNode,
)
from refview.store import ReferenceStore


def _loc(path: str, line: int = 0) -> Location:
    start = Position(line=line, column=0)
    return Location(path=path, range=Range(start=start, end=start))


ORIGIN = Origin(path="/ws/a.go", position=Position(line=0, column=0))


class _ReadEverything:
    name = "read"

    async def classify(self, location: Location) -> Classification:
        return Classification.READ


class _Exploding:
    name = "exploding"

    async def classify(self, location: Location) -> Classification:
        raise RuntimeError("language server crashed")


class _RecordingHost:
    def __init__(self, fail_preview: bool = False) -> None:
        self.messages: list[tuple[str, object]] = []
        self.fail_preview = fail_preview

    async def update_refs(self, tree: list[TreeNode]) -> None:
        self.messages.append(("updateRefs", tree))

    async def classification_result(
        self, location: Location, classification: Classification
    ) -> None:
        self.messages.append(("classificationResult", classification))

    async def show_error(self, text: str) -> None:
        self.messages.append(("showError", text))

    async def show_preview(
        self, origin: Origin, locations: Sequence[Location], mode: str
    ) -> None:
        if self.fail_preview:
            raise RuntimeError("preview pane closed")
        self.messages.append(("showPreview", list(locations)))

    async def close_preview(self) -> None:
        self.messages.append(("closePreview", None))

    async def open_location(self, location: Location) -> None:
        self.messages.append(("openLocation", location))


@pytest.mark.asyncio
async def test_tree_build_failure_clears_view_and_reports_once() -> None:
    host = _RecordingHost()
    store = ReferenceStore(_ReadEverything(), view=host, preview=host, navigator=host)
    conflicting = (_loc("/ws/a"), _loc("/ws/a/b.go"))

    await store.dispatch(ReferencesReplaced(locations=conflicting, origin=ORIGIN))

    assert [kind for kind, _ in host.messages] == ["showError", "updateRefs", "closePreview"]
    assert host.messages[0][1].startswith("Error filtering references:")
    assert host.messages[1] == ("updateRefs", [])
    assert store.state.tree == []
    assert store.state.preview == ()


@pytest.mark.asyncio
async def test_store_recovers_after_failure() -> None:
    host = _RecordingHost()
    store = ReferenceStore(_ReadEverything(), view=host, preview=host, navigator=host)
    await store.dispatch(
        ReferencesReplaced(locations=(_loc("/ws/a"), _loc("/ws/a/b.go")), origin=ORIGIN)
    )
    host.messages.clear()

    good = _loc("/ws/c.go", 3)
    await store.dispatch(ReferencesReplaced(locations=(good,), origin=ORIGIN))

    assert [kind for kind, _ in host.messages] == ["updateRefs", "showPreview"]
    assert host.messages[1] == ("showPreview", [good])


@pytest.mark.asyncio
async def test_classifier_exception_surfaces_as_filter_error() -> None:
    host = _RecordingHost()
    store = ReferenceStore(_Exploding(), view=host, preview=host, navigator=host)
    store.state.locations = (_loc("/ws/a.go"),)

    await store.dispatch(FiltersChanged(filters=FilterState(text=False)))

    assert host.messages[0] == ("showError", "Error filtering references: language server crashed")


@pytest.mark.asyncio
async def test_classification_request_failure_answers_unknown() -> None:
    host = _RecordingHost()
    store = ReferenceStore(_Exploding(), view=host, preview=host, navigator=host)

    await store.dispatch(ClassificationRequested(location=_loc("/ws/a.go")))

    assert host.messages == [("classificationResult", Classification.UNKNOWN)]


@pytest.mark.asyncio
async def test_preview_failure_is_contained_and_reported() -> None:
    host = _RecordingHost(fail_preview=True)
    store = ReferenceStore(_ReadEverything(), view=host, preview=host, navigator=host)

    await store.dispatch(ReferencesReplaced(locations=(_loc("/ws/a.go"),), origin=ORIGIN))

    assert [kind for kind, _ in host.messages] == [
        "updateRefs",
        "showError",
        "updateRefs",
        "closePreview",
    ]
    assert host.messages[1] == ("showError", "Error filtering references: preview pane closed")
    assert host.messages[2] == ("updateRefs", [])
    assert store.state.tree == []


class _BrokenView:
    async def update_refs(self, tree: list[TreeNode]) -> None:
        raise RuntimeError("view disposed")

    async def classification_result(
        self, location: Location, classification: Classification
    ) -> None:
        raise RuntimeError("view disposed")

    async def show_error(self, text: str) -> None:
        raise RuntimeError("view disposed")


@pytest.mark.asyncio
async def test_failure_while_clearing_view_does_not_escape_dispatch() -> None:
    host = _RecordingHost()
    store = ReferenceStore(_ReadEverything(), view=_BrokenView(), preview=host, navigator=host)

    await store.dispatch(ReferencesReplaced(locations=(_loc("/ws/a.go"),), origin=ORIGIN))

    assert store.state.tree == []
    assert store.state.tree_dirty is False
