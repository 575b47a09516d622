"""Inbound event types and host message parsing."""

from __future__ import annotations

from dataclasses import dataclass

from refview.errors import MessageError
from refview.models import (
    FilterState,
    Location,
    Origin,
    Position,
    Range,
    ScopePath,
    location_from_payload,
)


@dataclass(slots=True, frozen=True)
class ReferencesReplaced:
    """A new find-references result seeds the store."""

    locations: tuple[Location, ...]
    origin: Origin


@dataclass(slots=True, frozen=True)
class FiltersChanged:
    """The user toggled classification flags."""

    filters: FilterState


@dataclass(slots=True, frozen=True)
class ScopeSelected:
    """A directory or file node was selected; None clears the scope."""

    scope: ScopePath | None


@dataclass(slots=True, frozen=True)
class ReferenceLeafSelected:
    """A reference leaf was selected and should be opened."""

    location: Location


@dataclass(slots=True, frozen=True)
class WebviewReady:
    """The UI collaborator finished loading."""


@dataclass(slots=True, frozen=True)
class ClassificationRequested:
    """The UI asks for the classification of a single location."""

    location: Location


@dataclass(slots=True, frozen=True)
class ErrorReported:
    """The UI asks for an error to be shown to the user."""

    text: str


Event = (
    ReferencesReplaced
    | FiltersChanged
    | ScopeSelected
    | ReferenceLeafSelected
    | WebviewReady
    | ClassificationRequested
    | ErrorReported
)


def parse_message(payload: object) -> Event:
    """Convert one inbound host message into an event."""
    if not isinstance(payload, dict):
        raise MessageError(code="INVALID_MESSAGE", message="Message must be an object.")
    message_type = payload.get("type")
    if not isinstance(message_type, str) or not message_type:
        raise MessageError(
            code="INVALID_MESSAGE", message="Message type must be a non-empty string."
        )
    parser = _PARSERS.get(message_type)
    if parser is None:
        raise MessageError(
            code="UNKNOWN_MESSAGE", message=f"Unknown message type: {message_type}"
        )
    try:
        return parser(payload)
    except ValueError as error:
        raise MessageError(
            code="INVALID_MESSAGE", message=f"{message_type}: {error}"
        ) from error


def location_from_key(key: str) -> Location:
    """Parse a 1-based reference key `path#line:column` into a Location."""
    path, separator, position = key.rpartition("#")
    if not separator or not path:
        raise ValueError(f"Reference key must look like 'path#line:column': {key}")
    line_text, _, column_text = position.partition(":")
    if not line_text.isdigit() or not column_text.isdigit():
        raise ValueError(f"Reference key must look like 'path#line:column': {key}")
    return _leaf_location(path, int(line_text), int(column_text))


def _leaf_location(path: str, line: int, column: int) -> Location:
    if line < 1 or column < 1:
        raise ValueError("Reference line and column are 1-based.")
    start = Position(line=line - 1, column=column - 1)
    return Location(path=path, range=Range(start=start, end=start))


def _parse_references_replaced(payload: dict[str, object]) -> ReferencesReplaced:
    raw_locations = payload.get("locations")
    if not isinstance(raw_locations, list):
        raise ValueError("locations must be a list.")
    origin_payload = payload.get("origin")
    if not isinstance(origin_payload, dict):
        raise ValueError("origin must be an object.")
    origin_path = origin_payload.get("path")
    if not isinstance(origin_path, str) or not origin_path:
        raise ValueError("origin.path must be a non-empty string.")
    origin_location = location_from_payload(
        {
            "path": origin_path,
            "range": {"start": origin_payload.get("position")},
        }
    )
    return ReferencesReplaced(
        locations=tuple(location_from_payload(item) for item in raw_locations),
        origin=Origin(path=origin_path, position=origin_location.range.start),
    )


def _parse_filters_changed(payload: dict[str, object]) -> FiltersChanged:
    filters = payload.get("filters")
    if not isinstance(filters, dict):
        raise ValueError("filters must be an object.")
    values: dict[str, bool] = {}
    for name in ("read", "write", "text"):
        value = filters.get(name, False)
        if not isinstance(value, bool):
            raise ValueError(f"filters.{name} must be a boolean.")
        values[name] = value
    return FiltersChanged(filters=FilterState(**values))


def _parse_scope_selected(payload: dict[str, object]) -> ScopeSelected:
    scope = payload.get("scope")
    if scope is None:
        return ScopeSelected(scope=None)
    if not isinstance(scope, dict):
        raise ValueError("scope must be an object or null.")
    path = scope.get("path")
    is_directory = scope.get("isDirectory", False)
    if not isinstance(path, str) or not path:
        raise ValueError("scope.path must be a non-empty string.")
    if not isinstance(is_directory, bool):
        raise ValueError("scope.isDirectory must be a boolean.")
    return ScopeSelected(scope=ScopePath(path=path, is_directory=is_directory))


def _parse_leaf_selected(payload: dict[str, object]) -> ReferenceLeafSelected:
    key = payload.get("key")
    if isinstance(key, str):
        return ReferenceLeafSelected(location=location_from_key(key))
    path = payload.get("path")
    line = payload.get("line")
    column = payload.get("column")
    if not isinstance(path, str) or not path:
        raise ValueError("path must be a non-empty string.")
    if not isinstance(line, int) or not isinstance(column, int):
        raise ValueError("line and column must be integers.")
    return ReferenceLeafSelected(location=_leaf_location(path, line, column))


def _parse_select_event(payload: dict[str, object]) -> ScopeSelected | ReferenceLeafSelected:
    path = payload.get("path")
    if payload.get("isReference") is True:
        if not isinstance(path, str):
            raise ValueError("path must be a reference key.")
        return ReferenceLeafSelected(location=location_from_key(path))
    if path is None or path == "":
        return ScopeSelected(scope=None)
    if not isinstance(path, str):
        raise ValueError("path must be a string or null.")
    is_directory = payload.get("isDirectory", False)
    return ScopeSelected(scope=ScopePath(path=path, is_directory=is_directory is True))


def _parse_request_classification(payload: dict[str, object]) -> ClassificationRequested:
    return ClassificationRequested(location=location_from_payload(payload.get("location")))


def _parse_show_error(payload: dict[str, object]) -> ErrorReported:
    text = payload.get("text")
    if not isinstance(text, str):
        raise ValueError("text must be a string.")
    return ErrorReported(text=text)


_PARSERS = {
    "referencesReplaced": _parse_references_replaced,
    "filtersChanged": _parse_filters_changed,
    "scopeSelected": _parse_scope_selected,
    "referenceLeafSelected": _parse_leaf_selected,
    "vscSelectEvent": _parse_select_event,
    "webviewReady": lambda _: WebviewReady(),
    "requestClassification": _parse_request_classification,
    "showError": _parse_show_error,
}
