"""Typed models for reference locations, filters, and tree nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


@dataclass(slots=True, frozen=True, order=True)
class Position:
    """Zero-based line/column position inside a document."""

    line: int
    column: int


@dataclass(slots=True, frozen=True)
class Range:
    """Half-open text range between two positions."""

    start: Position
    end: Position

    def contains(self, position: Position) -> bool:
        """Return True when position lies within the range, ends included."""
        return self.start <= position <= self.end


@dataclass(slots=True, frozen=True)
class Location:
    """Single symbol occurrence produced by a find-references request."""

    path: str
    range: Range

    @property
    def start(self) -> Position:
        """Return the start position of the occurrence."""
        return self.range.start

    @property
    def cache_key(self) -> str:
        """Return the classification cache key."""
        return f"{self.path}#{self.range.start.line},{self.range.start.column}"

    @property
    def ref_key(self) -> str:
        """Return the 1-based reference key used by tree leaves."""
        return f"{self.path}#{self.range.start.line + 1}:{self.range.start.column + 1}"


class Classification(IntEnum):
    """Role of a single reference."""

    UNKNOWN = -1
    TEXT = 0
    READ = 1
    WRITE = 2


@dataclass(slots=True, frozen=True)
class FilterState:
    """Classification flags controlling which references are kept."""

    read: bool = True
    write: bool = True
    text: bool = True

    def is_empty(self) -> bool:
        """Return True when every flag is disabled."""
        return not (self.read or self.write or self.text)

    def allows(self, classification: Classification) -> bool:
        """Return True when the classification's flag is enabled."""
        if classification is Classification.READ:
            return self.read
        if classification is Classification.WRITE:
            return self.write
        if classification is Classification.TEXT:
            return self.text
        return False

    def to_dict(self) -> dict[str, bool]:
        return {"read": self.read, "write": self.write, "text": self.text}


@dataclass(slots=True, frozen=True)
class ScopePath:
    """Optional file or directory path narrowing the preview set."""

    path: str
    is_directory: bool

    def matches(self, path: str) -> bool:
        """Return True when path is the scoped file or lies under the scoped directory."""
        if not self.is_directory:
            return path == self.path
        prefix = self.path if self.path.endswith("/") else f"{self.path}/"
        return path.startswith(prefix)


@dataclass(slots=True, frozen=True)
class Origin:
    """Document position where the references request was issued."""

    path: str
    position: Position


@dataclass(slots=True, frozen=True)
class RefLine:
    """Tree leaf for one reference, with 1-based line and column."""

    line: int
    column: int
    key: str

    @property
    def label(self) -> str:
        return f"Line {self.line}:{self.column}"


@dataclass(slots=True, frozen=True)
class FileNode:
    """Tree node for one file and its reference lines."""

    label: str
    path: str
    reference_lines: tuple[RefLine, ...] = ()


@dataclass(slots=True, frozen=True)
class DirectoryNode:
    """Tree node for a directory chain merged into one label."""

    label: str
    merged_path: str
    children: tuple[TreeNode, ...] = field(default_factory=tuple)


TreeNode = DirectoryNode | FileNode


def location_from_payload(payload: object) -> Location:
    """Parse a wire location `{path, range: {start, end}}` into a Location."""
    if not isinstance(payload, dict):
        raise ValueError("Location must be an object.")
    path = payload.get("path")
    if not isinstance(path, str) or not path:
        raise ValueError("Location path must be a non-empty string.")
    raw_range = payload.get("range")
    if not isinstance(raw_range, dict):
        raise ValueError("Location range must be an object.")
    start = _position_from_payload(raw_range.get("start"), "start")
    end = _position_from_payload(raw_range.get("end", raw_range.get("start")), "end")
    return Location(path=path, range=Range(start=start, end=end))


def location_to_payload(location: Location) -> dict[str, object]:
    """Serialize a Location to its wire form."""
    return {
        "path": location.path,
        "range": range_to_payload(location.range),
    }


def range_to_payload(value: Range) -> dict[str, object]:
    return {
        "start": {"line": value.start.line, "column": value.start.column},
        "end": {"line": value.end.line, "column": value.end.column},
    }


def tree_to_payload(nodes: list[TreeNode] | tuple[TreeNode, ...]) -> list[dict[str, object]]:
    """Serialize tree nodes into nested dictionaries for the UI collaborator."""
    output: list[dict[str, object]] = []
    for node in nodes:
        if isinstance(node, DirectoryNode):
            output.append(
                {
                    "type": "directory",
                    "label": node.label,
                    "value": node.merged_path,
                    "children": tree_to_payload(node.children),
                }
            )
            continue
        output.append(
            {
                "type": "file",
                "label": node.label,
                "value": node.path,
                "children": [
                    {
                        "type": "reference",
                        "label": ref.label,
                        "value": ref.key,
                        "line": ref.line,
                        "column": ref.column,
                    }
                    for ref in node.reference_lines
                ],
            }
        )
    return output


def _position_from_payload(value: object, name: str) -> Position:
    if not isinstance(value, dict):
        raise ValueError(f"Location range.{name} must be an object.")
    line = value.get("line")
    column = value.get("column", value.get("character"))
    if not isinstance(line, int) or isinstance(line, bool) or line < 0:
        raise ValueError(f"Location range.{name}.line must be a non-negative integer.")
    if not isinstance(column, int) or isinstance(column, bool) or column < 0:
        raise ValueError(f"Location range.{name}.column must be a non-negative integer.")
    return Position(line=line, column=column)
