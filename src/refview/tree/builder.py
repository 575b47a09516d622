"""Deterministic path tree construction with directory-chain compression."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from refview.errors import TreeBuildError
from refview.models import DirectoryNode, FileNode, Location, RefLine, TreeNode


@dataclass(slots=True)
class _DirEntry:
    path: str
    children: dict[str, _DirEntry | _FileEntry] = field(default_factory=dict)


@dataclass(slots=True)
class _FileEntry:
    path: str
    locations: list[Location]


def group_by_path(locations: Sequence[Location]) -> dict[str, list[Location]]:
    """Group locations by exact path, then order each group by start line (stable)."""
    grouped: dict[str, list[Location]] = {}
    for location in locations:
        grouped.setdefault(location.path, []).append(location)
    return {
        path: sorted(items, key=lambda item: item.range.start.line)
        for path, items in grouped.items()
    }


def build_tree(locations: Sequence[Location]) -> list[TreeNode]:
    """Build the ordered, compressed directory/file/reference tree."""
    root = _DirEntry(path="")
    for path, file_locations in group_by_path(locations).items():
        if not path or path == "/":
            continue
        parts = [part for part in path.split("/") if part]
        if not parts:
            continue
        _insert_file(root, path, parts, file_locations)
    return _convert(root.children)


def iter_file_nodes(
    nodes: Sequence[TreeNode], ancestors: tuple[str, ...] = ()
) -> Iterator[tuple[tuple[str, ...], FileNode]]:
    """Yield each file node with the labels of its ancestor directories."""
    for node in nodes:
        if isinstance(node, DirectoryNode):
            yield from iter_file_nodes(node.children, (*ancestors, node.label))
        else:
            yield ancestors, node


def _insert_file(
    root: _DirEntry, path: str, parts: list[str], file_locations: list[Location]
) -> None:
    current = root
    leading = "/" if path.startswith("/") else ""
    for depth, part in enumerate(parts[:-1]):
        existing = current.children.get(part)
        if existing is None:
            existing = _DirEntry(path=leading + "/".join(parts[: depth + 1]))
            current.children[part] = existing
        elif isinstance(existing, _FileEntry):
            raise TreeBuildError(
                f"Path '{existing.path}' is used both as a file and as a directory."
            )
        current = existing

    name = parts[-1]
    existing_leaf = current.children.get(name)
    if isinstance(existing_leaf, _DirEntry):
        raise TreeBuildError(f"Path '{path}' is used both as a file and as a directory.")
    if isinstance(existing_leaf, _FileEntry):
        # Same file reached through a differently spelled path, e.g. "a//b.go".
        existing_leaf.locations.extend(file_locations)
        existing_leaf.locations.sort(key=lambda item: item.range.start.line)
        return
    current.children[name] = _FileEntry(path=path, locations=list(file_locations))


def _convert(children: dict[str, _DirEntry | _FileEntry]) -> list[TreeNode]:
    directories: list[DirectoryNode] = []
    files: list[FileNode] = []
    for name, entry in children.items():
        if isinstance(entry, _DirEntry):
            node = _compress(name, entry)
            if node.children:
                directories.append(node)
            continue
        if not entry.locations:
            continue
        files.append(
            FileNode(
                label=name,
                path=entry.path,
                reference_lines=tuple(
                    RefLine(
                        line=location.range.start.line + 1,
                        column=location.range.start.column + 1,
                        key=f"{entry.path}#{location.range.start.line + 1}:"
                        f"{location.range.start.column + 1}",
                    )
                    for location in entry.locations
                ),
            )
        )
    directories.sort(key=lambda node: node.label)
    files.sort(key=lambda node: node.label)
    return [*directories, *files]


def _compress(name: str, entry: _DirEntry) -> DirectoryNode:
    segments = [name]
    current = entry
    while len(current.children) == 1:
        (child_name, child), = current.children.items()
        if not isinstance(child, _DirEntry):
            break
        segments.append(child_name)
        current = child
    return DirectoryNode(
        label="/".join(segments) + "/",
        merged_path=current.path,
        children=tuple(_convert(current.children)),
    )
