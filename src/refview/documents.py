"""Filesystem-backed document line reader."""

from __future__ import annotations

from pathlib import Path


class FileDocumentReader:
    """Read document lines from disk, keeping each file's lines until cleared."""

    def __init__(self, workspace_root: Path) -> None:
        self._workspace_root = workspace_root.resolve()
        self._lines: dict[str, list[str] | None] = {}

    def resolve(self, path: str) -> Path:
        """Resolve absolute paths as-is and relative paths against the workspace."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self._workspace_root / candidate

    async def read_line(self, path: str, line: int) -> str | None:
        lines = self._load(path)
        if lines is None or line < 0 or line >= len(lines):
            return None
        return lines[line]

    def clear(self) -> None:
        """Forget loaded file contents."""
        self._lines.clear()

    def _load(self, path: str) -> list[str] | None:
        if path in self._lines:
            return self._lines[path]
        resolved = self.resolve(path)
        if not resolved.is_file():
            lines = None
        else:
            lines = resolved.read_text(encoding="utf-8", errors="replace").splitlines()
        self._lines[path] = lines
        return lines
