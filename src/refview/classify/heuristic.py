"""Line-local read/write heuristic for Go-style source lines."""

from __future__ import annotations

import re
from dataclasses import dataclass

from refview.classify.base import DocumentReader
from refview.models import Classification, Location

_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_SYMBOL_BOUNDARY_TEMPLATE = r"(?<![A-Za-z0-9_$]){token}(?![A-Za-z0-9_$])"
# Assignment target tail: stops at the first `=` and never crosses a call,
# block, or statement separator. `==`, `!=`, `<=`, `>=` are comparisons;
# `<<=` and `>>=` are shift assignments.
_ASSIGNMENT_TAIL = r"[^=(){};]*?(?:(?:<<|>>)=|(?<![=!<>])(?::=|=))(?!=)"
_INC_DEC_TAIL = r"\s*(?:\+\+|--)"


@dataclass(slots=True, frozen=True)
class MaskRules:
    """Markers masked out of a single line before matching."""

    line_comment_prefixes: tuple[str, ...] = ("//",)
    block_comment_pairs: tuple[tuple[str, str], ...] = (("/*", "*/"),)
    string_delimiters: tuple[str, ...] = ('"', "'", "`")
    escape_char: str = "\\"


def mask_line(line: str, rules: MaskRules | None = None) -> str:
    """Blank out comments and string contents while preserving column offsets.

    String delimiters are kept, so `s := "a == b"` becomes `s := "      "`.
    """
    active = rules or MaskRules()
    chars = list(line)
    length = len(line)
    index = 0
    while index < length:
        prefix = _match_any(line, index, active.line_comment_prefixes)
        if prefix is not None:
            for offset in range(index, length):
                chars[offset] = " "
            break

        block = _match_block_start(line, index, active.block_comment_pairs)
        if block is not None:
            start_marker, end_marker = block
            close = line.find(end_marker, index + len(start_marker))
            stop = length if close < 0 else close + len(end_marker)
            for offset in range(index, stop):
                chars[offset] = " "
            index = stop
            continue

        delimiter = _match_any(line, index, active.string_delimiters)
        if delimiter is not None:
            cursor = index + len(delimiter)
            while cursor < length:
                if line.startswith(delimiter, cursor) and not _is_escaped(
                    line, cursor, active.escape_char, delimiter
                ):
                    break
                chars[cursor] = " "
                cursor += 1
            index = cursor + len(delimiter)
            continue

        index += 1
    return "".join(chars)


def symbol_text_for(location: Location, line_text: str) -> str:
    """Return the symbol text covered by a location on its start line."""
    start = location.range.start
    end = location.range.end
    if start.column >= len(line_text):
        return ""
    if end.line == start.line and end.column > start.column:
        return line_text[start.column : end.column]
    matched = _IDENTIFIER_PATTERN.match(line_text, start.column)
    if matched is None:
        return ""
    return matched.group(0)


def classify_line(location: Location, line_text: str, symbol_text: str) -> Classification:
    """Classify one occurrence using only the text of its line."""
    symbol = symbol_text.strip()
    if not symbol:
        return Classification.UNKNOWN

    masked = mask_line(line_text)
    token = _SYMBOL_BOUNDARY_TEMPLATE.format(token=re.escape(symbol))
    token_re = re.compile(token)
    column = location.range.start.column

    if line_text.startswith(symbol, column) and not masked.startswith(symbol, column):
        return Classification.TEXT

    anchor = column if token_re.match(masked, column) is not None else None
    if anchor is None:
        found = token_re.search(masked)
        if found is None:
            if token_re.search(line_text) is not None:
                return Classification.TEXT
            return Classification.READ
        anchor = found.start()

    if re.compile(token + _ASSIGNMENT_TAIL).match(masked, anchor) is not None:
        return Classification.WRITE
    if re.compile(token + _INC_DEC_TAIL).match(masked, anchor) is not None:
        return Classification.WRITE
    escaped = re.escape(symbol)
    self_append = _SYMBOL_BOUNDARY_TEMPLATE.format(
        token=rf"{escaped}\s*=\s*append\(\s*{escaped}"
    )
    if re.search(self_append, masked) is not None:
        return Classification.WRITE
    return Classification.READ


class HeuristicClassifier:
    """Classifier that reads the occurrence line and applies the line heuristic."""

    name = "heuristic"

    def __init__(self, reader: DocumentReader) -> None:
        self._reader = reader

    async def classify(self, location: Location) -> Classification:
        line_text = await self._reader.read_line(location.path, location.range.start.line)
        if line_text is None:
            return Classification.UNKNOWN
        return classify_line(location, line_text, symbol_text_for(location, line_text))


def _match_any(text: str, index: int, markers: tuple[str, ...]) -> str | None:
    for marker in markers:
        if marker and text.startswith(marker, index):
            return marker
    return None


def _match_block_start(
    text: str,
    index: int,
    pairs: tuple[tuple[str, str], ...],
) -> tuple[str, str] | None:
    for start, end in pairs:
        if start and end and text.startswith(start, index):
            return start, end
    return None


def _is_escaped(text: str, index: int, escape_char: str, delimiter: str) -> bool:
    # Go raw strings have no escapes.
    if delimiter == "`":
        return False
    backslashes = 0
    cursor = index - 1
    while cursor >= 0 and text[cursor] == escape_char:
        backslashes += 1
        cursor -= 1
    return backslashes % 2 == 1
