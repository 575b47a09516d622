"""Error types raised across the reference view core."""

from __future__ import annotations

from dataclasses import dataclass


class TreeBuildError(ValueError):
    """Raised when locations cannot be arranged into a consistent tree."""


class UnknownEventError(LookupError):
    """Raised when an event type has no registered handler."""


@dataclass(slots=True, frozen=True)
class MessageError(Exception):
    """Represents a malformed inbound host message."""

    code: str
    message: str
