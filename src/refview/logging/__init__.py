"""Structured logging utilities."""

from .audit import AuditEvent, JsonlAuditLogger, sanitize_message, utc_timestamp

__all__ = ["AuditEvent", "JsonlAuditLogger", "sanitize_message", "utc_timestamp"]
