"""Structured logging utilities."""

from .audit import AuditEvent, JsonlAuditLogger, error_code_for, sanitize_metadata, utc_timestamp

__all__ = ["AuditEvent", "JsonlAuditLogger", "error_code_for", "sanitize_metadata", "utc_timestamp"]
