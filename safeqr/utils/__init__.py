"""Shared utility functions and models for the SafeQR admin backend.

Convenience re-exports so consumers can import directly from
``safeqr.utils`` while full absolute imports remain supported.
"""

from safeqr.utils.audit import AuditEvent, log_audit_event
from safeqr.utils.clock import Clock, to_iso, utcnow
from safeqr.utils.validation import (
    is_valid_email,
    is_valid_url,
    password_policy_errors,
)

__all__ = [
    "AuditEvent",
    "Clock",
    "is_valid_email",
    "is_valid_url",
    "log_audit_event",
    "password_policy_errors",
    "to_iso",
    "utcnow",
]
