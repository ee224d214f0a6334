"""
Shared Enumerations for SafeQR Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents, so rows read
straight from Supabase (``"suspended"``) compare equal to the members.
"""

from __future__ import annotations

from enum import StrEnum


class UserRole(StrEnum):
    """Roles stored in the ``users`` table.  Only ``admin`` may log in."""

    ADMIN = "admin"
    END_USER = "end_user"


class AccountStatus(StrEnum):
    """Account state kept consistent with the ``suspensions`` table."""

    ACTIVE = "active"
    SUSPENDED = "suspended"


class SecurityStatus(StrEnum):
    """Classification of a verified link."""

    SAFE = "Safe"
    MALICIOUS = "Malicious"


class ScanSecurityStatus(StrEnum):
    """Classification attached to a QR scan by the mobile client."""

    SAFE = "Safe"
    MALICIOUS = "Malicious"
    UNKNOWN = "Unknown"


class ReportStatus(StrEnum):
    """Abuse-report workflow states."""

    PENDING = "Pending"
    CLOSED = "Closed"


class VerifyOutcome(StrEnum):
    """Result of verifying a reported scan into the verified-links list."""

    SUCCESS = "success"
    DUPLICATE = "duplicate"
    ERROR = "error"
