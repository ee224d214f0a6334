"""
Authentication Pipeline Models.

Pydantic models and enumerations for the auth request/response
contracts between ``AuthService`` and its callers.  Every auth operation
returns a structured, inspectable result rather than raw exceptions.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from safeqr.models.enums import UserRole


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class AuthErrorCode(StrEnum):
    """Enumeration of authentication error categories."""

    INVALID_CREDENTIALS = "invalid_credentials"
    ACCESS_DENIED = "access_denied"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    WEAK_PASSWORD = "weak_password"
    NETWORK_ERROR = "network_error"
    VALIDATION_ERROR = "validation_error"
    SESSION_EXPIRED = "session_expired"
    UNKNOWN_ERROR = "unknown_error"


# ---------------------------------------------------------------------------
# Supabase error-message mapping (matched case-insensitively)
# ---------------------------------------------------------------------------

SUPABASE_ERROR_MAP: dict[str, tuple[AuthErrorCode, str]] = {
    "invalid login credentials": (
        AuthErrorCode.INVALID_CREDENTIALS,
        "Incorrect email or password.",
    ),
    "invalid_credentials": (
        AuthErrorCode.INVALID_CREDENTIALS,
        "Incorrect email or password.",
    ),
    "invalid_grant": (
        AuthErrorCode.INVALID_CREDENTIALS,
        "Incorrect email or password.",
    ),
    "user already registered": (
        AuthErrorCode.EMAIL_ALREADY_EXISTS,
        "A user with this email already exists.",
    ),
    "email_exists": (
        AuthErrorCode.EMAIL_ALREADY_EXISTS,
        "A user with this email already exists.",
    ),
    "password should be at least": (
        AuthErrorCode.WEAK_PASSWORD,
        "Password does not meet requirements.",
    ),
    "invalid email": (
        AuthErrorCode.VALIDATION_ERROR,
        "Please provide a valid email address.",
    ),
    "database error saving new user": (
        AuthErrorCode.UNKNOWN_ERROR,
        "Database configuration issue detected. Please contact support.",
    ),
}


class ValidationResult(BaseModel):
    """Result of a single field validation check."""

    is_valid: bool
    error_message: Optional[str] = None


class AuthResult(BaseModel):
    """Unified response for login, logout and password operations.

    Attributes
    ----------
    success:
        ``True`` when the operation completed without error.
    error_code:
        Structured error category (``None`` on success).
    error_message:
        Human-readable error description (``None`` on success).
    user_id:
        The Supabase UUID of the authenticated user.
    email:
        The user's normalised email address.
    username:
        Display name from the ``users`` table.
    role:
        Application role of the user.
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    role: Optional[UserRole] = None
