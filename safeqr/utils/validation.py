"""Input validation helpers shared by the auth and link services."""

from __future__ import annotations

import re
from urllib.parse import urlparse

__all__ = ["EMAIL_RE", "is_valid_email", "is_valid_url", "password_policy_errors"]

EMAIL_RE: re.Pattern[str] = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_SPECIAL_RE: re.Pattern[str] = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_RE.match(email.strip()) is not None


def is_valid_url(url: str) -> bool:
    """Accept absolute URLs with a scheme and a network location."""
    if not url or any(ch.isspace() for ch in url.strip()):
        return False
    parsed = urlparse(url.strip())
    return bool(parsed.scheme) and bool(parsed.netloc)


def password_policy_errors(password: str) -> list[str]:
    """Return every rule *password* breaks; empty when it is acceptable.

    Policy: at least 8 characters, one uppercase letter, one lowercase
    letter, one digit and one special character.
    """
    errors: list[str] = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters.")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter.")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter.")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one digit.")
    if not _SPECIAL_RE.search(password):
        errors.append("Password must contain at least one special character.")
    return errors
