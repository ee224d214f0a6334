"""
Authentication & Session State.

Provides an injectable ``SessionManager`` holding the signed-in admin
(``User`` model) and their Supabase tokens.  Admin-only service methods
receive the acting user explicitly (``current_user``), typically
``session.get_current_user()``.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from safeqr.models.user import User


class AuthenticationError(RuntimeError):
    """Raised when the session is read while nobody is signed in."""


class SessionManager:
    """Injectable holder for the current authenticated admin.

    Each instance maintains its own session state; pass a single
    ``SessionManager`` through the composition root so every component
    shares it.
    """

    def __init__(self) -> None:
        self._lock: threading.RLock = threading.RLock()
        self._current_user: Optional[User] = None
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._token_expiry: Optional[datetime] = None

    def set_current_user(self, user: User) -> None:
        """Record *user* as the authenticated session user."""
        with self._lock:
            self._current_user = user

    def get_current_user(self) -> User:
        """Return the authenticated user.

        Raises:
            AuthenticationError: If no user is currently authenticated.
        """
        with self._lock:
            if self._current_user is None:
                raise AuthenticationError(
                    "No user is currently authenticated. Login required."
                )
            return self._current_user

    def set_tokens(
        self,
        access_token: str,
        refresh_token: str,
        expires_at: Optional[int],
    ) -> None:
        """Store Supabase auth tokens.

        ``expires_at`` is the Unix timestamp (seconds) at which the access
        token expires.
        """
        with self._lock:
            self._access_token = access_token
            self._refresh_token = refresh_token
            self._token_expiry = (
                datetime.fromtimestamp(expires_at, tz=timezone.utc)
                if expires_at is not None
                else None
            )

    @property
    def access_token(self) -> Optional[str]:
        with self._lock:
            return self._access_token

    @property
    def refresh_token(self) -> Optional[str]:
        with self._lock:
            return self._refresh_token

    @property
    def is_token_expired(self) -> bool:
        """``True`` when the access token has expired or was never set."""
        with self._lock:
            if self._token_expiry is None:
                return True
            return datetime.now(timezone.utc) >= (self._token_expiry - timedelta(seconds=30))

    def clear(self) -> None:
        """Remove the current user and tokens, ending the session."""
        with self._lock:
            self._current_user = None
            self._access_token = None
            self._refresh_token = None
            self._token_expiry = None

    @property
    def is_authenticated(self) -> bool:
        with self._lock:
            return self._current_user is not None

    @property
    def is_admin(self) -> bool:
        with self._lock:
            return self._current_user is not None and self._current_user.is_admin
