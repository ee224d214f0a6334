"""
Authentication Service.

Login, logout and password flows for the admin dashboard.  Only accounts
whose ``users.role`` is ``admin`` may hold a session: any other account
that authenticates successfully is signed straight back out.

Sign-in, sign-out and password changes run on the anon-key session client
held by ``DatabaseManager``; the role lookup runs through
``UserRepository`` on the service-role data client.

All methods return typed ``AuthResult`` or ``ValidationResult`` models so
callers never inspect raw exceptions.
"""

from __future__ import annotations

from typing import Optional

from safeqr.auth import SessionManager
from safeqr.database import DatabaseManager
from safeqr.errors import ReadError
from safeqr.logger import StructuredLogger
from safeqr.models.auth_models import (
    SUPABASE_ERROR_MAP,
    AuthErrorCode,
    AuthResult,
    ValidationResult,
)
from safeqr.models.user import User
from safeqr.repositories.user_repository import UserRepository
from safeqr.utils.validation import is_valid_email, password_policy_errors

_NETWORK_MESSAGE: str = "Cannot reach the server. Check your internet connection."


class AuthService:
    """Authentication pipeline for dashboard administrators.

    Parameters
    ----------
    db:
        Owner of the Supabase clients.
    session:
        Shared ``SessionManager`` updated on login and cleared on logout.
    user_repo:
        Source of the authoritative ``role`` for an authenticated identity.
    logger:
        Structured JSON logger.
    """

    def __init__(
        self,
        db: DatabaseManager,
        session: SessionManager,
        user_repo: UserRepository,
        logger: StructuredLogger,
    ) -> None:
        self._db: DatabaseManager = db
        self._session: SessionManager = session
        self._user_repo: UserRepository = user_repo
        self._logger: StructuredLogger = logger

    # ==================================================================
    # Validation helpers
    # ==================================================================

    @staticmethod
    def validate_email(email: str) -> ValidationResult:
        if not email or not email.strip():
            return ValidationResult(is_valid=False, error_message="Email address is required.")
        if not is_valid_email(email):
            return ValidationResult(
                is_valid=False,
                error_message="Please enter a valid email address.",
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_password(password: str) -> ValidationResult:
        """Enforce the password policy, reporting the first rule broken.

        Policy: minimum 8 characters, at least 1 uppercase letter,
        1 lowercase letter, 1 digit, and 1 special character.
        """
        errors = password_policy_errors(password or "")
        if errors:
            return ValidationResult(is_valid=False, error_message=errors[0])
        return ValidationResult(is_valid=True)

    @staticmethod
    def normalize_email(email: str) -> str:
        """Normalise an email address: strip whitespace and lowercase."""
        return email.strip().lower()

    # ==================================================================
    # Login
    # ==================================================================

    def login(self, email: str, password: str) -> AuthResult:
        """Authenticate an administrator.

        Returns
        -------
        AuthResult
            ``success=True`` with the admin's identity, or a structured
            error.  Non-admin accounts receive ``ACCESS_DENIED`` and are
            signed out again.
        """
        email_check = self.validate_email(email)
        if not email_check.is_valid:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.VALIDATION_ERROR,
                error_message=email_check.error_message,
            )
        if not password:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.VALIDATION_ERROR,
                error_message="Password is required.",
            )

        email = self.normalize_email(email)
        try:
            response = self._db.session_client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as exc:
            return self._classify_error(exc, event="LOGIN_FAILED")

        user_data = response.user
        session_data = response.session
        if user_data is None or session_data is None:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.INVALID_CREDENTIALS,
                error_message="Incorrect email or password.",
            )

        # The role comes from the users table, never from user_metadata.
        try:
            profile: Optional[User] = self._user_repo.get_by_id(user_data.id)
        except ReadError as exc:
            self._sign_out_quietly(email)
            self._logger.warning(
                "Role lookup failed for %s: %s", email, exc,
                extra={"event": "LOGIN_FAILED", "email": email},
            )
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.NETWORK_ERROR,
                error_message=_NETWORK_MESSAGE,
            )

        if profile is None or not profile.is_admin:
            self._sign_out_quietly(email)
            self._logger.warning(
                "Non-admin login rejected: %s", email,
                extra={"event": "LOGIN_DENIED", "email": email, "user_id": user_data.id},
            )
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.ACCESS_DENIED,
                error_message="Access denied. Administrator privileges are required.",
            )

        self._session.set_current_user(profile)
        self._session.set_tokens(
            access_token=session_data.access_token,
            refresh_token=session_data.refresh_token,
            expires_at=session_data.expires_at,
        )
        self._logger.info(
            "Admin authenticated: %s",
            profile.username or email,
            extra={"event": "LOGIN", "email": email, "user_id": profile.user_id},
        )
        return AuthResult(
            success=True,
            user_id=profile.user_id,
            email=profile.email or email,
            username=profile.username,
            role=profile.role,
        )

    # ==================================================================
    # Logout
    # ==================================================================

    def logout(self) -> None:
        """Server-side sign-out (best effort), then clear the session."""
        user_email = "unknown"
        user_id = "unknown"
        if self._session.is_authenticated:
            user = self._session.get_current_user()
            user_email = user.email or user.username
            user_id = user.user_id

        self._sign_out_quietly(user_email)
        self._session.clear()
        self._logger.info(
            "User logged out: %s",
            user_email,
            extra={"event": "LOGOUT", "email": user_email, "user_id": user_id},
        )

    # ==================================================================
    # Token refresh
    # ==================================================================

    def refresh_session_token(self) -> AuthResult:
        """Refresh the access token when it has expired.

        Network failures are ignored (retry on the next call); any other
        failure means the refresh token is no longer valid and the
        session is reported as expired.
        """
        if not self._session.is_authenticated or not self._session.is_token_expired:
            return AuthResult(success=True)

        refresh_token = self._session.refresh_token
        if not refresh_token:
            return AuthResult(success=True)

        try:
            response = self._db.session_client.auth.refresh_session(refresh_token)
        except (ConnectionError, TimeoutError):
            self._logger.debug("Network error during token refresh; will retry.")
            return AuthResult(success=True)
        except Exception as exc:
            self._logger.warning(
                "Token refresh failed: %s. Forcing logout.", exc,
                extra={"event": "SESSION_EXPIRED"},
            )
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.SESSION_EXPIRED,
                error_message="Your session has expired. Please sign in again.",
            )

        new_session = response.session
        if new_session is not None:
            self._session.set_tokens(
                access_token=new_session.access_token,
                refresh_token=new_session.refresh_token,
                expires_at=new_session.expires_at,
            )
            self._logger.info("Session token refreshed.")
        return AuthResult(success=True)

    # ==================================================================
    # Passwords
    # ==================================================================

    def request_password_reset(self, email: str) -> AuthResult:
        """Send a password-reset email.

        Always answers with the same success message whether or not the
        address is registered.
        """
        email_check = self.validate_email(email)
        if not email_check.is_valid:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.VALIDATION_ERROR,
                error_message=email_check.error_message,
            )

        email = self.normalize_email(email)
        try:
            self._db.session_client.auth.reset_password_for_email(email)
            self._logger.info(
                "Password reset requested for %s.", email,
                extra={"event": "PASSWORD_RESET_REQUESTED", "email": email},
            )
        except (ConnectionError, TimeoutError, RuntimeError):
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.NETWORK_ERROR,
                error_message=_NETWORK_MESSAGE,
            )
        except Exception as exc:
            self._logger.warning("Password reset error for %s: %s", email, exc)

        return AuthResult(
            success=True,
            error_message=(
                "If this email is registered, you will receive "
                "a password reset link."
            ),
        )

    def update_password(self, new_password: str) -> AuthResult:
        """Change the signed-in admin's password."""
        check = self.validate_password(new_password)
        if not check.is_valid:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.WEAK_PASSWORD,
                error_message=check.error_message,
            )
        if not self._session.is_authenticated:
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.SESSION_EXPIRED,
                error_message="Please sign in again before changing your password.",
            )

        try:
            self._db.session_client.auth.update_user({"password": new_password})
        except Exception as exc:
            return self._classify_error(exc, event="PASSWORD_UPDATE_FAILED")

        user = self._session.get_current_user()
        self._logger.info(
            "Password updated for %s.", user.email,
            extra={"event": "PASSWORD_UPDATED", "user_id": user.user_id},
        )
        return AuthResult(success=True, user_id=user.user_id, email=user.email)

    # ==================================================================
    # Private helpers
    # ==================================================================

    def _sign_out_quietly(self, email: str) -> None:
        try:
            self._db.session_client.auth.sign_out()
        except RuntimeError:
            self._logger.debug("Offline; skipping server-side sign_out for %s.", email)
        except Exception as exc:
            self._logger.warning("Server-side sign_out failed for %s: %s", email, exc)

    def _classify_error(self, exc: Exception, *, event: str) -> AuthResult:
        """Map a Supabase or network exception to a structured ``AuthResult``."""
        if isinstance(exc, (ConnectionError, TimeoutError, RuntimeError)):
            self._logger.warning(
                "Network error during auth call: %s", exc,
                extra={"event": event, "error_code": str(AuthErrorCode.NETWORK_ERROR)},
            )
            return AuthResult(
                success=False,
                error_code=AuthErrorCode.NETWORK_ERROR,
                error_message=_NETWORK_MESSAGE,
            )

        error_str = str(exc).lower()
        for code_key, (error_code, human_message) in SUPABASE_ERROR_MAP.items():
            if code_key in error_str:
                self._logger.warning(
                    "Auth error (%s): %s", code_key, exc,
                    extra={"event": event, "error_code": code_key},
                )
                return AuthResult(
                    success=False,
                    error_code=error_code,
                    error_message=human_message,
                )

        self._logger.warning(
            "Unknown auth error: %s", exc,
            extra={"event": event, "error_code": "unknown"},
        )
        return AuthResult(
            success=False,
            error_code=AuthErrorCode.UNKNOWN_ERROR,
            error_message="An unexpected error occurred. Please try again later.",
        )
