"""
User Management Service.

Administrative account operations: listing, provisioning, profile edits,
deletion, and the suspend / lift actions of the user-management page.

Architectural notes:
    - Profile rows go through ``UserRepository``; suspension rows through
      ``SuspensionRepository`` and the lifecycle service.
    - Auth identities are created and removed with the Supabase Auth admin
      API on ``self._db.supabase`` (service-role client).
    - Creating an account is two writes (auth identity, profile row).  If
      the profile insert fails the identity is deleted again so that no
      login exists without a profile.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from safeqr.database import DatabaseManager
from safeqr.errors import (
    InvalidSuspensionError,
    PartialTransactionError,
    SafeQRError,
)
from safeqr.logger import StructuredLogger
from safeqr.models.enums import AccountStatus, UserRole
from safeqr.models.service_models import ServiceResult
from safeqr.models.suspension import Suspension
from safeqr.models.user import User
from safeqr.repositories.suspension_repository import SuspensionRepository
from safeqr.repositories.user_repository import UserRepository
from safeqr.services.base_service import BaseService
from safeqr.services.suspension_lifecycle import SuspensionLifecycleService
from safeqr.utils.audit import log_audit_event
from safeqr.utils.clock import Clock, utcnow
from safeqr.utils.validation import is_valid_email, password_policy_errors


def days_left(suspension: Optional[Suspension], now: datetime) -> int:
    """Whole days remaining on *suspension* (rounded up, never negative)."""
    if suspension is None:
        return 0
    return suspension.days_left(now)


class UserService(BaseService):
    """Service layer for admin user management operations."""

    def __init__(
        self,
        repo: UserRepository,
        suspension_repo: SuspensionRepository,
        lifecycle: SuspensionLifecycleService,
        db: DatabaseManager,
        logger: StructuredLogger,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._suspensions = suspension_repo
        self._lifecycle = lifecycle
        self._db = db
        self._clock = clock

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_users(self) -> ServiceResult[list[User]]:
        """All accounts, newest first; an unreachable store yields an empty list."""
        try:
            return ServiceResult(success=True, data=self._repo.get_all())
        except SafeQRError as exc:
            self._logger.error("Failed to fetch users: %s", exc)
            return ServiceResult(success=True, data=[])

    def get_user(self, user_id: str) -> ServiceResult[User]:
        try:
            user = self._repo.get_by_id(user_id)
        except SafeQRError as exc:
            return self._error_result(exc, "Fetching user")
        if user is None:
            return ServiceResult(success=False, error="User not found.", status_code=404)
        return ServiceResult(success=True, data=user)

    def get_user_details(self, user_id: str) -> ServiceResult[dict[str, Any]]:
        """Profile plus current suspension, as shown on the user detail page."""
        found = self.get_user(user_id)
        if not found.success or found.data is None:
            return ServiceResult(success=False, error=found.error, status_code=found.status_code)

        suspension = self._lifecycle.queries.fetch_suspension_by_user(user_id)
        now = self._clock()
        return ServiceResult(
            success=True,
            data={
                "user": found.data,
                "suspension": suspension,
                "is_suspended": suspension is not None and suspension.is_active_at(now),
                "days_left": days_left(suspension, now),
            },
        )

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def create_user(
        self,
        username: str,
        email: str,
        password: str,
        role: str,
        current_user: Optional[User],
    ) -> ServiceResult[User]:
        """Provision an auth identity and its ``users`` profile row."""
        denied = self._forbidden_unless_admin(current_user, "create users")
        if denied is not None:
            return denied

        # --- 1. Validate input ---
        username = (username or "").strip()
        email = (email or "").strip().lower()
        if not username:
            return ServiceResult(success=False, error="Username is required.", status_code=400)
        if not is_valid_email(email):
            return ServiceResult(success=False, error="Please provide a valid email address.", status_code=400)
        policy = password_policy_errors(password or "")
        if policy:
            return ServiceResult(success=False, error=" ".join(policy), status_code=400)
        try:
            validated_role = UserRole(role)
        except ValueError:
            return ServiceResult(
                success=False,
                error=f"Invalid role specified: '{role}'. "
                      f"Must be one of: {', '.join(r.value for r in UserRole)}.",
                status_code=400,
            )

        # --- 2. Auth identity ---
        try:
            response = self._db.supabase.auth.admin.create_user({
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"username": username},
            })
            auth_user_id: str = response.user.id
        except RuntimeError:
            self._logger.error("Supabase client not initialised for user creation.")
            return ServiceResult(success=False, error="Supabase credentials not configured.", status_code=503)
        except Exception as exc:
            self._logger.error("Auth identity creation failed for %s: %s", email, exc)
            status_code = 409 if "already" in str(exc).lower() else 500
            return ServiceResult(success=False, error=f"Could not create user: {exc}", status_code=status_code)

        # --- 3. Profile row (compensate on failure) ---
        try:
            created = self._repo.insert(
                User(
                    user_id=auth_user_id,
                    username=username,
                    email=email,
                    role=validated_role,
                    account_status=AccountStatus.ACTIVE,
                )
            )
        except SafeQRError as exc:
            self._delete_auth_identity(auth_user_id)
            return self._error_result(exc, "Creating user profile")

        # --- 4. Audit trail ---
        log_audit_event(
            logger=self._logger,
            action="CREATE_USER",
            entity_type="User",
            entity_id=created.user_id,
            user_id=current_user.user_id,
            details={"email": email, "role": str(validated_role)},
        )
        return ServiceResult(success=True, data=created, status_code=201)

    def update_user_profile(
        self,
        user_id: str,
        current_user: Optional[User],
        *,
        username: Optional[str] = None,
        email: Optional[str] = None,
        role: Optional[str] = None,
    ) -> ServiceResult[User]:
        denied = self._forbidden_unless_admin(current_user, "edit users")
        if denied is not None:
            return denied

        changes: dict[str, object] = {}
        if username is not None:
            if not username.strip():
                return ServiceResult(success=False, error="Username cannot be empty.", status_code=400)
            changes["username"] = username.strip()
        if email is not None:
            if not is_valid_email(email):
                return ServiceResult(success=False, error="Please provide a valid email address.", status_code=400)
            changes["email"] = email.strip().lower()
        if role is not None:
            try:
                changes["role"] = str(UserRole(role))
            except ValueError:
                return ServiceResult(success=False, error=f"Invalid role specified: '{role}'.", status_code=400)
        if not changes:
            return ServiceResult(success=False, error="No changes supplied.", status_code=400)

        try:
            updated = self._repo.update(user_id, changes)
        except SafeQRError as exc:
            return self._error_result(exc, "Updating user")

        log_audit_event(
            logger=self._logger,
            action="UPDATE_USER",
            entity_type="User",
            entity_id=user_id,
            user_id=current_user.user_id,
            details={key: str(value) for key, value in changes.items()},
        )
        return ServiceResult(success=True, data=updated)

    def delete_user(self, user_id: str, current_user: Optional[User]) -> ServiceResult[dict[str, str]]:
        """Remove suspension rows, the profile row, then the auth identity."""
        denied = self._forbidden_unless_admin(current_user, "delete users")
        if denied is not None:
            return denied
        if current_user.user_id == user_id:
            return ServiceResult(success=False, error="You cannot delete your own account.", status_code=400)

        try:
            self._suspensions.delete_by_user(user_id)
            removed = self._repo.delete(user_id)
        except SafeQRError as exc:
            return self._error_result(exc, "Deleting user")
        if not removed:
            return ServiceResult(success=False, error="User not found.", status_code=404)

        self._delete_auth_identity(user_id)

        log_audit_event(
            logger=self._logger,
            action="DELETE_USER",
            entity_type="User",
            entity_id=user_id,
            user_id=current_user.user_id,
        )
        return ServiceResult(success=True, data={"message": f"User {user_id} deleted."})

    # ------------------------------------------------------------------
    # Suspensions
    # ------------------------------------------------------------------

    def suspend_user(
        self,
        user_id: str,
        days: int,
        current_user: Optional[User],
    ) -> ServiceResult[Suspension]:
        denied = self._forbidden_unless_admin(current_user, "suspend users")
        if denied is not None:
            return denied
        try:
            suspension = self._lifecycle.suspend(user_id, days, performed_by=current_user.user_id)
        except InvalidSuspensionError as exc:
            return ServiceResult(success=False, error=str(exc), status_code=400)
        except PartialTransactionError as exc:
            return self._partial_result(exc)
        except SafeQRError as exc:
            return self._error_result(exc, "Suspending user")
        return ServiceResult(success=True, data=suspension, status_code=201)

    def lift_suspension(
        self,
        user_id: str,
        current_user: Optional[User],
        reason: Optional[str] = None,
    ) -> ServiceResult[dict[str, Any]]:
        denied = self._forbidden_unless_admin(current_user, "lift suspensions")
        if denied is not None:
            return denied
        try:
            removed = self._lifecycle.lift(user_id, reason, performed_by=current_user.user_id)
        except InvalidSuspensionError as exc:
            return ServiceResult(success=False, error=str(exc), status_code=400)
        except PartialTransactionError as exc:
            return self._partial_result(exc)
        except SafeQRError as exc:
            return self._error_result(exc, "Lifting suspension")
        return ServiceResult(success=True, data={"user_id": user_id, "rows_removed": removed})

    def user_suspension_status(self, user_id: str) -> ServiceResult[dict[str, Any]]:
        """Reconciled suspension state of one account."""
        try:
            suspended = self._lifecycle.reconcile(user_id)
        except SafeQRError as exc:
            return self._error_result(exc, "Reconciling suspension state")
        suspension = self._lifecycle.queries.fetch_suspension_by_user(user_id) if suspended else None
        return ServiceResult(
            success=True,
            data={
                "user_id": user_id,
                "is_suspended": suspended,
                "suspension": suspension,
                "days_left": days_left(suspension, self._clock()),
            },
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _partial_result(self, exc: PartialTransactionError) -> ServiceResult[Any]:
        state = "rolled back" if exc.rolled_back else "NOT rolled back; records may disagree"
        return ServiceResult(
            success=False,
            error=f"{exc.operation} of {exc.user_id} partially applied ({state}): {exc.message}",
            status_code=500,
        )

    def _delete_auth_identity(self, user_id: str) -> None:
        """Best-effort removal of an auth identity; failures are logged."""
        try:
            self._db.supabase.auth.admin.delete_user(user_id)
            self._logger.info("Auth identity removed: %s", user_id)
        except Exception as exc:
            self._logger.error("Failed to delete auth identity %s: %s", user_id, exc)
