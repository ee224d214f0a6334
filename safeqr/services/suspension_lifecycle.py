"""
Suspension Lifecycle Service.

State transitions for one account, ``active`` <-> ``suspended``:

- ``suspend(user, days)`` inserts a suspension row, then sets
  ``account_status = suspended``.
- ``lift(user, reason)`` deletes every suspension row, then sets
  ``account_status = active``.  Lifting an active account is a no-op
  success.
- ``reconcile(user)`` is the automatic path: after the sweep, an account
  still marked suspended without an active row is lifted (when auto-lift
  is enabled), and an account marked active that does hold an active row
  is marked suspended again.

The two writes of ``suspend`` / ``lift`` are not covered by a database
transaction.  When the status write fails the first write is compensated
and :class:`PartialTransactionError` is raised; ``rolled_back`` tells the
caller whether the compensation itself succeeded.  No automatic retry is
attempted.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

from safeqr.errors import (
    InvalidSuspensionError,
    NotFoundError,
    PartialTransactionError,
    ReadError,
    WriteError,
)
from safeqr.logger import StructuredLogger
from safeqr.models.enums import AccountStatus
from safeqr.models.suspension import Suspension
from safeqr.repositories.suspension_repository import SuspensionRepository
from safeqr.repositories.user_repository import UserRepository
from safeqr.services.base_service import BaseService
from safeqr.services.expiry_sweeper import ExpirySweeper
from safeqr.services.suspension_query import SuspensionQueryService
from safeqr.utils.audit import log_audit_event
from safeqr.utils.clock import Clock, utcnow

AUTO_LIFT_REASON: str = "Automatically lifted - suspension period expired"
SYSTEM_ACTOR: str = "system"


class SuspensionLifecycleService(BaseService):
    """Write side of the suspension lifecycle."""

    def __init__(
        self,
        suspension_repo: SuspensionRepository,
        user_repo: UserRepository,
        query_service: SuspensionQueryService,
        sweeper: ExpirySweeper,
        logger: StructuredLogger,
        clock: Clock = utcnow,
        auto_lift_enabled: bool = True,
    ) -> None:
        super().__init__(logger)
        self._suspensions = suspension_repo
        self._users = user_repo
        self._query = query_service
        self._sweeper = sweeper
        self._clock = clock
        self._auto_lift_enabled = auto_lift_enabled

    @property
    def queries(self) -> SuspensionQueryService:
        return self._query

    # ------------------------------------------------------------------
    # suspend
    # ------------------------------------------------------------------

    def suspend(self, user_id: str, days: int, *, performed_by: str = SYSTEM_ACTOR) -> Suspension:
        """Suspend *user_id* for *days* whole days starting now.

        Raises:
            InvalidSuspensionError: ``days`` is not an integer >= 1 or the
                user id is empty.  Nothing has been written.
            WriteError: The suspension row could not be inserted.  Nothing
                has been written.
            PartialTransactionError: The row was inserted but the account
                status could not be set.
        """
        self._require_user_id(user_id)
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise InvalidSuspensionError(
                f"Suspension length must be a whole number of days >= 1, got {days!r}."
            )

        start = self._clock()
        end = start + timedelta(days=days)
        suspension = self._suspensions.insert(user_id, start, end)

        try:
            self._users.update_status(user_id, AccountStatus.SUSPENDED)
        except (WriteError, NotFoundError) as exc:
            rolled_back = self._undo_insert(suspension)
            self._logger.error(
                "Suspension of %s half-applied (rolled_back=%s): %s",
                user_id,
                rolled_back,
                exc,
                extra={"event": "SUSPEND_PARTIAL", "user_id": user_id},
            )
            raise PartialTransactionError(
                f"Suspension row for {user_id} was written but the account "
                f"status could not be updated: {exc}",
                user_id=user_id,
                operation="suspend",
                rolled_back=rolled_back,
                original_error=exc,
            ) from exc

        log_audit_event(
            logger=self._logger,
            action="SUSPEND_USER",
            entity_type="User",
            entity_id=user_id,
            user_id=performed_by,
            details={
                "days": days,
                "start_date": suspension.start_date.isoformat(),
                "end_date": suspension.end_date.isoformat(),
            },
        )
        return suspension

    # ------------------------------------------------------------------
    # lift
    # ------------------------------------------------------------------

    def lift(
        self,
        user_id: str,
        reason: Optional[str] = None,
        *,
        performed_by: str = SYSTEM_ACTOR,
        automatic: bool = False,
    ) -> int:
        """Remove every suspension of *user_id* and mark the account active.

        ``reason`` is recorded in the audit trail only.  Returns the
        number of suspension rows removed (zero for an active account).

        Raises:
            WriteError: The rows could not be deleted.  Nothing changed.
            NotFoundError: No rows existed and no such account exists.
            PartialTransactionError: Rows were deleted but the account
                status could not be set.
        """
        self._require_user_id(user_id)

        snapshot: Optional[list[Suspension]]
        try:
            snapshot = self._suspensions.query_by_user(user_id)
        except ReadError as exc:
            self._logger.warning(
                "Could not snapshot suspensions of %s before lift; "
                "rollback will be unavailable: %s",
                user_id,
                exc,
            )
            snapshot = None

        removed = self._suspensions.delete_by_user(user_id)

        try:
            self._users.update_status(user_id, AccountStatus.ACTIVE)
        except NotFoundError:
            if removed == 0:
                raise
            self._raise_partial_lift(user_id, snapshot, NotFoundError(f"User {user_id} not found."))
        except WriteError as exc:
            self._raise_partial_lift(user_id, snapshot, exc)

        log_audit_event(
            logger=self._logger,
            action="AUTO_LIFT_SUSPENSION" if automatic else "LIFT_SUSPENSION",
            entity_type="User",
            entity_id=user_id,
            user_id=performed_by,
            details={"reason": reason, "rows_removed": removed},
        )
        return removed

    # ------------------------------------------------------------------
    # automatic path
    # ------------------------------------------------------------------

    def reconcile(self, user_id: str) -> bool:
        """Bring ``account_status`` in line with the suspension rows.

        Returns whether *user_id* is suspended after reconciliation.  When
        the store cannot be read nothing is written and the query
        service's failure posture is returned.
        """
        self._sweeper.sweep()
        now = self._clock()
        try:
            latest = self._suspensions.query_most_recent_by_user(user_id)
            user = self._users.get_by_id(user_id)
        except ReadError as exc:
            self._logger.warning("Reconciliation of %s skipped: %s", user_id, exc)
            return self._query.fail_closed

        active = latest is not None and latest.is_active_at(now)
        if user is None:
            return active

        if active and not user.is_suspended:
            self._users.update_status(user_id, AccountStatus.SUSPENDED)
            self._logger.warning(
                "Account %s held an active suspension while marked active; "
                "status restored to suspended.",
                user_id,
            )
        elif not active and user.is_suspended and self._auto_lift_enabled:
            self.lift(user_id, AUTO_LIFT_REASON, automatic=True)
        return active

    def auto_lift_expired(self) -> list[str]:
        """Lift every account marked suspended that has no active row left.

        Returns the ids of the accounts lifted.  Individual failures are
        logged and skipped so one bad row does not block the batch.
        """
        if not self._auto_lift_enabled:
            self._logger.info("Auto-lift disabled; skipping expired suspensions.")
            return []

        self._sweeper.sweep()
        now = self._clock()
        try:
            suspended = self._users.get_by_status(AccountStatus.SUSPENDED)
            still_active = {s.user_id for s in self._suspensions.query_active(now)}
        except ReadError as exc:
            self._logger.warning("Auto-lift pass skipped: %s", exc)
            return []

        lifted: list[str] = []
        for user in suspended:
            if user.user_id in still_active:
                continue
            try:
                self.lift(user.user_id, AUTO_LIFT_REASON, automatic=True)
            except (WriteError, NotFoundError) as exc:
                self._logger.error(
                    "Auto-lift failed for %s: %s", user.user_id, exc,
                )
                continue
            lifted.append(user.user_id)

        if lifted:
            self._logger.info(
                "Auto-lifted %d of %d suspended account(s).", len(lifted), len(suspended),
            )
        return lifted

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_user_id(user_id: str) -> None:
        if not isinstance(user_id, str) or not user_id.strip():
            raise InvalidSuspensionError("A user id is required.")

    def _undo_insert(self, suspension: Suspension) -> bool:
        try:
            self._suspensions.delete_exact(suspension)
        except WriteError as exc:
            self._logger.error(
                "Rollback of suspension row for %s failed: %s", suspension.user_id, exc,
            )
            return False
        return True

    def _raise_partial_lift(
        self,
        user_id: str,
        snapshot: Optional[list[Suspension]],
        exc: Exception,
    ) -> None:
        rolled_back = False
        if snapshot is not None:
            try:
                self._suspensions.insert_many(snapshot)
                rolled_back = True
            except WriteError as restore_exc:
                self._logger.error(
                    "Restoring suspension rows for %s failed: %s", user_id, restore_exc,
                )
        self._logger.error(
            "Lift of %s half-applied (rolled_back=%s): %s",
            user_id,
            rolled_back,
            exc,
            extra={"event": "LIFT_PARTIAL", "user_id": user_id},
        )
        raise PartialTransactionError(
            f"Suspension rows for {user_id} were removed but the account "
            f"status could not be updated: {exc}",
            user_id=user_id,
            operation="lift",
            rolled_back=rolled_back,
            original_error=exc,
        ) from exc
