"""
Suspension Query Service.

Answers "is this user suspended?" and "which suspensions are active or
expired?".  Every query runs the expiry sweep first.

Read failures degrade instead of propagating: listings become empty and
a status check falls back to the configured failure posture.  A lookup
that simply finds nothing always means *not suspended*.
"""

from __future__ import annotations

from typing import Optional

from safeqr.errors import ReadError
from safeqr.logger import StructuredLogger
from safeqr.models.suspension import ExpiredSuspension, Suspension
from safeqr.repositories.suspension_repository import SuspensionRepository
from safeqr.services.base_service import BaseService
from safeqr.services.expiry_sweeper import ExpirySweeper
from safeqr.utils.clock import Clock, utcnow


class SuspensionQueryService(BaseService):
    """Read side of the suspension lifecycle.

    Parameters
    ----------
    repo:
        Suspension row storage.
    sweeper:
        Expiry sweeper run before every query.
    logger:
        Structured logger.
    clock:
        Source of "now".
    fail_closed:
        Answer returned by :meth:`is_currently_suspended` when the store
        cannot be queried.  ``False`` (the default) restores access during
        an outage; ``True`` keeps accounts locked.
    """

    def __init__(
        self,
        repo: SuspensionRepository,
        sweeper: ExpirySweeper,
        logger: StructuredLogger,
        clock: Clock = utcnow,
        fail_closed: bool = False,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._sweeper = sweeper
        self._clock = clock
        self._fail_closed = fail_closed

    @property
    def fail_closed(self) -> bool:
        """Answer given for a status check the store cannot serve."""
        return self._fail_closed

    def is_currently_suspended(self, user_id: str) -> bool:
        self._sweeper.sweep()
        now = self._clock()
        try:
            latest = self._repo.query_most_recent_by_user(user_id)
        except ReadError as exc:
            self._logger.warning(
                "Suspension check for %s failed; answering %s: %s",
                user_id,
                "suspended" if self._fail_closed else "not suspended",
                exc,
                extra={
                    "event": "SUSPENSION_CHECK_FAILED",
                    "fail_open": str(not self._fail_closed),
                },
            )
            return self._fail_closed
        return latest is not None and latest.is_active_at(now)

    def get_active_suspensions(self) -> list[Suspension]:
        """Active rows ordered soonest-to-expire first."""
        self._sweeper.sweep()
        now = self._clock()
        try:
            rows = self._repo.query_active(now)
        except ReadError as exc:
            self._logger.warning("Could not list active suspensions: %s", exc)
            return []
        active = [row for row in rows if row.is_active_at(now)]
        return sorted(active, key=lambda s: s.end_date)

    def get_expired_suspensions(self) -> list[ExpiredSuspension]:
        """Expired rows, one per user, most recently expired first.

        The sweep normally removes these before the query runs, so this
        is usually empty; it surfaces rows that expired between the two.
        """
        self._sweeper.sweep()
        now = self._clock()
        try:
            return self._repo.query_expired(now)
        except ReadError as exc:
            self._logger.warning("Could not list expired suspensions: %s", exc)
            return []

    def fetch_suspension_by_user(self, user_id: str) -> Optional[Suspension]:
        self._sweeper.sweep()
        try:
            return self._repo.fetch_by_user(user_id)
        except ReadError as exc:
            self._logger.warning(
                "Could not fetch suspension for %s: %s", user_id, exc,
            )
            return None
