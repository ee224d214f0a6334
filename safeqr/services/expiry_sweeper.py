"""
Expiry Sweeper.

Makes expired suspensions invisible to subsequent reads by deleting them
before they can be queried as active.  There is no background worker:
every suspension read calls :meth:`ExpirySweeper.sweep` first, so stored
state is never stale by more than one query.

The sweep fails open.  A failed cleanup is logged and reported as
"nothing removed"; it never aborts the read that triggered it.
"""

from __future__ import annotations

from safeqr.errors import SweepError
from safeqr.logger import StructuredLogger
from safeqr.models.suspension import Suspension
from safeqr.repositories.suspension_repository import SuspensionRepository
from safeqr.services.base_service import BaseService
from safeqr.utils.clock import Clock, utcnow


class ExpirySweeper(BaseService):
    """Deletes suspension rows whose ``end_date`` has passed."""

    def __init__(
        self,
        repo: SuspensionRepository,
        logger: StructuredLogger,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._clock = clock

    def sweep(self) -> list[Suspension]:
        """Remove expired rows as of now and return them (empty on failure)."""
        now = self._clock()
        try:
            removed = self._repo.delete_expired(now)
        except SweepError as exc:
            self._logger.warning(
                "Suspension sweep failed; continuing with stored state: %s",
                exc,
                extra={"event": "SWEEP_FAILED"},
            )
            return []

        if removed:
            self._logger.info(
                "Swept %d expired suspension row(s).",
                len(removed),
                extra={
                    "event": "SWEEP",
                    "user_ids": ",".join(sorted({s.user_id for s in removed})),
                },
            )
        return removed

