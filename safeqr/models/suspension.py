"""
Suspension Models.

A suspension row is immutable once written: it is created by an admin
suspend action and removed either by an explicit lift or by the expiry
sweep.  Several rows per user are tolerated; readers resolve them by
"latest ``end_date`` wins".
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from pydantic import BaseModel, model_validator


class Suspension(BaseModel):
    """A time-bounded suspension of one account."""

    user_id: str
    start_date: datetime
    end_date: datetime

    model_config = {"from_attributes": True, "extra": "ignore"}

    @model_validator(mode="after")
    def _check_window(self) -> "Suspension":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be later than start_date")
        return self

    def is_active_at(self, now: datetime) -> bool:
        """``True`` while ``now`` is before the end of the suspension."""
        return self.end_date > now

    def remaining(self, now: datetime) -> timedelta:
        """Time left before expiry, never negative."""
        return max(self.end_date - now, timedelta(0))

    def days_left(self, now: datetime) -> int:
        """Whole days left, rounded up (what the lift dialog shows)."""
        seconds = self.remaining(now).total_seconds()
        return math.ceil(seconds / 86400) if seconds > 0 else 0


class ExpiredSuspension(BaseModel):
    """Reporting view of an expired suspension: one entry per user."""

    user_id: str
    end_date: datetime

    model_config = {"from_attributes": True, "extra": "ignore"}
