"""
User Model.

Pydantic model for a row of the Supabase ``users`` table.  The
``user_id`` is the Supabase Auth identity UUID.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from safeqr.models.enums import AccountStatus, UserRole


class User(BaseModel):
    """Represents an account managed from the dashboard."""

    user_id: str  # Supabase Auth UUID
    username: Optional[str] = None
    email: Optional[str] = None
    role: UserRole = UserRole.END_USER
    account_status: AccountStatus = AccountStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_suspended(self) -> bool:
        return self.account_status == AccountStatus.SUSPENDED
