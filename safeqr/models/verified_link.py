"""
Verified Link Model.

Curated URLs with an admin-assigned classification.  ``url`` is unique
at the store level (unique constraint on ``verified_links.url``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from safeqr.models.enums import SecurityStatus


class VerifiedLink(BaseModel):
    link_id: Optional[str] = None
    url: str
    security_status: SecurityStatus
    added_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}
