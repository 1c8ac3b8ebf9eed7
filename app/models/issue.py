"""
Pydantic models for issue snapshots as seen by the escalation core.

Issues are created and edited elsewhere in the application; this service
only reads them and owns the escalation fields.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Any, Dict, Optional
from enum import Enum

from app.utils.firestore_helpers import to_utc_datetime


class IssueStatus(str, Enum):
    """
    Issue lifecycle as set by admins.
    Only REPORTED issues are escalation candidates.
    """
    REPORTED = "reported"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class Issue(BaseModel):
    """Issue document snapshot (escalation-relevant fields only)."""
    id: str = Field(..., description="Firestore document ID")
    title: Optional[str] = None
    status: str = Field(default=IssueStatus.REPORTED.value, description="Issue workflow status")
    severity_score: Optional[float] = Field(None, description="Upstream severity (0-10)")
    created_at: datetime = Field(..., description="When the issue was reported")
    # Escalation fields
    viewed_by_admin: bool = Field(default=False, description="Admin has seen the issue; stops escalation")
    viewed_at: Optional[datetime] = Field(default=None, description="When an admin last marked the issue viewed")
    escalation_active: bool = Field(default=False, description="At least one escalation call was sent")
    last_reminder_sent: Optional[datetime] = Field(default=None, description="When the last escalation call was sent")
    escalation_claim: Optional[str] = Field(default=None, description="Lease token of the scheduler calling right now")
    escalation_claimed_at: Optional[datetime] = Field(default=None, description="When the lease was taken")
    escalation_reset_at: Optional[datetime] = Field(default=None, description="When an admin last re-armed escalation")

    class Config:
        extra = "ignore"

    @field_validator(
        "created_at", "viewed_at", "last_reminder_sent", "escalation_claimed_at", "escalation_reset_at",
        mode="before"
    )
    @classmethod
    def _normalize_timestamps(cls, value):
        return to_utc_datetime(value)

    @field_validator("viewed_by_admin", "escalation_active", mode="before")
    @classmethod
    def _null_is_false(cls, value):
        return bool(value) if value is not None else False

    @property
    def escalation_gated(self) -> bool:
        """
        True while an admin's "viewed" mark blocks escalation calls.

        A reset re-arms the issue when it is at least as recent as the
        viewed mark. A viewed flag without a timestamp only yields to a reset.
        """
        if not self.viewed_by_admin:
            return False
        if self.escalation_reset_at is None:
            return True
        return self.viewed_at is not None and self.viewed_at > self.escalation_reset_at

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "Issue":
        return cls(id=doc_id, **{k: v for k, v in data.items() if k != "id"})
