"""
Pydantic models for escalation call logs, dashboard data and scan reports.
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.models.issue import Issue
from app.utils.firestore_helpers import to_utc_datetime


class EscalationLogEntry(BaseModel):
    """
    Immutable record of one escalation call.
    Expired by the store's TTL policy on expire_at, never edited.
    """
    id: Optional[str] = Field(None, description="Firestore document ID")
    issue_id: str
    call_sid: str = Field(..., description="Transport-assigned call identifier")
    call_sent_at: datetime
    status: str = Field(..., description="Issue status when the call was sent")
    expire_at: Optional[datetime] = Field(None, description="Retention deadline (TTL field)")

    class Config:
        extra = "ignore"

    @field_validator("call_sent_at", "expire_at", mode="before")
    @classmethod
    def _normalize_timestamps(cls, value):
        return to_utc_datetime(value)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "EscalationLogEntry":
        return cls(id=doc_id, **{k: v for k, v in data.items() if k != "id"})

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id"})


class EscalationDashboardSummary(BaseModel):
    """Admin dashboard rollup of escalation activity."""
    unviewed_high_severity_count: int
    unviewed_issues: List[Issue] = Field(default_factory=list)
    escalation_calls_last_24h: int
    calls_by_issue: Dict[str, int] = Field(default_factory=dict)
    recent_escalations: List[EscalationLogEntry] = Field(default_factory=list)


class EscalationCycleReport(BaseModel):
    """Outcome of one scheduler scan."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    candidates: int = 0
    escalated: int = 0
    failed: int = 0
    pending: int = Field(0, description="Calls still in flight after the call timeout")
    lost: int = Field(0, description="Calls placed after another scanner took over the lease")
    skipped: bool = False
    error: Optional[str] = None
