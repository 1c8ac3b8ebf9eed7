"""
Persistence contracts consumed by the escalation core.

Two collections:
- issues: shared with the rest of the application; escalation owns a few fields
- escalation_logs: append-only call log, expired by a store-level TTL policy
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.models.escalation import EscalationLogEntry
from app.models.issue import Issue
from app.utils.firestore_helpers import to_utc_datetime

ISSUES_COLLECTION = "issues"
ESCALATION_LOGS_COLLECTION = "escalation_logs"


class IssueStore(ABC):
    """Issue reads and conditional single-document updates."""

    @abstractmethod
    def find_candidates(self, status: str, created_before: datetime) -> List[Issue]:
        """
        Issues with the given status, no last_reminder_sent,
        created_at <= created_before and not gated by an admin's viewed
        mark (see Issue.escalation_gated). Filtering happens in the store.
        """

    @abstractmethod
    def get(self, issue_id: str) -> Optional[Issue]:
        """Fetch one issue, or None if it does not exist."""

    @abstractmethod
    def update_one(self, issue_id: str, match: Dict[str, Any], set_fields: Dict[str, Any]) -> int:
        """
        Atomically set fields on one issue if every match condition holds.

        Match conditions are equalities; None matches a null or absent field.
        An empty match only requires the issue to exist.

        Returns:
            Number of updated documents (0 or 1)
        """

    @abstractmethod
    def find_unviewed_high_severity(self, min_severity: float) -> List[Issue]:
        """
        Issues with severity_score >= min_severity not yet viewed by an admin.
        A missing viewed_by_admin field counts as not viewed.
        """


class EscalationLogStore(ABC):
    """Append-only escalation call log."""

    @abstractmethod
    def insert(self, entry: EscalationLogEntry) -> EscalationLogEntry:
        """Append one entry; returns it with its store id."""

    @abstractmethod
    def find_by_issue(self, issue_id: str) -> List[EscalationLogEntry]:
        """All entries for one issue, in store order."""

    @abstractmethod
    def find_since(self, since: datetime) -> List[EscalationLogEntry]:
        """All entries with call_sent_at >= since, in store order."""


def _comparable(value: Any) -> Any:
    return to_utc_datetime(value) if isinstance(value, datetime) else value


def matches(document: Dict[str, Any], match: Dict[str, Any]) -> bool:
    """Evaluate an update_one match condition against a raw document."""
    return all(
        _comparable(document.get(field)) == _comparable(expected)
        for field, expected in match.items()
    )
