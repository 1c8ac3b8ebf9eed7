"""
Escalation Control - admin operations on escalation state.

DESIGN PRINCIPLES:
- Every operation checks the admin role first
- mark_viewed owns viewed_by_admin / viewed_at; reset owns clearing the
  escalation fields and stamps escalation_reset_at
- Writes are single-document updates, safe to run while a scan is in flight
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, List, Optional
import logging

from app.models.escalation import EscalationDashboardSummary, EscalationLogEntry
from app.models.issue import Issue
from app.services.escalation.authorization import AdminAuthorizer
from app.services.escalation.store import EscalationLogStore, IssueStore
from app.utils.firestore_helpers import utcnow

logger = logging.getLogger(__name__)


class IssueNotFoundError(LookupError):
    """Raised when an operation references an issue that does not exist."""

    def __init__(self, issue_id: str):
        super().__init__(f"Issue {issue_id} not found")
        self.issue_id = issue_id


class AdminAccessDenied(PermissionError):
    """Raised when the caller is not an admin."""

    def __init__(self, caller_id: Optional[str]):
        super().__init__("Admin access required")
        self.caller_id = caller_id


class EscalationControlService:
    """
    Admin-facing escalation operations.

    Rules:
    - mark_viewed is idempotent (no write while the viewed mark already gates escalation)
    - reset re-arms the scheduler but leaves viewed_by_admin alone; a viewed
      mark older than the reset no longer gates calls
    - history and dashboard are read-only
    """

    def __init__(
        self,
        issue_store: IssueStore,
        log_store: EscalationLogStore,
        authorizer: AdminAuthorizer,
        high_severity_threshold: float = 8.0,
        summary_window: timedelta = timedelta(hours=24),
        recent_limit: int = 10,
        clock: Callable[[], datetime] = utcnow
    ):
        self.issue_store = issue_store
        self.log_store = log_store
        self.authorizer = authorizer
        self.high_severity_threshold = high_severity_threshold
        self.summary_window = summary_window
        self.recent_limit = recent_limit
        self._clock = clock

    def require_admin(self, caller_id: Optional[str]) -> None:
        if not self.authorizer.is_admin(caller_id):
            logger.warning(f"Escalation control denied for caller {caller_id}")
            raise AdminAccessDenied(caller_id)

    def _get_or_raise(self, issue_id: str) -> Issue:
        issue = self.issue_store.get(issue_id)
        if issue is None:
            raise IssueNotFoundError(issue_id)
        return issue

    def mark_viewed(self, caller_id: Optional[str], issue_id: str) -> Issue:
        """
        Mark an issue as viewed by an admin, stopping further escalation.

        Raises:
            AdminAccessDenied: caller is not an admin
            IssueNotFoundError: issue does not exist
        """
        self.require_admin(caller_id)
        issue = self._get_or_raise(issue_id)

        if issue.escalation_gated:
            logger.debug(f"Issue {issue_id} already viewed by admin")
            return issue

        updated = self.issue_store.update_one(
            issue_id,
            {},
            {"viewed_by_admin": True, "viewed_at": self._clock()},
        )
        if not updated:
            raise IssueNotFoundError(issue_id)

        logger.info(f"[ESCALATION] Issue {issue_id} viewed by admin {caller_id} - escalation will stop")
        return self._get_or_raise(issue_id)

    def reset_escalation(self, caller_id: Optional[str], issue_id: str) -> Issue:
        """
        Clear escalation_active and last_reminder_sent so the issue can be
        escalated again. viewed_by_admin is left unchanged; the reset time
        lifts the gate of any earlier viewed mark.

        Raises:
            AdminAccessDenied: caller is not an admin
            IssueNotFoundError: issue does not exist
        """
        self.require_admin(caller_id)
        self._get_or_raise(issue_id)

        updated = self.issue_store.update_one(
            issue_id,
            {},
            {
                "escalation_active": False,
                "last_reminder_sent": None,
                "escalation_reset_at": self._clock(),
            },
        )
        if not updated:
            raise IssueNotFoundError(issue_id)

        logger.info(f"[ESCALATION] Escalation reset for issue {issue_id} by admin {caller_id}")
        return self._get_or_raise(issue_id)

    def get_history(self, caller_id: Optional[str], issue_id: str) -> List[EscalationLogEntry]:
        """All escalation calls logged for an issue, newest first."""
        self.require_admin(caller_id)
        entries = self.log_store.find_by_issue(issue_id)
        return sorted(entries, key=lambda e: e.call_sent_at, reverse=True)

    def get_dashboard_summary(self, caller_id: Optional[str]) -> EscalationDashboardSummary:
        """Unviewed high-severity issues plus call activity in the trailing window."""
        self.require_admin(caller_id)

        unviewed = self.issue_store.find_unviewed_high_severity(self.high_severity_threshold)

        since = self._clock() - self.summary_window
        recent = sorted(
            self.log_store.find_since(since),
            key=lambda e: e.call_sent_at,
            reverse=True,
        )
        calls_by_issue = Counter(entry.issue_id for entry in recent)

        return EscalationDashboardSummary(
            unviewed_high_severity_count=len(unviewed),
            unviewed_issues=unviewed,
            escalation_calls_last_24h=len(recent),
            calls_by_issue=dict(calls_by_issue),
            recent_escalations=recent[:self.recent_limit],
        )
