"""
Escalation Evaluator - pure eligibility rule for escalation calls.

Rule (all must hold):
1. status == "reported"
2. last_reminder_sent is not set
3. not marked viewed by an admin, unless a later reset re-armed it
4. issue age >= dwell time (inclusive boundary)

Depends only on the issue snapshot and the supplied clock value.
"""

from datetime import datetime, timedelta

from app.models.issue import Issue, IssueStatus

DEFAULT_DWELL = timedelta(minutes=5)


class EscalationEvaluator:
    """Decides whether an issue is overdue for an escalation call."""

    def __init__(self, dwell: timedelta = DEFAULT_DWELL):
        if dwell < timedelta(0):
            raise ValueError("Escalation dwell time cannot be negative")
        self.dwell = dwell

    def candidate_cutoff(self, now: datetime) -> datetime:
        """Latest created_at that satisfies the dwell condition at `now`."""
        return now - self.dwell

    def is_eligible(self, issue: Issue, now: datetime) -> bool:
        if issue.status != IssueStatus.REPORTED.value:
            return False
        if issue.last_reminder_sent is not None:
            return False
        if issue.escalation_gated:
            return False
        return issue.created_at <= self.candidate_cutoff(now)
