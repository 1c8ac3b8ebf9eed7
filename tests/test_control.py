from datetime import timedelta

import pytest

from app.models.escalation import EscalationLogEntry
from app.services.escalation.control import (
    AdminAccessDenied,
    EscalationControlService,
    IssueNotFoundError,
)
from app.services.escalation.memory_store import InMemoryIssueStore

from tests.conftest import ADMIN_ID, RESIDENT_ID, T0


class CountingIssueStore(InMemoryIssueStore):

    def __init__(self):
        super().__init__()
        self.writes = 0

    def update_one(self, issue_id, match, set_fields):
        self.writes += 1
        return super().update_one(issue_id, match, set_fields)


def log_entry(issue_id, sent_at, call_sid="CA1"):
    return EscalationLogEntry(issue_id=issue_id, call_sid=call_sid, call_sent_at=sent_at, status="reported")


def test_mark_viewed_sets_flag(issue_store, control):
    issue_store.add("issue-1", created_at=T0)

    issue = control.mark_viewed(ADMIN_ID, "issue-1")

    assert issue.viewed_by_admin is True
    assert issue_store.get("issue-1").viewed_by_admin is True


def test_mark_viewed_twice_is_a_no_op(log_store, authorizer):
    store = CountingIssueStore()
    control = EscalationControlService(store, log_store, authorizer)
    store.add("issue-1", created_at=T0)

    first = control.mark_viewed(ADMIN_ID, "issue-1")
    second = control.mark_viewed(ADMIN_ID, "issue-1")

    assert store.writes == 1
    assert first == second


def test_mark_viewed_unknown_issue(control):
    with pytest.raises(IssueNotFoundError) as exc_info:
        control.mark_viewed(ADMIN_ID, "missing")
    assert exc_info.value.issue_id == "missing"


def test_non_admin_cannot_change_state(issue_store, control):
    issue_store.add("issue-1", created_at=T0, escalation_active=True, last_reminder_sent=T0)

    with pytest.raises(AdminAccessDenied):
        control.mark_viewed(RESIDENT_ID, "issue-1")
    with pytest.raises(AdminAccessDenied):
        control.reset_escalation(None, "issue-1")

    stored = issue_store.get("issue-1")
    assert stored.viewed_by_admin is False
    assert stored.last_reminder_sent == T0


def test_reset_clears_escalation_but_keeps_viewed_flag(issue_store, control):
    issue_store.add(
        "issue-1",
        created_at=T0,
        viewed_by_admin=True,
        escalation_active=True,
        last_reminder_sent=T0 + timedelta(minutes=5),
    )

    issue = control.reset_escalation(ADMIN_ID, "issue-1")

    assert issue.escalation_active is False
    assert issue.last_reminder_sent is None
    assert issue.viewed_by_admin is True


def test_mark_viewed_and_reset_stamp_their_times(issue_store, control):
    issue_store.add("issue-1", created_at=T0)

    viewed = control.mark_viewed(ADMIN_ID, "issue-1")
    assert viewed.viewed_at == T0 + timedelta(days=1)
    assert viewed.escalation_gated is True

    reset = control.reset_escalation(ADMIN_ID, "issue-1")
    assert reset.escalation_reset_at == T0 + timedelta(days=1)
    assert reset.escalation_gated is False


class SteppingClock:

    def __init__(self, start, step=timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


def test_marking_viewed_again_after_reset_blocks_escalation(log_store, authorizer):
    store = CountingIssueStore()
    control = EscalationControlService(store, log_store, authorizer, clock=SteppingClock(T0))
    store.add("issue-1", created_at=T0)

    control.mark_viewed(ADMIN_ID, "issue-1")
    control.reset_escalation(ADMIN_ID, "issue-1")
    issue = control.mark_viewed(ADMIN_ID, "issue-1")

    assert store.writes == 3
    assert issue.escalation_gated is True
    assert issue.viewed_at > issue.escalation_reset_at


def test_reset_unknown_issue(control):
    with pytest.raises(IssueNotFoundError):
        control.reset_escalation(ADMIN_ID, "missing")


def test_history_is_newest_first_and_scoped_to_issue(log_store, control):
    log_store.insert(log_entry("issue-1", T0, "CA-old"))
    log_store.insert(log_entry("issue-2", T0 + timedelta(minutes=1), "CA-other"))
    log_store.insert(log_entry("issue-1", T0 + timedelta(minutes=10), "CA-new"))

    history = control.get_history(ADMIN_ID, "issue-1")

    assert [e.call_sid for e in history] == ["CA-new", "CA-old"]


def test_history_requires_admin(control):
    with pytest.raises(AdminAccessDenied):
        control.get_history(RESIDENT_ID, "issue-1")


def test_dashboard_summary(issue_store, log_store, authorizer):
    now = T0 + timedelta(days=1)
    control = EscalationControlService(issue_store, log_store, authorizer, recent_limit=2, clock=lambda: now)
    issue_store.add("urgent", created_at=T0, severity_score=9)
    issue_store.add("urgent-seen", created_at=T0, severity_score=9.5, viewed_by_admin=True)
    issue_store.add("minor", created_at=T0, severity_score=5)
    issue_store.add("unscored", created_at=T0)
    log_store.insert(log_entry("urgent", now - timedelta(hours=3), "CA-a1"))
    log_store.insert(log_entry("urgent", now - timedelta(hours=1), "CA-a2"))
    log_store.insert(log_entry("minor", now - timedelta(hours=2), "CA-b1"))
    log_store.insert(log_entry("urgent", now - timedelta(hours=25), "CA-stale"))

    summary = control.get_dashboard_summary(ADMIN_ID)

    assert summary.unviewed_high_severity_count == 1
    assert [i.id for i in summary.unviewed_issues] == ["urgent"]
    assert summary.escalation_calls_last_24h == 3
    assert summary.calls_by_issue == {"urgent": 2, "minor": 1}
    assert [e.call_sid for e in summary.recent_escalations] == ["CA-a2", "CA-b1"]


def test_dashboard_requires_admin(control):
    with pytest.raises(AdminAccessDenied):
        control.get_dashboard_summary(RESIDENT_ID)
