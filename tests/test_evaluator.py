from datetime import datetime, timedelta

import pytest

from app.models.issue import Issue, IssueStatus
from app.services.escalation.evaluator import EscalationEvaluator

from tests.conftest import T0


def make_issue(**fields):
    fields.setdefault("id", "issue-1")
    fields.setdefault("created_at", T0)
    return Issue(**fields)


def test_issue_exactly_at_dwell_time_is_eligible():
    evaluator = EscalationEvaluator()
    issue = make_issue(created_at=T0 - timedelta(minutes=5))
    assert evaluator.is_eligible(issue, T0) is True


def test_issue_one_second_short_of_dwell_time_is_not_eligible():
    evaluator = EscalationEvaluator()
    issue = make_issue(created_at=T0 - timedelta(minutes=5) + timedelta(seconds=1))
    assert evaluator.is_eligible(issue, T0) is False


def test_issue_with_reminder_already_sent_is_not_eligible():
    evaluator = EscalationEvaluator()
    issue = make_issue(
        created_at=T0 - timedelta(hours=1),
        escalation_active=True,
        last_reminder_sent=T0 - timedelta(minutes=30),
    )
    assert evaluator.is_eligible(issue, T0) is False


@pytest.mark.parametrize("status", [
    IssueStatus.APPROVED.value,
    IssueStatus.IN_PROGRESS.value,
    IssueStatus.RESOLVED.value,
])
def test_only_reported_issues_are_eligible(status):
    evaluator = EscalationEvaluator()
    issue = make_issue(status=status, created_at=T0 - timedelta(hours=1))
    assert evaluator.is_eligible(issue, T0) is False


def test_viewed_issue_is_not_eligible_before_any_call():
    evaluator = EscalationEvaluator()
    issue = make_issue(
        created_at=T0 - timedelta(hours=1),
        viewed_by_admin=True,
        viewed_at=T0 - timedelta(minutes=58),
    )
    assert evaluator.is_eligible(issue, T0) is False


def test_reset_after_viewed_rearms_issue():
    evaluator = EscalationEvaluator()
    issue = make_issue(
        created_at=T0 - timedelta(hours=1),
        viewed_by_admin=True,
        viewed_at=T0 - timedelta(minutes=30),
        escalation_reset_at=T0 - timedelta(minutes=10),
    )
    assert evaluator.is_eligible(issue, T0) is True


def test_viewed_again_after_reset_blocks_escalation():
    evaluator = EscalationEvaluator()
    issue = make_issue(
        created_at=T0 - timedelta(hours=1),
        viewed_by_admin=True,
        viewed_at=T0 - timedelta(minutes=5),
        escalation_reset_at=T0 - timedelta(minutes=10),
    )
    assert evaluator.is_eligible(issue, T0) is False


def test_viewed_flag_without_timestamp_yields_only_to_reset():
    evaluator = EscalationEvaluator()
    viewed = make_issue(created_at=T0 - timedelta(hours=1), viewed_by_admin=True)
    reset = make_issue(
        created_at=T0 - timedelta(hours=1),
        viewed_by_admin=True,
        escalation_reset_at=T0 - timedelta(minutes=10),
    )
    assert evaluator.is_eligible(viewed, T0) is False
    assert evaluator.is_eligible(reset, T0) is True


def test_naive_timestamps_are_read_as_utc():
    evaluator = EscalationEvaluator()
    naive_created = datetime(2025, 3, 1, 11, 55, 0)
    issue = make_issue(created_at=naive_created)
    assert issue.created_at.tzinfo is not None
    assert evaluator.is_eligible(issue, T0) is True


def test_custom_dwell_and_cutoff():
    evaluator = EscalationEvaluator(dwell=timedelta(hours=72))
    assert evaluator.candidate_cutoff(T0) == T0 - timedelta(hours=72)
    assert evaluator.is_eligible(make_issue(created_at=T0 - timedelta(hours=71)), T0) is False


def test_negative_dwell_is_rejected():
    with pytest.raises(ValueError):
        EscalationEvaluator(dwell=timedelta(minutes=-1))
