from datetime import timedelta

from app.models.escalation import EscalationLogEntry
from app.services.escalation.store import matches

from tests.conftest import T0


def test_update_one_applies_only_when_match_holds(issue_store):
    issue_store.add("issue-1", created_at=T0)

    assert issue_store.update_one("issue-1", {"escalation_claim": "someone"}, {"escalation_claim": "me"}) == 0
    assert issue_store.update_one("issue-1", {"escalation_claim": None}, {"escalation_claim": "me"}) == 1
    assert issue_store.update_one("issue-1", {"escalation_claim": None}, {"escalation_claim": "you"}) == 0
    assert issue_store.get("issue-1").escalation_claim == "me"


def test_update_one_on_missing_issue(issue_store):
    assert issue_store.update_one("missing", {}, {"viewed_by_admin": True}) == 0


def test_none_matches_absent_field():
    assert matches({"status": "reported"}, {"last_reminder_sent": None}) is True
    assert matches({"last_reminder_sent": T0}, {"last_reminder_sent": None}) is False


def test_find_candidates_skips_reminded_issues(issue_store):
    issue_store.add("fresh", created_at=T0)
    issue_store.add("reminded", created_at=T0, escalation_active=True, last_reminder_sent=T0)

    found = issue_store.find_candidates("reported", T0 + timedelta(minutes=5))

    assert [i.id for i in found] == ["fresh"]


def test_log_store_assigns_ids_and_filters(log_store):
    stored = log_store.insert(
        EscalationLogEntry(issue_id="issue-1", call_sid="CA1", call_sent_at=T0, status="reported")
    )
    log_store.insert(
        EscalationLogEntry(issue_id="issue-2", call_sid="CA2", call_sent_at=T0 + timedelta(hours=2), status="reported")
    )

    assert stored.id
    assert [e.call_sid for e in log_store.find_since(T0 + timedelta(hours=1))] == ["CA2"]
    assert [e.call_sid for e in log_store.find_by_issue("issue-1")] == ["CA1"]


def test_find_candidates_skips_issues_gated_by_viewed_mark(issue_store):
    issue_store.add("viewed", created_at=T0, viewed_by_admin=True, viewed_at=T0 + timedelta(minutes=1))
    issue_store.add(
        "rearmed",
        created_at=T0,
        viewed_by_admin=True,
        viewed_at=T0 + timedelta(minutes=1),
        escalation_reset_at=T0 + timedelta(minutes=2),
    )

    found = issue_store.find_candidates("reported", T0 + timedelta(minutes=5))

    assert [i.id for i in found] == ["rearmed"]


def test_matches_compares_naive_and_aware_timestamps():
    naive = T0.replace(tzinfo=None)
    assert matches({"viewed_at": naive}, {"viewed_at": T0}) is True


def test_unviewed_includes_documents_without_viewed_flag(issue_store):
    issue_store.add("legacy", created_at=T0, severity_score=9)
    issue_store._docs["legacy"].pop("viewed_by_admin")

    found = issue_store.find_unviewed_high_severity(8)

    assert [i.id for i in found] == ["legacy"]
