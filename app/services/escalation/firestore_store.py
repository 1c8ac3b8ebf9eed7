"""
Firestore-backed escalation stores.

Indexes / policies expected in the project (see scripts/migrate_escalation.py):
- composite index on issues(status, last_reminder_sent, created_at)
- TTL policy on escalation_logs.expire_at
"""

from firebase_admin import firestore
from pydantic import ValidationError
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from app.models.escalation import EscalationLogEntry
from app.models.issue import Issue
from app.services.escalation.store import (
    ESCALATION_LOGS_COLLECTION,
    ISSUES_COLLECTION,
    EscalationLogStore,
    IssueStore,
    matches,
)
from app.utils.firestore_helpers import where_filter

logger = logging.getLogger(__name__)


@firestore.transactional
def _conditional_update(transaction, doc_ref, match: Dict[str, Any], set_fields: Dict[str, Any]) -> int:
    snapshot = doc_ref.get(transaction=transaction)
    if not snapshot.exists:
        return 0
    if not matches(snapshot.to_dict() or {}, match):
        return 0
    transaction.update(doc_ref, set_fields)
    return 1


def _parse_issues(docs) -> List[Issue]:
    """Convert query results, skipping documents that are not valid issues."""
    issues = []
    for doc in docs:
        try:
            issues.append(Issue.from_document(doc.id, doc.to_dict()))
        except ValidationError as e:
            logger.warning(f"Skipping malformed issue {doc.id}: {e.error_count()} invalid field(s)")
    return issues


class FirestoreIssueStore(IssueStore):
    """
    Issue store over the shared `issues` collection.

    Firestore cannot filter on a missing field, so escalation candidates
    must carry an explicit last_reminder_sent = null.
    """

    def __init__(self, db):
        self.db = db
        self.collection = db.collection(ISSUES_COLLECTION)

    def find_candidates(self, status: str, created_before: datetime) -> List[Issue]:
        query = where_filter(self.collection, "status", "==", status)
        query = where_filter(query, "last_reminder_sent", "==", None)
        query = where_filter(query, "created_at", "<=", created_before)
        # Comparing viewed_at with escalation_reset_at is not expressible as a query
        return [issue for issue in _parse_issues(query.stream()) if not issue.escalation_gated]

    def get(self, issue_id: str) -> Optional[Issue]:
        doc = self.collection.document(issue_id).get()
        if not doc.exists:
            return None
        return Issue.from_document(doc.id, doc.to_dict())

    def update_one(self, issue_id: str, match: Dict[str, Any], set_fields: Dict[str, Any]) -> int:
        doc_ref = self.collection.document(issue_id)
        updated = _conditional_update(self.db.transaction(), doc_ref, match, set_fields)
        logger.debug(f"Conditional update on issue {issue_id}: match={match} updated={updated}")
        return updated

    def find_unviewed_high_severity(self, min_severity: float) -> List[Issue]:
        # Inequality and "==" queries both skip documents without viewed_by_admin
        query = where_filter(self.collection, "severity_score", ">=", min_severity)
        return [issue for issue in _parse_issues(query.stream()) if not issue.viewed_by_admin]


class FirestoreEscalationLogStore(EscalationLogStore):
    """Append-only log over the `escalation_logs` collection."""

    def __init__(self, db):
        self.db = db
        self.collection = db.collection(ESCALATION_LOGS_COLLECTION)

    def insert(self, entry: EscalationLogEntry) -> EscalationLogEntry:
        doc_ref = self.collection.document()
        doc_ref.set(entry.to_document())
        return entry.model_copy(update={"id": doc_ref.id})

    def find_by_issue(self, issue_id: str) -> List[EscalationLogEntry]:
        query = where_filter(self.collection, "issue_id", "==", issue_id)
        return [EscalationLogEntry.from_document(doc.id, doc.to_dict()) for doc in query.stream()]

    def find_since(self, since: datetime) -> List[EscalationLogEntry]:
        query = where_filter(self.collection, "call_sent_at", ">=", since)
        query = query.order_by("call_sent_at", direction=firestore.Query.DESCENDING)
        return [EscalationLogEntry.from_document(doc.id, doc.to_dict()) for doc in query.stream()]
