"""
In-memory stores for USE_MOCK_DB mode and tests.

A single lock per store makes update_one atomic across the scheduler's
worker threads and FastAPI's threadpool.
"""

import copy
import threading
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.models.escalation import EscalationLogEntry
from app.models.issue import Issue, IssueStatus
from app.services.escalation.store import EscalationLogStore, IssueStore, matches
from app.utils.firestore_helpers import to_utc_datetime, utcnow


class InMemoryIssueStore(IssueStore):

    def __init__(self):
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def add(self, issue_id: Optional[str] = None, **fields) -> Issue:
        """Insert an issue document (issue CRUD lives outside this service)."""
        issue_id = issue_id or uuid.uuid4().hex
        document = {
            "status": IssueStatus.REPORTED.value,
            "created_at": utcnow(),
            "viewed_by_admin": False,
            "escalation_active": False,
            "last_reminder_sent": None,
        }
        document.update(fields)
        with self._lock:
            self._docs[issue_id] = document
        return Issue.from_document(issue_id, document)

    def set_status(self, issue_id: str, status: str) -> None:
        with self._lock:
            self._docs[issue_id]["status"] = status

    def find_candidates(self, status: str, created_before: datetime) -> List[Issue]:
        with self._lock:
            snapshot = [(doc_id, copy.deepcopy(doc)) for doc_id, doc in self._docs.items()]
        issues = [
            Issue.from_document(doc_id, doc)
            for doc_id, doc in snapshot
            if doc.get("status") == status
            and doc.get("last_reminder_sent") is None
            and to_utc_datetime(doc["created_at"]) <= created_before
        ]
        return [issue for issue in issues if not issue.escalation_gated]

    def get(self, issue_id: str) -> Optional[Issue]:
        with self._lock:
            doc = self._docs.get(issue_id)
            if doc is None:
                return None
            doc = copy.deepcopy(doc)
        return Issue.from_document(issue_id, doc)

    def update_one(self, issue_id: str, match: Dict[str, Any], set_fields: Dict[str, Any]) -> int:
        with self._lock:
            doc = self._docs.get(issue_id)
            if doc is None or not matches(doc, match):
                return 0
            doc.update(set_fields)
            return 1

    def find_unviewed_high_severity(self, min_severity: float) -> List[Issue]:
        with self._lock:
            snapshot = [(doc_id, copy.deepcopy(doc)) for doc_id, doc in self._docs.items()]
        return [
            Issue.from_document(doc_id, doc)
            for doc_id, doc in snapshot
            if (doc.get("severity_score") or 0) >= min_severity
            and not doc.get("viewed_by_admin")
        ]


class InMemoryEscalationLogStore(EscalationLogStore):
    """
    Log entries kept in insertion order.
    expire_at is recorded but not enforced; retention is a store-level policy.
    """

    def __init__(self):
        self._entries: List[EscalationLogEntry] = []
        self._lock = threading.Lock()

    def insert(self, entry: EscalationLogEntry) -> EscalationLogEntry:
        stored = entry.model_copy(update={"id": entry.id or uuid.uuid4().hex})
        with self._lock:
            self._entries.append(stored)
        return stored

    def find_by_issue(self, issue_id: str) -> List[EscalationLogEntry]:
        with self._lock:
            return [e for e in self._entries if e.issue_id == issue_id]

    def find_since(self, since: datetime) -> List[EscalationLogEntry]:
        with self._lock:
            return [e for e in self._entries if e.call_sent_at >= since]

    def all(self) -> List[EscalationLogEntry]:
        with self._lock:
            return list(self._entries)
