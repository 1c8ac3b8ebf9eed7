import threading
import time
from collections import deque
from datetime import datetime, timedelta, timezone

import pytest

from app.services.escalation.authorization import StaticAdminAuthorizer
from app.services.escalation.control import EscalationControlService
from app.services.escalation.memory_store import InMemoryEscalationLogStore, InMemoryIssueStore
from app.services.escalation.scheduler import EscalationScheduler
from app.services.notifier.base import CallResult, Notifier

# Fixed reference time for deterministic scans
T0 = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

ADMIN_ID = "admin-1"
RESIDENT_ID = "resident-7"


class FakeNotifier(Notifier):
    """Scripted notifier: returns queued results, then sent calls CA1, CA2, ..."""

    def __init__(self, results=None, delay: float = 0.0, live: bool = False):
        self.results = deque(results or [])
        self.delay = delay
        self.live = live
        self.calls = []
        self._lock = threading.Lock()

    def is_live(self) -> bool:
        return self.live

    def trigger(self, issue):
        with self._lock:
            self.calls.append(issue.id)
            count = len(self.calls)
            scripted = self.results.popleft() if self.results else None
        if self.delay:
            time.sleep(self.delay)
        if isinstance(scripted, Exception):
            raise scripted
        return scripted or CallResult.sent(f"CA{count}")


@pytest.fixture
def issue_store():
    return InMemoryIssueStore()


@pytest.fixture
def log_store():
    return InMemoryEscalationLogStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def authorizer():
    return StaticAdminAuthorizer([ADMIN_ID])


@pytest.fixture
def make_scheduler(issue_store, log_store):
    def _make(notifier, **kwargs):
        kwargs.setdefault("interval_seconds", 60.0)
        kwargs.setdefault("call_timeout_seconds", 5.0)
        kwargs.setdefault("claim_ttl_seconds", 300.0)
        return EscalationScheduler(issue_store, log_store, notifier, **kwargs)
    return _make


@pytest.fixture
def scheduler(make_scheduler, notifier):
    return make_scheduler(notifier)


@pytest.fixture
def control(issue_store, log_store, authorizer):
    return EscalationControlService(
        issue_store,
        log_store,
        authorizer,
        clock=lambda: T0 + timedelta(days=1),
    )
