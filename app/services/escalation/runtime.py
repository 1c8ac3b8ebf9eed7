"""
Escalation runtime - builds the scheduler and control service from settings.

The FastAPI app keeps one runtime in app.state; tests build their own
with in-memory stores.
"""

from datetime import timedelta
from typing import Optional
import logging

from app.core.settings import Settings
from app.models.escalation import EscalationCycleReport
from app.services.escalation.authorization import (
    AdminAuthorizer,
    FirestoreAdminAuthorizer,
    StaticAdminAuthorizer,
)
from app.services.escalation.control import EscalationControlService
from app.services.escalation.evaluator import EscalationEvaluator
from app.services.escalation.memory_store import InMemoryEscalationLogStore, InMemoryIssueStore
from app.services.escalation.scheduler import EscalationScheduler
from app.services.escalation.store import EscalationLogStore, IssueStore
from app.services.notifier import Notifier, get_notifier

logger = logging.getLogger(__name__)


class EscalationRuntime:
    """Scheduler + control service sharing one pair of stores."""

    def __init__(self, scheduler: EscalationScheduler, control: EscalationControlService, enabled: bool = True):
        self.scheduler = scheduler
        self.control = control
        self.enabled = enabled

    async def start(self) -> None:
        if not self.enabled:
            logger.info("[SCHEDULER] Escalation disabled (ESCALATION_ENABLED=false)")
            return
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def trigger_check(self) -> EscalationCycleReport:
        """Run one scan now, outside the periodic schedule."""
        return await self.scheduler.run_cycle()


def build_escalation_runtime(
    settings: Settings,
    issue_store: Optional[IssueStore] = None,
    log_store: Optional[EscalationLogStore] = None,
    authorizer: Optional[AdminAuthorizer] = None,
    notifier: Optional[Notifier] = None
) -> EscalationRuntime:
    """
    Wire the escalation core.

    Stores default to Firestore, or to in-memory stores when USE_MOCK_DB is set.
    """
    if issue_store is None or log_store is None or authorizer is None:
        if settings.USE_MOCK_DB:
            logger.info("[ESCALATION] USING IN-MEMORY STORES")
            issue_store = issue_store or InMemoryIssueStore()
            log_store = log_store or InMemoryEscalationLogStore()
            authorizer = authorizer or StaticAdminAuthorizer(settings.admin_user_ids)
        else:
            from app.config.firebase import get_db
            from app.services.escalation.firestore_store import (
                FirestoreEscalationLogStore,
                FirestoreIssueStore,
            )

            db = get_db()
            issue_store = issue_store or FirestoreIssueStore(db)
            log_store = log_store or FirestoreEscalationLogStore(db)
            authorizer = authorizer or FirestoreAdminAuthorizer(db)

    scheduler = EscalationScheduler(
        issue_store=issue_store,
        log_store=log_store,
        notifier=notifier or get_notifier(settings),
        evaluator=EscalationEvaluator(dwell=timedelta(minutes=settings.ESCALATION_DWELL_MINUTES)),
        interval_seconds=settings.ESCALATION_INTERVAL_SECONDS,
        call_timeout_seconds=settings.ESCALATION_CALL_TIMEOUT_SECONDS,
        claim_ttl_seconds=settings.ESCALATION_CLAIM_TTL_SECONDS,
        log_retention=timedelta(days=settings.ESCALATION_LOG_RETENTION_DAYS),
    )
    control = EscalationControlService(
        issue_store=issue_store,
        log_store=log_store,
        authorizer=authorizer,
        high_severity_threshold=settings.ESCALATION_HIGH_SEVERITY_THRESHOLD,
        summary_window=timedelta(hours=settings.ESCALATION_SUMMARY_WINDOW_HOURS),
    )
    return EscalationRuntime(scheduler, control, enabled=settings.ESCALATION_ENABLED)
