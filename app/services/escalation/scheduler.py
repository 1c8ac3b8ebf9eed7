"""
Escalation Scheduler - periodic scan that calls an admin about overdue issues.

Each scan:
1. Queries the issue store for candidates (filter pushed down to the store)
2. Re-checks every candidate with the evaluator
3. Claims the issue with a conditional write (lease token)
4. Places one call through the notifier, bounded by a per-call timeout
5. Sent: records escalation state (conditional on the lease) and appends a log entry
   Failed: releases the lease; the issue is retried on the next scan
   Timed out: the lease is kept until the call settles in the background

Retry policy is fixed-interval: no backoff, no dedup window beyond
last_reminder_sent. One scan at a time per scheduler; the lease keeps
separate schedulers (or processes) from calling the same issue twice.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional, Set

from app.models.escalation import EscalationCycleReport, EscalationLogEntry
from app.models.issue import Issue, IssueStatus
from app.services.escalation.evaluator import EscalationEvaluator
from app.services.escalation.store import EscalationLogStore, IssueStore
from app.services.notifier.base import CallResult, Notifier
from app.utils.firestore_helpers import utcnow

logger = logging.getLogger(__name__)

RETRY_POLICY = "fixed-interval"

# Per-issue outcomes of a scan
ESCALATED = "escalated"
FAILED = "failed"
PENDING = "pending"
LOST = "lost"


class EscalationScheduler:
    """
    Drives escalation scans on a fixed cadence.

    run_cycle() performs exactly one scan and can be called directly;
    start()/stop() manage the periodic background task.
    """

    def __init__(
        self,
        issue_store: IssueStore,
        log_store: EscalationLogStore,
        notifier: Notifier,
        evaluator: Optional[EscalationEvaluator] = None,
        interval_seconds: float = 60.0,
        call_timeout_seconds: float = 30.0,
        claim_ttl_seconds: float = 300.0,
        log_retention: timedelta = timedelta(days=90),
        clock: Callable[[], datetime] = utcnow
    ):
        if interval_seconds <= 0:
            raise ValueError("Escalation interval must be positive")
        if claim_ttl_seconds <= call_timeout_seconds:
            raise ValueError("Escalation claim TTL must exceed the call timeout")

        self.issue_store = issue_store
        self.log_store = log_store
        self.notifier = notifier
        self.evaluator = evaluator or EscalationEvaluator()
        self.interval_seconds = interval_seconds
        self.call_timeout_seconds = call_timeout_seconds
        self.claim_ttl = timedelta(seconds=claim_ttl_seconds)
        self.log_retention = log_retention
        self._clock = clock

        self.last_report: Optional[EscalationCycleReport] = None
        self._cycle_lock = asyncio.Lock()
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self._late_calls: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def calls_in_flight(self) -> int:
        """Timed-out calls still waiting for the transport to answer."""
        return len(self._late_calls)

    async def start(self) -> None:
        """Start periodic scans; the first scan runs immediately."""
        if self.is_running:
            logger.warning("[SCHEDULER] Escalation scheduler already running")
            return

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop(), name="escalation-scheduler")
        logger.info(
            f"[SCHEDULER] Escalation scheduler started "
            f"(every {self.interval_seconds:g}s, live calls: {self.notifier.is_live()})"
        )

    async def stop(self) -> None:
        """
        Cancel future scans. A scan already in flight is allowed to finish,
        and timed-out calls are waited for so their outcome gets recorded.
        """
        if self._task is not None:
            self._stop_event.set()
            await self._task
            self._task = None
            logger.info("[SCHEDULER] Escalation scheduler stopped")

        if self._late_calls:
            logger.info(f"[SCHEDULER] Waiting for {len(self._late_calls)} call(s) in flight")
            await asyncio.gather(*list(self._late_calls))

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            await self.run_cycle()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    async def run_cycle(self, now: Optional[datetime] = None) -> EscalationCycleReport:
        """
        Run one escalation scan.

        Never raises: store failures abort the scan and are recorded in the
        returned report.

        Args:
            now: Scan time (defaults to the scheduler clock)

        Returns:
            EscalationCycleReport for this scan
        """
        now = now or self._clock()
        report = EscalationCycleReport(started_at=now)

        if self._cycle_lock.locked():
            logger.warning("[ESCALATION CHECK] Previous scan still running, skipping this tick")
            report.skipped = True
            return report

        async with self._cycle_lock:
            logger.info(f"[ESCALATION CHECK] {now.isoformat()}")
            try:
                candidates = await asyncio.to_thread(
                    self.issue_store.find_candidates,
                    IssueStatus.REPORTED.value,
                    self.evaluator.candidate_cutoff(now),
                )
                report.candidates = len(candidates)
                logger.info(f"[ESCALATION] Found {len(candidates)} eligible issues")

                for issue in candidates:
                    outcome = await self._escalate(issue, now)
                    if outcome == ESCALATED:
                        report.escalated += 1
                    elif outcome == FAILED:
                        report.failed += 1
                    elif outcome == PENDING:
                        report.pending += 1
                    elif outcome == LOST:
                        report.lost += 1

            except Exception as e:
                logger.error(f"❌ Escalation check failed: {e}", exc_info=True)
                report.error = str(e)

            report.finished_at = self._clock()
            self.last_report = report
            logger.info(
                f"[ESCALATION CHECK COMPLETE] escalated={report.escalated} "
                f"failed={report.failed} pending={report.pending} lost={report.lost} "
                f"error={report.error is not None}"
            )

        return report

    async def _escalate(self, issue: Issue, now: datetime) -> Optional[str]:
        """
        Escalate one candidate.

        Returns:
            ESCALATED or FAILED once the call settled, PENDING if the call
            outlived the timeout, LOST if it was placed but the lease was
            taken over first, None if the issue was skipped
        """
        if not self.evaluator.is_eligible(issue, now):
            logger.debug(f"[ESCALATION SKIP] Issue {issue.id} no longer eligible")
            return None

        token = await self._claim(issue, now)
        if token is None:
            return None

        call = asyncio.ensure_future(asyncio.to_thread(self.notifier.trigger, issue))
        try:
            result = await asyncio.wait_for(asyncio.shield(call), timeout=self.call_timeout_seconds)
        except asyncio.TimeoutError:
            # The worker thread cannot be cancelled and may still place the call
            logger.warning(
                f"[ESCALATION] Call for issue {issue.id} still in flight after "
                f"{self.call_timeout_seconds:g}s; lease kept until it settles"
            )
            self._track_late_call(issue, token, now, call)
            return PENDING
        except Exception as e:
            result = CallResult.failed(str(e))

        return await self._record(issue, token, now, result)

    async def _record(self, issue: Issue, token: str, now: datetime, result: CallResult) -> str:
        """Apply a settled call result to the issue, conditional on our lease."""
        if not result.success:
            await asyncio.to_thread(
                self.issue_store.update_one,
                issue.id,
                {"escalation_claim": token},
                {"escalation_claim": None, "escalation_claimed_at": None},
            )
            logger.warning(
                f"[ESCALATION] Call failed for issue {issue.id}: {result.error} "
                f"(retry next scan, policy={RETRY_POLICY})"
            )
            return FAILED

        updated = await asyncio.to_thread(
            self.issue_store.update_one,
            issue.id,
            {"escalation_claim": token},
            {
                "escalation_active": True,
                "last_reminder_sent": now,
                "escalation_claim": None,
                "escalation_claimed_at": None,
            },
        )
        if not updated:
            logger.warning(
                f"[ESCALATION] Lease on issue {issue.id} was lost before call "
                f"{result.call_sid} could be recorded"
            )
            return LOST

        entry = EscalationLogEntry(
            issue_id=issue.id,
            call_sid=result.call_sid,
            call_sent_at=now,
            status=issue.status,
            expire_at=now + self.log_retention,
        )
        try:
            await asyncio.to_thread(self.log_store.insert, entry)
        except Exception as e:
            logger.error(f"Failed to append escalation log for issue {issue.id}: {e}")

        logger.info(f"🚨 Escalation triggered for issue {issue.id} (call {result.call_sid})")
        return ESCALATED

    def _track_late_call(self, issue: Issue, token: str, now: datetime, call: asyncio.Future) -> None:
        task = asyncio.create_task(self._settle_late_call(issue, token, now, call))
        self._late_calls.add(task)
        task.add_done_callback(self._late_calls.discard)

    async def _settle_late_call(self, issue: Issue, token: str, now: datetime, call: asyncio.Future) -> None:
        try:
            result = await call
        except Exception as e:
            result = CallResult.failed(str(e))

        try:
            outcome = await self._record(issue, token, now, result)
        except Exception as e:
            logger.error(f"Failed to record late call for issue {issue.id}: {e}", exc_info=True)
            return
        logger.info(f"[ESCALATION] Late call for issue {issue.id} settled: {outcome}")

    async def _claim(self, issue: Issue, now: datetime) -> Optional[str]:
        """Take the per-issue lease; None if another scanner holds a fresh one."""
        held_by = issue.escalation_claim
        if held_by is not None and not self._claim_is_stale(issue, now):
            logger.debug(f"[ESCALATION SKIP] Issue {issue.id} is being escalated elsewhere")
            return None

        # A viewed mark or reset since the scan read the issue voids the claim
        match = {
            "status": IssueStatus.REPORTED.value,
            "last_reminder_sent": None,
            "viewed_at": issue.viewed_at,
            "escalation_reset_at": issue.escalation_reset_at,
            "escalation_claim": held_by,
        }
        if issue.viewed_by_admin:
            match["viewed_by_admin"] = True

        token = uuid.uuid4().hex
        claimed = await asyncio.to_thread(
            self.issue_store.update_one,
            issue.id,
            match,
            {"escalation_claim": token, "escalation_claimed_at": now},
        )
        if not claimed:
            logger.debug(f"[ESCALATION SKIP] Issue {issue.id} changed before it could be claimed")
            return None
        if held_by is not None:
            logger.warning(f"[ESCALATION] Reclaimed stale lease on issue {issue.id}")
        return token

    def _claim_is_stale(self, issue: Issue, now: datetime) -> bool:
        if issue.escalation_claimed_at is None:
            return True
        return now - issue.escalation_claimed_at >= self.claim_ttl
