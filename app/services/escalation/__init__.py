"""
Escalation core: evaluator, scheduler, admin controls and their stores.
"""

from app.services.escalation.control import (
    AdminAccessDenied,
    EscalationControlService,
    IssueNotFoundError,
)
from app.services.escalation.evaluator import EscalationEvaluator
from app.services.escalation.runtime import EscalationRuntime, build_escalation_runtime
from app.services.escalation.scheduler import RETRY_POLICY, EscalationScheduler

__all__ = [
    "AdminAccessDenied",
    "EscalationControlService",
    "EscalationEvaluator",
    "EscalationRuntime",
    "EscalationScheduler",
    "IssueNotFoundError",
    "RETRY_POLICY",
    "build_escalation_runtime",
]
