"""
Demo Notifier - degraded mode when Twilio credentials are missing.

Always reports a sent call and never touches the network, so the
escalation flow behaves the same in local development and demos.
"""

import logging

from app.models.issue import Issue
from app.services.notifier.base import CallResult, Notifier, build_voice_message

logger = logging.getLogger(__name__)

DEMO_CALL_SID = "DEMO_CALL"


class DemoCallNotifier(Notifier):
    """Notifier that only logs the call it would have placed."""

    def is_live(self) -> bool:
        return False

    def trigger(self, issue: Issue) -> CallResult:
        logger.info(f"📞 [DEMO MODE] Would call admin for issue {issue.id}: {build_voice_message(issue)}")
        return CallResult.sent(DEMO_CALL_SID)
