"""
Notifier Base Interface.

Defines the contract for escalation notifiers (outbound phone calls).
All notifiers must implement this interface.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional
from datetime import datetime

from app.models.issue import Issue
from app.utils.firestore_helpers import utcnow


class CallResult:
    """
    Outcome of one call attempt.

    Either sent (call_sid + timestamp) or failed (error). Build it with
    CallResult.sent(...) / CallResult.failed(...).
    """

    def __init__(
        self,
        success: bool,
        call_sid: Optional[str] = None,
        timestamp: Optional[datetime] = None,
        error: Optional[str] = None
    ):
        self.success = success
        self.call_sid = call_sid
        self.timestamp = timestamp
        self.error = error

    @classmethod
    def sent(cls, call_sid: str, timestamp: Optional[datetime] = None) -> "CallResult":
        return cls(success=True, call_sid=call_sid, timestamp=timestamp or utcnow())

    @classmethod
    def failed(cls, reason: str) -> "CallResult":
        return cls(success=False, error=reason)

    def to_dict(self) -> Dict:
        if self.success:
            return {
                "success": True,
                "call_sid": self.call_sid,
                "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            }
        return {"success": False, "error": self.error}

    def __repr__(self) -> str:
        if self.success:
            return f"CallResult.sent({self.call_sid!r})"
        return f"CallResult.failed({self.error!r})"


class Notifier(ABC):
    """
    Abstract base class for escalation notifiers.

    The scheduler treats every notifier the same way, whether it places a
    real call or only simulates one.
    """

    @abstractmethod
    def is_live(self) -> bool:
        """
        Check if this notifier reaches a real telephony transport.

        Returns:
            True for live transports, False for demo/degraded mode
        """
        pass

    @abstractmethod
    def trigger(self, issue: Issue) -> CallResult:
        """
        Place exactly one outbound call about an overdue issue.

        This method MUST:
        - Return a CallResult even on failure
        - Never raise exceptions (catch and return CallResult.failed)
        - Bound its own network time

        Args:
            issue: The issue being escalated

        Returns:
            CallResult: sent or failed
        """
        pass


def build_voice_message(issue: Issue) -> str:
    """Spoken text for an escalation call."""
    return f"Issue number {issue.id} has not been reviewed. Please check the issue immediately."
