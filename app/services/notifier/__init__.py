"""
Escalation notifiers.

Live calls go through Twilio; without credentials the demo notifier
keeps the same contract with no network effect.
"""

from app.services.notifier.base import CallResult, Notifier
from app.services.notifier.demo_notifier import DEMO_CALL_SID, DemoCallNotifier
from app.services.notifier.twilio_notifier import TwilioCallNotifier
from app.services.notifier.registry import get_notifier

__all__ = [
    "CallResult",
    "Notifier",
    "DEMO_CALL_SID",
    "DemoCallNotifier",
    "TwilioCallNotifier",
    "get_notifier",
]
