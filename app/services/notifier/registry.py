"""
Notifier Registry - selects the live or demo notifier from settings.
"""

import logging

from app.core.settings import Settings
from app.services.notifier.base import Notifier
from app.services.notifier.demo_notifier import DemoCallNotifier
from app.services.notifier.twilio_notifier import TwilioCallNotifier

logger = logging.getLogger(__name__)


def get_notifier(settings: Settings) -> Notifier:
    """
    Resolve the notifier for the given settings.

    Rules:
    - TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN set: live Twilio notifier.
      Missing phone numbers are reported per call, not here.
    - Otherwise: demo notifier (same contract, no network effect).
    """
    if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN:
        return TwilioCallNotifier(
            account_sid=settings.TWILIO_ACCOUNT_SID,
            auth_token=settings.TWILIO_AUTH_TOKEN,
            from_number=settings.TWILIO_PHONE_NUMBER,
            to_number=settings.ADMIN_PHONE_NUMBER,
            timeout_seconds=settings.ESCALATION_CALL_TIMEOUT_SECONDS,
        )

    logger.warning("⚠️ Twilio credentials missing. Running escalation calls in DEMO mode.")
    return DemoCallNotifier()
