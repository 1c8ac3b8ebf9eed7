"""
Twilio Notifier - places real escalation voice calls to the on-duty admin.
"""

from typing import Optional
import logging

from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client
from twilio.twiml.voice_response import VoiceResponse

from app.models.issue import Issue
from app.services.notifier.base import CallResult, Notifier, build_voice_message

logger = logging.getLogger(__name__)


class TwilioCallNotifier(Notifier):
    """
    Live notifier backed by the Twilio Voice API.

    The call reads a short TwiML <Say> message; no webhook is needed.
    """

    VOICE = "alice"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: Optional[str],
        to_number: Optional[str],
        timeout_seconds: float = 10.0,
        client: Optional[Client] = None
    ):
        self.from_number = from_number
        self.to_number = to_number
        self.client = client or Client(
            account_sid,
            auth_token,
            http_client=TwilioHttpClient(timeout=timeout_seconds),
        )
        logger.info("Twilio client initialized")

    def is_live(self) -> bool:
        return True

    def build_twiml(self, issue: Issue) -> str:
        response = VoiceResponse()
        response.say(build_voice_message(issue), voice=self.VOICE)
        return str(response)

    def trigger(self, issue: Issue) -> CallResult:
        if not (self.from_number and self.to_number):
            logger.error("Voice call failed: Twilio phone numbers not configured")
            return CallResult.failed("Twilio phone numbers not configured")

        try:
            call = self.client.calls.create(
                twiml=self.build_twiml(issue),
                to=self.to_number,
                from_=self.from_number,
            )
        except Exception as e:
            logger.error(f"Voice call failed for issue {issue.id}: {e}")
            return CallResult.failed(str(e))

        logger.info(f"📞 Real call initiated for issue {issue.id} with SID: {call.sid}")
        return CallResult.sent(call.sid)
