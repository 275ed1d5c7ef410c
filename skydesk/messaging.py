import logging
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

logger = logging.getLogger(__name__)


class Mailer:
    """Transactional email through SendGrid."""

    def __init__(self, api_key: Optional[str], sender: Optional[str]):
        self.api_key = api_key
        self.sender = sender

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.sender)

    def _client(self) -> SendGridAPIClient:
        return SendGridAPIClient(self.api_key)

    def send(self, to_email: str, subject: str, html: str) -> bool:
        if not self.configured:
            logger.error("email to %s not sent: SendGrid API key or sender missing", to_email)
            return False

        message = Mail(
            from_email=self.sender,
            to_emails=to_email,
            subject=subject,
            html_content=html,
        )
        try:
            response = self._client().send(message)
        except Exception as e:
            logger.error("email to %s failed: %s", to_email, e)
            return False

        if not 200 <= response.status_code < 300:
            logger.error("email to %s rejected with status %s", to_email, response.status_code)
            return False
        logger.info("email sent to %s: %s", to_email, subject)
        return True


class SmsSender:
    """Optional SMS confirmations through Twilio."""

    def __init__(self, sid: Optional[str], token: Optional[str], from_phone: Optional[str]):
        self.sid = sid
        self.token = token
        self.from_phone = from_phone

    @property
    def configured(self) -> bool:
        return bool(self.sid and self.token and self.from_phone)

    def send(self, to_phone: Optional[str], body: str) -> bool:
        if not to_phone:
            return False
        if not self.configured:
            logger.info("SMS to %s skipped: Twilio is not configured", to_phone)
            return False
        try:
            client = Client(self.sid, self.token)
            client.messages.create(from_=self.from_phone, to=to_phone, body=body)
        except TwilioException as e:
            logger.error("SMS to %s failed: %s", to_phone, e)
            return False
        logger.info("SMS sent to %s", to_phone)
        return True
