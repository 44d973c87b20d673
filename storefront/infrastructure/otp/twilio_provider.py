from typing import Optional

from twilio.rest import Client
from twilio.http.http_client import TwilioHttpClient

from ...core.config import settings
from ...application.ports.otp_provider import OTPProvider

OTP_MESSAGE_TEMPLATE = "Your verification code is {code}. It expires in {minutes} minutes."


class TwilioOTPProvider(OTPProvider):
    def __init__(self, client: Optional[Client] = None, from_number: Optional[str] = None):
        self.client = client or Client(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            http_client=TwilioHttpClient(timeout=15),
        )
        self.from_number = from_number or settings.TWILIO_PHONE_NUMBER

    def dispatch(self, phone: str, code: str) -> str:
        if not self.from_number:
            raise RuntimeError("Twilio sender number not configured")
        message = self.client.messages.create(
            to=phone,
            from_=self.from_number,
            body=OTP_MESSAGE_TEMPLATE.format(code=code, minutes=max(1, settings.OTP_EXPIRY_SECONDS // 60)),
        )
        return message.sid
