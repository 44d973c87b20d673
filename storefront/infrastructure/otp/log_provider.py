import logging
import uuid

from ...application.ports.otp_provider import OTPProvider

logger = logging.getLogger(__name__)


class LogOTPProvider(OTPProvider):
    """Development provider: writes the code to the log instead of sending an SMS."""

    def dispatch(self, phone: str, code: str) -> str:
        message_id = f"log-{uuid.uuid4().hex[:12]}"
        logger.warning(f"OTP for {phone[-4:].rjust(len(phone), '*')}: {code} ({message_id})")
        return message_id
