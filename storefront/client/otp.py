import logging
import math
import re
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .api import StorefrontApi
from .errors import GENERIC_NETWORK_MESSAGE, ApiError, ResendThrottled, TransportError, ValidationError

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^\d{6}$")
DELIVERY_FAILED_MESSAGE = "We could not send the verification code. Please try again."


class OTPStatus(str, Enum):
    IDLE = "idle"
    SENT = "sent"
    VERIFIED = "verified"


class OTPVerifier:
    """Client half of mobile-number verification.

    A code can be re-requested only after the resend countdown runs out;
    early requests fail locally without touching the network.
    """

    def __init__(
        self,
        api: StorefrontApi,
        resend_seconds: int = 120,
        clock: Callable[[], float] = time.monotonic,
        on_verified: Optional[Callable[[Dict[str, Any]], None]] = None,
    ):
        self.api = api
        self.resend_seconds = resend_seconds
        self.clock = clock
        self.on_verified = on_verified
        self.status = OTPStatus.IDLE
        self.error: Optional[str] = None
        self._sent_at: Optional[float] = None

    def seconds_until_resend(self) -> int:
        if self.status is not OTPStatus.SENT or self._sent_at is None:
            return 0
        remaining = self._sent_at + self.resend_seconds - self.clock()
        return max(0, math.ceil(remaining))

    async def send_challenge(self, phone: str) -> OTPStatus:
        if self.status is OTPStatus.VERIFIED:
            return self.status
        remaining = self.seconds_until_resend()
        if remaining > 0:
            raise ResendThrottled(remaining)

        try:
            data = await self.api.send_otp(phone)
        except ApiError as e:
            self._fail_send(e.message if e.status < 500 else DELIVERY_FAILED_MESSAGE)
            raise
        except TransportError:
            self._fail_send(GENERIC_NETWORK_MESSAGE)
            raise

        self.status = OTPStatus.SENT
        self.error = None
        self._sent_at = self.clock()
        if data and data.get("resendIn"):
            self.resend_seconds = int(data["resendIn"])
        return self.status

    def _fail_send(self, message: str) -> None:
        self.status = OTPStatus.IDLE
        self._sent_at = None
        self.error = message

    async def verify(self, phone: str, code: str) -> bool:
        code = (code or "").strip()
        if not CODE_PATTERN.match(code):
            raise ValidationError("code", "Code must be exactly 6 digits")
        if self.status is not OTPStatus.SENT:
            raise ValidationError("code", "Request a verification code first")

        try:
            user = await self.api.verify_otp(phone, code)
        except ApiError as e:
            self.error = e.message
            return False
        except TransportError as e:
            self.error = e.message
            return False

        self.status = OTPStatus.VERIFIED
        self.error = None
        if self.on_verified is not None:
            self.on_verified(user)
        return True
