"""Server side of phone-ownership verification.

One challenge is active per phone. A new challenge replaces the old one,
and cannot be requested until the resend window has passed.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional
import hmac
import logging
import re
import secrets

from ...core.clock import utcnow
from ...core.exceptions import DeliveryError, ForbiddenError, ResendThrottled, ValidationError
from ..ports.otp_provider import OTPProvider
from ..ports.otp_repo import OTPChallengeRepository, OTPChallengeDto
from ..ports.user_repo import UserRepository, UserDto
from ..ports.audit_logger import AuditLogger

logger = logging.getLogger(__name__)

OTP_CODE_PATTERN = re.compile(r"^\d{6}$")


def generate_otp(length: int = 6) -> str:
    """Generate a cryptographically secure numeric code."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


@dataclass
class OTPService:
    user_repo: UserRepository
    challenges: OTPChallengeRepository
    provider: OTPProvider
    expiry_seconds: int = 120
    resend_seconds: int = 120
    max_attempts: int = 5
    audit: Optional[AuditLogger] = None
    now: Callable[[], datetime] = field(default=utcnow)
    code_factory: Callable[[], str] = field(default=generate_otp)

    def _owned_user(self, user_id: str, phone: str) -> UserDto:
        user = self.user_repo.get_by_id(user_id)
        if user is None or user.phone != phone:
            raise ForbiddenError("Phone number does not belong to this account")
        return user

    def send_challenge(self, user_id: str, phone: str) -> OTPChallengeDto:
        user = self._owned_user(user_id, phone)
        now = self.now()

        active = self.challenges.get_active(phone)
        if active is not None:
            resend_at = active.issued_at + timedelta(seconds=self.resend_seconds)
            if now < resend_at:
                raise ResendThrottled(retry_after=max(1, int((resend_at - now).total_seconds())))

        challenge = self.challenges.replace(
            phone,
            self.code_factory(),
            issued_at=now,
            expires_at=now + timedelta(seconds=self.expiry_seconds),
        )
        try:
            message_id = self.provider.dispatch(phone, challenge.code)
        except Exception as e:
            logger.error(f"OTP dispatch failed: {e}")
            # An undelivered code must not block the next send
            self.challenges.consume(challenge.id)
            self._audit("otp_send", user, success=False, reason="dispatch_failed")
            raise DeliveryError()

        self._audit("otp_send", user, details={"message_id": message_id})
        return challenge

    def verify(self, user_id: str, phone: str, code: str) -> UserDto:
        if not OTP_CODE_PATTERN.match(code or ""):
            raise ValidationError.for_field("code", "Code must be exactly 6 digits")
        user = self._owned_user(user_id, phone)

        challenge = self.challenges.get_active(phone)
        if challenge is None or challenge.expires_at <= self.now():
            self._audit("otp_verify", user, success=False, reason="no_active_challenge")
            raise ValidationError.for_field("code", "Code has expired. Please request a new one")

        if not hmac.compare_digest(challenge.code, code):
            attempts = self.challenges.record_failed_attempt(challenge.id)
            if self.max_attempts and attempts >= self.max_attempts:
                self.challenges.consume(challenge.id)
                self._audit("otp_verify", user, success=False, reason="attempts_exhausted")
                raise ValidationError.for_field("code", "Too many incorrect attempts. Please request a new code")
            self._audit("otp_verify", user, success=False, reason="wrong_code")
            raise ValidationError.for_field("code", "Incorrect code")

        self.challenges.consume(challenge.id)
        verified = self.user_repo.mark_mobile_verified(user.id) or user
        self._audit("otp_verify", verified)
        return verified

    def _audit(self, action: str, user: UserDto, success: bool = True, reason: Optional[str] = None, details: Optional[dict] = None) -> None:
        if self.audit is None:
            return
        payload = dict(details or {})
        if reason:
            payload["reason"] = reason
        self.audit.log(action, user.phone, user_id=user.id, success=success, details=payload or None)
