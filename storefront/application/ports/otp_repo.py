from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


@dataclass
class OTPChallengeDto:
    id: str
    phone: str
    code: str
    attempts: int
    is_consumed: bool
    issued_at: datetime
    expires_at: datetime


class OTPChallengeRepository(Protocol):
    def get_active(self, phone: str) -> Optional[OTPChallengeDto]:
        """Latest unconsumed challenge for the phone, expired or not."""
        ...

    def replace(self, phone: str, code: str, issued_at: datetime, expires_at: datetime) -> OTPChallengeDto:
        """Consume every open challenge for the phone and store a new one."""
        ...

    def record_failed_attempt(self, challenge_id: str) -> int:
        ...

    def consume(self, challenge_id: str) -> None:
        ...
