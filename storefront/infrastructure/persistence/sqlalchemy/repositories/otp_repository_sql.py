from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from .....core.clock import as_utc
from .....db.models import OTPChallenge
from .....application.ports.otp_repo import OTPChallengeRepository, OTPChallengeDto


class SqlOTPChallengeRepository(OTPChallengeRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, rec: OTPChallenge) -> OTPChallengeDto:
        return OTPChallengeDto(
            id=rec.id,
            phone=rec.phone,
            code=rec.code,
            attempts=rec.attempts,
            is_consumed=rec.is_consumed,
            issued_at=as_utc(rec.issued_at),
            expires_at=as_utc(rec.expires_at),
        )

    def _open(self, phone: str):
        return self.session.exec(
            select(OTPChallenge)
            .where(OTPChallenge.phone == phone, OTPChallenge.is_consumed == False)  # noqa: E712
            .order_by(OTPChallenge.issued_at.desc())
        ).all()

    def get_active(self, phone: str) -> Optional[OTPChallengeDto]:
        rows = self._open(phone)
        return self._to_dto(rows[0]) if rows else None

    def replace(self, phone: str, code: str, issued_at: datetime, expires_at: datetime) -> OTPChallengeDto:
        for old in self._open(phone):
            old.is_consumed = True
            self.session.add(old)
        rec = OTPChallenge(phone=phone, code=code, issued_at=issued_at, expires_at=expires_at)
        self.session.add(rec)
        self.session.commit()
        self.session.refresh(rec)
        return self._to_dto(rec)

    def record_failed_attempt(self, challenge_id: str) -> int:
        rec = self.session.get(OTPChallenge, challenge_id)
        if not rec:
            return 0
        rec.attempts += 1
        self.session.add(rec)
        self.session.commit()
        return rec.attempts

    def consume(self, challenge_id: str) -> None:
        rec = self.session.get(OTPChallenge, challenge_id)
        if not rec:
            return
        rec.is_consumed = True
        self.session.add(rec)
        self.session.commit()
