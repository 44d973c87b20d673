"""Issue and verify access/refresh token pairs.

Access and refresh tokens are signed with different secrets so one can never
stand in for the other. Both are stateless: nothing is persisted server-side.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional
import logging
import uuid

import jwt

from ...core.clock import utcnow
from ...core.config import settings
from ...core.exceptions import ExpiredToken, InvalidSignature

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass
class TokenManager:
    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)
    now: Callable[[], datetime] = field(default=utcnow)

    @classmethod
    def from_settings(cls, now: Optional[Callable[[], datetime]] = None) -> "TokenManager":
        return cls(
            access_secret=settings.ACCESS_TOKEN_SECRET,
            refresh_secret=settings.REFRESH_TOKEN_SECRET,
            algorithm=settings.ALGORITHM,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
            now=now or utcnow,
        )

    def _secret(self, kind: TokenKind) -> str:
        return self.access_secret if kind is TokenKind.ACCESS else self.refresh_secret

    def _ttl(self, kind: TokenKind) -> timedelta:
        return self.access_ttl if kind is TokenKind.ACCESS else self.refresh_ttl

    def issue(self, user_id: str, kind: TokenKind) -> IssuedToken:
        issued_at = self.now()
        expires_at = issued_at + self._ttl(kind)
        payload = {
            "sub": user_id,
            "type": kind.value,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            # Two tokens minted in the same second must still differ
            "jti": uuid.uuid4().hex,
        }
        token = jwt.encode(payload, self._secret(kind), algorithm=self.algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def issue_access_token(self, user_id: str) -> str:
        return self.issue(user_id, TokenKind.ACCESS).token

    def issue_refresh_token(self, user_id: str) -> str:
        return self.issue(user_id, TokenKind.REFRESH).token

    def verify(self, token: str, kind: TokenKind) -> str:
        """Return the user id carried by token, or raise ExpiredToken / InvalidSignature."""
        try:
            # Expiry is checked below against the injected clock
            payload = jwt.decode(
                token,
                self._secret(kind),
                algorithms=[self.algorithm],
                options={"verify_exp": False, "verify_iat": False, "require": ["exp", "sub", "type"]},
            )
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected {kind.value} token: {e}")
            raise InvalidSignature()

        if payload.get("type") != kind.value:
            raise InvalidSignature()
        if int(payload["exp"]) <= int(self.now().timestamp()):
            raise ExpiredToken()
        return str(payload["sub"])
