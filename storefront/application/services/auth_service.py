from typing import Optional
from dataclasses import dataclass

from ...core.exceptions import InvalidRefreshToken, InvalidSignature, ExpiredToken, MissingRefreshToken, NotFoundError
from ..ports.user_repo import UserRepository, UserDto
from ..ports.audit_logger import AuditLogger
from .credential_store import CredentialStore
from .token_manager import TokenManager, TokenKind


@dataclass
class LoginResult:
    user: UserDto
    access_token: str
    refresh_token: str


@dataclass
class RefreshResult:
    access_token: str
    # Only set when refresh tokens are rotated
    refresh_token: Optional[str] = None


@dataclass
class AuthService:
    user_repo: UserRepository
    credentials: CredentialStore
    tokens: TokenManager
    rotate_refresh_tokens: bool = False
    audit: Optional[AuditLogger] = None

    def register(self, phone: str, password: str, first_name: str, last_name: str) -> UserDto:
        return self.credentials.register(phone, password, first_name, last_name)

    def login(self, phone: str, password: str) -> LoginResult:
        user = self.credentials.authenticate(phone, password)
        return LoginResult(
            user=user,
            access_token=self.tokens.issue_access_token(user.id),
            refresh_token=self.tokens.issue_refresh_token(user.id),
        )

    def refresh(self, refresh_token: Optional[str]) -> RefreshResult:
        if not refresh_token:
            raise MissingRefreshToken()
        try:
            user_id = self.tokens.verify(refresh_token, TokenKind.REFRESH)
        except (ExpiredToken, InvalidSignature):
            raise InvalidRefreshToken()

        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise InvalidRefreshToken()

        if self.audit is not None:
            self.audit.log("refresh", user.phone, user_id=user.id)
        rotated = self.tokens.issue_refresh_token(user.id) if self.rotate_refresh_tokens else None
        return RefreshResult(access_token=self.tokens.issue_access_token(user.id), refresh_token=rotated)

    def resolve_access_token(self, access_token: str) -> UserDto:
        """Map a bearer token to its user; raises ExpiredToken / InvalidSignature / NotFoundError."""
        user_id = self.tokens.verify(access_token, TokenKind.ACCESS)
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
