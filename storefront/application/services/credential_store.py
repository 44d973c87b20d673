from dataclasses import dataclass, field
from typing import Optional
import logging

from passlib.context import CryptContext

from ...core.config import settings
from ...core.exceptions import DuplicateError, InvalidCredentials
from ..ports.user_repo import UserRepository, UserDto
from ..ports.audit_logger import AuditLogger

logger = logging.getLogger(__name__)


def build_password_context(rounds: Optional[int] = None) -> CryptContext:
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=rounds or settings.BCRYPT_ROUNDS,
    )


@dataclass
class CredentialStore:
    user_repo: UserRepository
    pwd_context: CryptContext = field(default_factory=build_password_context)
    audit: Optional[AuditLogger] = None
    _dummy_hash: Optional[str] = field(default=None, init=False, repr=False)

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def register(self, phone: str, password: str, first_name: str, last_name: str) -> UserDto:
        if self.user_repo.get_by_phone(phone) is not None:
            self._audit("register", phone, success=False, reason="duplicate_phone")
            raise DuplicateError("This phone number is already registered")
        # create() re-checks uniqueness at the database level for concurrent requests
        user = self.user_repo.create(phone, self.hash_password(password), first_name, last_name)
        self._audit("register", phone, user_id=user.id)
        return user

    def authenticate(self, phone: str, password: str) -> UserDto:
        user = self.user_repo.get_by_phone(phone)
        if user is None:
            # Burn a comparable amount of work so response time does not reveal the phone exists
            self.pwd_context.verify(password, self._get_dummy_hash())
            self._audit("login", phone, success=False, reason="unknown_phone")
            raise InvalidCredentials(reason="unknown_phone")

        stored_hash = self.user_repo.get_password_hash(user.id)
        if not stored_hash or not self.pwd_context.verify(password, stored_hash):
            self._audit("login", phone, user_id=user.id, success=False, reason="wrong_password")
            raise InvalidCredentials(reason="wrong_password")

        self._audit("login", phone, user_id=user.id)
        return user

    def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = self.pwd_context.hash("storefront-dummy-password")
        return self._dummy_hash

    def _audit(self, action: str, phone: str, user_id: Optional[str] = None, success: bool = True, reason: Optional[str] = None) -> None:
        if not success:
            logger.info(f"{action} rejected: {reason}")
        if self.audit is not None:
            self.audit.log(action, phone, user_id=user_id, success=success, details={"reason": reason} if reason else None)
