from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....core.clock import as_utc, utcnow
from .....core.exceptions import DuplicateError
from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto

logger = logging.getLogger(__name__)

class SqlUserRepository(UserRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            phone=user.phone,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            mobile_verified=bool(user.mobile_verified),
            created_at=as_utc(user.created_at),
            updated_at=as_utc(user.updated_at),
        )

    def _get(self, user_id: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.id == user_id)).first()

    def get_by_phone(self, phone: str) -> Optional[UserDto]:
        user = self.session.exec(select(User).where(User.phone == phone)).first()
        return self._to_dto(user) if user else None

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        user = self._get(user_id)
        return self._to_dto(user) if user else None

    def create(self, phone: str, password_hash: str, first_name: str, last_name: str) -> UserDto:
        user = User(phone=phone, password_hash=password_hash, first_name=first_name, last_name=last_name)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            logger.info("Concurrent registration for an existing phone rejected")
            raise DuplicateError("This phone number is already registered")
        self.session.refresh(user)
        return self._to_dto(user)

    def get_password_hash(self, user_id: str) -> Optional[str]:
        user = self._get(user_id)
        return user.password_hash if user else None

    def update_names(self, user_id: str, first_name: Optional[str], last_name: Optional[str]) -> Optional[UserDto]:
        user = self._get(user_id)
        if not user:
            return None
        if first_name is not None:
            user.first_name = first_name
        if last_name is not None:
            user.last_name = last_name
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return self._to_dto(user)

    def mark_mobile_verified(self, user_id: str) -> Optional[UserDto]:
        user = self._get(user_id)
        if not user:
            return None
        user.mobile_verified = True
        user.updated_at = utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return self._to_dto(user)
