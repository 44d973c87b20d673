# storefront/dependencies.py
import logging
from datetime import datetime
from functools import lru_cache
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlmodel import Session

from .core.clock import utcnow
from .core.config import settings
from .core.exceptions import ForbiddenError, MissingToken
from .core.roles import has_admin_capability
from .database import get_session
from .application.ports.audit_logger import AuditLogger
from .application.ports.otp_provider import OTPProvider
from .application.ports.rate_limiter import RateLimiter
from .application.ports.user_repo import UserDto
from .application.services.auth_service import AuthService
from .application.services.cart_service import CartService
from .application.services.credential_store import CredentialStore, build_password_context
from .application.services.otp_service import OTPService
from .application.services.profile_service import ProfileService
from .application.services.token_manager import TokenManager
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.otp.log_provider import LogOTPProvider
from .infrastructure.persistence.sqlalchemy.repositories.cart_repository_sql import SqlCartRepository
from .infrastructure.persistence.sqlalchemy.repositories.otp_repository_sql import SqlOTPChallengeRepository
from .infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from .infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter

logger = logging.getLogger(__name__)

# Auth scheme
bearer_scheme = HTTPBearer(auto_error=False)


def get_clock() -> Callable[[], datetime]:
    return utcnow


def get_token_manager(now: Callable[[], datetime] = Depends(get_clock)) -> TokenManager:
    return TokenManager.from_settings(now=now)


@lru_cache()
def get_password_context() -> CryptContext:
    return build_password_context()


@lru_cache()
def get_audit_logger() -> AuditLogger:
    return StdAuditLogger()


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    if settings.REDIS_URL:
        from .infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter(settings.REDIS_URL)
    return InMemoryRateLimiter()


@lru_cache()
def get_otp_provider() -> OTPProvider:
    if settings.twilio_configured:
        from .infrastructure.otp.twilio_provider import TwilioOTPProvider
        return TwilioOTPProvider()
    if settings.is_production:
        logger.error("Twilio is not configured; OTP codes will only be logged")
    return LogOTPProvider()


def get_user_repo(session: Session = Depends(get_session)) -> SqlUserRepository:
    return SqlUserRepository(session)


def get_credential_store(
    user_repo: SqlUserRepository = Depends(get_user_repo),
    pwd_context: CryptContext = Depends(get_password_context),
    audit: AuditLogger = Depends(get_audit_logger),
) -> CredentialStore:
    return CredentialStore(user_repo=user_repo, pwd_context=pwd_context, audit=audit)


def get_auth_service(
    user_repo: SqlUserRepository = Depends(get_user_repo),
    credentials: CredentialStore = Depends(get_credential_store),
    tokens: TokenManager = Depends(get_token_manager),
    audit: AuditLogger = Depends(get_audit_logger),
) -> AuthService:
    return AuthService(
        user_repo=user_repo,
        credentials=credentials,
        tokens=tokens,
        rotate_refresh_tokens=settings.ROTATE_REFRESH_TOKENS,
        audit=audit,
    )


def get_profile_service(user_repo: SqlUserRepository = Depends(get_user_repo)) -> ProfileService:
    return ProfileService(user_repo=user_repo)


def get_cart_service(session: Session = Depends(get_session)) -> CartService:
    return CartService(repo=SqlCartRepository(session))


def get_otp_service(
    session: Session = Depends(get_session),
    user_repo: SqlUserRepository = Depends(get_user_repo),
    provider: OTPProvider = Depends(get_otp_provider),
    audit: AuditLogger = Depends(get_audit_logger),
    now: Callable[[], datetime] = Depends(get_clock),
) -> OTPService:
    return OTPService(
        user_repo=user_repo,
        challenges=SqlOTPChallengeRepository(session),
        provider=provider,
        expiry_seconds=settings.OTP_EXPIRY_SECONDS,
        resend_seconds=settings.OTP_RESEND_SECONDS,
        max_attempts=settings.OTP_MAX_ATTEMPTS,
        audit=audit,
        now=now,
    )


# Dependency to get current user from the bearer access token
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserDto:
    if not credentials or not credentials.credentials:
        raise MissingToken()
    return auth_service.resolve_access_token(credentials.credentials)


def require_admin(current_user: UserDto = Depends(get_current_user)) -> UserDto:
    if not has_admin_capability(current_user):
        logger.warning(f"Admin access denied for user {current_user.id}")
        raise ForbiddenError("Admin access required")
    return current_user


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"
