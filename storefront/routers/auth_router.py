# storefront/routers/auth_router.py
import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..core.errors import create_success_response
from ..core.exceptions import RateLimited
from ..application.ports.rate_limiter import RateLimiter
from ..application.ports.user_repo import UserDto
from ..application.services.auth_service import AuthService
from ..application.services.otp_service import OTPService
from ..application.services.profile_service import ProfileService
from ..dependencies import (
    get_auth_service, get_client_ip, get_current_user,
    get_otp_service, get_profile_service, get_rate_limiter,
)
from ..schemas import (
    LoginRequest, RegisterRequest, SendOTPRequest,
    UpdateProfileRequest, UserResponse, VerifyOTPRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )


def login_rate_limit(request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> str:
    key = f"login:{get_client_ip(request)}"
    if not limiter.allow(key, settings.LOGIN_RATE_LIMIT_MAX, settings.LOGIN_RATE_LIMIT_WINDOW_SEC):
        logger.warning(f"Login rate limit exceeded for {key}")
        raise RateLimited(
            "Too many login attempts. Please try again in 15 minutes.",
            retry_after=settings.LOGIN_RATE_LIMIT_WINDOW_SEC,
        )
    return key


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, auth_service: AuthService = Depends(get_auth_service)):
    user = auth_service.register(body.phone, body.password, body.first_name, body.last_name)
    logger.info(f"Registered user {user.id}")
    return create_success_response({
        "message": "Registration successful",
        "user": UserResponse.from_dto(user).to_payload(),
    })


@router.post("/login")
def login(
    body: LoginRequest,
    response: Response,
    rate_key: str = Depends(login_rate_limit),
    auth_service: AuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    result = auth_service.login(body.phone, body.password)
    # Only failed attempts count against the window
    limiter.reset(rate_key)
    set_refresh_cookie(response, result.refresh_token)
    return create_success_response({
        "accessToken": result.access_token,
        "user": UserResponse.from_dto(result.user).to_payload(),
    })


@router.get("/profile")
def get_profile(
    current_user: UserDto = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service),
):
    user = profile_service.get_profile(current_user.id)
    return create_success_response(UserResponse.from_dto(user).to_payload())


@router.put("/profile")
def update_profile(
    body: UpdateProfileRequest,
    current_user: UserDto = Depends(get_current_user),
    profile_service: ProfileService = Depends(get_profile_service),
):
    user = profile_service.update_profile(current_user.id, body.first_name, body.last_name)
    return create_success_response(UserResponse.from_dto(user).to_payload())


@router.post("/refresh")
def refresh(request: Request, response: Response, auth_service: AuthService = Depends(get_auth_service)):
    result = auth_service.refresh(request.cookies.get(settings.REFRESH_COOKIE_NAME))
    if result.refresh_token:
        set_refresh_cookie(response, result.refresh_token)
    return create_success_response({"accessToken": result.access_token})


@router.post("/logout")
def logout():
    # Tokens are stateless; logging out only drops the refresh cookie
    response = JSONResponse(content=create_success_response({"message": "Logged out"}))
    clear_refresh_cookie(response)
    return response


@router.post("/otp/send")
def send_otp(
    body: SendOTPRequest,
    current_user: UserDto = Depends(get_current_user),
    otp_service: OTPService = Depends(get_otp_service),
):
    otp_service.send_challenge(current_user.id, body.phone)
    return create_success_response({
        "expiresIn": otp_service.expiry_seconds,
        "resendIn": otp_service.resend_seconds,
    })


@router.post("/otp/verify")
def verify_otp(
    body: VerifyOTPRequest,
    current_user: UserDto = Depends(get_current_user),
    otp_service: OTPService = Depends(get_otp_service),
):
    user = otp_service.verify(current_user.id, body.phone, body.code)
    return create_success_response(UserResponse.from_dto(user).to_payload())
