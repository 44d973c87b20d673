# storefront/schemas/__init__.py
from .auth.auth import (
    RegisterRequest, LoginRequest, UpdateProfileRequest,
    SendOTPRequest, VerifyOTPRequest, normalize_phone,
)
from .users.user import UserResponse
from .cart.cart import CartLine, AddCartItemRequest, UpdateCartItemRequest, MergeCartRequest, CartResponse

__all__ = [
    "RegisterRequest", "LoginRequest", "UpdateProfileRequest",
    "SendOTPRequest", "VerifyOTPRequest", "normalize_phone",
    "UserResponse",
    "CartLine", "AddCartItemRequest", "UpdateCartItemRequest", "MergeCartRequest", "CartResponse",
]
