# Models package (re-export feature modules for stable imports)
from .users.user import User
from .auth.otp import OTPChallenge
from .cart.cart import CartItem, CartMergeReceipt

__all__ = [
    "User",
    "OTPChallenge",
    "CartItem",
    "CartMergeReceipt",
]
