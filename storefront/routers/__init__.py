# Routers package
from . import auth_router
from . import cart_router
from . import admin_router

__all__ = [
    "auth_router",
    "cart_router",
    "admin_router",
]
