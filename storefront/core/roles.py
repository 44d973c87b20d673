from enum import Enum
from typing import Any


class Role(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


def has_admin_capability(user: Any) -> bool:
    """True when the user (any object with a ``role`` attribute) may use admin surfaces."""
    if user is None:
        return False
    role = getattr(user, "role", None)
    try:
        return Role(role) is Role.ADMIN
    except ValueError:
        return False
