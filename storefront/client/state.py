"""Client auth state and its transition table.

``transition(state, command)`` is pure: it returns the next state, or None
when the command is not accepted from the current state. Source-state
guards are what make start-up requests one-shot. Every command that
reports a response carries the epoch it was issued in, and is dropped
once the epoch has moved on.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..core.roles import has_admin_capability


class AuthStatus(str, Enum):
    INITIAL = "initial"
    REFRESHING = "refreshing"
    CHECKING = "checking"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    ERROR = "error"


SETTLED: FrozenSet[AuthStatus] = frozenset({AuthStatus.AUTHENTICATED, AuthStatus.UNAUTHENTICATED})
SIGN_IN_SOURCES: FrozenSet[AuthStatus] = frozenset({AuthStatus.INITIAL, AuthStatus.UNAUTHENTICATED, AuthStatus.ERROR})

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please sign in again."


@dataclass(frozen=True)
class UserSummary:
    id: str
    phone: str
    first_name: str
    last_name: str
    role: str
    mobile_verified: bool = False

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "UserSummary":
        return cls(
            id=payload["id"],
            phone=payload["phone"],
            first_name=payload.get("firstName", ""),
            last_name=payload.get("lastName", ""),
            role=payload.get("role", "customer"),
            mobile_verified=bool(payload.get("mobileVerified", False)),
        )


@dataclass(frozen=True)
class AppState:
    status: AuthStatus = AuthStatus.INITIAL
    user: Optional[UserSummary] = None
    epoch: int = 0
    banner: Optional[str] = None
    field_errors: Tuple[Tuple[str, str], ...] = ()

    @property
    def is_settled(self) -> bool:
        return self.status in SETTLED

    @property
    def is_authenticated(self) -> bool:
        return self.status is AuthStatus.AUTHENTICATED


def can_access_admin(state: AppState) -> bool:
    return state.is_authenticated and has_admin_capability(state.user)


# Commands

@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class RefreshSucceeded:
    epoch: int


@dataclass(frozen=True)
class RefreshFailed:
    epoch: int


@dataclass(frozen=True)
class ProfileLoaded:
    epoch: int
    user: UserSummary


@dataclass(frozen=True)
class ProfileFailed:
    epoch: int
    transport: bool = False
    message: Optional[str] = None


@dataclass(frozen=True)
class LoginSucceeded:
    epoch: int
    user: UserSummary


@dataclass(frozen=True)
class LoggedOut:
    banner: Optional[str] = None


@dataclass(frozen=True)
class SessionExpired:
    pass


@dataclass(frozen=True)
class ProfileUpdated:
    epoch: int
    user: UserSummary


@dataclass(frozen=True)
class ErrorsReported:
    epoch: int
    banner: Optional[str] = None
    field_errors: Tuple[Tuple[str, str], ...] = field(default=())

    @classmethod
    def from_field_errors(cls, epoch: int, banner: Optional[str], errors: List[Dict[str, str]]) -> "ErrorsReported":
        return cls(epoch=epoch, banner=banner, field_errors=tuple((e.get("field", ""), e.get("msg", "")) for e in errors))


def _next_epoch(state: AppState, status: AuthStatus, **changes: Any) -> AppState:
    return AppState(status=status, epoch=state.epoch + 1, **changes)


def transition(state: AppState, command: Any) -> Optional[AppState]:
    status = state.status
    epoch = getattr(command, "epoch", state.epoch)
    if epoch != state.epoch:
        return None

    if isinstance(command, Start):
        if status in (AuthStatus.INITIAL, AuthStatus.ERROR):
            return _next_epoch(state, AuthStatus.REFRESHING)
        return None

    if isinstance(command, RefreshSucceeded):
        if status is AuthStatus.REFRESHING:
            return replace(state, status=AuthStatus.CHECKING)
        return None

    if isinstance(command, RefreshFailed):
        if status is AuthStatus.REFRESHING:
            return replace(state, status=AuthStatus.UNAUTHENTICATED)
        return None

    if isinstance(command, ProfileLoaded):
        if status is AuthStatus.CHECKING:
            return replace(state, status=AuthStatus.AUTHENTICATED, user=command.user, banner=None, field_errors=())
        return None

    if isinstance(command, ProfileFailed):
        if status is AuthStatus.CHECKING:
            next_status = AuthStatus.ERROR if command.transport else AuthStatus.UNAUTHENTICATED
            return replace(state, status=next_status, user=None, banner=command.message)
        return None

    if isinstance(command, LoginSucceeded):
        if status in SIGN_IN_SOURCES:
            return _next_epoch(state, AuthStatus.AUTHENTICATED, user=command.user)
        return None

    if isinstance(command, LoggedOut):
        if status in (AuthStatus.AUTHENTICATED, AuthStatus.CHECKING):
            return _next_epoch(state, AuthStatus.UNAUTHENTICATED, banner=command.banner)
        return None

    if isinstance(command, SessionExpired):
        if status is AuthStatus.AUTHENTICATED:
            return _next_epoch(state, AuthStatus.UNAUTHENTICATED, banner=SESSION_EXPIRED_MESSAGE)
        return None

    if isinstance(command, ProfileUpdated):
        if status is AuthStatus.AUTHENTICATED:
            return replace(state, user=command.user, banner=None, field_errors=())
        return None

    if isinstance(command, ErrorsReported):
        return replace(state, banner=command.banner, field_errors=command.field_errors)

    raise TypeError(f"Unknown command: {command!r}")
