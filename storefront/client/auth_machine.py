import logging
from typing import Any, Callable, List, Optional

from .api import StorefrontApi
from .errors import GENERIC_NETWORK_MESSAGE, ApiError, TransportError
from .state import (
    AppState, AuthStatus, SIGN_IN_SOURCES, UserSummary, transition,
    ErrorsReported, LoggedOut, LoginSucceeded, ProfileFailed, ProfileLoaded,
    ProfileUpdated, RefreshFailed, RefreshSucceeded, SessionExpired, Start,
)

logger = logging.getLogger(__name__)

Listener = Callable[[AppState, AppState], None]


class AuthStateMachine:
    """Drives the client session: silent start-up refresh, login, logout.

    State only changes through ``dispatch``. Listeners are called
    synchronously with ``(previous, current)`` after every accepted command.
    """

    def __init__(self, api: StorefrontApi):
        self.api = api
        self._state = AppState()
        self._listeners: List[Listener] = []
        api.on_session_expired = self._on_session_expired

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, command: Any) -> bool:
        previous = self._state
        current = transition(previous, command)
        if current is None:
            logger.debug(f"Ignored {type(command).__name__} in {previous.status.value} (epoch {previous.epoch})")
            return False
        self._state = current
        if current.status is not previous.status:
            logger.info(f"Auth state {previous.status.value} -> {current.status.value}")
        for listener in list(self._listeners):
            listener(previous, current)
        return True

    async def start(self) -> AppState:
        if not self.dispatch(Start()):
            return self._state
        epoch = self._state.epoch
        try:
            await self.api.refresh_access_token()
        except (ApiError, TransportError) as e:
            logger.info(f"No session to restore: {e.message}")
            self.dispatch(RefreshFailed(epoch))
            return self._state

        # Only the caller whose RefreshSucceeded was accepted fetches the profile
        if self.dispatch(RefreshSucceeded(epoch)):
            await self._load_profile(epoch)
        return self._state

    async def _load_profile(self, epoch: int) -> None:
        try:
            payload = await self.api.get_profile()
        except TransportError as e:
            self.dispatch(ProfileFailed(epoch, transport=True, message=e.message))
            return
        except ApiError as e:
            self.dispatch(ProfileFailed(epoch, message=None if e.status == 401 else e.message))
            return
        self.dispatch(ProfileLoaded(epoch, UserSummary.from_payload(payload)))

    async def login(self, phone: str, password: str) -> AppState:
        if self._state.status not in SIGN_IN_SOURCES:
            return self._state
        epoch = self._state.epoch
        try:
            payload = await self.api.login(phone, password)
        except (ApiError, TransportError) as e:
            self._report(epoch, e)
            return self._state
        if not self.dispatch(LoginSucceeded(epoch, UserSummary.from_payload(payload))):
            logger.warning("Discarding stale login response")
        return self._state

    async def register(self, phone: str, password: str, first_name: str, last_name: str) -> AppState:
        if self._state.status not in SIGN_IN_SOURCES:
            return self._state
        epoch = self._state.epoch
        try:
            await self.api.register(phone, password, first_name, last_name)
        except (ApiError, TransportError) as e:
            self._report(epoch, e)
            return self._state
        return await self.login(phone, password)

    async def update_profile(self, first_name: Optional[str] = None, last_name: Optional[str] = None) -> AppState:
        if not self._state.is_authenticated:
            return self._state
        epoch = self._state.epoch
        try:
            payload = await self.api.update_profile(first_name, last_name)
        except (ApiError, TransportError) as e:
            self._report(epoch, e)
            return self._state
        self.dispatch(ProfileUpdated(epoch, UserSummary.from_payload(payload)))
        return self._state

    def apply_user(self, payload: dict) -> None:
        """Replace the held user with a fresh server copy (e.g. after mobile verification)."""
        self.dispatch(ProfileUpdated(self._state.epoch, UserSummary.from_payload(payload)))

    async def logout(self) -> AppState:
        if self._state.status not in (AuthStatus.AUTHENTICATED, AuthStatus.CHECKING):
            return self._state
        try:
            await self.api.logout()
        except (ApiError, TransportError) as e:
            # The local session ends regardless; the cookie expires on its own
            logger.warning(f"Logout request failed: {e.message}")
        self.dispatch(LoggedOut())
        return self._state

    def _on_session_expired(self) -> None:
        self.dispatch(SessionExpired())

    def _report(self, epoch: int, error: Exception) -> None:
        if isinstance(error, ApiError):
            self.dispatch(ErrorsReported.from_field_errors(epoch, error.message, error.field_errors))
        else:
            self.dispatch(ErrorsReported(epoch, banner=GENERIC_NETWORK_MESSAGE))
