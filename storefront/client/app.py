import logging
from typing import Optional

from .api import StorefrontApi
from .auth_machine import AuthStateMachine
from .cart_reconciler import CartReconciler
from .config import ClientConfig
from .guest_cart import GuestCartStore
from .otp import OTPVerifier
from .session_identity import SessionIdentity
from .storage import ClientStorage, JsonFileStorage, MemoryStorage
from .state import AppState, can_access_admin
from .transport import AiohttpTransport, Transport

logger = logging.getLogger(__name__)


class StorefrontClient:
    """Wires storage, API, auth state and cart reconciliation together.

    Usage::

        async with StorefrontClient(ClientConfig(base_url="http://localhost:8000")) as client:
            await client.start()
            await client.cart.add_item("sku-1")
    """

    def __init__(self, config: Optional[ClientConfig] = None, transport: Optional[Transport] = None, storage: Optional[ClientStorage] = None):
        self.config = config or ClientConfig()
        if storage is None:
            storage = JsonFileStorage(self.config.storage_path) if self.config.storage_path else MemoryStorage()
        self.storage = storage
        self.api = StorefrontApi(transport or AiohttpTransport(self.config.base_url, timeout=self.config.request_timeout))
        self.session_identity = SessionIdentity(storage)
        self.guest_cart = GuestCartStore(storage)
        self.auth = AuthStateMachine(self.api)
        self.cart = CartReconciler(self.auth, self.api, self.guest_cart, self.session_identity)

    @property
    def state(self) -> AppState:
        return self.auth.state

    def can_access_admin(self) -> bool:
        return can_access_admin(self.auth.state)

    def otp_verifier(self) -> OTPVerifier:
        return OTPVerifier(self.api, resend_seconds=self.config.resend_seconds, on_verified=self.auth.apply_user)

    async def start(self) -> AppState:
        state = await self.auth.start()
        await self.cart.wait_idle()
        return state

    async def close(self) -> None:
        await self.cart.wait_idle()
        await self.api.close()

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
