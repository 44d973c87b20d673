"""Keeps exactly one cart authoritative for the current auth state.

While signed out the guest cart in client storage is the cart. Once the
session settles as authenticated, the guest cart is merged into the server
cart (keyed by the guest session id, so a retried merge is harmless) and
then cleared. After logout the client returns to an empty guest cart; the
server cart is never copied back.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from .api import StorefrontApi
from .auth_machine import AuthStateMachine
from .errors import ApiError, TransportError
from .guest_cart import GuestCartStore
from .session_identity import SessionIdentity
from .state import AppState, AuthStatus

logger = logging.getLogger(__name__)


class CartMode(str, Enum):
    GUEST = "guest"
    SERVER = "server"


class CartReconciler:
    def __init__(self, machine: AuthStateMachine, api: StorefrontApi, guest_cart: GuestCartStore, session_identity: SessionIdentity):
        self.machine = machine
        self.api = api
        self.guest_cart = guest_cart
        self.session_identity = session_identity
        self.mode = CartMode.GUEST
        self.server_lines: List[Dict[str, Any]] = []
        self.last_error: Optional[Exception] = None
        self._reconciled_epoch: Optional[int] = None
        self._pending: Optional[asyncio.Task] = None
        machine.subscribe(self._on_state_change)

    def _on_state_change(self, previous: AppState, current: AppState) -> None:
        if not current.is_settled or current.epoch == self._reconciled_epoch:
            return
        self._reconciled_epoch = current.epoch
        self._pending = asyncio.ensure_future(self.reconcile(current))

    async def wait_idle(self) -> None:
        if self._pending is not None:
            await self._pending

    async def retry(self) -> None:
        """Re-run the last reconciliation after a failure. Merges are idempotent."""
        state = self.machine.state
        if self.last_error is not None and state.is_settled:
            await self.reconcile(state)

    async def reconcile(self, state: AppState) -> None:
        try:
            if state.status is AuthStatus.AUTHENTICATED:
                await self._adopt_server_cart(state)
            else:
                self._enter_guest_mode()
            self.last_error = None
        except (ApiError, TransportError) as e:
            logger.warning(f"Cart reconciliation failed: {e.message}")
            self.last_error = e

    async def _adopt_server_cart(self, state: AppState) -> None:
        if self.guest_cart.is_empty():
            lines = await self.api.get_cart()
        else:
            merge_key = self.session_identity.get_or_create()
            lines = await self.api.merge_cart(merge_key, self.guest_cart.items())
            # The server owns these lines now
            self.guest_cart.clear()
            self.session_identity.clear()
            logger.info(f"Merged guest cart into account cart ({len(lines)} line(s))")

        if self.machine.state.epoch != state.epoch:
            logger.info("Auth state changed during cart reconciliation; discarding result")
            return
        self.mode = CartMode.SERVER
        self.server_lines = lines

    def _enter_guest_mode(self) -> None:
        if self.mode is CartMode.SERVER:
            logger.info("Signed out; switching back to guest cart")
        self.mode = CartMode.GUEST
        self.server_lines = []
        self.session_identity.get_or_create()

    async def _settle_merge(self) -> None:
        # Signed-in writes wait for the merge. A replayed merge key ignores
        # guest lines added after the first attempt reached the server.
        await self.wait_idle()
        if self.mode is CartMode.GUEST and self.machine.state.is_authenticated:
            await self.retry()
            if self.last_error is not None:
                raise self.last_error

    def items(self) -> List[Dict[str, Any]]:
        if self.mode is CartMode.SERVER:
            return [dict(line) for line in self.server_lines]
        return self.guest_cart.items()

    async def add_item(self, product_id: str, quantity: int = 1) -> List[Dict[str, Any]]:
        await self._settle_merge()
        if self.mode is CartMode.SERVER:
            self.server_lines = await self.api.add_cart_item(product_id, quantity)
            return self.items()
        self.session_identity.get_or_create()
        return self.guest_cart.add(product_id, quantity)

    async def remove_item(self, product_id: str) -> List[Dict[str, Any]]:
        await self._settle_merge()
        if self.mode is CartMode.SERVER:
            self.server_lines = await self.api.remove_cart_item(product_id)
            return self.items()
        return self.guest_cart.remove(product_id)
