import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import quote

from .errors import ApiError
from .transport import Response, Transport

logger = logging.getLogger(__name__)


def unwrap(response: Response) -> Any:
    """Return the envelope's data, or raise ApiError for an error envelope."""
    body = response.body if isinstance(response.body, dict) else {}
    if 200 <= response.status < 300 and body.get("success", True):
        return body.get("data")
    raise ApiError(
        status=response.status,
        code=body.get("code") or "HTTP_ERROR",
        message=body.get("error") or f"Request failed with status {response.status}",
        field_errors=body.get("errors") or [],
    )


class StorefrontApi:
    """Typed calls to the storefront API.

    Holds the access token in memory only. Authenticated calls that fail
    with TOKEN_EXPIRED trigger one silent refresh and are retried once.
    Concurrent callers share a single in-flight refresh.
    """

    def __init__(self, transport: Transport, on_session_expired: Optional[Callable[[], None]] = None):
        self.transport = transport
        self.access_token: Optional[str] = None
        self.on_session_expired = on_session_expired
        self._refresh_task: Optional[asyncio.Task] = None

    async def _send(self, method: str, path: str, json: Any = None, token: Optional[str] = None) -> Any:
        return unwrap(await self.transport.request(method, path, json=json, token=token))

    async def _authed(self, method: str, path: str, json: Any = None) -> Any:
        token = self.access_token
        try:
            return await self._send(method, path, json=json, token=token)
        except ApiError as e:
            if not e.is_token_expired:
                raise
        # Another request may already have refreshed while this one was in flight
        if self.access_token == token:
            await self.refresh_access_token()
        logger.debug(f"Retrying {method} {path} with refreshed token")
        return await self._send(method, path, json=json, token=self.access_token)

    async def refresh_access_token(self) -> str:
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._do_refresh())
        # shield: one cancelled waiter must not cancel the refresh for the others
        return await asyncio.shield(self._refresh_task)

    async def _do_refresh(self) -> str:
        try:
            data = await self._send("POST", "/auth/refresh")
        except ApiError:
            self.access_token = None
            if self.on_session_expired is not None:
                self.on_session_expired()
            raise
        self.access_token = data["accessToken"]
        return self.access_token

    async def register(self, phone: str, password: str, first_name: str, last_name: str) -> Dict[str, Any]:
        data = await self._send("POST", "/auth/register", json={
            "phone": phone,
            "password": password,
            "firstName": first_name,
            "lastName": last_name,
        })
        return data["user"]

    async def login(self, phone: str, password: str) -> Dict[str, Any]:
        data = await self._send("POST", "/auth/login", json={"phone": phone, "password": password})
        self.access_token = data["accessToken"]
        return data["user"]

    async def logout(self) -> None:
        try:
            await self._send("POST", "/auth/logout")
        finally:
            self.access_token = None

    async def get_profile(self) -> Dict[str, Any]:
        return await self._authed("GET", "/auth/profile")

    async def update_profile(self, first_name: Optional[str], last_name: Optional[str]) -> Dict[str, Any]:
        body = {}
        if first_name is not None:
            body["firstName"] = first_name
        if last_name is not None:
            body["lastName"] = last_name
        return await self._authed("PUT", "/auth/profile", json=body)

    async def send_otp(self, phone: str) -> Dict[str, Any]:
        return await self._authed("POST", "/auth/otp/send", json={"phone": phone})

    async def verify_otp(self, phone: str, code: str) -> Dict[str, Any]:
        return await self._authed("POST", "/auth/otp/verify", json={"phone": phone, "code": code})

    async def get_cart(self) -> List[Dict[str, Any]]:
        data = await self._authed("GET", "/cart")
        return data["items"]

    async def add_cart_item(self, product_id: str, quantity: int = 1) -> List[Dict[str, Any]]:
        data = await self._authed("POST", "/cart/items", json={"productId": product_id, "quantity": quantity})
        return data["items"]

    async def remove_cart_item(self, product_id: str) -> List[Dict[str, Any]]:
        data = await self._authed("DELETE", f"/cart/items/{quote(product_id, safe='')}")
        return data["items"]

    async def merge_cart(self, merge_key: str, items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        data = await self._authed("POST", "/cart/merge", json={"mergeKey": merge_key, "items": list(items)})
        return data["items"]

    async def close(self) -> None:
        await self.transport.close()
