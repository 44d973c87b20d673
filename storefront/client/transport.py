import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import aiohttp

from .errors import TransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Response:
    status: int
    body: Any


class Transport(Protocol):
    async def request(self, method: str, path: str, json: Any = None, token: Optional[str] = None) -> Response:
        """Send one request. Raises TransportError when no response arrives."""
        ...

    async def close(self) -> None:
        ...


class AiohttpTransport(Transport):
    """HTTP transport backed by one aiohttp session.

    The session's cookie jar holds the HTTP-only refresh cookie, so it is
    sent back on /auth/refresh without client code ever reading it.
    """

    def __init__(self, base_url: str, timeout: float = 15.0, session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                # unsafe allows cookies for bare IP hosts such as 127.0.0.1
                cookie_jar=aiohttp.CookieJar(unsafe=True),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def request(self, method: str, path: str, json: Any = None, token: Optional[str] = None) -> Response:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(method, url, json=json, headers=headers) as resp:
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None
                return Response(status=resp.status, body=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"{method} {path} failed: {e!r}")
            raise TransportError()

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
