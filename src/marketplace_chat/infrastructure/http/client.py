"""aiohttp request/response transport for the chat REST API."""
from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from collections.abc import Sequence
from contextlib import ExitStack
from pathlib import Path
from typing import Any

import aiohttp

from marketplace_chat.application.exceptions import AuthError, TransportError

logger = logging.getLogger(__name__)


class HttpTransport:
    """Bearer-authenticated JSON calls against the API base URL.

    Every response is wrapped as ``{"data": ...}``; ``data`` can be an object
    or a JSON-encoded string.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        return self._token

    def set_credential(self, token: str | None) -> None:
        self._token = token

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    def _headers(self, auth: bool) -> dict[str, str]:
        if not auth:
            return {}
        if not self._token:
            raise AuthError("No authentication token available")
        return {"Authorization": f"Bearer {self._token}"}

    async def call(
        self,
        endpoint: str,
        payload: dict[str, Any] | None = None,
        *,
        method: str = "POST",
        auth: bool = True,
    ) -> dict[str, Any]:
        headers = self._headers(auth)
        url = f"{self._base_url}{endpoint}"
        logger.debug("%s %s", method, endpoint)
        try:
            async with self._get_session().request(
                method, url, json=payload, headers=headers,
            ) as resp:
                return await self._unwrap(resp, auth)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

    async def upload(
        self,
        endpoint: str,
        files: Sequence[Path],
        data: dict[str, Any],
    ) -> dict[str, Any]:
        headers = self._headers(True)
        url = f"{self._base_url}{endpoint}"
        logger.debug("POST %s (multipart, %d file(s))", endpoint, len(files))
        try:
            with ExitStack() as stack:
                form = aiohttp.FormData()
                for path in files:
                    fh = stack.enter_context(path.open("rb"))
                    content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
                    form.add_field("attachments", fh, filename=path.name, content_type=content_type)
                form.add_field("data", json.dumps(data), content_type="application/json")
                async with self._get_session().post(url, data=form, headers=headers) as resp:
                    return await self._unwrap(resp, True)
        except OSError as exc:
            raise TransportError(f"Cannot read attachment: {exc}") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

    async def _unwrap(self, resp: aiohttp.ClientResponse, auth: bool) -> dict[str, Any]:
        try:
            body = await resp.json(content_type=None)
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None

        if resp.status >= 400:
            detail = _error_detail(body) or resp.reason or f"HTTP {resp.status}"
            if resp.status == 401 and auth:
                raise AuthError(detail)
            raise TransportError(detail, status=resp.status)

        if not isinstance(body, dict):
            raise TransportError("Invalid response format", status=resp.status)

        data = body.get("data")
        if data is None:
            return {}
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as exc:
                raise TransportError("Invalid response format", status=resp.status) from exc
        if not isinstance(data, dict):
            raise TransportError("Invalid response format", status=resp.status)
        return data

    async def aclose(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()


def _error_detail(body: Any) -> str | None:
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None
