"""Implements application.ports.transport.Transport on aiohttp and python-socketio."""
from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from marketplace_chat.application.ports.transport import EventHandler, StatusHandler, Subscription
from marketplace_chat.infrastructure.http.client import HttpTransport
from marketplace_chat.infrastructure.ws.channel import SocketIOChannel


class ChatTransport:
    def __init__(self, http: HttpTransport, channel: SocketIOChannel) -> None:
        self._http = http
        self._channel = channel

    @property
    def token(self) -> str | None:
        return self._http.token

    def set_credential(self, token: str | None) -> None:
        self._http.set_credential(token)

    async def call(
        self,
        endpoint: str,
        payload: dict[str, Any] | None = None,
        *,
        method: str = "POST",
        auth: bool = True,
    ) -> dict[str, Any]:
        return await self._http.call(endpoint, payload, method=method, auth=auth)

    async def upload(
        self,
        endpoint: str,
        files: Sequence[Path],
        data: dict[str, Any],
    ) -> dict[str, Any]:
        return await self._http.upload(endpoint, files, data)

    async def connect(self, token: str | None = None) -> None:
        await self._channel.connect(token or self._http.token)

    async def send(self, event_type: str, payload: dict[str, Any]) -> bool:
        return await self._channel.send(event_type, payload)

    def subscribe(self, handler: EventHandler) -> Subscription:
        return self._channel.subscribe(handler)

    def on_status(self, handler: StatusHandler) -> Subscription:
        return self._channel.on_status(handler)

    @property
    def channel_connected(self) -> bool:
        return self._channel.is_connected

    async def close_channel(self) -> None:
        await self._channel.close()

    async def aclose(self) -> None:
        await self._channel.close()
        await self._http.aclose()
