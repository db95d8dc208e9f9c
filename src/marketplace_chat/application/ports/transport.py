from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from marketplace_chat.application.dto.events import InboundEvent
from marketplace_chat.application.exceptions import ChannelDown
from marketplace_chat.domain.value_objects.enums import ConnectionStatus

EventHandler = Callable[[InboundEvent], Awaitable[None]]
StatusHandler = Callable[[ConnectionStatus, ChannelDown | None], None]


class Subscription:
    """Disposable registration of a callback in a listener list."""

    def __init__(self, listeners: list[Any], callback: Any) -> None:
        self._listeners = listeners
        self._callback = callback
        listeners.append(callback)

    @property
    def active(self) -> bool:
        return any(cb is self._callback for cb in self._listeners)

    def dispose(self) -> None:
        for i, cb in enumerate(self._listeners):
            if cb is self._callback:
                del self._listeners[i]
                return


class Transport(Protocol):
    """Request/response API and the persistent event channel behind one interface."""

    @property
    def token(self) -> str | None: ...

    def set_credential(self, token: str | None) -> None: ...

    async def call(
        self,
        endpoint: str,
        payload: dict[str, Any] | None = None,
        *,
        method: str = "POST",
        auth: bool = True,
    ) -> dict[str, Any]: ...

    async def upload(
        self,
        endpoint: str,
        files: Sequence[Path],
        data: dict[str, Any],
    ) -> dict[str, Any]: ...

    async def connect(self, token: str | None = None) -> None: ...

    async def send(self, event_type: str, payload: dict[str, Any]) -> bool: ...

    def subscribe(self, handler: EventHandler) -> Subscription: ...

    def on_status(self, handler: StatusHandler) -> Subscription: ...

    @property
    def channel_connected(self) -> bool: ...

    async def close_channel(self) -> None: ...

    async def aclose(self) -> None: ...
