"""Persistent event channel over a Socket.IO client, with bounded reconnect."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import socketio

from marketplace_chat.application.exceptions import AuthError, ChannelDown, ValidationError
from marketplace_chat.application.dto.events import InboundEvent
from marketplace_chat.application.ports.transport import EventHandler, StatusHandler, Subscription
from marketplace_chat.domain.value_objects.enums import ConnectionStatus
from marketplace_chat.infrastructure.ws.protocol import HANDLED_EVENTS, decode_event

logger = logging.getLogger(__name__)

# Prefix of the server's handshake rejections; retrying with the same token cannot fix them.
_AUTH_REJECTED = "Authentication error"


class SocketIOChannel:
    """Keeps one Socket.IO connection open and dispatches chat events.

    The token travels in the handshake ``auth`` payload. Initial connection
    attempts are retried here; drops after a successful connection are
    retried by the client library with the same bounds. Events go to
    subscribers one at a time in arrival order. Status changes, including
    the final ``DOWN`` once reconnects are exhausted, go to status
    listeners; nothing is raised out of the background tasks.
    """

    def __init__(
        self,
        url: str,
        *,
        socketio_path: str = "socket.io",
        reconnect_attempts: int = 5,
        reconnect_delay: float = 1.0,
        connect_timeout: float = 5.0,
    ) -> None:
        self._url = url
        self._socketio_path = socketio_path
        self._reconnect_attempts = reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._connect_timeout = connect_timeout
        self._handlers: list[EventHandler] = []
        self._status_handlers: list[StatusHandler] = []
        self._status = ConnectionStatus.DISCONNECTED
        self._sio: socketio.AsyncClient | None = None
        self._task: asyncio.Task[None] | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._queue: asyncio.Queue[InboundEvent] = asyncio.Queue()
        self._token: str | None = None
        self._rejection: str | None = None
        self._closing = False

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED and self._sio is not None and self._sio.connected

    def subscribe(self, handler: EventHandler) -> Subscription:
        return Subscription(self._handlers, handler)

    def on_status(self, handler: StatusHandler) -> Subscription:
        return Subscription(self._status_handlers, handler)

    async def connect(self, token: str | None) -> None:
        if not token:
            raise AuthError("Cannot connect channel: no authentication token")
        await self._stop()
        self._token = token
        self._closing = False
        self._queue = asyncio.Queue()
        self._drain_task = asyncio.create_task(self._drain(), name="chat-channel-events")
        self._task = asyncio.create_task(self._run(), name="chat-channel")

    async def send(self, event_type: str, payload: dict[str, Any]) -> bool:
        sio = self._sio
        if sio is None or not sio.connected:
            logger.debug("Channel not connected, dropping %s", event_type)
            return False
        try:
            await sio.emit(str(event_type), payload)
        except socketio.exceptions.SocketIOError as exc:
            logger.warning("Failed to emit %s: %s", event_type, exc)
            return False
        return True

    async def close(self) -> None:
        """Stop the connection, drop every subscriber and report DISCONNECTED."""
        await self._stop()
        self._handlers.clear()
        self._set_status(ConnectionStatus.DISCONNECTED)
        self._status_handlers.clear()

    async def _stop(self) -> None:
        self._closing = True
        sio, self._sio = self._sio, None
        if sio is not None:
            try:
                await sio.disconnect()
            except socketio.exceptions.SocketIOError as exc:
                logger.debug("Error while disconnecting channel: %s", exc)
        for task in (self._task, self._drain_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._drain_task = None

    def _new_client(self) -> socketio.AsyncClient:
        if self._reconnect_attempts > 0:
            sio = socketio.AsyncClient(
                reconnection=True,
                reconnection_attempts=self._reconnect_attempts,
                reconnection_delay=self._reconnect_delay,
                reconnection_delay_max=self._reconnect_delay,
                randomization_factor=0,
            )
        else:
            sio = socketio.AsyncClient(reconnection=False)
        sio.on("connect", self._on_connect)
        sio.on("disconnect", self._on_disconnect)
        sio.on("connect_error", self._on_connect_error)
        for event_type in HANDLED_EVENTS:
            sio.on(event_type, self._event_listener(event_type))
        return sio

    async def _run(self) -> None:
        failures = 0
        while not self._closing:
            self._set_status(ConnectionStatus.CONNECTING)
            self._rejection = None
            sio = self._new_client()
            self._sio = sio
            try:
                await sio.connect(
                    self._url,
                    auth={"token": self._token},
                    socketio_path=self._socketio_path,
                    wait_timeout=self._connect_timeout,
                )
            except socketio.exceptions.ConnectionError as exc:
                logger.warning("Channel connection error: %s", exc)

            if self._rejection is not None:
                logger.warning("Channel handshake rejected: %s", self._rejection)
                self._sio = None
                await sio.disconnect()
                self._set_status(
                    ConnectionStatus.DOWN,
                    ChannelDown(f"Authentication failed: {self._rejection}"),
                )
                return

            if sio.connected:
                logger.info("Channel connected to %s", self._url)
                # Returns once the library stops reconnecting after a drop.
                await sio.wait()
                if self._closing:
                    return
                self._sio = None
                self._set_status(
                    ConnectionStatus.DOWN,
                    ChannelDown(f"Gave up after {self._reconnect_attempts} reconnection attempts"),
                )
                return

            self._sio = None
            if self._closing:
                return
            failures += 1
            if failures > self._reconnect_attempts:
                self._set_status(
                    ConnectionStatus.DOWN,
                    ChannelDown(f"Gave up after {self._reconnect_attempts} reconnection attempts"),
                )
                return
            logger.info(
                "Reconnecting in %.1fs (attempt %d/%d)",
                self._reconnect_delay, failures, self._reconnect_attempts,
            )
            await asyncio.sleep(self._reconnect_delay)

    def _on_connect(self) -> None:
        self._set_status(ConnectionStatus.CONNECTED)

    def _on_disconnect(self, reason: Any = None) -> None:
        if not self._closing:
            logger.info("Channel dropped (%s), reconnecting", reason)
            self._set_status(ConnectionStatus.CONNECTING)

    def _on_connect_error(self, data: Any = None) -> None:
        message = data.get("message") if isinstance(data, dict) else data
        if isinstance(message, str) and message.startswith(_AUTH_REJECTED):
            self._rejection = message
        else:
            logger.debug("Channel connect error: %s", data)

    def _event_listener(self, event_type: str) -> Callable[..., None]:
        def listener(data: Any = None) -> None:
            try:
                event = decode_event(event_type, data)
            except ValidationError as exc:
                logger.warning("Dropping channel event: %s", exc.detail)
                return
            if event is not None:
                self._queue.put_nowait(event)

        return listener

    async def _drain(self) -> None:
        while True:
            event = await self._queue.get()
            for handler in list(self._handlers):
                try:
                    await handler(event)
                except Exception:
                    logger.exception("Channel event handler failed for %s", type(event).__name__)

    def _set_status(self, status: ConnectionStatus, error: ChannelDown | None = None) -> None:
        if status == self._status and error is None:
            return
        self._status = status
        for handler in list(self._status_handlers):
            try:
                handler(status, error)
            except Exception:
                logger.exception("Channel status listener failed")
